"""
Entry point for the netfold backend.

Running this script with ``python run.py`` will start the FastAPI
server that exposes the upload, graph and unfold APIs.  The application
defined in ``backend/netfold/main.py`` is imported after adjusting the
Python path to include the ``backend`` directory.
"""

from __future__ import annotations

import sys
from pathlib import Path

import logging
import uvicorn

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def main() -> None:
    """Run the Uvicorn server hosting the netfold application."""
    # Ensure ``netfold`` is importable from a source checkout that has
    # not been installed.
    backend_dir = Path(__file__).resolve().parent / "backend"
    if str(backend_dir) not in sys.path:
        sys.path.append(str(backend_dir))

    from netfold.main import app  # type: ignore

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
