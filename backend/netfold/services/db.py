"""
Database configuration and session management for the netfold backend.

This module defines a SQLModel engine targeting a SQLite database stored
in the project's ``storage`` directory.  It exposes helper functions to
initialise the schema and to obtain session objects for interacting
with the database.  Creating this layer centrally keeps database
configuration isolated from business logic in other modules.

The storage root defaults to ``backend/storage`` and can be moved by
setting the ``NETFOLD_STORAGE_DIR`` environment variable before the
application is imported.
"""

from __future__ import annotations

import os
from pathlib import Path
from sqlmodel import SQLModel, create_engine, Session

# Determine the base directory for storage.  We walk up two parent
# directories from this file to locate the backend root, then append
# ``storage``.  If the storage directory doesn't exist, create it.
STORAGE_DIR = Path(
    os.getenv("NETFOLD_STORAGE_DIR")
    or Path(__file__).resolve().parents[2] / "storage"
)
STORAGE_DIR.mkdir(parents=True, exist_ok=True)

# Path to the SQLite database file.  Using as_posix() ensures the
# resulting URL is valid on all platforms.  Request handlers and
# background tasks run on different threads, so SQLite's same-thread
# check is disabled; every session is short-lived.
engine = create_engine(
    f"sqlite:///{(STORAGE_DIR / 'netfold.db').as_posix()}",
    echo=False,
    connect_args={"check_same_thread": False},
)

def create_db_and_tables() -> None:
    """Create all tables in the database.

    This should be called once on application startup.  If the
    database file does not exist it will be created automatically.
    """
    SQLModel.metadata.create_all(engine)


def get_session() -> Session:
    """Return a new SQLModel session bound to the engine.

    Sessions returned by this function should be managed with a
    context manager (``with get_session() as session: ...``) to
    ensure that connections are properly closed.
    """
    return Session(engine)
