"""Shared pytest configuration for the netfold backend tests.

Storage is redirected to a throw-away directory before any ``netfold``
module is imported, so the SQLite database, uploaded files and graph
caches created by the API tests never touch ``backend/storage``.
"""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

BACKEND = Path(__file__).resolve().parents[1]
if str(BACKEND) not in sys.path:
    sys.path.insert(0, str(BACKEND))

os.environ.setdefault("NETFOLD_STORAGE_DIR", tempfile.mkdtemp(prefix="netfold-tests-"))
