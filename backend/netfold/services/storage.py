"""
Local storage service for uploaded STL models.

Uploads are streamed to a temporary file while their SHA-256 hash is
computed, then moved into ``storage/binary/{hash}.stl``.  Identical
uploads share one binary file; every upload still gets its own
``ModelRecord`` and model identifier.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

import hashlib
import os
import uuid
from pathlib import Path

from fastapi import UploadFile

from ..api.models import ModelInfo
from .db import STORAGE_DIR
from .models_store import (
    ModelRecord,
    insert_model_record,
    get_binary_file_by_hash,
    create_binary_file,
    get_graph_cache_for_binary,
)
from .primitives import EPS


# Directory for canonical binary files keyed by hash.
STORAGE_BINARY_DIR = STORAGE_DIR / "binary"
STORAGE_BINARY_DIR.mkdir(parents=True, exist_ok=True)

# Temporary directory for streaming uploads while computing hashes.
STORAGE_TEMP_DIR = STORAGE_DIR / "tmp"
STORAGE_TEMP_DIR.mkdir(parents=True, exist_ok=True)


def save_model_file(upload_file: UploadFile) -> ModelInfo:
    """Persist an uploaded STL file to disk and return its metadata.

    If a binary with the same hash already exists, the temporary file
    is discarded and the existing binary reused.  The new model starts
    ``ready`` when a graph for that binary is already cached and
    ``preprocessing`` otherwise.

    Args:
        upload_file: Incoming file from the client.

    Returns:
        ModelInfo: Metadata describing the stored file.
    """
    logger.info("Saving uploaded model %s", getattr(upload_file, "filename", "<unknown>"))
    model_id = uuid.uuid4().hex
    _, ext = os.path.splitext(upload_file.filename or "")
    ext = ext.lower() or ".stl"
    sha256 = hashlib.sha256()
    temp_path = STORAGE_TEMP_DIR / f"tmp_{model_id}"
    with temp_path.open("wb") as tmp_file:
        while True:
            chunk = upload_file.file.read(8192)
            if not chunk:
                break
            tmp_file.write(chunk)
            sha256.update(chunk)
    file_hash = sha256.hexdigest()
    filesize_bytes = temp_path.stat().st_size
    canonical_path = STORAGE_BINARY_DIR / f"{file_hash}{ext}"
    binary = get_binary_file_by_hash(file_hash)
    if binary is None:
        if not canonical_path.exists():
            temp_path.replace(canonical_path)
        else:
            # File already on disk without a record; keep the existing copy
            temp_path.unlink(missing_ok=True)
        binary = create_binary_file(file_hash, str(canonical_path), filesize_bytes)
    else:
        temp_path.unlink(missing_ok=True)
        canonical_path = Path(binary.file_path)
    cache = get_graph_cache_for_binary(binary.id, EPS)
    status = "ready" if cache is not None else "preprocessing"
    record = ModelRecord(
        model_id=model_id,
        binary_file_id=binary.id,
        file_hash=file_hash,
        original_name=upload_file.filename or "",
        file_path=str(canonical_path),
        filesize_bytes=filesize_bytes,
        status=status,
    )
    insert_model_record(record)
    return ModelInfo(modelId=model_id, filename=upload_file.filename or "", status=status)
