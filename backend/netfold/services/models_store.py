"""
High-level operations over model metadata.

This module defines the SQLModel tables used by the backend and helper
functions to insert and retrieve them.  A ``BinaryFileRecord`` points
at a unique STL payload on disk (keyed by its SHA-256 hash); any number
of ``ModelRecord`` entries may reference it when identical files are
uploaded.  A ``MeshGraphCacheRecord`` tracks the ``.npz`` archive that
holds the mesh graph built for a binary file, together with summary
counts so listings do not need to load the archive.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, List

from sqlmodel import SQLModel, Field, select

from .db import create_db_and_tables, get_session


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BinaryFileRecord(SQLModel, table=True):
    """Database model representing a unique STL file on disk."""

    id: Optional[int] = Field(default=None, primary_key=True)
    file_hash: str = Field(index=True, unique=True)
    file_path: str
    filesize_bytes: int
    created_at: datetime = Field(default_factory=_utcnow)


class ModelRecord(SQLModel, table=True):
    """Database model representing a user-facing model entry.

    A model references a ``BinaryFileRecord`` via ``binary_file_id`` and
    stores the original filename provided by the user.  ``status`` is
    one of ``uploaded``, ``preprocessing``, ``ready`` or ``failed``;
    ``error_message`` carries the reason for a failure, typically an
    STL format error.
    """

    model_id: str = Field(primary_key=True)
    binary_file_id: int = Field(foreign_key="binaryfilerecord.id")
    file_hash: str
    original_name: str
    file_path: str
    filesize_bytes: int
    created_at: datetime = Field(default_factory=_utcnow)
    status: str = Field(default="uploaded")
    error_message: Optional[str] = None


class MeshGraphCacheRecord(SQLModel, table=True):
    """Database model representing a cached mesh graph for a binary file.

    The graph itself lives in a compressed ``.npz`` archive at
    ``graph_path``.  ``eps`` records the vertex tolerance the graph was
    built with; a graph built with a different tolerance is a different
    cache entry.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    binary_file_id: int = Field(foreign_key="binaryfilerecord.id")
    eps: float
    graph_path: str
    vertex_count: int
    face_count: int
    missing_edge_count: int
    created_at: datetime = Field(default_factory=_utcnow)


def init_db() -> None:
    """Initialise the database and create tables if they do not exist."""
    create_db_and_tables()


def insert_model_record(record: ModelRecord) -> None:
    """Insert a new ``ModelRecord`` into the database."""
    with get_session() as session:
        session.add(record)
        session.commit()


def get_model_record(model_id: str) -> Optional[ModelRecord]:
    """Retrieve a ``ModelRecord`` by its model identifier.

    Returns:
        The matching ``ModelRecord`` if found, otherwise ``None``.
    """
    with get_session() as session:
        return session.get(ModelRecord, model_id)


def list_models() -> List[ModelRecord]:
    """Return all model records in the database."""
    with get_session() as session:
        statement = select(ModelRecord)
        return list(session.exec(statement))


def get_binary_file_by_hash(file_hash: str) -> Optional[BinaryFileRecord]:
    """Retrieve a ``BinaryFileRecord`` by its file hash."""
    with get_session() as session:
        statement = select(BinaryFileRecord).where(BinaryFileRecord.file_hash == file_hash)
        return session.exec(statement).first()


def get_binary_file_by_id(binary_file_id: int) -> Optional[BinaryFileRecord]:
    """Retrieve a ``BinaryFileRecord`` by its primary key."""
    with get_session() as session:
        return session.get(BinaryFileRecord, binary_file_id)


def create_binary_file(file_hash: str, file_path: str, filesize_bytes: int) -> BinaryFileRecord:
    """Create and persist a new ``BinaryFileRecord``.

    Args:
        file_hash: SHA-256 hash of the file contents.
        file_path: Absolute path to the file on disk.
        filesize_bytes: Size of the file in bytes.

    Returns:
        The persisted ``BinaryFileRecord`` instance.
    """
    record = BinaryFileRecord(
        file_hash=file_hash,
        file_path=file_path,
        filesize_bytes=filesize_bytes,
    )
    with get_session() as session:
        session.add(record)
        session.commit()
        session.refresh(record)
        return record


def update_models_status_for_binary(binary_file_id: int, status: str, error_message: Optional[str] = None) -> None:
    """Update the status of all models referencing a given binary.

    Args:
        binary_file_id: The ID of the ``BinaryFileRecord`` to update models for.
        status: New status value (e.g. 'ready', 'failed').
        error_message: Optional error message to set on models.
    """
    with get_session() as session:
        stmt = select(ModelRecord).where(ModelRecord.binary_file_id == binary_file_id)
        models = session.exec(stmt).all()
        for m in models:
            m.status = status
            m.error_message = error_message
            session.add(m)
        session.commit()


def delete_model(model_id: str) -> None:
    """Delete a model record.

    Binary files and graph caches are shared between models with the
    same content and are left in place.
    """
    with get_session() as session:
        model = session.get(ModelRecord, model_id)
        if model is None:
            return
        session.delete(model)
        session.commit()


def get_graph_cache_for_binary(binary_file_id: int, eps: float) -> Optional[MeshGraphCacheRecord]:
    """Retrieve a graph cache record for a given binary file and tolerance."""
    with get_session() as session:
        statement = select(MeshGraphCacheRecord).where(
            MeshGraphCacheRecord.binary_file_id == binary_file_id,
            MeshGraphCacheRecord.eps == eps,
        )
        return session.exec(statement).first()


def upsert_graph_cache_for_binary(record: MeshGraphCacheRecord) -> None:
    """Insert or replace a graph cache record for a binary.

    If a record already exists for the given binary and tolerance, it
    will be replaced.
    """
    with get_session() as session:
        stmt = select(MeshGraphCacheRecord).where(
            MeshGraphCacheRecord.binary_file_id == record.binary_file_id,
            MeshGraphCacheRecord.eps == record.eps,
        )
        existing = session.exec(stmt).first()
        if existing is not None:
            session.delete(existing)
            session.commit()
        session.add(record)
        session.commit()
