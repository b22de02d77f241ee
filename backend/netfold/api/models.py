"""
Pydantic data models for the netfold API.

These models define the shapes of requests and responses used by the
backend.  Field names are camelCase to match the JSON contract consumed
by clients; service-level dataclasses are converted into these schemas
at the route boundary.
"""

from __future__ import annotations

from typing import List, Any, Optional
from pydantic import BaseModel, Field


class ModelInfo(BaseModel):
    """Metadata returned after a model file is uploaded."""

    modelId: str = Field(..., description="Unique identifier for the uploaded model")
    filename: str = Field(..., description="Original filename provided by the client")
    status: str = Field(..., description="Processing status of the model after upload")


class ModelStatusInfo(BaseModel):
    """Summary information about a stored model, including its processing status."""

    modelId: str = Field(..., description="Unique identifier for the model")
    name: str = Field(..., description="Original filename provided by the user")
    createdAt: Any = Field(..., description="Timestamp of when the model was uploaded")
    status: str = Field(..., description="Processing status of the model (uploaded, preprocessing, ready, failed)")
    errorMessage: str | None = Field(
        default=None, description="Optional error message if preprocessing failed"
    )


class NeighborInfo(BaseModel):
    """A filled neighbor slot of a face."""

    face: int = Field(..., description="Index of the neighboring face")
    edge: int = Field(..., description="Matching edge index on the neighboring face")
    coplanar: bool = Field(..., description="Whether the pair was judged coplanar")


class FaceInfo(BaseModel):
    """One face of the mesh graph."""

    index: int = Field(..., description="Face index in source order")
    vertices: List[int] = Field(..., description="Vertex indices in winding order")
    edgeLengths: List[float] = Field(..., description="Lengths of edges 0-1, 1-2 and 2-0")
    neighbors: List[Optional[NeighborInfo]] = Field(
        ..., description="Neighbor per edge, null where the edge is unmatched"
    )
    exclusion: str | None = Field(
        default=None,
        description="Why the face was excluded from matching ('degenerate' or 'duplicate')",
    )


class MissingEdgeInfo(BaseModel):
    """An edge left without a neighbor after adjacency construction."""

    face: int
    edge: int
    reason: str = Field(..., description="'unmatched', 'degenerate' or 'duplicate'")


class MeshGraphResponse(BaseModel):
    """Response returned for a mesh graph request."""

    modelId: str = Field(..., description="Identifier of the associated model")
    vertexCount: int = Field(..., description="Number of unique vertices")
    faceCount: int = Field(..., description="Number of faces")
    vertices: List[List[float]] = Field(..., description="Unique vertex positions in discovery order")
    faces: List[FaceInfo] = Field(..., description="Faces with their neighbor links")
    diagnostics: List[MissingEdgeInfo] = Field(
        default_factory=list, description="Edges without a neighbor"
    )


class UnfoldRecordInfo(BaseModel):
    """One face in unfolding order."""

    face: int = Field(..., description="Face index")
    enteringEdge: int | None = Field(
        ..., description="Hinge edge on this face shared with its parent; null for the root"
    )
    parent: int | None = Field(default=None, description="Face this one attaches to")
    edgeLengths: List[float] = Field(..., description="Lengths of edges 0-1, 1-2 and 2-0")


class UnfoldComponent(BaseModel):
    """The records of a single traversal."""

    root: int = Field(..., description="Face the traversal started from")
    records: List[UnfoldRecordInfo] = Field(..., description="Faces in attachment order")
    visitedCount: int = Field(..., description="Faces reached by this traversal")


class UnfoldResponse(BaseModel):
    """Response returned for an unfold request."""

    modelId: str = Field(..., description="Identifier of the associated model")
    totalCount: int = Field(..., description="Number of faces in the mesh")
    visitedCount: int = Field(..., description="Faces reached across all components")
    complete: bool = Field(..., description="Whether every face was reached")
    components: List[UnfoldComponent] = Field(..., description="One entry per traversal")
    diagnostics: List[MissingEdgeInfo] = Field(
        default_factory=list, description="Edges without a neighbor"
    )
