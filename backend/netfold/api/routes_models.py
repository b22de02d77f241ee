"""
Routes for model upload, status and mesh graph retrieval.

This router exposes endpoints to upload a binary STL file, list and
inspect stored models and retrieve the mesh graph built for a model.
Graph construction is scheduled as a background task right after the
upload so that later graph and unfold requests can be served from the
cache.
"""

from __future__ import annotations

from fastapi import APIRouter, UploadFile, File, BackgroundTasks, HTTPException

from .models import (
    FaceInfo,
    MeshGraphResponse,
    MissingEdgeInfo,
    ModelInfo,
    ModelStatusInfo,
    NeighborInfo,
)
from ..services.graph_service import get_graph_for_model, precompute_graph_for_model
from ..services.mesh_graph import Mesh, MissingEdge
from ..services.models_store import (
    ModelRecord,
    list_models as list_model_records,
    get_model_record,
    delete_model as delete_model_record,
)
from ..services.storage import save_model_file


router = APIRouter()


def _status_info(record: ModelRecord) -> ModelStatusInfo:
    return ModelStatusInfo(
        modelId=record.model_id,
        name=record.original_name,
        createdAt=record.created_at,
        status=record.status,
        errorMessage=record.error_message,
    )


def diagnostics_to_info(diagnostics: list[MissingEdge]) -> list[MissingEdgeInfo]:
    return [MissingEdgeInfo(face=d.face, edge=d.edge, reason=d.reason) for d in diagnostics]


def mesh_to_graph_response(model_id: str, mesh: Mesh) -> MeshGraphResponse:
    """Convert a mesh graph into its API representation."""
    faces: list[FaceInfo] = []
    for idx, face in enumerate(mesh.faces):
        faces.append(
            FaceInfo(
                index=idx,
                vertices=list(face.vertices),
                edgeLengths=list(face.edge_lengths),
                neighbors=[
                    None
                    if link is None
                    else NeighborInfo(face=link.face, edge=link.edge, coplanar=link.coplanar)
                    for link in face.neighbors
                ],
                exclusion=face.exclusion,
            )
        )
    return MeshGraphResponse(
        modelId=model_id,
        vertexCount=mesh.vertex_count,
        faceCount=mesh.face_count,
        vertices=[list(v.point.as_tuple()) for v in mesh.vertices],
        faces=faces,
        diagnostics=diagnostics_to_info(mesh.diagnostics),
    )


@router.post("/models", response_model=ModelInfo, status_code=201)
async def upload_model(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
) -> ModelInfo:
    """Upload a binary STL file and schedule mesh graph construction.

    The file is stored on disk and a unique model identifier is
    generated.  Unless a graph for identical content is already cached,
    a background task builds it; format errors surface later as a
    ``failed`` model status.
    """
    model_info = save_model_file(file)
    if model_info.status != "ready":
        background_tasks.add_task(precompute_graph_for_model, model_info.modelId)
    return model_info


@router.get("/models", response_model=list[ModelStatusInfo])
async def list_models() -> list[ModelStatusInfo]:
    """Return a list of all models with their status."""
    return [_status_info(r) for r in list_model_records()]


@router.get("/models/{model_id}", response_model=ModelStatusInfo)
async def get_model(model_id: str) -> ModelStatusInfo:
    """Return detailed status information for a single model.

    Raises:
        HTTPException: If the model does not exist.
    """
    record = get_model_record(model_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Model not found")
    return _status_info(record)


@router.get("/models/{model_id}/graph", response_model=MeshGraphResponse)
async def get_graph(model_id: str) -> MeshGraphResponse:
    """Return the mesh graph of a model: vertices, faces, links and diagnostics."""
    mesh = get_graph_for_model(model_id)
    return mesh_to_graph_response(model_id, mesh)


@router.delete("/models/{model_id}", status_code=204)
async def delete_model(model_id: str) -> None:
    """Delete a model record.

    Binary files and graph caches are shared by content and stay on
    disk.
    """
    delete_model_record(model_id)
    return None
