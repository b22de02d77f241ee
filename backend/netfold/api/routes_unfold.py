"""
API routes for unfolding traversals.

The unfold endpoint walks a model's mesh graph depth-first and returns
the faces in the order a flattening stage would attach them to the net,
each with the hinge edge it is attached through.  A single traversal
only covers the component containing the root; ``allComponents=true``
keeps traversing from the lowest unvisited face until every face has
been placed.  Coverage counts are always reported so clients can tell
a partial net from a complete one.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query

from .models import UnfoldComponent, UnfoldRecordInfo, UnfoldResponse
from .routes_models import diagnostics_to_info
from ..services.graph_service import unfold_model
from ..services.traversal import UnfoldResult

logger = logging.getLogger(__name__)

router = APIRouter()


def _component(result: UnfoldResult) -> UnfoldComponent:
    return UnfoldComponent(
        root=result.root,
        records=[
            UnfoldRecordInfo(
                face=r.face,
                enteringEdge=r.entering_edge,
                parent=r.parent,
                edgeLengths=list(r.edge_lengths),
            )
            for r in result.records
        ],
        visitedCount=result.visited_count,
    )


@router.get("/models/{model_id}/unfold", response_model=UnfoldResponse)
async def get_unfold(
    model_id: str,
    root: int = Query(0, ge=0, description="Face to start the traversal from"),
    allComponents: bool = Query(
        False,
        description="Traverse every connected component instead of only the root's",
    ),
) -> UnfoldResponse:
    """Compute the unfolding order for a model."""
    mesh, results = unfold_model(model_id, root=root, all_components=allComponents)
    visited = sum(r.visited_count for r in results)
    logger.debug(
        "Unfold[%s]: root=%d components=%d visited=%d/%d",
        model_id,
        root,
        len(results),
        visited,
        mesh.face_count,
    )
    return UnfoldResponse(
        modelId=model_id,
        totalCount=mesh.face_count,
        visitedCount=visited,
        complete=visited == mesh.face_count,
        components=[_component(r) for r in results],
        diagnostics=diagnostics_to_info(mesh.diagnostics),
    )
