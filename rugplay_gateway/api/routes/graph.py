"""
Graph Routes
============

Chart rendering endpoint backed by the render subprocess.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from rugplay_gateway.api.dependencies import get_render_orchestrator
from rugplay_gateway.config.logging import get_logger
from rugplay_gateway.core.rendering.orchestrator import RenderError, RenderOrchestrator
from rugplay_gateway.models.schemas import GraphResponse, RenderJob

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Rendering"])

GRAPH_PATH = "/api/graph"
INVALID_BODY_MESSAGE = "Invalid request body"


def graph_error_response(status_code: int, message: str) -> JSONResponse:
    response = GraphResponse(success=False, error=message)
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(by_alias=True, exclude={"graph_data"}),
    )


@router.post("/graph", response_model=GraphResponse)
async def generate_graph(
    body: Any = Body(None),
    orchestrator: RenderOrchestrator = Depends(get_render_orchestrator),
):
    """
    Render a chart for the submitted series.

    The body is passed to the render subprocess unchanged and its JSON output is
    returned as ``graphData``.
    """
    job = RenderJob(payload=body)
    logger.info("Graph render requested", coin=job.coin, candles=job.candle_count)

    try:
        graph_data = await orchestrator.render(job)
    except RenderError as e:
        logger.error("Graph render failed", coin=job.coin, error=str(e))
        return graph_error_response(e.status_code, e.public_message)

    logger.info("Returning graph data", coin=job.coin)
    response = GraphResponse(success=True, graph_data=graph_data)
    return JSONResponse(content=response.model_dump(by_alias=True, exclude={"error"}))
