"""
Health Routes
=============

FastAPI routes for health check endpoints.
"""

from fastapi import APIRouter, Depends

from rugplay_gateway.api.dependencies import (
    get_current_settings,
    get_render_orchestrator,
    get_upstream_client,
)
from rugplay_gateway.config.settings import Settings
from rugplay_gateway.core.rendering.orchestrator import RenderOrchestrator
from rugplay_gateway.core.upstream.client import UpstreamClient
from rugplay_gateway.models.schemas import HealthStatus

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthStatus)
async def health_check(
    settings: Settings = Depends(get_current_settings),
    client: UpstreamClient = Depends(get_upstream_client),
    orchestrator: RenderOrchestrator = Depends(get_render_orchestrator),
) -> HealthStatus:
    """Basic health check with free concurrency slots.

    Reports ``degraded`` while every render slot is busy.
    """
    render_slots = orchestrator.available_slots
    return HealthStatus(
        status="healthy" if render_slots > 0 else "degraded",
        version=settings.app_version,
        deployment_mode=settings.run_mode,
        available_render_slots=render_slots,
        available_upstream_slots=client.available_slots,
    )
