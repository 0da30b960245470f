"""
FastAPI Application
==================

Application factory wiring settings, logging, the upstream client, the render
orchestrator, middleware and routes. Components are built once here and shared
through ``app.state``.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
import uvicorn

from rugplay_gateway import __version__
from rugplay_gateway.api.routes import graph, health, proxy
from rugplay_gateway.config.logging import get_logger, setup_logging
from rugplay_gateway.config.settings import Settings, get_settings
from rugplay_gateway.core.rendering.orchestrator import RenderOrchestrator
from rugplay_gateway.core.upstream.client import UpstreamClient
from rugplay_gateway.core.upstream.credentials import CredentialResolver

logger = get_logger(__name__)

HOMEPAGE = "/homepage/homepage.html"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    logger.info(
        "Starting Rugplay Gateway",
        run_mode=settings.run_mode.value,
        upstream=settings.upstream_base_url,
        port=settings.port,
    )

    try:
        yield
    finally:
        logger.info("Shutting down Rugplay Gateway")
        try:
            await app.state.upstream_client.close()
            logger.info("Upstream client closed")
        except Exception as e:
            logger.error("Error closing upstream client", error=str(e))


def create_app(
    settings: Optional[Settings] = None,
    upstream_client: Optional[UpstreamClient] = None,
    render_orchestrator: Optional[RenderOrchestrator] = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to use; loaded from the environment when omitted
        upstream_client: Upstream client override
        render_orchestrator: Render orchestrator override

    Returns:
        FastAPI application instance
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Market-data proxy and chart rendering gateway for the Rugplay API",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.state.settings = settings
    app.state.credential_resolver = CredentialResolver(settings)
    app.state.upstream_client = upstream_client or UpstreamClient(settings)
    app.state.render_orchestrator = render_orchestrator or RenderOrchestrator(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials="*" not in settings.allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):  # type: ignore
        """Add request ID to all requests."""
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Answer unreadable graph bodies with the graph error envelope."""
        if request.url.path != graph.GRAPH_PATH:
            return await request_validation_exception_handler(request, exc)

        logger.warning("Invalid graph request body", errors=str(exc.errors()))
        return graph.graph_error_response(400, graph.INVALID_BODY_MESSAGE)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """General exception handler for unexpected errors."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            exception=str(exc),
            request_id=getattr(request.state, "request_id", None),
            exc_info=True,
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error."})

    app.include_router(health.router)
    app.include_router(proxy.router)
    app.include_router(graph.router)

    if settings.static_dir is not None:
        if settings.static_dir.is_dir():

            @app.get("/", include_in_schema=False)
            async def root() -> RedirectResponse:
                return RedirectResponse(url=HOMEPAGE)

            app.mount("/", StaticFiles(directory=settings.static_dir), name="static")
            logger.info("Serving static files", directory=str(settings.static_dir))
        else:
            logger.warning("Static directory not found", directory=str(settings.static_dir))

    return app


def run_server() -> None:
    """Run the gateway with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "rugplay_gateway.api.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


if __name__ == "__main__":
    run_server()
