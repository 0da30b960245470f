"""
Request Dependencies
====================

FastAPI dependencies handing the components built by the application factory to
route handlers.
"""

from fastapi import Request

from rugplay_gateway.config.settings import Settings
from rugplay_gateway.core.rendering.orchestrator import RenderOrchestrator
from rugplay_gateway.core.upstream.client import UpstreamClient
from rugplay_gateway.core.upstream.credentials import CredentialResolver


def get_current_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_credential_resolver(request: Request) -> CredentialResolver:
    return request.app.state.credential_resolver


def get_upstream_client(request: Request) -> UpstreamClient:
    return request.app.state.upstream_client


def get_render_orchestrator(request: Request) -> RenderOrchestrator:
    return request.app.state.render_orchestrator
