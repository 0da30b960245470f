"""
Pydantic Models and Schemas
===========================

Core data models for outbound credentials, proxy request shapes, render jobs and
the JSON envelopes returned by the HTTP surface.
"""

from typing import Optional, Dict, Any, Literal
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from rugplay_gateway.config.settings import DeploymentMode


class RenderState(str, Enum):
    """Lifecycle of one render subprocess."""

    SPAWNED = "spawned"
    INPUT_SENT = "input_sent"
    COLLECTING = "collecting"
    EXITED = "exited"


# Credential Models
class Credentials(BaseModel):
    """Bearer token and the full header set for one outbound call."""

    model_config = ConfigDict(frozen=True)

    token: str = Field("", description="Bearer token, empty when none is available")
    headers: Dict[str, str] = Field(default_factory=dict, description="Outbound headers")


# Proxy Models
class ProxyRequestSpec(BaseModel):
    """Shape of one upstream call, built fresh per inbound request."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Path template relative to the upstream base URL")
    path_params: Dict[str, str] = Field(default_factory=dict, description="Path identifiers")
    query_params: Dict[str, Any] = Field(
        default_factory=dict, description="Query parameters; None values are omitted"
    )


class ProxyErrorResponse(BaseModel):
    """Error envelope returned by proxy endpoints."""

    error: str = Field(..., description="Error message")
    details: Optional[str] = Field(None, description="Raw upstream response body")


# Rendering Models
class RenderJob(BaseModel):
    """One render request travelling to a subprocess.

    The payload is the request body exactly as the caller sent it.
    """

    payload: Any = Field(None, description="JSON value sent on stdin")

    @property
    def coin(self) -> Optional[Any]:
        if isinstance(self.payload, dict):
            return self.payload.get("coin")
        return None

    @property
    def candle_count(self) -> Optional[int]:
        if isinstance(self.payload, dict) and isinstance(self.payload.get("candlestickData"), list):
            return len(self.payload["candlestickData"])
        return None


class GraphResponse(BaseModel):
    """Response model for graph rendering."""

    success: bool = Field(..., description="Whether rendering succeeded")
    graph_data: Optional[Any] = Field(None, alias="graphData", description="Renderer output")
    error: Optional[str] = Field(None, description="Error message if failed")

    model_config = ConfigDict(populate_by_name=True)


# Health Check Models
class HealthStatus(BaseModel):
    """Health check status."""

    status: Literal["healthy", "unhealthy", "degraded"] = Field(..., description="Overall status")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Check timestamp"
    )
    version: str = Field(..., description="Application version")
    deployment_mode: DeploymentMode = Field(..., description="Active deployment mode")
    available_render_slots: int = Field(0, ge=0, description="Free render subprocess slots")
    available_upstream_slots: int = Field(0, ge=0, description="Free outbound call slots")
