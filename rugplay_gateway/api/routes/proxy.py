"""
Proxy Routes
============

Read-only endpoints that reshape an inbound request into one upstream call and
relay the result. Upstream error statuses are mirrored; anything unexpected
becomes a generic 500.
"""

import re
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from rugplay_gateway.api.dependencies import get_credential_resolver, get_upstream_client
from rugplay_gateway.config.logging import get_logger
from rugplay_gateway.config.settings import DeploymentMode
from rugplay_gateway.core.upstream.client import UpstreamClient, UpstreamHTTPError
from rugplay_gateway.core.upstream.credentials import API_KEY_PARAM, CredentialResolver
from rugplay_gateway.models.schemas import ProxyErrorResponse, ProxyRequestSpec

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Proxy"])

UPSTREAM_ERROR_MESSAGE = "Failed to fetch data from external API."
INTERNAL_ERROR_MESSAGE = "Internal server error."

DEFAULT_MARKET_PAGE = 1
DEFAULT_MARKET_LIMIT = 12
DEFAULT_TIMEFRAME = "1m"
DEFAULT_HOLDERS_LIMIT = 50

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def lenient_int(value: Optional[str], default: int) -> int:
    """Parse a leading integer; unparsable or zero values give the default."""
    if value is None:
        return default
    match = _LEADING_INT.match(value)
    if not match:
        return default
    return int(match.group(1)) or default


async def relay(
    spec: ProxyRequestSpec,
    request: Request,
    resolver: CredentialResolver,
    client: UpstreamClient,
) -> Any:
    """Run one upstream call and translate the outcome into a response."""
    credentials = resolver.resolve(request.query_params)
    if resolver.mode is DeploymentMode.DEPLOYED:
        logger.info(
            "Deployed-mode proxy call",
            path=spec.path,
            apikey_present=API_KEY_PARAM in request.query_params,
        )

    try:
        return await client.fetch(
            spec.path,
            credentials.headers,
            path_params=spec.path_params,
            query_params=spec.query_params,
        )
    except UpstreamHTTPError as e:
        logger.error("Upstream API error", url=e.url, status=e.status, details=e.body)
        envelope = ProxyErrorResponse(error=UPSTREAM_ERROR_MESSAGE, details=e.body)
        return JSONResponse(status_code=e.status, content=envelope.model_dump())
    except Exception as e:
        logger.error("Error fetching data", path=spec.path, error=str(e), exc_info=True)
        envelope = ProxyErrorResponse(error=INTERNAL_ERROR_MESSAGE)
        return JSONResponse(status_code=500, content=envelope.model_dump(exclude_none=True))


@router.get("/top-coins")
async def top_coins(
    request: Request,
    resolver: CredentialResolver = Depends(get_credential_resolver),
    client: UpstreamClient = Depends(get_upstream_client),
) -> Any:
    """Top coins by market cap."""
    return await relay(ProxyRequestSpec(path="/v1/top"), request, resolver, client)


@router.get("/market-data")
async def market_data(
    request: Request,
    search: Optional[str] = None,
    sortBy: Optional[str] = None,
    sortOrder: Optional[str] = None,
    priceFilter: Optional[str] = None,
    changeFilter: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    resolver: CredentialResolver = Depends(get_credential_resolver),
    client: UpstreamClient = Depends(get_upstream_client),
) -> Any:
    """Market listing with search, sorting, filters and paging."""
    spec = ProxyRequestSpec(
        path="/v1/market",
        query_params={
            "search": search,
            "sortBy": sortBy,
            "sortOrder": sortOrder,
            "priceFilter": priceFilter,
            "changeFilter": changeFilter,
            "page": lenient_int(page, DEFAULT_MARKET_PAGE),
            "limit": lenient_int(limit, DEFAULT_MARKET_LIMIT),
        },
    )
    return await relay(spec, request, resolver, client)


@router.get("/coin-info")
async def coin_info(
    request: Request,
    symbol: str = "",
    timeframe: Optional[str] = None,
    resolver: CredentialResolver = Depends(get_credential_resolver),
    client: UpstreamClient = Depends(get_upstream_client),
) -> Any:
    """Coin details and candles for one symbol."""
    spec = ProxyRequestSpec(
        path="/v1/coin/{symbol}",
        path_params={"symbol": symbol},
        query_params={"timeframe": timeframe or DEFAULT_TIMEFRAME},
    )
    return await relay(spec, request, resolver, client)


@router.get("/coin-holders")
async def coin_holders(
    request: Request,
    symbol: str = "",
    limit: Optional[str] = None,
    resolver: CredentialResolver = Depends(get_credential_resolver),
    client: UpstreamClient = Depends(get_upstream_client),
) -> Any:
    """Holder list for one symbol."""
    spec = ProxyRequestSpec(
        path="/v1/holders/{symbol}",
        path_params={"symbol": symbol},
        query_params={"limit": limit or DEFAULT_HOLDERS_LIMIT},
    )
    return await relay(spec, request, resolver, client)
