"""
Credential Resolver
===================

Chooses the bearer token and header set attached to outbound calls. In local mode
the token is the server-held API key; in deployed mode it is whatever the caller
sent as the ``apikey`` query parameter.
"""

from typing import Any, Dict, Mapping

from rugplay_gateway.config.logging import get_logger
from rugplay_gateway.config.settings import DeploymentMode, Settings
from rugplay_gateway.models.schemas import Credentials

logger = get_logger(__name__)

API_KEY_PARAM = "apikey"

# Sent in deployed mode so the upstream's bot filter treats us like a browser.
BROWSER_HEADERS: Dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/58.0.3029.110 Safari/537.3"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "Pragma": "no-cache",
    "Cache-Control": "no-cache",
}


class CredentialResolver:
    """Resolve outbound credentials from the deployment mode and the current request."""

    def __init__(self, settings: Settings):
        self.mode = settings.run_mode
        self._local_token = settings.api_key or ""
        self.logger: Any = logger.bind(component="credential_resolver")

        if self.mode is DeploymentMode.LOCAL and not self._local_token:
            self.logger.warning(
                "No RUGPLAY_API_KEY configured; upstream calls will carry an empty bearer token"
            )

    def resolve(self, query_params: Mapping[str, str]) -> Credentials:
        """
        Build credentials for one outbound call.

        Args:
            query_params: Query parameters of the inbound request

        Returns:
            Credentials with the bearer token and every header to send
        """
        if self.mode is DeploymentMode.LOCAL:
            token = self._local_token
        else:
            token = query_params.get(API_KEY_PARAM) or ""

        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if self.mode is DeploymentMode.DEPLOYED:
            headers.update(BROWSER_HEADERS)

        return Credentials(token=token, headers=headers)
