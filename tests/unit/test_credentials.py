"""
Unit Tests for Credential Resolver
==================================

Token source and header shape per deployment mode.
"""

from rugplay_gateway.config.settings import DeploymentMode
from rugplay_gateway.core.upstream.credentials import BROWSER_HEADERS, CredentialResolver

from tests.conftest import LOCAL_API_KEY, build_settings


class TestLocalMode:
    """Server-held key."""

    def test_uses_configured_key(self, local_settings):
        credentials = CredentialResolver(local_settings).resolve({})

        assert credentials.token == LOCAL_API_KEY
        assert credentials.headers == {
            "Authorization": f"Bearer {LOCAL_API_KEY}",
            "Content-Type": "application/json",
        }

    def test_ignores_caller_apikey(self, local_settings):
        credentials = CredentialResolver(local_settings).resolve({"apikey": "caller-key"})

        assert credentials.headers["Authorization"] == f"Bearer {LOCAL_API_KEY}"

    def test_missing_key_sends_empty_bearer(self):
        settings = build_settings(run_mode=DeploymentMode.LOCAL, api_key=None)
        credentials = CredentialResolver(settings).resolve({})

        assert credentials.token == ""
        assert credentials.headers["Authorization"] == "Bearer "

    def test_no_browser_headers(self, local_settings):
        headers = CredentialResolver(local_settings).resolve({}).headers
        assert "User-Agent" not in headers


class TestDeployedMode:
    """Caller-supplied key."""

    def test_uses_caller_apikey(self, deployed_settings):
        credentials = CredentialResolver(deployed_settings).resolve({"apikey": "caller-key"})

        assert credentials.token == "caller-key"
        assert credentials.headers["Authorization"] == "Bearer caller-key"
        assert credentials.headers["Content-Type"] == "application/json"

    def test_ignores_configured_key(self):
        settings = build_settings(run_mode=DeploymentMode.DEPLOYED, api_key="server-key")
        credentials = CredentialResolver(settings).resolve({"apikey": "caller-key"})

        assert credentials.headers["Authorization"] == "Bearer caller-key"

    def test_missing_apikey_is_not_rejected(self, deployed_settings):
        credentials = CredentialResolver(deployed_settings).resolve({})

        assert credentials.headers["Authorization"] == "Bearer "

    def test_adds_browser_headers(self, deployed_settings):
        headers = CredentialResolver(deployed_settings).resolve({"apikey": "k"}).headers

        for name, value in BROWSER_HEADERS.items():
            assert headers[name] == value
        assert {"User-Agent", "Accept", "Accept-Language", "Accept-Encoding", "Connection", "Cache-Control"} <= set(headers)

    def test_resolution_is_pure(self, deployed_settings):
        resolver = CredentialResolver(deployed_settings)
        assert resolver.resolve({"apikey": "k"}) == resolver.resolve({"apikey": "k"})
