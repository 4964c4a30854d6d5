"""Tests for the auth registry and the static-credential handlers."""

from __future__ import annotations

import base64

import httpx
import pytest

from resli.auth import AuthHandler, AuthParam, AuthRegistry, TokenCache, create_default_registry
from resli.exceptions import AuthError
from resli.models import AuthConfig
from resli.plugins.api_key import APIKeyAuthHandler
from resli.plugins.basic import BasicAuthHandler
from resli.plugins.bearer import BearerAuthHandler

KEY = "example:default"


def _request(url: str = "https://api.example.com/items", **headers: str) -> httpx.Request:
    return httpx.Request("GET", url, headers=headers)


class TestRegistry:
    def test_default_schemes(self, state) -> None:
        registry = create_default_registry(TokenCache(state), load_plugins=False)
        assert registry.names() == [
            "api-key",
            "bearer",
            "http-basic",
            "oauth-client-credentials",
            "oauth-password",
        ]

    def test_no_auth_is_noop(self) -> None:
        request = _request()
        AuthRegistry().apply(request, KEY, None)
        assert "authorization" not in request.headers

    def test_unknown_scheme_is_fatal(self) -> None:
        registry = AuthRegistry()
        registry.register(BearerAuthHandler())
        with pytest.raises(AuthError, match="No auth handler registered for scheme 'kerberos'"):
            registry.apply(_request(), KEY, AuthConfig(name="kerberos"))

    def test_missing_required_param(self) -> None:
        registry = AuthRegistry()
        registry.register(BasicAuthHandler())
        with pytest.raises(AuthError, match="requires param 'password'"):
            registry.apply(_request(), KEY, AuthConfig(name="http-basic", params={"username": "u"}))

    def test_register_replaces(self) -> None:
        class Custom(AuthHandler):
            name = "bearer"

            @property
            def parameters(self) -> list[AuthParam]:
                return []

            def on_request(self, request, key, params) -> None:
                request.headers["Authorization"] = f"Custom {key}"

        registry = AuthRegistry()
        registry.register(BearerAuthHandler())
        registry.register(Custom())
        request = _request()
        registry.apply(request, KEY, AuthConfig(name="bearer"))
        assert request.headers["authorization"] == "Custom example:default"


class TestBasic:
    def test_header(self) -> None:
        request = _request()
        BasicAuthHandler().on_request(request, KEY, {"username": "alice", "password": "s3cr:t"})
        expected = base64.b64encode(b"alice:s3cr:t").decode()
        assert request.headers["authorization"] == f"Basic {expected}"

    def test_colon_in_username(self) -> None:
        with pytest.raises(AuthError, match="must not contain"):
            BasicAuthHandler().on_request(_request(), KEY, {"username": "a:b", "password": "x"})


class TestBearer:
    def test_env_expansion(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("EXAMPLE_TOKEN", "tok-123")
        request = _request()
        BearerAuthHandler().on_request(request, KEY, {"token": "$EXAMPLE_TOKEN"})
        assert request.headers["authorization"] == "Bearer tok-123"

    def test_unset_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("EXAMPLE_TOKEN", raising=False)
        with pytest.raises(AuthError, match="unset variable"):
            BearerAuthHandler().on_request(_request(), KEY, {"token": "$EXAMPLE_TOKEN"})


class TestAPIKey:
    def test_header_default(self) -> None:
        request = _request()
        APIKeyAuthHandler().on_request(request, KEY, {"name": "X-API-Key", "value": "k"})
        assert request.headers["x-api-key"] == "k"

    def test_existing_header_wins(self) -> None:
        request = _request(**{"X-API-Key": "from-cli"})
        APIKeyAuthHandler().on_request(request, KEY, {"name": "X-API-Key", "value": "k"})
        assert request.headers["x-api-key"] == "from-cli"

    def test_query(self) -> None:
        request = _request("https://api.example.com/items?page=2")
        APIKeyAuthHandler().on_request(
            request, KEY, {"name": "api_key", "value": "k", "location": "query"}
        )
        assert request.url.params["api_key"] == "k"
        assert request.url.params["page"] == "2"

    def test_invalid_location(self) -> None:
        with pytest.raises(AuthError, match="Invalid api-key location"):
            APIKeyAuthHandler().on_request(
                _request(), KEY, {"name": "k", "value": "v", "location": "cookie"}
            )
