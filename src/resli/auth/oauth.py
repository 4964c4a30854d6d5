"""Shared machinery for OAuth2 token grants.

:class:`OAuthHandler` implements the token lifecycle every grant shares:

1. Leave requests that already carry ``Authorization`` alone.
2. Reuse a cached, unexpired token for the ``<api>:<profile>`` key.
3. Otherwise try the stored refresh token.
4. Otherwise run the grant implemented by the subclass.

The resulting token is written back to the :class:`TokenCache`. A refresh
response without a new refresh token keeps the previous one.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from resli.auth.base import TRANSPORT_EXTENSION, AuthHandler, AuthParam
from resli.auth.token_cache import TokenCache, TokenEntry
from resli.exceptions import AuthError
from resli.output import debug

DEFAULT_EXPIRES_IN = 3600.0
TOKEN_TIMEOUT = 30.0

CLIENT_PARAMS = [
    AuthParam("client_id", required=True, help="OAuth2 client ID"),
    AuthParam("client_secret", required=True, help="OAuth2 client secret"),
    AuthParam("token_url", required=True, help="OAuth2 token URL"),
    AuthParam("scopes", help="Optional comma-separated scopes"),
]


def parse_token_response(data: dict[str, Any], now: Optional[datetime] = None) -> TokenEntry:
    """Build a :class:`TokenEntry` from a token endpoint JSON response.

    Expiry comes from ``expires_in`` (seconds) or ``expiry`` (ISO-8601),
    defaulting to one hour.

    Raises:
        AuthError: If ``access_token`` is missing or expiry is malformed.
    """
    if not isinstance(data, dict) or not data.get("access_token"):
        raise AuthError("Token response missing 'access_token' field")

    now = now or datetime.now(timezone.utc)
    try:
        if data.get("expires_in") is not None:
            expires_at = now + timedelta(seconds=float(data["expires_in"]))
        elif data.get("expiry"):
            raw_expiry = str(data["expiry"])
            if raw_expiry.endswith("Z"):
                raw_expiry = raw_expiry[:-1] + "+00:00"
            expires_at = datetime.fromisoformat(raw_expiry)
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)
        else:
            expires_at = now + timedelta(seconds=DEFAULT_EXPIRES_IN)
    except (TypeError, ValueError) as exc:
        raise AuthError(f"Token response has an invalid expiry: {exc}") from exc

    token_type = str(data.get("token_type") or "Bearer")
    if token_type.lower() == "bearer":
        token_type = "Bearer"

    scope = data.get("scope")
    return TokenEntry(
        access_token=str(data["access_token"]),
        token_type=token_type,
        expires_at=expires_at,
        refresh_token=data.get("refresh_token") or None,
        scopes=scope.split() if isinstance(scope, str) else [],
    )


def request_token(
    token_url: str,
    data: dict[str, str],
    transport: Optional[httpx.BaseTransport] = None,
) -> TokenEntry:
    """POST a form-encoded grant to *token_url* and parse the token.

    The request goes through *transport* when given, so it uses the same
    TLS material as the API it authenticates. Otherwise a plain
    :class:`httpx.HTTPTransport` is opened for the call.

    Raises:
        AuthError: If the request fails, the server answers with an error
            status, or the body is not a valid token response.
    """
    debug(f"Requesting OAuth2 token ({data.get('grant_type')}) from {token_url}")
    owned = transport is None
    if transport is None:
        transport = httpx.HTTPTransport()
    request = httpx.Request(
        "POST",
        token_url,
        data=data,
        headers={"Accept": "application/json"},
        extensions={"timeout": httpx.Timeout(TOKEN_TIMEOUT).as_dict()},
    )
    try:
        response = transport.handle_request(request)
        response.request = request
        response.read()
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPStatusError as exc:
        raise AuthError(
            f"Token request failed with status {exc.response.status_code}: "
            f"{exc.response.text}"
        ) from exc
    except httpx.HTTPError as exc:
        raise AuthError(f"Token request failed: {exc}") from exc
    except ValueError as exc:
        raise AuthError(f"Token response is not valid JSON: {exc}") from exc
    finally:
        if owned:
            transport.close()
    return parse_token_response(payload)


def split_scopes(value: str) -> list[str]:
    return [s.strip() for s in value.split(",") if s.strip()]


class OAuthHandler(AuthHandler):
    """Base class for OAuth2 grants backed by a persistent token cache."""

    def __init__(self, tokens: TokenCache) -> None:
        self._tokens = tokens

    @property
    def parameters(self) -> list[AuthParam]:
        return list(CLIENT_PARAMS)

    @abstractmethod
    def grant_data(self, params: dict[str, str]) -> dict[str, str]:
        """Form fields for a fresh token request."""
        ...

    def on_request(self, request: httpx.Request, key: str, params: dict[str, str]) -> None:
        if "authorization" in request.headers:
            return
        token = self.token(key, params, request.extensions.get(TRANSPORT_EXTENSION))
        request.headers["Authorization"] = token.authorization()

    def token(
        self,
        key: str,
        params: dict[str, str],
        transport: Optional[httpx.BaseTransport] = None,
    ) -> TokenEntry:
        """Return a usable token for *key*, refreshing or fetching as needed."""
        cached = self._tokens.load(key)
        if cached is not None and cached.is_valid():
            debug(f"Using cached OAuth2 token for {key}")
            return cached

        token: Optional[TokenEntry] = None
        if cached is not None and cached.refresh_token:
            try:
                token = request_token(
                    params["token_url"], self.refresh_data(params, cached.refresh_token), transport
                )
            except AuthError as exc:
                debug(f"Token refresh failed, requesting a new token: {exc}")

        if token is None:
            token = request_token(params["token_url"], self.grant_data(params), transport)

        if token.refresh_token is None and cached is not None:
            token.refresh_token = cached.refresh_token
        self._tokens.save(key, token)
        return token

    def refresh_data(self, params: dict[str, str], refresh_token: str) -> dict[str, str]:
        return {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": params["client_id"],
            "client_secret": params["client_secret"],
        }

    def extra_params(self, params: dict[str, str]) -> dict[str, str]:
        """Params not declared by the handler, forwarded to the token endpoint."""
        declared = {p.name for p in self.parameters}
        return {k: v for k, v in params.items() if k not in declared}

    def base_data(self, params: dict[str, str]) -> dict[str, str]:
        data = self.extra_params(params)
        data["client_id"] = params["client_id"]
        data["client_secret"] = params["client_secret"]
        scopes = split_scopes(params.get("scopes", ""))
        if scopes:
            data["scope"] = " ".join(scopes)
        return data
