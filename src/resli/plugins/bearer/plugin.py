"""Bearer token auth handler.

This module provides :class:`BearerAuthHandler`, which implements the
``bearer`` scheme. The ``token`` param is sent as an
``Authorization: Bearer <token>`` header. Profile values go through
environment-variable expansion, so ``"token": "$MY_TOKEN"`` keeps the
secret out of ``apis.json``.

No token exchange or refresh happens here. For OAuth2-based token
acquisition, see :mod:`resli.plugins.oauth2_client_credentials`.
"""

from __future__ import annotations

import os

import httpx

from resli.auth.base import AuthHandler, AuthParam
from resli.exceptions import AuthError


class BearerAuthHandler(AuthHandler):
    """Authenticate via a static bearer token."""

    @property
    def name(self) -> str:
        return "bearer"

    @property
    def parameters(self) -> list[AuthParam]:
        return [AuthParam("token", required=True, help="Bearer token, may reference $ENV_VARS")]

    def on_request(self, request: httpx.Request, key: str, params: dict[str, str]) -> None:
        token = os.path.expandvars(params["token"]).strip()
        if not token or token.startswith("$"):
            raise AuthError(f"Bearer token for {key} is empty or references an unset variable")
        request.headers["Authorization"] = f"Bearer {token}"
