"""HTTP Basic auth handler.

This module provides :class:`BasicAuthHandler`, which implements the
``http-basic`` scheme. The ``username`` and ``password`` params are joined
with a colon, Base64-encoded, and sent as an
``Authorization: Basic <encoded>`` header per :rfc:`7617`.
"""

from __future__ import annotations

import base64

import httpx

from resli.auth.base import AuthHandler, AuthParam
from resli.exceptions import AuthError


class BasicAuthHandler(AuthHandler):
    """Authenticate via HTTP Basic authentication."""

    @property
    def name(self) -> str:
        return "http-basic"

    @property
    def parameters(self) -> list[AuthParam]:
        return [
            AuthParam("username", required=True, help="Login username"),
            AuthParam("password", required=True, help="Login password"),
        ]

    def on_request(self, request: httpx.Request, key: str, params: dict[str, str]) -> None:
        """Set the ``Authorization: Basic`` header.

        Raises:
            AuthError: If the username contains a colon, which Basic auth
                cannot represent.
        """
        username = params["username"]
        if ":" in username:
            raise AuthError("Basic auth username must not contain ':'")
        raw = f"{username}:{params['password']}"
        encoded = base64.b64encode(raw.encode("utf-8")).decode("ascii")
        request.headers["Authorization"] = f"Basic {encoded}"
