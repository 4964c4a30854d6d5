"""API key auth handler -- supports header and query parameter placement.

This module provides :class:`APIKeyAuthHandler`. The ``value`` param is
expanded for environment variables and injected under ``name`` at the
configured ``location``.
"""

from __future__ import annotations

import os

import httpx

from resli.auth.base import AuthHandler, AuthParam
from resli.exceptions import AuthError


class APIKeyAuthHandler(AuthHandler):
    """Authenticate via an API key placed in a header or query parameter.

    An existing header or query parameter with the same name is left
    untouched, so a key passed explicitly with ``-H``/``-q`` takes
    precedence over the profile.
    """

    @property
    def name(self) -> str:
        return "api-key"

    @property
    def parameters(self) -> list[AuthParam]:
        return [
            AuthParam("name", required=True, help="Header or query parameter name"),
            AuthParam("value", required=True, help="Key value, may reference $ENV_VARS"),
            AuthParam("location", help="'header' (default) or 'query'"),
        ]

    def on_request(self, request: httpx.Request, key: str, params: dict[str, str]) -> None:
        name = params["name"]
        value = os.path.expandvars(params["value"])
        location = params.get("location", "header") or "header"

        if location == "header":
            if name not in request.headers:
                request.headers[name] = value
        elif location == "query":
            if name not in request.url.params:
                request.url = request.url.copy_add_param(name, value)
        else:
            raise AuthError(
                f"Invalid api-key location '{location}': must be 'header' or 'query'"
            )
