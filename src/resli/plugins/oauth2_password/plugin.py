"""OAuth2 Resource Owner Password Credentials grant handler.

This module provides :class:`PasswordHandler`, which trades a user's
``username`` and ``password`` (plus the client credentials) for an access
token (:rfc:`6749` section 4.3). The token lifecycle is the same as for
:mod:`~resli.plugins.oauth2_client_credentials`.
"""

from __future__ import annotations

from resli.auth.base import AuthParam
from resli.auth.oauth import OAuthHandler


class PasswordHandler(OAuthHandler):
    """Authenticate via the OAuth2 password grant."""

    @property
    def name(self) -> str:
        return "oauth-password"

    @property
    def parameters(self) -> list[AuthParam]:
        return super().parameters + [
            AuthParam("username", required=True, help="Resource owner username"),
            AuthParam("password", required=True, help="Resource owner password"),
        ]

    def grant_data(self, params: dict[str, str]) -> dict[str, str]:
        data = self.base_data(params)
        data["grant_type"] = "password"
        data["username"] = params["username"]
        data["password"] = params["password"]
        return data
