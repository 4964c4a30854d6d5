"""OAuth2 Client Credentials grant handler.

This module provides :class:`ClientCredentialsHandler`, which exchanges a
``client_id`` and ``client_secret`` for an access token at ``token_url``.
Any params beyond the declared ones (for example ``audience``) are sent
to the token endpoint as extra form fields.

Tokens are persisted per ``<api>:<profile>`` through
:class:`~resli.auth.token_cache.TokenCache`, so consecutive invocations
reuse the same token until it expires.
"""

from __future__ import annotations

from resli.auth.oauth import OAuthHandler


class ClientCredentialsHandler(OAuthHandler):
    """Authenticate via the OAuth2 Client Credentials grant."""

    @property
    def name(self) -> str:
        return "oauth-client-credentials"

    def grant_data(self, params: dict[str, str]) -> dict[str, str]:
        data = self.base_data(params)
        data["grant_type"] = "client_credentials"
        return data
