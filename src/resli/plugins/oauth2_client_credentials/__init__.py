"""OAuth2 client-credentials grant handler (``oauth-client-credentials``).

Implements the non-interactive Client Credentials grant (:rfc:`6749`
section 4.4) for machine-to-machine access.
"""

from resli.plugins.oauth2_client_credentials.plugin import ClientCredentialsHandler

__all__ = ["ClientCredentialsHandler"]
