"""OAuth2 resource-owner password grant handler (``oauth-password``)."""

from resli.plugins.oauth2_password.plugin import PasswordHandler

__all__ = ["PasswordHandler"]
