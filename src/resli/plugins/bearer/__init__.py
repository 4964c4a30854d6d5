"""Static bearer token auth handler (``bearer`` scheme)."""

from resli.plugins.bearer.plugin import BearerAuthHandler

__all__ = ["BearerAuthHandler"]
