"""Pluggable auth handlers for resli.

The main entry points are:

- :class:`AuthHandler` -- abstract base class for implementing new schemes.
- :class:`AuthRegistry` -- maps scheme names to handler instances and
  applies the profile's scheme to an outgoing request.
- :func:`create_default_registry` -- factory that returns a registry
  pre-loaded with all built-in handlers.
- :class:`TokenCache` -- persistent, per-profile OAuth token storage.

Typical usage::

    from resli.auth import TokenCache, create_default_registry

    registry = create_default_registry(TokenCache(state_store))
    registry.apply(request, "myapi:default", profile.auth)
"""

from resli.auth.base import AuthHandler, AuthParam
from resli.auth.manager import AuthRegistry, create_default_registry
from resli.auth.token_cache import TokenCache, TokenEntry

__all__ = [
    "AuthHandler",
    "AuthParam",
    "AuthRegistry",
    "TokenCache",
    "TokenEntry",
    "create_default_registry",
]
