"""Auth registry -- lookup and dispatch for auth handlers.

The :class:`AuthRegistry` maps scheme names (``"http-basic"``,
``"oauth-client-credentials"``, ...) to :class:`~resli.auth.base.AuthHandler`
instances and exposes a single :meth:`~AuthRegistry.apply` method that the
request enricher calls once per outgoing request.

For most use cases, call :func:`create_default_registry` to get a registry
pre-loaded with every built-in handler plus any installed through the
``resli.auth`` entry-point group.
"""

from __future__ import annotations

import importlib.metadata
from typing import Optional

import httpx

from resli.auth.base import TRANSPORT_EXTENSION, AuthHandler
from resli.auth.token_cache import TokenCache
from resli.exceptions import AuthError
from resli.models import AuthConfig
from resli.output import debug, warning

ENTRY_POINT_GROUP = "resli.auth"


class AuthRegistry:
    """Registry and dispatcher for auth handlers.

    Registering a second handler under an existing name replaces the
    first, so installed plugins can override built-in schemes.

    Example::

        from resli.auth import AuthRegistry
        from resli.plugins.bearer import BearerAuthHandler

        registry = AuthRegistry()
        registry.register(BearerAuthHandler())
        registry.apply(request, "myapi:default", profile.auth)
    """

    def __init__(self) -> None:
        self._handlers: dict[str, AuthHandler] = {}

    def register(self, handler: AuthHandler, name: Optional[str] = None) -> None:
        """Register *handler* under *name* (default: ``handler.name``)."""
        self._handlers[name or handler.name] = handler

    def get(self, name: str) -> AuthHandler:
        """Retrieve a registered handler by scheme name.

        Raises:
            AuthError: If no handler is registered for *name*.
        """
        handler = self._handlers.get(name)
        if handler is None:
            available = ", ".join(sorted(self._handlers)) or "(none)"
            raise AuthError(
                f"No auth handler registered for scheme '{name}'. "
                f"Available schemes: {available}"
            )
        return handler

    def names(self) -> list[str]:
        """Return the registered scheme names, sorted."""
        return sorted(self._handlers)

    def apply(
        self,
        request: httpx.Request,
        key: str,
        auth: Optional[AuthConfig],
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Run the configured handler against *request*.

        Does nothing when the profile has no auth descriptor. *transport*
        is exposed to the handler under :data:`TRANSPORT_EXTENSION` for the
        duration of the call.

        Raises:
            AuthError: If the scheme is unknown, required params are missing,
                or the handler fails.
        """
        if auth is None or not auth.name:
            return
        handler = self.get(auth.name)
        errors = handler.validate_params(auth.params)
        if errors:
            raise AuthError("; ".join(errors))
        debug(f"Applying auth scheme '{auth.name}' for {key}")
        if transport is None:
            handler.on_request(request, key, auth.params)
            return
        request.extensions[TRANSPORT_EXTENSION] = transport
        try:
            handler.on_request(request, key, auth.params)
        finally:
            request.extensions.pop(TRANSPORT_EXTENSION, None)


def load_entry_point_handlers(registry: AuthRegistry) -> list[str]:
    """Register handlers published under the ``resli.auth`` entry-point group.

    Each entry point must resolve to a zero-argument callable returning an
    :class:`~resli.auth.base.AuthHandler`. Broken plugins are reported as
    warnings and skipped.

    Returns:
        Names of the handlers that were registered.
    """
    loaded: list[str] = []
    for ep in importlib.metadata.entry_points().select(group=ENTRY_POINT_GROUP):
        try:
            handler = ep.load()()
        except Exception as exc:
            warning(f"Failed to load auth plugin '{ep.name}': {exc}")
            continue
        if not isinstance(handler, AuthHandler):
            warning(f"Auth plugin '{ep.name}' did not provide an AuthHandler")
            continue
        registry.register(handler, ep.name)
        loaded.append(ep.name)
    return loaded


def create_default_registry(tokens: TokenCache, load_plugins: bool = True) -> AuthRegistry:
    """Create an :class:`AuthRegistry` pre-loaded with the built-in handlers.

    The following schemes are registered:

    - ``http-basic`` -- username/password Basic auth.
    - ``bearer`` -- static bearer token.
    - ``api-key`` -- static key in a header or query parameter.
    - ``oauth-client-credentials`` -- OAuth2 client-credentials grant.
    - ``oauth-password`` -- OAuth2 resource-owner password grant.

    Args:
        tokens: Persistent token cache shared by the OAuth handlers.
        load_plugins: Also register handlers from installed packages.
    """
    from resli.plugins.api_key import APIKeyAuthHandler
    from resli.plugins.basic import BasicAuthHandler
    from resli.plugins.bearer import BearerAuthHandler
    from resli.plugins.oauth2_client_credentials import ClientCredentialsHandler
    from resli.plugins.oauth2_password import PasswordHandler

    registry = AuthRegistry()
    registry.register(BasicAuthHandler())
    registry.register(BearerAuthHandler())
    registry.register(APIKeyAuthHandler())
    registry.register(ClientCredentialsHandler(tokens))
    registry.register(PasswordHandler(tokens))
    if load_plugins:
        load_entry_point_handlers(registry)
    return registry
