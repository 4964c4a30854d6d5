"""Abstract base class for auth handlers.

An auth handler turns a profile's ``auth`` descriptor into request
mutations: it receives the outgoing :class:`httpx.Request`, a cache key
identifying the API profile (``"<api>:<profile>"``) and the configured
string params, and adds whatever headers or query parameters its scheme
needs.

To implement a new scheme, subclass :class:`AuthHandler`, set
:attr:`~AuthHandler.name`, declare :attr:`~AuthHandler.parameters` and
implement :meth:`~AuthHandler.on_request`.

Handlers that call out to other endpoints (OAuth token URLs) find the
API's transport, with its TLS material, in the request extension named
by :data:`TRANSPORT_EXTENSION`.

See Also:
    :mod:`resli.auth.manager` for registration and dispatch.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

# Request extension holding the httpx transport for the request's API.
TRANSPORT_EXTENSION = "resli.transport"


@dataclass(frozen=True)
class AuthParam:
    """A parameter an auth handler understands.

    Attributes:
        name: Key inside ``AuthConfig.params``.
        required: Whether the handler refuses to run without it.
        help: One-line description shown by ``resli api show``.
    """

    name: str
    required: bool = False
    help: str = ""


class AuthHandler(ABC):
    """Abstract base class for auth schemes.

    Handlers are registered with :class:`~resli.auth.manager.AuthRegistry`
    under their :attr:`name` and looked up when a request is enriched.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Scheme name used in ``apis.json`` (e.g. ``"http-basic"``)."""
        ...

    @property
    def parameters(self) -> list[AuthParam]:
        """Parameters this handler reads from ``AuthConfig.params``."""
        return []

    @abstractmethod
    def on_request(self, request: httpx.Request, key: str, params: dict[str, str]) -> None:
        """Mutate *request* so that it carries credentials.

        Args:
            request: The fully built outgoing request.
            key: Cache key for anything the handler persists between
                runs, unique per API profile.
            params: The profile's auth params.

        Raises:
            AuthError: If credentials cannot be obtained. The request is
                then never sent.
        """
        ...

    def validate_params(self, params: dict[str, str]) -> list[str]:
        """Return human-readable errors for missing required params."""
        return [
            f"Auth scheme '{self.name}' requires param '{p.name}'"
            for p in self.parameters
            if p.required and not params.get(p.name)
        ]
