"""Synchronous HTTP client: enrichment, cache, retry, decoding and pagination.

This module provides :class:`SyncClient`, the blocking client used by the
resli commands. It wraps one :class:`httpx.Client` per configured API and
layers on:

- **Request enrichment** -- profile defaults, ``-H``/``-q`` overrides,
  auth injection and negotiation headers via
  :class:`~resli.client.enricher.RequestEnricher`.
- **TLS assembly** -- profile TLS material overridden by CLI flags, with
  hardware-token material loaded only on the first HTTPS handshake.
- **Response caching** -- a :class:`~resli.cache.CachingTransport` in the
  transport stack, optionally with a minimum freshness floor.
- **Retry with backoff** -- see :class:`~resli.client.retry.RetryExecutor`.
- **Decoding and links** -- see :func:`~resli.client.response.parse_response`.
- **Auto-pagination** -- see :func:`~resli.client.pagination.paginate`.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

import httpx

from resli.auth.token_cache import TokenCache
from resli.cache import CachingTransport, MinFreshnessTransport, ResponseCache, StateStore
from resli.client.enricher import RequestEnricher
from resli.client.pagination import paginate
from resli.client.registries import Registries, create_default_registries
from resli.client.response import Response, parse_response
from resli.client.retry import RetryExecutor, RetryPolicy
from resli.config import get_cache_dir
from resli.models import APIConfig, RequestOptions
from resli.tls import LazyTLSTransport, effective_tls


class SyncClient:
    """Synchronous client for API calls.

    Must be used as a context manager so the per-API transports are closed.

    Args:
        options: Effective per-invocation options.
        apis: Configured APIs, keyed by short name.
        registries: Codec, encoding, link and auth registries. Defaults to
            the built-in set backed by *state* for OAuth tokens.
        cache: Response store. ``None`` disables HTTP caching.
        state: Keyed store for tokens; opened in the cache directory when
            omitted and *registries* is not given.
        sleep: Sleep function used between retries.
        transport: Innermost transport; replaces the TLS-aware network
            transport (tests pass :class:`httpx.MockTransport`).
        min_cache_ttl: When set, successful responses without freshness
            headers are cached for at least this many seconds.

    Example::

        with SyncClient(options, load_apis()) as client:
            resp = client.get_parsed_response("GET", "https://api.example.com/items")
    """

    def __init__(
        self,
        options: RequestOptions,
        apis: dict[str, APIConfig],
        *,
        registries: Optional[Registries] = None,
        cache: Optional[ResponseCache] = None,
        state: Optional[StateStore] = None,
        sleep: Callable[[float], None] = time.sleep,
        transport: Optional[httpx.BaseTransport] = None,
        min_cache_ttl: Optional[int] = None,
    ) -> None:
        self._options = options
        self._apis = apis
        self._owned_state: Optional[StateStore] = None
        if registries is None:
            if state is None:
                state = self._owned_state = StateStore(get_cache_dir())
            registries = create_default_registries(TokenCache(state))
        self._registries = registries
        self._cache = cache
        self._transport = transport
        self._min_cache_ttl = min_cache_ttl
        self._clients: dict[str, httpx.Client] = {}
        self._base_transports: dict[str, httpx.BaseTransport] = {}
        self._enricher = RequestEnricher(
            apis,
            options,
            registries.auth,
            registries.codecs,
            registries.encodings,
            transport_for=self._base_transport,
        )
        self._policy = RetryPolicy(
            retries=options.retries,
            timeout=options.timeout,
            default_backoff=options.default_backoff,
        )
        self._sleep = sleep
        self.last_status: Optional[int] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> SyncClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        for client in self._clients.values():
            client.close()
        for name, transport in self._base_transports.items():
            if name not in self._clients and transport is not self._transport:
                transport.close()
        self._clients.clear()
        self._base_transports.clear()
        if self._owned_state is not None:
            self._owned_state.close()
            self._owned_state = None

    @property
    def registries(self) -> Registries:
        return self._registries

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def build_request(
        self,
        method: str,
        url: str,
        content: Optional[bytes] = None,
        headers: Optional[dict[str, str]] = None,
        ignore_cli_params: bool = False,
    ) -> httpx.Request:
        """Build a fully enriched request. See :class:`RequestEnricher`."""
        return self._enricher.build(method, url, content, headers, ignore_cli_params)

    def send(self, request: httpx.Request, track_status: bool = True) -> httpx.Response:
        """Send a built request through cache and retry layers.

        Raises:
            RequestTimeoutError: If the final attempt timed out.
            ConnectionError_: On transport failure after all retries.
        """
        name, api, _profile = self._enricher.select(str(request.url))
        executor = RetryExecutor(self._client_for(name, api), self._policy, sleep=self._sleep)
        response = executor.execute(request)
        if track_status:
            self.last_status = response.status_code
        return response

    def request(
        self,
        method: str,
        url: str,
        content: Optional[bytes] = None,
        headers: Optional[dict[str, str]] = None,
        ignore_cli_params: bool = False,
    ) -> httpx.Response:
        """Build and send a request, returning the raw (read) response."""
        return self.send(self.build_request(method, url, content, headers, ignore_cli_params))

    def parse_response(self, response: httpx.Response) -> Response:
        return parse_response(
            response,
            self._registries.codecs,
            self._registries.encodings,
            self._registries.links,
        )

    def get_parsed_response(
        self,
        method: str,
        url: str,
        content: Optional[bytes] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Response:
        """Send a request and return the decoded, auto-paginated response.

        Follow-up pages are plain ``GET`` requests without a body.
        """
        first = self.parse_response(self.request(method, url, content, headers))

        def fetch_page(next_url: str) -> Response:
            return self.parse_response(self.request("GET", next_url))

        return paginate(first, fetch_page, enabled=not self._options.no_paginate)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _client_for(self, name: str, api: Optional[APIConfig]) -> httpx.Client:
        client = self._clients.get(name)
        if client is None:
            client = httpx.Client(
                transport=self._build_transport(name, api),
                follow_redirects=True,
                timeout=None,
            )
            self._clients[name] = client
        return client

    def _base_transport(self, name: str, api: Optional[APIConfig]) -> httpx.BaseTransport:
        """The TLS-bearing transport for *name*, shared by its client and auth."""
        transport = self._base_transports.get(name)
        if transport is None:
            transport = self._transport
            if transport is None:
                transport = LazyTLSTransport(effective_tls(api.tls if api else None, self._options))
            self._base_transports[name] = transport
        return transport

    def _build_transport(self, name: str, api: Optional[APIConfig]) -> httpx.BaseTransport:
        transport = self._base_transport(name, api)
        if self._min_cache_ttl:
            transport = MinFreshnessTransport(transport, self._min_cache_ttl)
        if self._cache is not None and self._cache.enabled:
            transport = CachingTransport(self._cache, transport, invalidate=self._options.no_cache)
        return transport
