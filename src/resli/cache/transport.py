"""httpx transports that put the :class:`ResponseCache` in the request path.

Three layers stack under an :class:`httpx.Client`:

* :class:`CachingTransport` hands ``GET``/``HEAD`` requests to a
  :class:`hishel.CacheTransport`, which serves fresh entries, revalidates
  stale ones and stores cacheable live responses. In ``invalidate`` mode
  (``--no-cache``) it deletes any existing entry before fetching, so the
  new response replaces it and a forced refresh also repairs the cache.
* :class:`MinFreshnessTransport` sits below the caching layer for API
  description fetches and injects ``max-age=<min_ttl>`` when the origin
  sent neither ``Expires`` nor ``max-age``.
* :class:`DateStampTransport` sits directly under hishel and records the
  receive time as ``Date`` on responses that lack one, since freshness
  is measured from that header.
"""

from __future__ import annotations

from email.utils import formatdate

import httpx

from resli.cache.cache import CACHEABLE_METHODS, ResponseCache
from resli.output import debug


def has_max_age(cache_control: str) -> bool:
    for part in cache_control.split(","):
        if part.strip().lower().startswith("max-age"):
            return True
    return False


class DateStampTransport(httpx.BaseTransport):
    """Add a ``Date`` header to responses received without one."""

    def __init__(self, transport: httpx.BaseTransport) -> None:
        self._transport = transport

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        response = self._transport.handle_request(request)
        if "date" not in response.headers:
            response.headers["Date"] = formatdate(usegmt=True)
        return response

    def close(self) -> None:
        self._transport.close()


class CachingTransport(httpx.BaseTransport):
    """Serve and populate a :class:`ResponseCache` around *transport*.

    Args:
        cache: The response store.
        transport: The transport performing live exchanges.
        invalidate: Delete any stored entry before each request instead of
            consulting it.
    """

    def __init__(
        self,
        cache: ResponseCache,
        transport: httpx.BaseTransport,
        invalidate: bool = False,
    ) -> None:
        self._cache = cache
        self._transport = transport
        self._invalidate = invalidate
        self._cached = cache.transport(DateStampTransport(transport)) if cache.enabled else None

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        if self._cached is None or request.method not in CACHEABLE_METHODS:
            return self._transport.handle_request(request)

        if self._invalidate:
            debug(f"Cache invalidated: {request.method} {request.url}")
            self._cache.invalidate(request)

        response = self._cached.handle_request(request)
        if response.extensions.get("from_cache"):
            debug(f"Cache hit: {request.method} {request.url}")
        return response

    def close(self) -> None:
        self._transport.close()


class MinFreshnessTransport(httpx.BaseTransport):
    """Guarantee a minimum freshness window on successful responses.

    Only responses with status < 400 and without ``Expires`` or
    ``max-age`` are touched. The directive is appended to any existing
    ``Cache-Control`` value, never replacing it.
    """

    def __init__(self, transport: httpx.BaseTransport, min_ttl: int) -> None:
        self._transport = transport
        self._min_ttl = min_ttl

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        response = self._transport.handle_request(request)
        if response.status_code >= 400 or "expires" in response.headers:
            return response

        existing = response.headers.get("cache-control", "")
        if has_max_age(existing):
            return response

        directive = f"max-age={self._min_ttl}"
        response.headers["Cache-Control"] = f"{existing},{directive}" if existing else directive
        return response

    def close(self) -> None:
        self._transport.close()
