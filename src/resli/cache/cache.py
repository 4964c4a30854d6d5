"""Disk-based HTTP response store.

Uses :mod:`hishel` for the HTTP caching rules: freshness from
``Cache-Control``/``Expires``, ``Vary`` matching, conditional revalidation
with ``ETag``/``Last-Modified`` and ``304`` merging. Entries live as files
under ``<cache_dir>/responses`` in a :class:`hishel.FileStorage`.

Entries are keyed by a SHA-256 hash of the request signature, which is the
URL for ``GET`` and ``"METHOD URL"`` otherwise. The same key is computed
for the httpcore request hishel sees and for the httpx request resli
holds, so a single entry can be invalidated ahead of a forced refresh.

See Also:
    :class:`~resli.cache.transport.CachingTransport` -- the httpx
    transport that consults this store.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any, Optional

import hishel
import httpx

from resli.models import CacheConfig
from resli.output import warning

CACHEABLE_METHODS = frozenset({"GET", "HEAD"})

# Statuses that are cacheable by default (RFC 9110, section 15.1).
CACHEABLE_STATUSES = frozenset({200, 203, 204, 206, 300, 301, 308, 404, 405, 410, 414, 501})


def _signature(method: str, scheme: bytes, host: bytes, port: Optional[int], target: bytes) -> str:
    authority = host.decode("ascii")
    if b":" in host:
        authority = f"[{authority}]"
    if port is not None:
        authority = f"{authority}:{port}"
    url = f"{scheme.decode('ascii')}://{authority}{target.decode('ascii')}"
    if method == "GET":
        return url
    return f"{method} {url}"


def request_signature(request: httpx.Request) -> str:
    """Canonical signature: the URL for GET, ``"METHOD URL"`` otherwise."""
    url = request.url
    return _signature(request.method, url.raw_scheme, url.raw_host, url.port, url.raw_path)


def cache_key(request: httpx.Request) -> str:
    """Storage key for *request*."""
    return hashlib.sha256(request_signature(request).encode()).hexdigest()


def _hishel_key(request: Any, body: Optional[bytes] = None) -> str:
    # Called by hishel with an httpcore.Request; GET and HEAD carry no body.
    url = request.url
    method = request.method.decode("ascii")
    signature = _signature(method, url.scheme, url.host, url.port, url.target)
    return hashlib.sha256(signature.encode()).hexdigest()


class _ResponseStorage(hishel.FileStorage):
    """File storage whose write failures are reported, not raised."""

    def store(self, key, response, request, metadata=None) -> None:
        try:
            super().store(key, response, request, metadata)
        except OSError as exc:
            warning(f"Unable to write cache entry: {exc}")


class ResponseCache:
    """Disk-backed store of raw HTTP responses.

    Args:
        cache_dir: Root directory for the cache. A ``responses/``
            subdirectory is created inside it.
        config: Cache configuration. When ``enabled`` is false nothing is
            opened and :class:`~resli.cache.transport.CachingTransport`
            passes every request straight through.

    Example::

        cache = ResponseCache(get_cache_dir(), CacheConfig())
        transport = CachingTransport(cache, httpx.HTTPTransport())
    """

    def __init__(self, cache_dir: str | Path, config: CacheConfig) -> None:
        self._config = config
        self._directory = Path(cache_dir) / "responses"
        self._storage: Optional[hishel.FileStorage] = None
        self._controller: Optional[hishel.Controller] = None
        if config.enabled:
            self._storage = _ResponseStorage(base_path=self._directory)
            self._controller = hishel.Controller(
                cacheable_methods=sorted(CACHEABLE_METHODS),
                cacheable_status_codes=sorted(CACHEABLE_STATUSES),
                key_generator=_hishel_key,
            )

    @property
    def enabled(self) -> bool:
        return self._storage is not None

    def transport(self, inner: httpx.BaseTransport) -> hishel.CacheTransport:
        """Return a :class:`hishel.CacheTransport` over *inner* using this store."""
        if self._storage is None or self._controller is None:
            raise RuntimeError("Response cache is disabled")
        return hishel.CacheTransport(transport=inner, storage=self._storage, controller=self._controller)

    def contains(self, request: httpx.Request) -> bool:
        """Return whether an entry, fresh or stale, exists for *request*."""
        return self.enabled and (self._directory / cache_key(request)).is_file()

    def invalidate(self, request: httpx.Request) -> None:
        """Remove the entry for *request*, if any."""
        if self._storage is not None:
            self._storage.remove(cache_key(request))

    def clear(self) -> None:
        """Remove all entries from the cache."""
        for path in self._entries():
            path.unlink(missing_ok=True)

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``enabled`` (bool), and when enabled:
            ``size`` (number of entries), ``volume`` (bytes on disk) and
            ``directory`` (str path).
        """
        if not self.enabled:
            return {"enabled": False}
        entries = self._entries()
        return {
            "enabled": True,
            "size": len(entries),
            "volume": sum(path.stat().st_size for path in entries),
            "directory": str(self._directory),
        }

    def close(self) -> None:
        """Release the underlying storage."""
        if self._storage is not None:
            self._storage.close()

    def _entries(self) -> list[Path]:
        if not self._directory.is_dir():
            return []
        return [path for path in self._directory.iterdir() if path.is_file()]
