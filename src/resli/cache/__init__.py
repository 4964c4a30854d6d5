"""Disk-based caching for resli.

* :class:`ResponseCache` stores raw HTTP responses in a
  :class:`hishel.FileStorage`, with freshness taken from
  ``Cache-Control``/``Expires``.
* :class:`CachingTransport` and :class:`MinFreshnessTransport` plug the
  store into an :class:`httpx.Client`.
* :class:`StateStore` keeps small values (tokens, description expiry)
  between runs.

Everything lives under :func:`~resli.config.get_cache_dir` and is safe to
delete.
"""

from resli.cache.cache import ResponseCache, cache_key, request_signature
from resli.cache.state import StateStore
from resli.cache.transport import CachingTransport, DateStampTransport, MinFreshnessTransport

__all__ = [
    "CachingTransport",
    "DateStampTransport",
    "MinFreshnessTransport",
    "ResponseCache",
    "StateStore",
    "cache_key",
    "request_signature",
]
