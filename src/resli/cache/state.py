"""Small keyed-value store shared between invocations.

Holds values that are not HTTP responses: OAuth tokens per
``<api>:<profile>`` key, and per-API description expiry timestamps used to
skip the network entirely while a cached description is still fresh.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import diskcache


class StateStore:
    """Thin wrapper over a :class:`diskcache.Cache` in ``<cache_dir>/state``."""

    def __init__(self, cache_dir: str | Path) -> None:
        self._directory = Path(cache_dir) / "state"
        self._cache = diskcache.Cache(str(self._directory))

    def get(self, key: str, default: Any = None) -> Any:
        return self._cache.get(key, default)

    def set(self, key: str, value: Any, expire: Optional[float] = None) -> None:
        self._cache.set(key, value, expire=expire)

    def delete(self, key: str) -> None:
        self._cache.delete(key)

    def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with *prefix* and return how many went."""
        removed = 0
        for key in list(self._cache.iterkeys()):
            if isinstance(key, str) and key.startswith(prefix):
                if self._cache.delete(key):
                    removed += 1
        return removed

    def clear(self) -> None:
        self._cache.clear()

    def close(self) -> None:
        self._cache.close()

    def __len__(self) -> int:
        return len(self._cache)
