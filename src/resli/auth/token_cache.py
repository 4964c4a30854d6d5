"""Persistent OAuth token cache scoped per API profile.

Tokens are kept in the :class:`~resli.cache.state.StateStore` under
``token:<api>:<profile>`` so that two profiles of the same API never share
credentials, while repeated invocations with the same profile reuse a
token until it expires.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, Field, ValidationError

if TYPE_CHECKING:
    from resli.cache.state import StateStore

EXPIRY_MARGIN = timedelta(seconds=10)


class TokenEntry(BaseModel):
    """A stored OAuth token.

    Attributes:
        access_token: The bearer credential.
        token_type: Authorization scheme, normalised to ``Bearer`` for
            bearer tokens.
        expires_at: UTC expiry, or ``None`` for tokens that never expire.
        refresh_token: Refresh token, kept across refreshes that do not
            return a new one.
    """

    access_token: str
    token_type: str = "Bearer"
    expires_at: Optional[datetime] = None
    refresh_token: Optional[str] = None
    scopes: list[str] = Field(default_factory=list)

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Whether the token can still be used, with a small safety margin."""
        if not self.access_token:
            return False
        if self.expires_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        return now < self.expires_at - EXPIRY_MARGIN

    def authorization(self) -> str:
        """The ``Authorization`` header value."""
        return f"{self.token_type} {self.access_token}"


class TokenCache:
    """Read/write :class:`TokenEntry` values keyed by ``<api>:<profile>``."""

    def __init__(self, store: StateStore) -> None:
        self._store = store

    def load(self, key: str) -> Optional[TokenEntry]:
        """Return the cached token for *key*, or ``None`` if absent or corrupt."""
        raw = self._store.get(self._key(key))
        if raw is None:
            return None
        try:
            return TokenEntry.model_validate(raw)
        except ValidationError:
            return None

    def save(self, key: str, entry: TokenEntry) -> None:
        self._store.set(self._key(key), entry.model_dump(mode="json"))

    def clear(self, key: str) -> None:
        self._store.delete(self._key(key))

    @staticmethod
    def _key(key: str) -> str:
        return f"token:{key}"
