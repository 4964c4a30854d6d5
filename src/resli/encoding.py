"""Content-encoding negotiation.

httpx transparently decompresses the encodings it knows about. This
registry decides which of those resli advertises in ``Accept-Encoding`` and
rejects responses that arrive with anything else, which would otherwise be
handed to a codec as compressed bytes.
"""

from __future__ import annotations

from typing import Iterable

import httpx

from resli.exceptions import ContentTypeError

DEFAULT_ENCODINGS = ("gzip", "deflate")


class EncodingRegistry:
    """Ordered set of accepted ``Content-Encoding`` names."""

    def __init__(self, names: Iterable[str] = DEFAULT_ENCODINGS) -> None:
        self._names: list[str] = []
        for name in names:
            self.add(name)

    def add(self, name: str) -> None:
        """Accept *name*; adding it twice is a no-op."""
        name = name.strip().lower()
        if name and name not in self._names:
            self._names.append(name)

    def names(self) -> list[str]:
        return list(self._names)

    def accept_header(self) -> str:
        """The value for ``Accept-Encoding``."""
        return ", ".join(self._names)

    def check(self, response: httpx.Response) -> None:
        """Ensure every encoding applied to *response* was advertised.

        Raises:
            ContentTypeError: For an encoding outside the registry.
        """
        header = response.headers.get("content-encoding", "")
        for value in header.split(","):
            value = value.strip().lower()
            if value and value != "identity" and value not in self._names:
                raise ContentTypeError(f"Unsupported content encoding: {value}")
