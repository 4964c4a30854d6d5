"""Content-type codecs and the registry used for negotiation.

A :class:`ContentType` codec knows whether it handles a media type
(:meth:`~ContentType.detect`) and how to turn Python values into bytes and
back. The :class:`ContentTypeRegistry` holds codecs under short names with
a negotiation weight and builds the ``Accept`` header from them.

Registries are plain objects handed to the components that need them, so
tests can build an isolated registry without touching process state::

    registry = create_default_registry()
    registry.accept_header()
    # 'application/json;q=0.5,application/yaml;q=0.5,text/*;q=0.2,*/*'
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import yaml

from resli.exceptions import ContentTypeError


def _media_type(content_type: str) -> str:
    """Strip parameters (``; charset=...``) and normalise case."""
    return content_type.split(";", 1)[0].strip().lower()


class ContentType(ABC):
    """Marshal/unmarshal capability for one family of media types."""

    @abstractmethod
    def detect(self, content_type: str) -> bool:
        """Return ``True`` if this codec handles *content_type*."""

    @abstractmethod
    def marshal(self, value: Any) -> bytes:
        """Serialise *value* into a request body."""

    @abstractmethod
    def unmarshal(self, data: bytes) -> Any:
        """Decode a response body."""


class JSON(ContentType):
    """``application/json`` and any ``+json`` structured syntax suffix."""

    def detect(self, content_type: str) -> bool:
        media = _media_type(content_type)
        return media == "application/json" or media.endswith("+json")

    def marshal(self, value: Any) -> bytes:
        return json.dumps(value, ensure_ascii=False).encode("utf-8")

    def unmarshal(self, data: bytes) -> Any:
        return json.loads(data)


class YAML(ContentType):
    """YAML under its registered and historical media types."""

    _TYPES = frozenset(
        {"application/yaml", "application/x-yaml", "text/yaml", "text/x-yaml"}
    )

    def detect(self, content_type: str) -> bool:
        media = _media_type(content_type)
        return media in self._TYPES or media.endswith("+yaml")

    def marshal(self, value: Any) -> bytes:
        return yaml.safe_dump(value, sort_keys=False, allow_unicode=True).encode("utf-8")

    def unmarshal(self, data: bytes) -> Any:
        return yaml.safe_load(data)


class Text(ContentType):
    """Any ``text/*`` body, decoded as UTF-8."""

    def detect(self, content_type: str) -> bool:
        return _media_type(content_type).startswith("text/")

    def marshal(self, value: Any) -> bytes:
        if isinstance(value, bytes):
            return value
        return str(value).encode("utf-8")

    def unmarshal(self, data: bytes) -> Any:
        return data.decode("utf-8")


@dataclass
class Registration:
    """One codec entry in a :class:`ContentTypeRegistry`.

    A negative ``q`` keeps the codec usable for explicit marshalling while
    leaving it out of the ``Accept`` header.
    """

    name: str
    q: float
    codec: ContentType


class ContentTypeRegistry:
    """Ordered collection of codecs keyed by short name.

    Registering an existing short name replaces the previous entry in
    place, so the last registration wins while negotiation order stays
    stable.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Registration] = {}

    def add(self, short: str, name: str, q: float, codec: ContentType) -> None:
        """Register *codec* as *short* for media type *name* with weight *q*."""
        self._entries[short] = Registration(name=name, q=q, codec=codec)

    def get(self, short: str) -> Registration:
        """Return the registration for *short*.

        Raises:
            ContentTypeError: If nothing is registered under that name.
        """
        try:
            return self._entries[short]
        except KeyError:
            raise ContentTypeError(f"Unknown content type: {short}") from None

    def names(self) -> list[str]:
        """Short names in registration order."""
        return list(self._entries)

    def accept_header(self) -> str:
        """Build a weighted ``Accept`` header ending in a ``*/*`` fallback."""
        parts = [
            f"{entry.name};q={entry.q:.3g}"
            for entry in self._entries.values()
            if entry.q >= 0
        ]
        parts.append("*/*")
        return ",".join(parts)

    def find(self, content_type: str) -> ContentType | None:
        """Return the first codec that claims *content_type*, if any."""
        for entry in self._entries.values():
            if entry.codec.detect(content_type):
                return entry.codec
        return None

    def marshal(self, content_type: str, value: Any) -> bytes:
        """Encode *value* for *content_type*.

        Raises:
            ContentTypeError: If no codec claims the type or encoding fails.
        """
        codec = self.find(content_type)
        if codec is None:
            raise ContentTypeError(f"Cannot marshal body as {content_type}")
        try:
            return codec.marshal(value)
        except (TypeError, ValueError, yaml.YAMLError) as exc:
            raise ContentTypeError(f"Cannot marshal body as {content_type}: {exc}") from exc

    def unmarshal(self, content_type: str, data: bytes) -> Any:
        """Decode *data* according to *content_type*.

        Raises:
            ContentTypeError: If no codec claims the type or decoding fails.
                Callers decide whether to fall back to raw bytes.
        """
        codec = self.find(content_type)
        if codec is None:
            raise ContentTypeError(f"No codec for content type {content_type!r}")
        try:
            return codec.unmarshal(data)
        except (ValueError, yaml.YAMLError) as exc:
            raise ContentTypeError(f"Cannot decode {content_type} body: {exc}") from exc


def create_default_registry() -> ContentTypeRegistry:
    """Create a registry with the built-in JSON, YAML and text codecs."""
    registry = ContentTypeRegistry()
    registry.add("json", "application/json", 0.5, JSON())
    registry.add("yaml", "application/yaml", 0.5, YAML())
    registry.add("text", "text/*", 0.2, Text())
    return registry
