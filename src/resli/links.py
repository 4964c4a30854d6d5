"""Hypermedia link extraction.

A :class:`LinkResolver` runs an ordered chain of :class:`LinkParser`
implementations over a parsed response. Each parser looks for one link
convention and records ``rel -> [Link]`` pairs on ``response.links``:

* :class:`LinkHeaderParser` -- RFC 5988 ``Link`` headers.
* :class:`HALParser` -- HAL ``_links`` objects.
* :class:`SelfLinkParser` -- any ``self`` string anywhere in the body.
* :class:`SirenParser` -- Siren ``links`` arrays.
* :class:`JSONAPIParser` -- JSON:API top-level and per-item ``links``.

Parsers are independent and a body may match several of them. Once the
whole chain has run, every URI is resolved against the request URL exactly
once, so all links exposed to callers are absolute. A failure in any parser
aborts resolution with :class:`~resli.exceptions.LinkParseError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable

import httpx

from resli.exceptions import LinkParseError

if TYPE_CHECKING:
    from resli.client.response import Response


@dataclass
class Link:
    """A single hypermedia relation. ``uri`` is absolute once resolved."""

    rel: str
    uri: str


Links = dict[str, list[Link]]


def add_link(response: Response, rel: str, uri: str) -> None:
    """Append a link for *rel*, preserving discovery order."""
    response.links.setdefault(rel, []).append(Link(rel=rel, uri=uri))


class LinkParser(ABC):
    """One hypermedia convention."""

    @abstractmethod
    def parse_links(self, response: Response) -> None:
        """Add any links found in *response* to ``response.links``.

        Raises:
            LinkParseError: If the response uses this convention but is
                malformed.
        """


# ------------------------------------------------------------------ #
# Link header (RFC 5988)
# ------------------------------------------------------------------ #


def _skip(value: str, pos: int, chars: str) -> int:
    while pos < len(value) and value[pos] in chars:
        pos += 1
    return pos


def parse_link_header(value: str) -> list[tuple[str, dict[str, str]]]:
    """Parse a ``Link`` header into ``(uri, params)`` pairs.

    Parameter names are lower-cased and the first occurrence of a
    parameter wins. Quoted values may contain commas and semicolons.

    Raises:
        LinkParseError: If *value* is not a valid link list.
    """
    links: list[tuple[str, dict[str, str]]] = []
    n = len(value)
    pos = 0
    while True:
        pos = _skip(value, pos, " \t,")
        if pos >= n:
            break
        if value[pos] != "<":
            raise LinkParseError(f"Malformed Link header, expected '<' at {pos}: {value!r}")
        end = value.find(">", pos)
        if end == -1:
            raise LinkParseError(f"Malformed Link header, unterminated URI: {value!r}")
        uri = value[pos + 1:end].strip()
        pos = end + 1

        params: dict[str, str] = {}
        while True:
            pos = _skip(value, pos, " \t")
            if pos >= n or value[pos] == ",":
                break
            if value[pos] != ";":
                raise LinkParseError(f"Malformed Link header, expected ';' at {pos}: {value!r}")
            pos = _skip(value, pos + 1, " \t")
            start = pos
            while pos < n and value[pos] not in "=;, \t":
                pos += 1
            name = value[start:pos].lower()
            if not name:
                raise LinkParseError(f"Malformed Link header, empty parameter: {value!r}")
            pos = _skip(value, pos, " \t")
            param_value = ""
            if pos < n and value[pos] == "=":
                pos = _skip(value, pos + 1, " \t")
                if pos < n and value[pos] == '"':
                    pos += 1
                    chars: list[str] = []
                    while pos < n and value[pos] != '"':
                        if value[pos] == "\\" and pos + 1 < n:
                            pos += 1
                        chars.append(value[pos])
                        pos += 1
                    if pos >= n:
                        raise LinkParseError(
                            f"Malformed Link header, unterminated quoted value: {value!r}"
                        )
                    pos += 1
                    param_value = "".join(chars)
                else:
                    start = pos
                    while pos < n and value[pos] not in ";,":
                        pos += 1
                    param_value = value[start:pos].strip()
            params.setdefault(name, param_value)
        links.append((uri, params))
    return links


class LinkHeaderParser(LinkParser):
    """Links from the ``Link`` response header.

    A ``rel`` parameter may list several space-separated relations; the
    URI is recorded under each of them.
    """

    def parse_links(self, response: Response) -> None:
        header = response.headers.get("Link")
        if not header:
            return
        for uri, params in parse_link_header(header):
            for rel in params.get("rel", "").split():
                add_link(response, rel, uri)


# ------------------------------------------------------------------ #
# Body conventions
# ------------------------------------------------------------------ #


class HALParser(LinkParser):
    """HAL ``_links`` objects. The ``curies`` relation is not a link."""

    def parse_links(self, response: Response) -> None:
        body = response.body
        if not isinstance(body, dict):
            return
        hal = body.get("_links")
        if not isinstance(hal, dict):
            return
        for rel, value in hal.items():
            if rel == "curies":
                continue
            targets = value if isinstance(value, list) else [value]
            for target in targets:
                if isinstance(target, dict) and isinstance(target.get("href"), str):
                    add_link(response, str(rel), target["href"])


class SelfLinkParser(LinkParser):
    """Generic walk recording every ``"self": "<uri>"`` pair in the body.

    The relation is the key of the object that holds ``self``, so
    ``{"owner": {"self": "/u/1"}}`` yields ``owner -> /u/1`` and a
    top-level ``self`` yields ``self``. Objects inside arrays are recorded
    under ``<key>-item``. Numeric keys are stringified. A ``self`` whose
    value is not a string is walked like any other value.
    """

    def parse_links(self, response: Response) -> None:
        self._visit(response, "self", response.body)

    def _visit(self, response: Response, key: str, value: Any) -> None:
        if isinstance(value, dict):
            self._visit_object(response, key, value)
        elif isinstance(value, (list, tuple)):
            for item in value:
                self._visit(response, f"{key}-item", item)

    def _visit_object(self, response: Response, key: str, value: dict[Any, Any]) -> None:
        for child_key, child in value.items():
            name = child_key if isinstance(child_key, str) else str(child_key)
            if name == "self" and isinstance(child, str):
                add_link(response, key, child)
                continue
            self._visit(response, name, child)


class SirenParser(LinkParser):
    """Siren ``links``: a list of ``{"rel": [...], "href": "..."}``."""

    def parse_links(self, response: Response) -> None:
        body = response.body
        if not isinstance(body, dict):
            return
        entries = body.get("links")
        if not isinstance(entries, list):
            return
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            href = entry.get("href")
            rels = entry.get("rel")
            if not isinstance(href, str) or not href:
                continue
            if isinstance(rels, str):
                rels = [rels]
            if not isinstance(rels, list):
                continue
            for rel in rels:
                add_link(response, str(rel), href)


class JSONAPIParser(LinkParser):
    """JSON:API links.

    Top-level ``links`` values are either a URI string or a link object
    with ``href``. Each resource in a ``data`` array contributes its own
    ``links``; ``self`` is recorded under the ``item`` relation and every
    other relation keeps its name.
    """

    def parse_links(self, response: Response) -> None:
        body = response.body
        if not isinstance(body, dict):
            return

        top = body.get("links")
        if isinstance(top, dict):
            _add_jsonapi_links(response, top, is_item=False)

        data = body.get("data")
        if isinstance(data, list):
            for item in data:
                if isinstance(item, dict) and isinstance(item.get("links"), dict):
                    _add_jsonapi_links(response, item["links"], is_item=True)


def _add_jsonapi_links(response: Response, links: dict[str, Any], is_item: bool) -> None:
    for rel, value in links.items():
        href = _jsonapi_href(value)
        if href:
            add_link(response, "item" if is_item and rel == "self" else str(rel), href)


def _jsonapi_href(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("href"), str):
        return value["href"]
    return None


# ------------------------------------------------------------------ #
# Resolver
# ------------------------------------------------------------------ #


class LinkResolver:
    """Ordered chain of :class:`LinkParser` instances."""

    def __init__(self, parsers: Iterable[LinkParser] = ()) -> None:
        self._parsers: list[LinkParser] = list(parsers)

    def add(self, parser: LinkParser) -> None:
        self._parsers.append(parser)

    @property
    def parsers(self) -> list[LinkParser]:
        return list(self._parsers)

    def resolve(self, base_url: str, response: Response) -> None:
        """Populate ``response.links`` and make every URI absolute.

        Raises:
            LinkParseError: If any parser fails or a URI cannot be joined
                with *base_url*.
        """
        for parser in self._parsers:
            try:
                parser.parse_links(response)
            except LinkParseError:
                raise
            except (TypeError, ValueError) as exc:
                raise LinkParseError(
                    f"{type(parser).__name__} failed to parse links: {exc}"
                ) from exc

        try:
            base = httpx.URL(base_url)
            for links in response.links.values():
                for link in links:
                    link.uri = str(base.join(link.uri))
        except (httpx.InvalidURL, TypeError, ValueError) as exc:
            raise LinkParseError(f"Cannot resolve link against {base_url}: {exc}") from exc


def create_default_resolver() -> LinkResolver:
    """Create a resolver with every built-in parser in standard order."""
    return LinkResolver(
        [
            LinkHeaderParser(),
            HALParser(),
            SelfLinkParser(),
            SirenParser(),
            JSONAPIParser(),
        ]
    )
