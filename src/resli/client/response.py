"""Parsed response model and the bridge to the output system.

:func:`parse_response` turns a raw :class:`httpx.Response` into a
:class:`Response`: headers flattened to one string per name, the body
decoded through the :class:`~resli.content.ContentTypeRegistry` and
hypermedia links extracted by the :class:`~resli.links.LinkResolver`.

:func:`format_api_response` then prints it: the status line and headers
go to stderr, the body to stdout in the active format.

See Also:
    :mod:`resli.output` -- the output manager that renders data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from resli.content import ContentTypeRegistry
from resli.encoding import EncodingRegistry
from resli.exceptions import (
    AuthError,
    ClientError,
    ContentTypeError,
    NotFoundError,
    ServerError,
)
from resli.links import LinkResolver, Links
from resli.output import get_output


def canonical_header_name(name: str) -> str:
    """``content-length`` -> ``Content-Length``."""
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


def flatten_headers(headers: httpx.Headers) -> dict[str, str]:
    """Join multi-valued headers into one string per canonical name.

    ``Set-Cookie`` values are joined with a newline since cookie values may
    themselves contain commas; everything else uses ``", "``.
    """
    grouped: dict[str, list[str]] = {}
    for name, value in headers.multi_items():
        grouped.setdefault(canonical_header_name(name), []).append(value)
    return {
        name: ("\n" if name == "Set-Cookie" else ", ").join(values)
        for name, values in grouped.items()
    }


@dataclass
class Response:
    """A decoded HTTP response.

    Attributes:
        proto: Protocol version as reported by httpx (``HTTP/1.1``).
        status: Status code.
        headers: Canonical header name to joined value.
        links: Relation name to the links found for it, absolute URIs.
        body: Decoded body; ``bytes`` when no codec could decode it and
            ``None`` for an empty body.
    """

    proto: str = ""
    status: int = 0
    headers: dict[str, str] = field(default_factory=dict)
    links: Links = field(default_factory=dict)
    body: Any = None

    @property
    def reason(self) -> str:
        return httpx.codes.get_reason_phrase(self.status)

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view used by the JSON and YAML output formats."""
        return {
            "proto": self.proto,
            "status": self.status,
            "headers": dict(self.headers),
            "links": {rel: [link.uri for link in links] for rel, links in self.links.items()},
            "body": self.body,
        }


def decode_body(content: bytes, content_type: str, codecs: ContentTypeRegistry) -> Any:
    """Decode *content*, falling back to the raw bytes when no codec fits."""
    if not content:
        return None
    try:
        return codecs.unmarshal(content_type, content)
    except ContentTypeError:
        return content


def parse_response(
    http_response: httpx.Response,
    codecs: ContentTypeRegistry,
    encodings: EncodingRegistry,
    resolver: LinkResolver,
) -> Response:
    """Build a :class:`Response` from a completed exchange.

    Raises:
        ContentTypeError: If the body uses an unsupported content encoding.
        LinkParseError: If the response carries malformed links.
    """
    encodings.check(http_response)
    content = http_response.read()

    resp = Response(
        proto=http_response.http_version,
        status=http_response.status_code,
        headers=flatten_headers(http_response.headers),
        body=decode_body(content, http_response.headers.get("content-type", ""), codecs),
    )
    resolver.resolve(str(http_response.request.url), resp)
    return resp


def check_status(resp: Response) -> None:
    """Raise the typed error matching a 4xx/5xx status (``--fail`` mode)."""
    status = resp.status
    if status < 400:
        return

    detail = ""
    if isinstance(resp.body, dict):
        detail = str(
            resp.body.get("message")
            or resp.body.get("detail")
            or resp.body.get("title")
            or resp.body.get("error")
            or ""
        )
    message = f"HTTP {status} {resp.reason}".rstrip()
    if detail:
        message = f"{message}: {detail}"

    if status in (401, 403):
        raise AuthError(message)
    if status == 404:
        raise NotFoundError(message)
    if status >= 500:
        raise ServerError(message)
    raise ClientError(message)


def format_api_response(resp: Response, fail_on_status: Optional[bool] = False) -> None:
    """Print *resp* using the global output system.

    The status line and headers are written to stderr, the body to
    stdout in the active format.

    Args:
        resp: The parsed (and possibly paginated) response.
        fail_on_status: Raise the mapped error after printing when the
            status is 4xx/5xx.
    """
    output = get_output()
    output.status(resp.proto, resp.status, resp.reason, resp.headers)
    output.format_body(resp.body)
    if fail_on_status:
        check_status(resp)
