"""Tests for response parsing, status mapping and the output bridge."""

from __future__ import annotations

import json

import httpx
import pytest

from resli.client import Response, check_status, format_api_response, parse_response
from resli.client.response import canonical_header_name, flatten_headers
from resli.content import create_default_registry
from resli.encoding import EncodingRegistry
from resli.exceptions import AuthError, ClientError, ContentTypeError, NotFoundError, ServerError
from resli.links import create_default_resolver
from resli.output import OutputFormat, OutputManager, set_output

URL = "https://api.example.com/items"


def _parse(response: httpx.Response) -> Response:
    response.request = httpx.Request("GET", URL)
    return parse_response(
        response, create_default_registry(), EncodingRegistry(), create_default_resolver()
    )


class TestHeaders:
    def test_canonical_name(self) -> None:
        assert canonical_header_name("content-length") == "Content-Length"
        assert canonical_header_name("X-REQUEST-ID") == "X-Request-Id"

    def test_flatten(self) -> None:
        headers = httpx.Headers(
            [("vary", "Accept"), ("Vary", "Origin"), ("set-cookie", "a=1, b"), ("Set-Cookie", "c=2")]
        )
        assert flatten_headers(headers) == {"Vary": "Accept, Origin", "Set-Cookie": "a=1, b\nc=2"}


class TestParseResponse:
    def test_json_body_and_links(self) -> None:
        resp = _parse(
            httpx.Response(
                200,
                headers={"Link": '</items?page=2>; rel="next"'},
                json=[{"id": 1}],
            )
        )
        assert resp.status == 200
        assert resp.proto == "HTTP/1.1"
        assert resp.body == [{"id": 1}]
        assert resp.headers["Content-Type"] == "application/json"
        assert [link.uri for link in resp.links["next"]] == ["https://api.example.com/items?page=2"]

    def test_yaml_body(self) -> None:
        resp = _parse(httpx.Response(200, headers={"Content-Type": "application/yaml"}, content=b"a: 1\n"))
        assert resp.body == {"a": 1}

    def test_empty_body(self) -> None:
        assert _parse(httpx.Response(204)).body is None

    def test_undecodable_body_kept_as_bytes(self) -> None:
        resp = _parse(httpx.Response(200, headers={"Content-Type": "image/png"}, content=b"\x89PNG"))
        assert resp.body == b"\x89PNG"

    def test_invalid_json_kept_as_bytes(self) -> None:
        resp = _parse(httpx.Response(200, headers={"Content-Type": "application/json"}, content=b"{oops"))
        assert resp.body == b"{oops"

    def test_unsupported_encoding(self) -> None:
        with pytest.raises(ContentTypeError):
            _parse(httpx.Response(200, headers={"Content-Encoding": "compress"}, content=b"x"))

    def test_to_dict(self) -> None:
        resp = _parse(httpx.Response(200, headers={"Link": '</a>; rel="self"'}, json={"x": 1}))
        data = resp.to_dict()
        assert data["status"] == 200
        assert data["links"] == {"self": ["https://api.example.com/a"]}
        assert data["body"] == {"x": 1}


class TestCheckStatus:
    @pytest.mark.parametrize(
        ("status", "error"),
        [(401, AuthError), (403, AuthError), (404, NotFoundError), (409, ClientError), (502, ServerError)],
    )
    def test_mapping(self, status: int, error: type) -> None:
        with pytest.raises(error):
            check_status(Response(status=status))

    def test_message_includes_detail(self) -> None:
        with pytest.raises(ClientError, match=r"HTTP 422 Unprocessable (Entity|Content): name is required"):
            check_status(Response(status=422, body={"detail": "name is required"}))

    def test_success_passes(self) -> None:
        check_status(Response(status=302))


class TestFormatAPIResponse:
    def test_status_to_stderr_body_to_stdout(self, capfd) -> None:
        set_output(OutputManager(format=OutputFormat.JSON, no_color=True))
        resp = Response(proto="HTTP/1.1", status=200, headers={"X-A": "1"}, body={"ok": True})
        format_api_response(resp)
        captured = capfd.readouterr()
        assert json.loads(captured.out) == {"ok": True}
        assert captured.err.splitlines() == ["HTTP/1.1 200 OK", "X-A: 1"]

    def test_fail_raises_after_printing(self, capfd) -> None:
        set_output(OutputManager(format=OutputFormat.JSON, no_color=True))
        with pytest.raises(NotFoundError):
            format_api_response(Response(proto="HTTP/1.1", status=404, body={"error": "gone"}), fail_on_status=True)
        assert json.loads(capfd.readouterr().out) == {"error": "gone"}

    def test_no_fail_by_default(self, quiet_output) -> None:
        format_api_response(Response(status=500))
