"""Tests for content-type codecs and content-encoding negotiation."""

from __future__ import annotations

import httpx
import pytest

from resli.content import JSON, YAML, ContentTypeRegistry, Text, create_default_registry
from resli.encoding import EncodingRegistry
from resli.exceptions import ContentTypeError


class TestDetection:
    @pytest.mark.parametrize(
        "content_type",
        ["application/json", "application/json; charset=utf-8", "application/problem+json", "APPLICATION/JSON"],
    )
    def test_json(self, content_type: str) -> None:
        assert JSON().detect(content_type)

    @pytest.mark.parametrize(
        "content_type",
        ["application/yaml", "application/x-yaml", "text/yaml", "text/x-yaml", "application/openapi+yaml"],
    )
    def test_yaml(self, content_type: str) -> None:
        assert YAML().detect(content_type)

    def test_text(self) -> None:
        assert Text().detect("text/html; charset=utf-8")
        assert not Text().detect("application/octet-stream")

    def test_json_does_not_claim_yaml(self) -> None:
        assert not JSON().detect("application/yaml")


class TestRegistry:
    def test_accept_header(self) -> None:
        registry = create_default_registry()
        assert registry.accept_header() == (
            "application/json;q=0.5,application/yaml;q=0.5,text/*;q=0.2,*/*"
        )

    def test_negative_q_is_left_out_of_accept(self) -> None:
        registry = create_default_registry()
        registry.add("text", "text/*", -1, Text())
        assert registry.accept_header() == "application/json;q=0.5,application/yaml;q=0.5,*/*"

    def test_re_registration_replaces_in_place(self) -> None:
        registry = create_default_registry()
        codec = JSON()
        registry.add("json", "application/json", 0.9, codec)
        assert registry.names() == ["json", "yaml", "text"]
        assert registry.get("json").codec is codec
        assert registry.accept_header().startswith("application/json;q=0.9,")

    def test_get_unknown(self) -> None:
        with pytest.raises(ContentTypeError, match="Unknown content type"):
            ContentTypeRegistry().get("cbor")

    def test_first_registered_codec_wins(self) -> None:
        registry = ContentTypeRegistry()
        registry.add("text", "text/*", 0.2, Text())
        registry.add("yaml", "application/yaml", 0.5, YAML())
        # text/yaml is claimed by both; registration order decides.
        assert isinstance(registry.find("text/yaml"), Text)

    def test_unmarshal_json(self) -> None:
        registry = create_default_registry()
        assert registry.unmarshal("application/json", b'{"a": [1, 2]}') == {"a": [1, 2]}

    def test_unmarshal_yaml(self) -> None:
        registry = create_default_registry()
        assert registry.unmarshal("application/yaml", b"a: 1\nb: [x]\n") == {"a": 1, "b": ["x"]}

    def test_unmarshal_text(self) -> None:
        registry = create_default_registry()
        assert registry.unmarshal("text/plain", "héllo".encode()) == "héllo"

    def test_unmarshal_invalid_raises(self) -> None:
        registry = create_default_registry()
        with pytest.raises(ContentTypeError, match="Cannot decode"):
            registry.unmarshal("application/json", b"{nope")

    def test_unmarshal_unknown_type_raises(self) -> None:
        registry = create_default_registry()
        with pytest.raises(ContentTypeError, match="No codec"):
            registry.unmarshal("image/png", b"\x89PNG")

    def test_marshal_json(self) -> None:
        registry = create_default_registry()
        assert registry.marshal("application/json", {"name": "Zoë"}) == '{"name": "Zoë"}'.encode()

    def test_marshal_unknown_raises(self) -> None:
        with pytest.raises(ContentTypeError, match="Cannot marshal"):
            create_default_registry().marshal("application/cbor", {})


class TestEncodingRegistry:
    def test_default_header(self) -> None:
        assert EncodingRegistry().accept_header() == "gzip, deflate"

    def test_add_is_idempotent(self) -> None:
        registry = EncodingRegistry()
        registry.add("GZIP")
        registry.add("br")
        assert registry.names() == ["gzip", "deflate", "br"]

    @pytest.mark.parametrize("encoding", ["", "gzip", "identity", "deflate, gzip"])
    def test_check_accepts(self, encoding: str) -> None:
        headers = {"Content-Encoding": encoding} if encoding else {}
        EncodingRegistry().check(httpx.Response(200, headers=headers))

    def test_check_rejects_unknown(self) -> None:
        response = httpx.Response(200, headers={"Content-Encoding": "compress"})
        with pytest.raises(ContentTypeError, match="compress"):
            EncodingRegistry().check(response)
