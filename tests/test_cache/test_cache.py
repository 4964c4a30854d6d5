"""Tests for resli.cache.cache -- keys and the response store."""

from __future__ import annotations

import httpx
import pytest

from resli.cache import CachingTransport, ResponseCache, cache_key, request_signature
from resli.models import CacheConfig

URL = "https://api.example.com/items"


@pytest.fixture()
def cache(tmp_path):
    store = ResponseCache(tmp_path, CacheConfig())
    yield store
    store.close()


def _get(url: str = URL, **headers: str) -> httpx.Request:
    return httpx.Request("GET", url, headers=headers)


def _fill(cache: ResponseCache, recorder, *urls: str) -> None:
    for url in urls:
        recorder.add(url, httpx.Response(200, headers={"Cache-Control": "max-age=60"}, json={}))
    with httpx.Client(transport=CachingTransport(cache, recorder.transport)) as client:
        for url in urls:
            client.get(url)


# ------------------------------------------------------------------ #
# Keys
# ------------------------------------------------------------------ #


def test_request_signature() -> None:
    assert request_signature(_get()) == URL
    head = httpx.Request("HEAD", URL)
    assert request_signature(head) == f"HEAD {URL}"


def test_signature_keeps_port_and_query() -> None:
    request = _get("http://localhost:8080/items?page=2")
    assert request_signature(request) == "http://localhost:8080/items?page=2"


def test_cache_key_differs_by_method_and_query() -> None:
    keys = {
        cache_key(_get()),
        cache_key(_get(f"{URL}?page=2")),
        cache_key(httpx.Request("HEAD", URL)),
    }
    assert len(keys) == 3
    assert cache_key(_get()) == cache_key(_get(Accept="application/json"))


# ------------------------------------------------------------------ #
# Store management
# ------------------------------------------------------------------ #


class TestResponseCache:
    def test_entries_written_under_key(self, cache, recorder) -> None:
        _fill(cache, recorder, URL)
        assert cache.contains(_get())
        assert not cache.contains(_get(f"{URL}?page=2"))

    def test_invalidate_and_clear(self, cache, recorder) -> None:
        _fill(cache, recorder, "https://api.example.com/a", "https://api.example.com/b")
        assert cache.stats()["size"] == 2

        cache.invalidate(_get("https://api.example.com/a"))
        assert not cache.contains(_get("https://api.example.com/a"))
        assert cache.stats()["size"] == 1

        cache.clear()
        assert cache.stats()["size"] == 0

    def test_stats(self, cache, recorder, tmp_path) -> None:
        _fill(cache, recorder, URL)
        stats = cache.stats()
        assert stats["enabled"] is True
        assert stats["volume"] > 0
        assert stats["directory"] == str(tmp_path / "responses")

    def test_invalidate_missing_entry(self, cache) -> None:
        cache.invalidate(_get())
        assert cache.stats()["size"] == 0

    def test_disabled(self, tmp_path) -> None:
        cache = ResponseCache(tmp_path, CacheConfig(enabled=False))
        assert cache.enabled is False
        assert cache.contains(_get()) is False
        assert cache.stats() == {"enabled": False}
        with pytest.raises(RuntimeError):
            cache.transport(httpx.MockTransport(lambda request: httpx.Response(200)))
        cache.close()
