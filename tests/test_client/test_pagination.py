"""Tests for auto-pagination over ``rel=next`` links."""

from __future__ import annotations

from typing import Any, Optional

import pytest

from resli.client import Response, paginate
from resli.links import Link


def _page(body: Any, next_uri: Optional[str] = None, length: Optional[int] = None, **links: str) -> Response:
    headers = {"Content-Type": "application/json"}
    if length is not None:
        headers["Content-Length"] = str(length)
    page_links = {rel: [Link(rel=rel, uri=uri)] for rel, uri in links.items()}
    if next_uri:
        page_links["next"] = [Link(rel="next", uri=next_uri)]
    return Response(proto="HTTP/1.1", status=200, headers=headers, links=page_links, body=body)


class Pages:
    """``fetch_page`` stand-in serving pre-built pages by URL."""

    def __init__(self, pages: dict[str, Response]) -> None:
        self.pages = pages
        self.fetched: list[str] = []

    def __call__(self, url: str) -> Response:
        self.fetched.append(url)
        return self.pages[url]


def test_merges_three_pages() -> None:
    first = _page(list(range(7)), "https://api.example.com/p/2", length=7, self="https://api.example.com/p/1")
    pages = Pages(
        {
            "https://api.example.com/p/2": _page(list(range(7, 12)), "https://api.example.com/p/3", length=5),
            "https://api.example.com/p/3": _page(list(range(12, 15)), length=3, last="https://api.example.com/p/3"),
        }
    )
    merged = paginate(first, pages)

    assert merged.body == list(range(15))
    assert merged.headers["Content-Length"] == "15"
    assert pages.fetched == ["https://api.example.com/p/2", "https://api.example.com/p/3"]
    assert set(merged.links) == {"self", "next", "last"}
    assert [link.uri for link in merged.links["next"]] == [
        "https://api.example.com/p/2",
        "https://api.example.com/p/3",
    ]
    # The first page is not modified in place.
    assert first.body == list(range(7))


def test_small_pages_sum_content_length() -> None:
    first = _page([1, 2, 3], "https://api.example.com/p/2", length=7)
    pages = Pages(
        {
            "https://api.example.com/p/2": _page([4, 5], "https://api.example.com/p/3", length=5),
            "https://api.example.com/p/3": _page([6], length=3),
        }
    )
    merged = paginate(first, pages)
    assert merged.body == [1, 2, 3, 4, 5, 6]
    assert merged.headers["Content-Length"] == "15"


def test_content_length_dropped_when_middle_page_lacks_it() -> None:
    first = _page([1, 2, 3], "https://api.example.com/p/2", length=7)
    pages = Pages(
        {
            "https://api.example.com/p/2": _page([4, 5], "https://api.example.com/p/3"),
            "https://api.example.com/p/3": _page([6], length=3),
        }
    )
    merged = paginate(first, pages)
    assert merged.body == [1, 2, 3, 4, 5, 6]
    assert "Content-Length" not in merged.headers


def test_headers_and_status_from_last_page() -> None:
    first = _page([1], "https://api.example.com/p/2")
    last = _page([2])
    last.status = 206
    last.proto = "HTTP/2"
    last.headers["X-Page"] = "2"
    merged = paginate(first, Pages({"https://api.example.com/p/2": last}))
    assert merged.status == 206
    assert merged.proto == "HTTP/2"
    assert merged.headers["X-Page"] == "2"


def test_content_length_dropped_when_a_page_lacks_it() -> None:
    first = _page([1], "https://api.example.com/p/2", length=3)
    merged = paginate(first, Pages({"https://api.example.com/p/2": _page([2])}))
    assert "Content-Length" not in merged.headers


def test_no_next_link_returns_first() -> None:
    first = _page([1, 2])
    assert paginate(first, Pages({})) is first


def test_disabled_returns_first() -> None:
    first = _page([1], "https://api.example.com/p/2")
    pages = Pages({})
    assert paginate(first, pages, enabled=False) is first
    assert pages.fetched == []


def test_non_list_first_page(capsys: pytest.CaptureFixture[str]) -> None:
    first = _page({"items": []}, "https://api.example.com/p/2")
    pages = Pages({})
    assert paginate(first, pages) is first
    assert pages.fetched == []
    assert "Skipping auto-pagination: response body not a list" in capsys.readouterr().err


def test_non_list_next_page_aborts(capsys: pytest.CaptureFixture[str]) -> None:
    first = _page([1], "https://api.example.com/p/2")
    pages = Pages(
        {
            "https://api.example.com/p/2": _page({"error": "nope"}, "https://api.example.com/p/3"),
        }
    )
    merged = paginate(first, pages)
    assert merged.body == [1]
    assert pages.fetched == ["https://api.example.com/p/2"]
    assert "Auto-pagination next page is not a list, aborting" in capsys.readouterr().err


def test_loop_detection(capsys: pytest.CaptureFixture[str]) -> None:
    first = _page([1], "https://api.example.com/p/2")
    pages = Pages(
        {
            "https://api.example.com/p/2": _page([2], "https://api.example.com/p/3"),
            "https://api.example.com/p/3": _page([3], "https://api.example.com/p/2"),
        }
    )
    merged = paginate(first, pages)
    assert merged.body == [1, 2, 3]
    assert len(pages.fetched) == 2
    assert "loop detected" in capsys.readouterr().err
