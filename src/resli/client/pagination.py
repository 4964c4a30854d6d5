"""Follow ``rel=next`` links and merge list-shaped pages into one response."""

from __future__ import annotations

from typing import Callable, Optional

from resli.client.response import Response
from resli.links import Links
from resli.output import debug, warning


def _content_length(resp: Response) -> Optional[int]:
    value = resp.headers.get("Content-Length", "")
    return int(value) if value.strip().isdigit() else None


def _union_links(target: Links, extra: Links) -> None:
    for rel, links in extra.items():
        target.setdefault(rel, []).extend(links)


def paginate(
    first: Response,
    fetch_page: Callable[[str], Response],
    enabled: bool = True,
) -> Response:
    """Merge *first* with every page reachable through ``next`` links.

    Pagination only runs while bodies are lists. The merged response takes
    proto, status and headers from the last page fetched, carries every
    link seen on any page, and reports the summed ``Content-Length`` when
    every page supplied one.

    Args:
        first: The already parsed first page.
        fetch_page: Fetches and parses the page at an absolute URL.
        enabled: ``False`` returns *first* untouched (``--no-paginate``).

    Returns:
        *first* itself when there is nothing to follow, else a new merged
        :class:`Response`.
    """
    next_links = first.links.get("next")
    if not enabled or not next_links:
        return first
    if not isinstance(first.body, list):
        warning("Skipping auto-pagination: response body not a list, not sure how to merge")
        return first

    merged = Response(
        proto=first.proto,
        status=first.status,
        headers=dict(first.headers),
        links={rel: list(links) for rel, links in first.links.items()},
        body=list(first.body),
    )
    total = _content_length(first)
    current = first
    seen = {next_links[0].uri}

    while True:
        next_url = current.links["next"][0].uri
        debug(f"Found pagination via rel=next link: {next_url}")

        page = fetch_page(next_url)
        if not isinstance(page.body, list):
            warning("Auto-pagination next page is not a list, aborting")
            break

        merged.proto = page.proto
        merged.status = page.status
        merged.headers = dict(page.headers)
        merged.body.extend(page.body)
        _union_links(merged.links, page.links)

        size = _content_length(page)
        total = total + size if total is not None and size is not None else None

        current = page
        following = page.links.get("next")
        if not following:
            break
        if following[0].uri in seen:
            warning(f"Auto-pagination loop detected at {following[0].uri}, stopping")
            break
        seen.add(following[0].uri)

    if total is not None:
        merged.headers["Content-Length"] = str(total)
    else:
        merged.headers.pop("Content-Length", None)
    return merged
