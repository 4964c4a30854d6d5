"""Discover and load an API's OpenAPI description.

:func:`load_api_description` finds the description for a configured API:

1. A stored copy is reused without any network traffic while the
   ``<name>.expires`` timestamp in the state store is in the future.
2. Local ``spec_files`` from ``apis.json`` are read from disk.
3. Otherwise the API base is fetched; a ``service-desc`` or
   ``describedby`` link relation points at the description.
4. Otherwise ``openapi.json`` and ``openapi.yaml`` under the base are tried.

A document counts as a description when it is an object with an
``openapi`` or ``swagger`` key. Remote fetches should go through a
:class:`~resli.client.SyncClient` created with ``min_cache_ttl`` so that
descriptions are cached even when the server sends no caching headers.
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from resli.cache.state import StateStore
from resli.client.response import Response
from resli.client.sync_client import SyncClient
from resli.config import api_base
from resli.exceptions import ConnectionError_, SpecParseError
from resli.models import APIConfig
from resli.output import debug

DESCRIPTION_RELS = ("service-desc", "describedby")
WELL_KNOWN_PATHS = ("openapi.json", "openapi.yaml")
HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")


def load_api_description(
    name: str,
    api: APIConfig,
    client: SyncClient,
    state: StateStore,
    min_ttl: int,
    force: bool = False,
    profile: str = "default",
    clock: Callable[[], float] = time.time,
) -> dict[str, Any]:
    """Return the OpenAPI document for the API *name*.

    Args:
        name: API short name, used for state keys.
        api: The API's configuration.
        client: Client used for remote discovery.
        state: Store holding the cached description and its expiry.
        min_ttl: Seconds a freshly loaded description stays valid.
        force: Ignore the stored copy (``api sync``).
        profile: Active profile; its ``base`` is used for discovery when set.
        clock: POSIX time source.

    Raises:
        SpecParseError: If no description can be found or parsed.
    """
    now = clock()
    if not force:
        expires = state.get(f"{name}.expires")
        cached = state.get(f"{name}.description")
        if expires is not None and expires > now and isinstance(cached, dict):
            debug(f"Using cached description for '{name}'")
            return cached

    if api.spec_files:
        description = _load_spec_files(api.spec_files)
    else:
        description = _discover(api_base(api, profile), client)

    state.set(f"{name}.description", description)
    state.set(f"{name}.expires", now + min_ttl)
    return description


def is_description(document: Any) -> bool:
    return isinstance(document, dict) and ("openapi" in document or "swagger" in document)


def description_version(document: dict[str, Any]) -> str:
    """Human-readable format and version, e.g. ``OpenAPI 3.1.0``."""
    if "openapi" in document:
        return f"OpenAPI {document['openapi']}"
    if "swagger" in document:
        return f"Swagger {document['swagger']}"
    return "unknown"


def list_operations(document: dict[str, Any]) -> list[tuple[str, str, str]]:
    """Return ``(METHOD, path, summary)`` for every operation, in document order."""
    operations: list[tuple[str, str, str]] = []
    paths = document.get("paths") or {}
    if not isinstance(paths, dict):
        return operations
    for path, item in paths.items():
        if not isinstance(item, dict):
            continue
        for method in HTTP_METHODS:
            operation = item.get(method)
            if isinstance(operation, dict):
                summary = str(operation.get("summary") or operation.get("operationId") or "")
                operations.append((method.upper(), str(path), summary))
    return operations


# ------------------------------------------------------------------ #
# Remote discovery
# ------------------------------------------------------------------ #


def _discover(base: str, client: SyncClient) -> dict[str, Any]:
    candidates: list[str] = []

    try:
        root = _fetch(client, base)
    except ConnectionError_ as exc:
        raise SpecParseError(f"Failed to fetch {base}: {exc}") from exc

    for rel in DESCRIPTION_RELS:
        candidates.extend(link.uri for link in root.links.get(rel, []))
    prefix = base.rstrip("/")
    candidates.extend(f"{prefix}/{path}" for path in WELL_KNOWN_PATHS)

    for url in candidates:
        debug(f"Trying API description at {url}")
        try:
            resp = _fetch(client, url)
        except ConnectionError_ as exc:
            debug(f"Fetching {url} failed: {exc}")
            continue
        if resp.status >= 400:
            continue
        document = _coerce(resp.body)
        if is_description(document):
            return document

    raise SpecParseError(f"No API description found for {base}")


def _fetch(client: SyncClient, url: str) -> Response:
    http_response = client.request("GET", url, ignore_cli_params=True)
    return client.parse_response(http_response)


def _coerce(body: Any) -> Any:
    """Parse bodies that no codec decoded (e.g. YAML served as text/plain)."""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        try:
            return _parse_content(body)
        except SpecParseError:
            return None
    return body


# ------------------------------------------------------------------ #
# Local files
# ------------------------------------------------------------------ #


def _load_spec_files(paths: list[str]) -> dict[str, Any]:
    """Load every file and merge their ``paths`` into the first document."""
    description: Optional[dict[str, Any]] = None
    for path in paths:
        document = _load_from_file(path)
        if not is_description(document):
            raise SpecParseError(f"{path} is not an OpenAPI or Swagger document")
        if description is None:
            description = document
        else:
            description.setdefault("paths", {}).update(document.get("paths") or {})
    assert description is not None
    return description


def _load_from_file(path: str) -> dict[str, Any]:
    """Load a description from a local JSON or YAML file.

    Raises:
        SpecParseError: If the file cannot be read or parsed.
    """
    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise SpecParseError(f"Spec file not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Failed to read spec file {path}: {exc}") from exc

    if not content.strip():
        raise SpecParseError(f"Spec file is empty: {path}")

    suffix = file_path.suffix.lower()
    hint = ""
    if suffix == ".json":
        hint = "json"
    elif suffix in (".yaml", ".yml"):
        hint = "yaml"

    return _parse_content(content, hint=hint)


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse *content* as JSON or YAML.

    JSON is tried first unless *hint* is ``yaml``: valid JSON is also valid
    YAML, but the JSON parser is stricter and faster.

    Raises:
        SpecParseError: If the content is neither, or is not an object.
    """
    json_error: Exception | None = None

    if hint != "yaml":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
            json_error = exc
        else:
            if not isinstance(result, dict):
                raise SpecParseError(
                    f"Spec must be a JSON/YAML object (got {type(result).__name__})"
                )
            return result

    try:
        result = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        msg = "Failed to parse spec as JSON or YAML"
        if json_error:
            msg += f"\n  JSON error: {json_error}"
        msg += f"\n  YAML error: {exc}"
        raise SpecParseError(msg) from exc

    if not isinstance(result, dict):
        raise SpecParseError(
            "Spec must be a JSON/YAML object (got "
            f"{type(result).__name__ if result is not None else 'empty document'})"
        )
    return result
