"""Helpers shared by the command modules.

The root callback stores the raw global flags in ``ctx.obj``;
:func:`get_options` resolves them into
:class:`~resli.models.RequestOptions` and :func:`open_session` builds a
client wired to the on-disk cache and state stores.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional

import typer

from resli.models import APIConfig, GlobalConfig, RequestOptions


def _root_obj(ctx: typer.Context) -> dict[str, Any]:
    root = ctx.find_root()
    return root.obj if isinstance(root.obj, dict) else {}


def get_options(ctx: typer.Context, config: Optional[GlobalConfig] = None) -> RequestOptions:
    """Resolve the global flags stored by the root callback.

    Raises:
        InvalidUsageError: If a flag or ``RESLI_*`` variable is invalid.
    """
    from resli.config import resolve_options

    flags = dict(_root_obj(ctx).get("flags", {}))
    return resolve_options(
        config,
        profile=flags.pop("profile", None),
        timeout=flags.pop("timeout", None),
        retries=flags.pop("retries", None),
        **flags,
    )


@contextmanager
def open_session(
    ctx: typer.Context,
    options: RequestOptions,
    apis: dict[str, APIConfig],
    config: GlobalConfig,
    min_cache_ttl: Optional[int] = None,
) -> Iterator[Any]:
    """Yield ``(client, state)`` backed by the cache directory.

    A transport stored under ``ctx.obj["transport"]`` replaces the network
    transport; tests use it to inject :class:`httpx.MockTransport`.
    Everything is closed on exit, including on error.
    """
    from resli.auth import TokenCache
    from resli.cache import ResponseCache, StateStore
    from resli.client import SyncClient, create_default_registries
    from resli.config import get_cache_dir

    cache_dir = get_cache_dir()
    state = StateStore(cache_dir)
    cache = ResponseCache(cache_dir, config.cache)
    try:
        registries = create_default_registries(TokenCache(state))
        with SyncClient(
            options,
            apis,
            registries=registries,
            cache=cache,
            min_cache_ttl=min_cache_ttl,
            transport=_root_obj(ctx).get("transport"),
        ) as client:
            yield client, state
    finally:
        cache.close()
        state.close()
