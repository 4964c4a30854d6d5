"""Cache commands -- inspect and clear the on-disk stores."""

from __future__ import annotations

import typer

from resli.output import get_output, success

cache_app = typer.Typer(no_args_is_help=True)


@cache_app.command("stats")
def cache_stats() -> None:
    """Show response cache statistics.

    Example::

        resli cache stats
        resli --json cache stats
    """
    from resli.cache import ResponseCache, StateStore
    from resli.config import get_cache_dir, load_global_config

    config = load_global_config()
    cache = ResponseCache(get_cache_dir(), config.cache)
    state = StateStore(get_cache_dir())
    try:
        stats = cache.stats()
        stats["state_entries"] = len(state)
    finally:
        cache.close()
        state.close()

    rows = [[key, str(value)] for key, value in stats.items()]
    get_output().print_table(["Key", "Value"], rows, title="Cache")


@cache_app.command("clear")
def cache_clear(
    tokens: bool = typer.Option(
        False, "--tokens", help="Also forget cached descriptions and OAuth tokens."
    ),
) -> None:
    """Remove all cached responses."""
    from resli.cache import ResponseCache, StateStore
    from resli.config import get_cache_dir
    from resli.models import CacheConfig

    # Clear even when caching is currently disabled.
    cache = ResponseCache(get_cache_dir(), CacheConfig())
    try:
        cache.clear()
    finally:
        cache.close()

    if tokens:
        state = StateStore(get_cache_dir())
        try:
            state.clear()
        finally:
            state.close()
        success("Cleared response cache, descriptions and tokens.")
        return
    success("Cleared response cache.")
