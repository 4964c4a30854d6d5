"""API commands -- register, inspect and refresh configured APIs.

Provides the ``resli api`` sub-command group. Every API is stored under
a short name in ``apis.json``; the short name can then be used in place of
the base URL (``resli get myapi/items``).
"""

from __future__ import annotations

from typing import Optional

import typer

from resli.output import format_body, get_output, info, success

api_app = typer.Typer(no_args_is_help=True)


def _get_api(name: str):  # noqa: ANN202
    from resli.config import load_apis
    from resli.exceptions import ConfigError

    apis = load_apis()
    if name not in apis:
        raise ConfigError(f"API '{name}' is not configured")
    return apis, apis[name]


@api_app.command("list")
def api_list() -> None:
    """List configured APIs.

    Example::

        resli api list
        resli --json api list
    """
    from resli.config import load_apis

    apis = load_apis()
    rows = [
        [name, api.base, ", ".join(sorted(api.profiles)) or "-"]
        for name, api in sorted(apis.items())
    ]
    get_output().print_table(["Name", "Base", "Profiles"], rows, title=f"APIs ({len(rows)})")


@api_app.command("show")
def api_show(name: str = typer.Argument(help="API short name.")) -> None:
    """Show an API's configuration.

    Auth param values are printed as configured, so avoid sharing the
    output of APIs that store secrets inline.
    """
    _apis, api = _get_api(name)
    format_body(api.model_dump(mode="json", exclude_none=True))


@api_app.command("add")
def api_add(
    name: str = typer.Argument(help="API short name."),
    base: str = typer.Argument(help="Base URL."),
    spec_file: Optional[list[str]] = typer.Option(
        None, "--spec-file", help="Local OpenAPI file (repeatable)."
    ),
    auth: Optional[str] = typer.Option(
        None, "--auth", help="Auth scheme for the default profile, e.g. 'http-basic'."
    ),
    param: Optional[list[str]] = typer.Option(
        None, "--param", help="Auth param 'name=value' (repeatable)."
    ),
    profile_header: Optional[list[str]] = typer.Option(
        None, "--profile-header", help="Default header 'Name: value' (repeatable)."
    ),
) -> None:
    """Register an API without the interactive flow.

    Example::

        resli api add github https://api.github.com \\
            --auth bearer --param 'token=$GITHUB_TOKEN'
    """
    from resli.client.enricher import split_header, split_query
    from resli.config import add_api, fix_address
    from resli.exceptions import InvalidUsageError
    from resli.models import APIConfig, APIProfile, AuthConfig

    if "/" in name or ":" in name:
        raise InvalidUsageError(f"Invalid API name '{name}': must not contain '/' or ':'")

    profile = APIProfile(headers=dict(split_header(h) for h in profile_header or []))
    if auth:
        profile.auth = AuthConfig(name=auth, params=dict(split_query(p) for p in param or []))
    elif param:
        raise InvalidUsageError("--param requires --auth")

    api = APIConfig(
        base=fix_address(base, {}).rstrip("/"),
        spec_files=list(spec_file or []),
        profiles={"default": profile},
    )
    add_api(name, api)
    success(f"Added API '{name}' ({api.base})")


@api_app.command("remove")
def api_remove(name: str = typer.Argument(help="API short name.")) -> None:
    """Remove an API together with its cached description and tokens."""
    from resli.cache import StateStore
    from resli.config import get_cache_dir, remove_api

    remove_api(name)
    state = StateStore(get_cache_dir())
    try:
        state.delete_prefix(f"token:{name}:")
        state.delete(f"{name}.description")
        state.delete(f"{name}.expires")
    finally:
        state.close()
    success(f"Removed API '{name}'")


@api_app.command("sync")
def api_sync(
    ctx: typer.Context,
    name: str = typer.Argument(help="API short name."),
) -> None:
    """Re-fetch an API's description, bypassing every cache."""
    from resli.commands.common import get_options, open_session
    from resli.config import load_global_config
    from resli.parser import description_version, list_operations, load_api_description

    apis, api = _get_api(name)
    config = load_global_config()
    options = get_options(ctx, config).model_copy(update={"no_cache": True})
    ttl = config.cache.min_ttl_seconds

    with open_session(ctx, options, apis, config, min_cache_ttl=ttl) as (client, state):
        description = load_api_description(
            name, api, client, state, ttl, force=True, profile=options.profile
        )

    success(
        f"Synced '{name}': {description_version(description)}, "
        f"{len(list_operations(description))} operations"
    )


@api_app.command("operations")
def api_operations(
    ctx: typer.Context,
    name: str = typer.Argument(help="API short name."),
) -> None:
    """List the operations in an API's description.

    Uses the cached description while it is fresh.
    """
    from resli.commands.common import get_options, open_session
    from resli.config import load_global_config
    from resli.parser import description_version, list_operations, load_api_description

    apis, api = _get_api(name)
    config = load_global_config()
    options = get_options(ctx, config)
    ttl = config.cache.min_ttl_seconds

    with open_session(ctx, options, apis, config, min_cache_ttl=ttl) as (client, state):
        description = load_api_description(name, api, client, state, ttl, profile=options.profile)

    info(description_version(description))
    rows = [[method, path, summary or "-"] for method, path, summary in list_operations(description)]
    get_output().print_table(["Method", "Path", "Summary"], rows, title=f"{name} ({len(rows)})")
