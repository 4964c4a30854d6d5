"""Typer application and CLI entry point for resli.

This module wires together the top-level Typer application: the root
callback that owns every global flag, the generic HTTP method commands
(``get``, ``head``, ``options``, ``delete``, ``post``, ``put``, ``patch``)
and the ``api``, ``cache`` and ``config`` sub-command groups.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler, invokes the Typer app
and maps :class:`~resli.exceptions.ResliError` to its exit code.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`resli.config`: Option precedence resolution.
    :mod:`resli.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import json
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from resli import __version__
from resli.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="resli",
    help="A generic CLI client for HTTP APIs.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

from resli.commands.api import api_app  # noqa: E402
from resli.commands.cache import cache_app  # noqa: E402
from resli.commands.config import config_app  # noqa: E402

app.add_typer(api_app, name="api", help="Manage configured APIs.")
app.add_typer(cache_app, name="cache", help="Inspect and clear the local cache.")
app.add_typer(config_app, name="config", help="View and modify global settings.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"resli {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    profile: Optional[str] = typer.Option(
        None, "--profile", "-p", help="API profile to use. [env: RESLI_PROFILE]"
    ),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Extra header 'Name: value' (repeatable)."
    ),
    query: Optional[list[str]] = typer.Option(
        None, "--query", "-q", help="Extra query param 'name=value' (repeatable)."
    ),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Bypass and refresh the response cache."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-attempt timeout in seconds. [env: RESLI_TIMEOUT]"
    ),
    retry: Optional[int] = typer.Option(
        None, "--retry", help="Retries for transient failures. [env: RESLI_RETRY]"
    ),
    insecure: bool = typer.Option(
        False, "--insecure", help="Disable TLS certificate verification."
    ),
    client_cert: Optional[str] = typer.Option(
        None, "--client-cert", help="TLS client certificate path."
    ),
    client_key: Optional[str] = typer.Option(
        None, "--client-key", help="TLS client key path."
    ),
    ca_cert: Optional[str] = typer.Option(
        None, "--ca-cert", help="Extra CA certificate bundle."
    ),
    no_paginate: bool = typer.Option(
        False, "--no-paginate", help="Do not follow rel=next links."
    ),
    fail: bool = typer.Option(
        False, "--fail", help="Exit non-zero on 4xx/5xx responses."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    yaml_output: bool = typer.Option(
        False, "--yaml", help="YAML output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~resli.output.OutputManager` from
    CLI flags and stores the request flags in the Typer context so that
    sub-commands can resolve them via
    :func:`~resli.commands.common.get_options`.
    """
    from resli.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif yaml_output:
        fmt = OutputFormat.YAML
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["flags"] = {
        "profile": profile,
        "timeout": timeout,
        "retries": retry,
        "headers": header or [],
        "query": query or [],
        "no_cache": no_cache,
        "no_paginate": no_paginate,
        "fail_on_status": fail,
        "insecure": insecure,
        "client_cert": client_cert,
        "client_key": client_key,
        "ca_cert": ca_cert,
    }


# ------------------------------------------------------------------ #
# Generic HTTP method commands
# ------------------------------------------------------------------ #


def _read_body(body: Optional[str]) -> Optional[str]:
    """Return the body argument, or piped stdin when no argument was given."""
    if body is not None:
        return body
    if sys.stdin is None or sys.stdin.isatty():
        return None
    data = sys.stdin.read()
    return data if data.strip() else None


def _body_headers(body: str, cli_headers: list[str]) -> dict[str, str]:
    """Content type for a non-JSON body, unless ``-H`` already sets one."""
    for raw in cli_headers:
        if raw.partition(":")[0].strip().lower() == "content-type":
            return {}
    try:
        json.loads(body)
    except ValueError:
        return {"Content-Type": "text/plain; charset=utf-8"}
    return {}


def _send(ctx: typer.Context, method: str, url: str, body: Optional[str] = None) -> None:
    from resli.client import format_api_response
    from resli.commands.common import get_options, open_session
    from resli.config import fix_address, load_apis, load_global_config

    config = load_global_config()
    options = get_options(ctx, config)
    apis = load_apis()
    target = fix_address(url, apis, options.profile)

    content: Optional[bytes] = None
    headers: dict[str, str] = {}
    if body is not None:
        content = body.encode("utf-8")
        headers = _body_headers(body, options.headers)

    with open_session(ctx, options, apis, config) as (client, _state):
        resp = client.get_parsed_response(method, target, content, headers)

    format_api_response(resp, fail_on_status=options.fail_on_status)


URL_ARG = typer.Argument(help="URL, host/path or <api>/path.")
BODY_ARG = typer.Argument(None, help="Request body; read from stdin when omitted.")


@app.command("get")
def get_command(ctx: typer.Context, url: str = URL_ARG) -> None:
    """Send a GET request."""
    _send(ctx, "GET", url)


@app.command("head")
def head_command(ctx: typer.Context, url: str = URL_ARG) -> None:
    """Send a HEAD request."""
    _send(ctx, "HEAD", url)


@app.command("options")
def options_command(ctx: typer.Context, url: str = URL_ARG) -> None:
    """Send an OPTIONS request."""
    _send(ctx, "OPTIONS", url)


@app.command("delete")
def delete_command(ctx: typer.Context, url: str = URL_ARG) -> None:
    """Send a DELETE request."""
    _send(ctx, "DELETE", url)


@app.command("post")
def post_command(
    ctx: typer.Context, url: str = URL_ARG, body: Optional[str] = BODY_ARG
) -> None:
    """Send a POST request with an optional body.

    Example::

        resli post api.example.com/items '{"name": "widget"}'
        echo '{"name": "widget"}' | resli post api.example.com/items
    """
    _send(ctx, "POST", url, _read_body(body))


@app.command("put")
def put_command(
    ctx: typer.Context, url: str = URL_ARG, body: Optional[str] = BODY_ARG
) -> None:
    """Send a PUT request with an optional body."""
    _send(ctx, "PUT", url, _read_body(body))


@app.command("patch")
def patch_command(
    ctx: typer.Context, url: str = URL_ARG, body: Optional[str] = BODY_ARG
) -> None:
    """Send a PATCH request with an optional body."""
    _send(ctx, "PATCH", url, _read_body(body))


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from resli.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``resli`` console script.

    :class:`~resli.exceptions.ResliError` instances cause a clean exit with
    the error's ``exit_code``. All other exceptions produce a crash log and
    a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from resli.exceptions import ResliError
        from resli.output import error

        if isinstance(exc, ResliError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
