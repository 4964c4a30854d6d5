"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for resli:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.resli/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~resli.models.GlobalConfig`
  JSON file storing defaults (cache, retry policy, timeout).
* **APIs** -- ``apis.json`` maps each API short name to an
  :class:`~resli.models.APIConfig` holding its base URL, profiles and
  TLS material. Managed via :func:`load_apis`, :func:`save_apis`,
  :func:`add_api` and :func:`remove_api`.
* **URL handling** -- :func:`fix_address` expands shorthand addresses and
  :func:`find_api` matches a URL to its configured API.
* **Precedence resolution** -- :func:`resolve_options` merges CLI flags,
  environment variables and global config into the effective
  :class:`~resli.models.RequestOptions`.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`). Read-modify-write cycles on ``apis.json`` also
hold a cross-process :class:`diskcache.Lock` so that two concurrently
launched ``resli`` processes cannot interleave their updates.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import diskcache

from resli.exceptions import ConfigError, InvalidUsageError
from resli.models import APIConfig, GlobalConfig, RequestOptions

_APP_NAME = "resli"
_CONFIG_FILENAME = "config.json"
_APIS_FILENAME = "apis.json"
_LOCK_EXPIRE_SECONDS = 30


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/resli/`` (default ``~/.config/resli/``).
    On macOS/Windows: ``~/.resli/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the HTTP response store, the keyed state store (tokens, API
    description expiry) and cross-process lock files. Everything in it can
    be deleted at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/resli/`` (default ``~/.cache/resli/``).
    On macOS/Windows: ``~/.resli/cache/``.

    Returns:
        Absolute path to the cache directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/resli/`` (default ``~/.local/share/resli/``).
    On macOS/Windows: ``~/.resli/logs/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


@contextmanager
def config_lock(name: str) -> Iterator[None]:
    """Hold a cross-process lock named *name* for the duration of the block.

    The lock lives in a small :class:`diskcache.Cache` under the cache
    directory. Locks expire after a short period so that a crashed process
    cannot wedge later invocations.
    """
    with diskcache.Cache(str(get_cache_dir() / "locks")) as cache:
        with diskcache.Lock(cache, f"lock:{name}", expire=_LOCK_EXPIRE_SECONDS):
            yield


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~resli.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- API configuration ---


def _apis_path() -> Path:
    """Path to the API registry file."""
    return get_config_dir() / _APIS_FILENAME


def load_apis() -> dict[str, APIConfig]:
    """Load every configured API from ``apis.json``.

    Returns:
        A mapping of API short name to :class:`~resli.models.APIConfig`.
        Empty when the file does not exist yet.

    Raises:
        ConfigError: If the file contains invalid JSON or an entry fails
            validation.
    """
    path = _apis_path()
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid API config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid API config at {path}: expected an object")

    apis: dict[str, APIConfig] = {}
    for name, raw in data.items():
        try:
            apis[name] = APIConfig.model_validate(raw)
        except ValueError as exc:
            raise ConfigError(f"Invalid API '{name}' in {path}: {exc}") from exc
    return apis


def save_apis(apis: dict[str, APIConfig]) -> None:
    """Persist *apis* atomically to ``apis.json``."""
    data = {
        name: api.model_dump(mode="json", exclude_none=True)
        for name, api in sorted(apis.items())
    }
    _atomic_write(_apis_path(), json.dumps(data, indent=2) + "\n")


def add_api(name: str, api: APIConfig) -> None:
    """Add or replace the API *name* under the cross-process config lock."""
    with config_lock(_APIS_FILENAME):
        apis = load_apis()
        apis[name] = api
        save_apis(apis)


def remove_api(name: str) -> None:
    """Remove the API *name* under the cross-process config lock.

    Raises:
        ConfigError: If no API with that name is configured.
    """
    with config_lock(_APIS_FILENAME):
        apis = load_apis()
        if name not in apis:
            raise ConfigError(f"API '{name}' is not configured")
        del apis[name]
        save_apis(apis)


def api_base(api: APIConfig, profile: str = "default") -> str:
    """Base URL of *api* under *profile*; a profile ``base`` overrides the API's."""
    selected = api.profiles.get(profile)
    if selected is not None and selected.base:
        return selected.base
    return api.base


def find_api(
    url: str, apis: dict[str, APIConfig], profile: str = "default"
) -> Optional[tuple[str, APIConfig]]:
    """Find the configured API that *url* belongs to under *profile*.

    Only the base for the active profile is a candidate, and APIs that do
    not define a requested non-default profile are skipped. When several
    match, the longest base wins so that ``https://example.com/v2`` is
    preferred over ``https://example.com`` for ``/v2`` URLs.

    Returns:
        ``(name, api)`` or ``None`` when no configured base is a prefix.
    """
    best: Optional[tuple[str, APIConfig]] = None
    best_len = -1
    for name, api in apis.items():
        if profile != "default" and profile not in api.profiles:
            continue
        base = api_base(api, profile)
        if url.startswith(base) and len(base) > best_len:
            best = (name, api)
            best_len = len(base)
    return best


def fix_address(addr: str, apis: dict[str, APIConfig], profile: str = "default") -> str:
    """Expand a shorthand address into a full URL.

    * ``:8000/items`` becomes ``http://localhost:8000/items``.
    * ``myapi/items`` becomes ``<myapi base>/items`` when ``myapi`` is a
      configured API short name, using the base of *profile* when it
      sets one.
    * A host containing ``localhost`` gets ``http://``; anything else
      without a scheme gets ``https://``.

    Raises:
        InvalidUsageError: If *addr* names an API that lacks the requested
            non-default profile.
    """
    if addr.startswith(":"):
        addr = "http://localhost" + addr

    if "://" in addr:
        return addr

    first = addr.split("/", 1)[0]
    if first in apis:
        api = apis[first]
        if profile != "default" and profile not in api.profiles:
            raise InvalidUsageError(f"Invalid profile '{profile}' for API '{first}'")
        return api_base(api, profile).rstrip("/") + addr[len(first):]

    if "localhost" in first:
        return "http://" + addr
    return "https://" + addr


# --- Precedence resolution ---


def _env_float(name: str) -> Optional[float]:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise InvalidUsageError(f"{name} must be a number, got: {raw}") from exc


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidUsageError(f"{name} must be an integer, got: {raw}") from exc


def resolve_options(
    config: Optional[GlobalConfig] = None,
    profile: Optional[str] = None,
    timeout: Optional[float] = None,
    retries: Optional[int] = None,
    **flags: object,
) -> RequestOptions:
    """Resolve per-invocation request options with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``profile``, ``timeout``, ``retries`` and *flags*)
        2. Environment variables (``RESLI_PROFILE``, ``RESLI_TIMEOUT``,
           ``RESLI_RETRY``)
        3. User config (``~/.config/resli/config.json``)
        4. Defaults

    Args:
        config: Global config; loaded from disk when omitted.
        profile: Profile name from ``--profile``.
        timeout: Per-attempt timeout from ``--timeout``.
        retries: Retry count from ``--retry``.
        **flags: Remaining :class:`~resli.models.RequestOptions` fields
            taken verbatim from the command line (headers, query, TLS
            overrides, ``no_cache`` and so on). ``None`` values are ignored.

    Returns:
        The effective :class:`~resli.models.RequestOptions`.
    """
    if config is None:
        config = load_global_config()

    resolved_profile = profile or os.environ.get("RESLI_PROFILE") or "default"

    resolved_timeout = config.timeout
    env_timeout = _env_float("RESLI_TIMEOUT")
    if env_timeout is not None:
        resolved_timeout = env_timeout
    if timeout is not None:
        resolved_timeout = timeout

    resolved_retries = config.retry.retries
    env_retries = _env_int("RESLI_RETRY")
    if env_retries is not None:
        resolved_retries = env_retries
    if retries is not None:
        resolved_retries = retries
    if resolved_retries < 0:
        raise InvalidUsageError(f"Retry count must not be negative, got: {resolved_retries}")

    values = {key: value for key, value in flags.items() if value is not None}
    values.setdefault("user_agent", config.user_agent)

    try:
        return RequestOptions(
            profile=resolved_profile,
            timeout=resolved_timeout,
            retries=resolved_retries,
            default_backoff=config.retry.default_backoff,
            **values,
        )
    except ValueError as exc:
        raise InvalidUsageError(f"Invalid request options: {exc}") from exc
