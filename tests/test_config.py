"""Tests for resli.config — XDG paths, atomic writes, APIs, precedence."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from resli.config import (
    _atomic_write,
    add_api,
    api_base,
    find_api,
    fix_address,
    get_cache_dir,
    get_config_dir,
    get_data_dir,
    load_apis,
    load_global_config,
    remove_api,
    resolve_options,
    save_apis,
    save_global_config,
)
from resli.exceptions import ConfigError, InvalidUsageError
from resli.models import APIConfig, APIProfile, AuthConfig, GlobalConfig, RetryConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _write_json(path: Path, data: Any) -> None:
    """Write a dict as JSON to *path*, creating parent dirs."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def _apis() -> dict[str, APIConfig]:
    return {
        "example": APIConfig(base="https://api.example.com"),
        "v2": APIConfig(base="https://api.example.com/v2"),
        "local": APIConfig(
            base="http://localhost:8000",
            profiles={"staging": APIProfile(base="https://staging.example.org")},
        ),
    }


# ---------------------------------------------------------------------------
# XDG path resolution
# ---------------------------------------------------------------------------


class TestXDGPathsLinux:
    """XDG paths on Linux (the default XDG platform)."""

    def test_config_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("resli.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_config_dir()
        assert result == tmp_path / ".config" / "resli"
        assert result.is_dir()

    def test_config_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_config"
        monkeypatch.setattr("resli.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(custom))

        result = get_config_dir()
        assert result == custom / "resli"
        assert result.is_dir()

    def test_cache_dir_xdg_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("resli.config._is_xdg_platform", lambda: True)
        monkeypatch.delenv("XDG_CACHE_HOME", raising=False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        result = get_cache_dir()
        assert result == tmp_path / ".cache" / "resli"
        assert result.is_dir()

    def test_data_dir_xdg_custom(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        custom = tmp_path / "custom_data"
        monkeypatch.setattr("resli.config._is_xdg_platform", lambda: True)
        monkeypatch.setenv("XDG_DATA_HOME", str(custom))

        result = get_data_dir()
        assert result == custom / "resli"
        assert result.is_dir()


class TestXDGPathsFallback:
    """Fallback paths on non-XDG platforms (macOS, Windows)."""

    def test_config_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("resli.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_config_dir() == tmp_path / ".resli"

    def test_cache_dir_fallback(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("resli.config._is_xdg_platform", lambda: False)
        monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))

        assert get_cache_dir() == tmp_path / ".resli" / "cache"


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


class TestAtomicWrite:
    def test_creates_file_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        _atomic_write(target, "hello world")
        assert target.read_text(encoding="utf-8") == "hello world"

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        target.write_text("old content", encoding="utf-8")
        _atomic_write(target, "new content")
        assert target.read_text(encoding="utf-8") == "new content"

    def test_no_temp_files_left_on_success(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        _atomic_write(target, "content")
        assert list(tmp_path.iterdir()) == [target]

    def test_no_temp_files_left_on_error(self, tmp_path: Path) -> None:
        target = tmp_path / "test.txt"
        with patch("resli.config.os.fsync", side_effect=OSError("disk error")):
            with pytest.raises(OSError, match="disk error"):
                _atomic_write(target, "will fail")
        assert list(tmp_path.iterdir()) == []


# ---------------------------------------------------------------------------
# Global config
# ---------------------------------------------------------------------------


class TestGlobalConfig:
    def test_load_returns_defaults_when_missing(self, isolated_config: Path) -> None:
        cfg = load_global_config()
        assert cfg == GlobalConfig()
        assert cfg.cache.min_ttl_seconds == 86400
        assert cfg.retry.retries == 2

    def test_save_and_load_roundtrip(self, isolated_config: Path) -> None:
        original = GlobalConfig(retry=RetryConfig(retries=5, default_backoff=0.5), timeout=3.0)
        save_global_config(original)
        assert load_global_config() == original

    def test_load_invalid_json_raises_config_error(self, isolated_config: Path) -> None:
        (get_config_dir() / "config.json").write_text("{invalid json!!!", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()

    def test_load_invalid_schema_raises_config_error(self, isolated_config: Path) -> None:
        _write_json(get_config_dir() / "config.json", {"retry": {"retries": -1}})
        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()


# ---------------------------------------------------------------------------
# APIs
# ---------------------------------------------------------------------------


class TestAPIs:
    def test_load_empty_when_missing(self, isolated_config: Path) -> None:
        assert load_apis() == {}

    def test_save_and_load_roundtrip(self, isolated_config: Path) -> None:
        apis = {
            "example": APIConfig(
                base="https://api.example.com",
                profiles={
                    "default": APIProfile(
                        headers={"X-Team": "core"},
                        auth=AuthConfig(name="bearer", params={"token": "abc"}),
                    )
                },
            )
        }
        save_apis(apis)
        assert load_apis() == apis

    def test_add_and_remove(self, isolated_config: Path) -> None:
        add_api("one", APIConfig(base="https://one.example.com"))
        add_api("two", APIConfig(base="https://two.example.com"))
        assert sorted(load_apis()) == ["one", "two"]

        remove_api("one")
        assert list(load_apis()) == ["two"]

    def test_remove_unknown_raises(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigError, match="not configured"):
            remove_api("ghost")

    def test_invalid_entry_raises(self, isolated_config: Path) -> None:
        _write_json(get_config_dir() / "apis.json", {"broken": {"profiles": {}}})
        with pytest.raises(ConfigError, match="broken"):
            load_apis()

    def test_unknown_fields_are_preserved(self, isolated_config: Path) -> None:
        _write_json(
            get_config_dir() / "apis.json",
            {"example": {"base": "https://api.example.com", "operation_base": "/v1"}},
        )
        save_apis(load_apis())
        data = json.loads((get_config_dir() / "apis.json").read_text(encoding="utf-8"))
        assert data["example"]["operation_base"] == "/v1"


class TestFindAPI:
    def test_longest_prefix_wins(self) -> None:
        match = find_api("https://api.example.com/v2/items", _apis())
        assert match is not None
        assert match[0] == "v2"

    def test_shorter_prefix(self) -> None:
        match = find_api("https://api.example.com/v1/items", _apis())
        assert match is not None
        assert match[0] == "example"

    def test_active_profile_base_matches(self) -> None:
        match = find_api("https://staging.example.org/things", _apis(), "staging")
        assert match is not None
        assert match[0] == "local"

    def test_inactive_profile_base_ignored(self) -> None:
        assert find_api("https://staging.example.org/things", _apis()) is None

    def test_apis_without_profile_skipped(self) -> None:
        assert find_api("https://api.example.com/items", _apis(), "staging") is None

    def test_no_match(self) -> None:
        assert find_api("https://other.example.net/", _apis()) is None


class TestFixAddress:
    @pytest.mark.parametrize(
        ("addr", "expected"),
        [
            (":8000/items", "http://localhost:8000/items"),
            ("localhost:3000/x", "http://localhost:3000/x"),
            ("api.example.net/items", "https://api.example.net/items"),
            ("http://plain.example.net", "http://plain.example.net"),
            ("example/items?page=2", "https://api.example.com/items?page=2"),
            ("local/things", "http://localhost:8000/things"),
        ],
    )
    def test_expansion(self, addr: str, expected: str) -> None:
        assert fix_address(addr, _apis()) == expected

    def test_profile_base_used(self) -> None:
        assert fix_address("local/things", _apis(), "staging") == "https://staging.example.org/things"

    def test_missing_profile_is_invalid(self) -> None:
        with pytest.raises(InvalidUsageError, match="Invalid profile 'staging'"):
            fix_address("example/items", _apis(), "staging")

    def test_unknown_hosts_ignore_profile(self) -> None:
        assert fix_address("api.example.net/x", _apis(), "staging") == "https://api.example.net/x"

    def test_api_base(self) -> None:
        local = _apis()["local"]
        assert api_base(local) == "http://localhost:8000"
        assert api_base(local, "staging") == "https://staging.example.org"
        assert api_base(local, "missing") == "http://localhost:8000"


# ---------------------------------------------------------------------------
# Option precedence
# ---------------------------------------------------------------------------


class TestResolveOptions:
    def test_defaults(self, isolated_config: Path) -> None:
        options = resolve_options(GlobalConfig())
        assert options.profile == "default"
        assert options.retries == 2
        assert options.timeout is None
        assert options.default_backoff == 1.0

    def test_config_values(self, isolated_config: Path) -> None:
        config = GlobalConfig(retry=RetryConfig(retries=4, default_backoff=2.0), timeout=9.0)
        options = resolve_options(config)
        assert options.retries == 4
        assert options.timeout == 9.0
        assert options.default_backoff == 2.0

    def test_env_overrides_config(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESLI_RETRY", "7")
        monkeypatch.setenv("RESLI_TIMEOUT", "1.5")
        monkeypatch.setenv("RESLI_PROFILE", "staging")
        options = resolve_options(GlobalConfig(timeout=9.0))
        assert options.retries == 7
        assert options.timeout == 1.5
        assert options.profile == "staging"

    def test_cli_overrides_env(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESLI_RETRY", "7")
        monkeypatch.setenv("RESLI_PROFILE", "staging")
        options = resolve_options(GlobalConfig(), profile="prod", retries=0)
        assert options.retries == 0
        assert options.profile == "prod"

    def test_flags_passed_through(self, isolated_config: Path) -> None:
        options = resolve_options(
            GlobalConfig(),
            headers=["X-A: 1"],
            query=["q=1"],
            no_cache=True,
            client_cert=None,
        )
        assert options.headers == ["X-A: 1"]
        assert options.query == ["q=1"]
        assert options.no_cache is True
        assert options.client_cert is None

    def test_invalid_env_raises(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESLI_RETRY", "many")
        with pytest.raises(InvalidUsageError, match="RESLI_RETRY"):
            resolve_options(GlobalConfig())

    def test_negative_retry_raises(self, isolated_config: Path) -> None:
        with pytest.raises(InvalidUsageError, match="negative"):
            resolve_options(GlobalConfig(), retries=-1)

    def test_tls_overrides(self, isolated_config: Path) -> None:
        options = resolve_options(GlobalConfig(), insecure=True, ca_cert="/tmp/ca.pem")
        assert options.tls_overrides() == {"insecure": True, "ca_cert": "/tmp/ca.pem"}
