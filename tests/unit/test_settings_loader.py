from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from attendance_app.core.catalog import DEFAULT_CATALOG
from attendance_app.core.settings_loader import (
    TOKEN_PREFIX_ENV,
    TOKEN_SUFFIX_ENV,
    AcceptMode,
    load_settings,
    parse_settings_dict,
)


def _write(path: Path, payload: dict) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_defaults_applied_for_minimal_settings() -> None:
    settings = parse_settings_dict({"owner": "acme"})
    assert settings.api_host == "api.github.com"
    assert settings.branch == "main"
    assert [p.name for p in settings.providers] == ["primary", "backup"]
    assert [p.accept for p in settings.providers] == [AcceptMode.RAW, AcceptMode.WRAPPED]
    assert settings.cache.max_age_seconds == 24 * 3600
    assert settings.cache.directory is None
    assert settings.request_timeout_seconds == 15.0
    assert settings.modules is DEFAULT_CATALOG
    assert settings.token() == ""


def test_token_is_joined_and_hidden_from_repr() -> None:
    settings = parse_settings_dict({"owner": "acme", "token_prefix": "ghp_abc", "token_suffix": "XYZ"})
    assert settings.token() == "ghp_abcXYZ"
    assert settings.token_provider()() == "ghp_abcXYZ"
    assert "ghp_abc" not in repr(settings)
    assert "XYZ" not in repr(settings)


def test_custom_modules_override_catalog() -> None:
    settings = parse_settings_dict({"owner": "acme", "modules": {"1": [{"id": "Bio", "name": "Biology"}]}})
    assert list(settings.modules) == ["1"]


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"owner": "  "},
        {"owner": "acme", "providers": []},
        {"owner": "acme", "providers": "primary"},
        {"owner": "acme", "providers": [{"name": "p", "repo": "r", "accept": "html"}]},
        {"owner": "acme", "providers": [{"name": "p"}]},
        {"owner": "acme", "providers": [{"name": "p", "repo": "a"}, {"name": "p", "repo": "b"}]},
        {"owner": "acme", "providers": ["repo"]},
        {"owner": "acme", "request_timeout_seconds": 0},
        {"owner": "acme", "request_timeout_seconds": "soon"},
        {"owner": "acme", "cache": {"max_age_hours": -1}},
        {"owner": "acme", "cache": "tmp"},
        {"owner": "acme", "modules": ["Bio"]},
    ],
)
def test_malformed_settings_rejected(data: dict) -> None:
    with pytest.raises(ValueError):
        parse_settings_dict(data)


def test_zero_max_age_is_allowed() -> None:
    settings = parse_settings_dict({"owner": "acme", "cache": {"max_age_hours": 0}})
    assert settings.cache.max_age_seconds == 0


def test_load_settings_reads_file_and_env_overrides(tmp_path: Path) -> None:
    path = _write(tmp_path / "settings.json", {"owner": "acme", "token_prefix": "file-", "token_suffix": "one"})
    settings = load_settings(path, environ={TOKEN_SUFFIX_ENV: "env"})
    assert settings.owner == "acme"
    assert settings.token() == "file-env"

    settings = load_settings(path, environ={TOKEN_PREFIX_ENV: "a", TOKEN_SUFFIX_ENV: "b"})
    assert settings.token() == "ab"


def test_load_settings_reloads_after_change(tmp_path: Path) -> None:
    path = _write(tmp_path / "settings.json", {"owner": "first"})
    assert load_settings(path, environ={}).owner == "first"
    _write(path, {"owner": "second"})
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000_000))
    assert load_settings(path, environ={}).owner == "second"


def test_load_settings_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="Settings file not found"):
        load_settings(tmp_path / "missing.json", environ={})


def test_load_settings_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text("{owner: acme", encoding="utf-8")
    load_settings.cache_clear()
    with pytest.raises(ValueError, match="not valid JSON"):
        load_settings(path, environ={})
