"""Settings loader: JSON configuration into frozen dataclasses.

Architecture note: :func:`parse_settings_dict` is the pure path (dict in,
:class:`AppSettings` out); :func:`load_settings` only adds reading the file and
overlaying the credential fragments from the environment. The loaded result is
cached per (path, mtime) so repeated CLI calls do not re-parse.

Example::

    >>> settings = parse_settings_dict({"owner": "acme", "providers": [
    ...     {"name": "primary", "repo": "dash", "accept": "raw"},
    ... ]})
    >>> settings.providers[0].accept
    <AcceptMode.RAW: 'raw'>
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Callable, Mapping, Sequence

from attendance_app.core.catalog import DEFAULT_CATALOG, ModuleCatalog, parse_catalog

__all__ = [
    "AcceptMode",
    "ProviderSettings",
    "CacheSettings",
    "AppSettings",
    "DEFAULT_SETTINGS_PATH",
    "TOKEN_PREFIX_ENV",
    "TOKEN_SUFFIX_ENV",
    "parse_settings_dict",
    "load_settings",
]

DEFAULT_SETTINGS_PATH = Path("config/settings.json")
TOKEN_PREFIX_ENV = "ATTENDANCE_TOKEN_PREFIX"
TOKEN_SUFFIX_ENV = "ATTENDANCE_TOKEN_SUFFIX"

_DEFAULT_API_HOST = "api.github.com"
_DEFAULT_BRANCH = "main"
_DEFAULT_MAX_AGE_HOURS = 24.0
_DEFAULT_TIMEOUT_SECONDS = 15.0


class AcceptMode(str, Enum):
    """Representation a provider is asked for."""

    RAW = "raw"
    WRAPPED = "wrapped"


@dataclass(frozen=True)
class ProviderSettings:
    """One remote repository serving attendance datasets."""

    name: str
    repo: str
    accept: AcceptMode


@dataclass(frozen=True)
class CacheSettings:
    """Local cache location and freshness window."""

    directory: Path | None = None
    max_age_hours: float = _DEFAULT_MAX_AGE_HOURS

    @property
    def max_age_seconds(self) -> float:
        return self.max_age_hours * 3600.0


@dataclass(frozen=True)
class AppSettings:
    """Complete configuration of the acquisition pipeline.

    ``token_prefix``/``token_suffix`` are excluded from ``repr`` so settings can
    be logged without leaking the credential.
    """

    api_host: str
    owner: str
    branch: str
    providers: tuple[ProviderSettings, ...]
    cache: CacheSettings = CacheSettings()
    request_timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS
    modules: ModuleCatalog = field(default_factory=lambda: DEFAULT_CATALOG, repr=False)
    token_prefix: str = field(default="", repr=False)
    token_suffix: str = field(default="", repr=False)

    def token(self) -> str:
        """Bearer token assembled from its two configured fragments."""

        return f"{self.token_prefix}{self.token_suffix}"

    def token_provider(self) -> Callable[[], str]:
        return self.token


_DEFAULT_PROVIDERS: tuple[Mapping[str, object], ...] = (
    {"name": "primary", "repo": "RN-E-studentsattendancedashboard", "accept": "raw"},
    {"name": "backup", "repo": "RN-E-attendancerecorderapp", "accept": "wrapped"},
)


def _ensure_text(name: str, value: object, *, allow_empty: bool = False) -> str:
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    text = value.strip()
    if not text and not allow_empty:
        raise ValueError(f"{name} must not be empty")
    return text


def _ensure_positive_float(name: str, value: object, *, allow_zero: bool = False) -> float:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number")
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a number") from exc
    if number < 0 or (number == 0 and not allow_zero):
        raise ValueError(f"{name} must be positive")
    return number


def _normalize_accept(name: str, value: object) -> AcceptMode:
    try:
        return AcceptMode(str(value).strip().lower())
    except ValueError as exc:
        allowed = ", ".join(mode.value for mode in AcceptMode)
        raise ValueError(f"{name} must be one of: {allowed}") from exc


def _normalize_providers(raw: object) -> tuple[ProviderSettings, ...]:
    if raw is None:
        raw = _DEFAULT_PROVIDERS
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
        raise ValueError("providers must be a list")
    if not raw:
        raise ValueError("providers must contain at least one entry")
    providers: list[ProviderSettings] = []
    seen: set[str] = set()
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping):
            raise ValueError(f"providers[{index}] must be an object")
        name = _ensure_text(f"providers[{index}].name", item.get("name", f"provider{index + 1}"))
        if name in seen:
            raise ValueError(f"duplicate provider name: {name}")
        seen.add(name)
        providers.append(
            ProviderSettings(
                name=name,
                repo=_ensure_text(f"providers[{index}].repo", item.get("repo")),
                accept=_normalize_accept(f"providers[{index}].accept", item.get("accept", "raw")),
            )
        )
    return tuple(providers)


def _normalize_cache(raw: object) -> CacheSettings:
    if raw is None:
        return CacheSettings()
    if not isinstance(raw, Mapping):
        raise ValueError("cache must be an object")
    directory = raw.get("directory")
    return CacheSettings(
        directory=Path(str(directory)).expanduser() if directory else None,
        max_age_hours=_ensure_positive_float(
            "cache.max_age_hours", raw.get("max_age_hours", _DEFAULT_MAX_AGE_HOURS), allow_zero=True
        ),
    )


def parse_settings_dict(data: Mapping[str, object]) -> AppSettings:
    """Pure conversion of a settings mapping to :class:`AppSettings`.

    Raises:
        ValueError: if any field has the wrong shape.
    """

    if not isinstance(data, Mapping):
        raise ValueError("settings must be a mapping")
    modules_raw = data.get("modules")
    if modules_raw is not None and not isinstance(modules_raw, Mapping):
        raise ValueError("modules must be an object")
    return AppSettings(
        api_host=_ensure_text("api_host", data.get("api_host", _DEFAULT_API_HOST)),
        owner=_ensure_text("owner", data.get("owner")),
        branch=_ensure_text("branch", data.get("branch", _DEFAULT_BRANCH)),
        providers=_normalize_providers(data.get("providers")),
        cache=_normalize_cache(data.get("cache")),
        request_timeout_seconds=_ensure_positive_float(
            "request_timeout_seconds", data.get("request_timeout_seconds", _DEFAULT_TIMEOUT_SECONDS)
        ),
        modules=parse_catalog(modules_raw) if modules_raw is not None else DEFAULT_CATALOG,
        token_prefix=_ensure_text("token_prefix", data.get("token_prefix"), allow_empty=True),
        token_suffix=_ensure_text("token_suffix", data.get("token_suffix"), allow_empty=True),
    )


@lru_cache(maxsize=8)
def _load_settings_cached(resolved: str, raw: str, mtime_ns: int) -> AppSettings:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"settings file is not valid JSON: {resolved}: {exc}") from exc
    return parse_settings_dict(data)


def load_settings(
    path: str | Path = DEFAULT_SETTINGS_PATH,
    *,
    environ: Mapping[str, str] | None = None,
) -> AppSettings:
    """Read settings from ``path`` and overlay token fragments from ``environ``.

    ``ATTENDANCE_TOKEN_PREFIX`` / ``ATTENDANCE_TOKEN_SUFFIX`` win over the file
    so the credential never needs to be committed.
    """

    settings_path = Path(path)
    try:
        raw = settings_path.read_text(encoding="utf-8")
        mtime_ns = settings_path.stat().st_mtime_ns
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Settings file not found: {settings_path}") from exc

    settings = _load_settings_cached(str(settings_path.resolve()), raw, mtime_ns)
    env = os.environ if environ is None else environ
    overrides: dict[str, str] = {}
    if env.get(TOKEN_PREFIX_ENV):
        overrides["token_prefix"] = env[TOKEN_PREFIX_ENV].strip()
    if env.get(TOKEN_SUFFIX_ENV):
        overrides["token_suffix"] = env[TOKEN_SUFFIX_ENV].strip()
    return replace(settings, **overrides) if overrides else settings


load_settings.cache_clear = _load_settings_cached.cache_clear  # type: ignore[attr-defined]
