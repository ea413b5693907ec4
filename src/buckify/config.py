"""Global third-party configuration read from ``reindeer.toml``."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from buckify.errors import ConfigError

CONFIG_FILE_NAME = "reindeer.toml"

# Sections that configure collaborators outside rule generation
IGNORED_SECTIONS = frozenset({"cargo", "vendor", "audit"})


@dataclass(frozen=True, slots=True)
class BuckConfig:
    """Output file naming and the rule names emitted for each declaration kind."""

    file_name: str = "BUCK"
    generated_file_header: str = ""
    buckfile_imports: str = ""
    alias: str = "alias"
    http_archive: str = "http_archive"
    git_fetch: str = "git_fetch"
    rust_library: str = "rust_library"
    rust_binary: str = "rust_binary"
    cxx_library: str = "cxx_library"
    prebuilt_cxx_library: str = "prebuilt_cxx_library"
    # Falls back to ``rust_binary`` when unset
    buildscript_binary: str | None = None
    buildscript_genrule: str = "buildscript_run"
    targets_name: str | None = None


@dataclass(frozen=True, slots=True)
class PlatformConfig:
    """Named platform description handed to the platform predicate evaluator."""

    predicates: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def values(self, key: str) -> tuple[str, ...]:
        return self.predicates.get(key, ())


@dataclass(frozen=True, slots=True)
class Config:
    rustc_flags: tuple[str, ...] = ()
    platform_rustc_flags: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    precise_srcs: bool = False
    license_patterns: tuple[str, ...] = ()
    unresolved_fixup_error_message: str | None = None
    include_top_level: bool = False
    buildifier_path: str | None = None
    jobs: int | None = None
    buck: BuckConfig = field(default_factory=BuckConfig)
    platforms: Mapping[str, PlatformConfig] = field(default_factory=dict)
    config_path: Path | None = None


def read_config(directory: str | Path) -> Config:
    """Read ``reindeer.toml`` from *directory*; a missing file yields defaults."""
    config_dir = Path(directory)
    path = config_dir / CONFIG_FILE_NAME
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Config(config_path=config_dir)
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(
            "Failed to read config.",
            hint=str(exc),
            context={"path": str(path)},
        ) from exc
    return parse_config(raw, path=path, config_dir=config_dir)


def parse_config(raw: str, *, path: Path | None = None, config_dir: Path | None = None) -> Config:
    try:
        payload = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            "Invalid config TOML.",
            hint=str(exc),
            context={"path": str(path) if path else ""},
        ) from exc

    location = str(path) if path else ""
    top_level = {f.name for f in fields(Config)} - {"buck", "platforms", "config_path"}
    _reject_unknown(payload, top_level | {"buck", "platform"} | IGNORED_SECTIONS, location, "")

    buck_raw = _optional_table(payload, "buck", location)
    buck_keys = {f.name for f in fields(BuckConfig)}
    _reject_unknown(buck_raw, buck_keys, location, "buck.")
    buck_values: dict[str, Any] = {}
    for key in sorted(buck_keys):
        if key not in buck_raw:
            continue
        if key == "buildscript_binary" or key == "targets_name":
            buck_values[key] = _optional_str(buck_raw, key, location)
        else:
            buck_values[key] = _str_value(buck_raw, key, location)

    platforms: dict[str, PlatformConfig] = {}
    for name, table in sorted(_optional_table(payload, "platform", location).items()):
        if not isinstance(table, dict):
            raise ConfigError(
                f"Invalid config `platform.{name}` value.",
                context={"path": location},
            )
        platforms[name] = PlatformConfig(
            predicates={key: _str_list(table, key, location) for key in sorted(table)}
        )

    platform_flags = _optional_table(payload, "platform_rustc_flags", location)
    jobs = payload.get("jobs")
    if jobs is not None and (not isinstance(jobs, int) or isinstance(jobs, bool) or jobs < 1):
        raise ConfigError("Invalid config `jobs` value.", context={"path": location})

    return Config(
        rustc_flags=_str_list(payload, "rustc_flags", location),
        platform_rustc_flags={
            name: _str_list(platform_flags, name, location) for name in sorted(platform_flags)
        },
        precise_srcs=_bool_value(payload, "precise_srcs", location),
        license_patterns=_str_list(payload, "license_patterns", location),
        unresolved_fixup_error_message=_optional_str(
            payload, "unresolved_fixup_error_message", location
        ),
        include_top_level=_bool_value(payload, "include_top_level", location),
        buildifier_path=_optional_str(payload, "buildifier_path", location),
        jobs=jobs,
        buck=BuckConfig(**buck_values),
        platforms=platforms,
        config_path=config_dir,
    )


def _reject_unknown(
    payload: Mapping[str, Any], allowed: set[str] | frozenset[str], location: str, prefix: str
) -> None:
    unknown = sorted(set(payload) - set(allowed))
    if unknown:
        raise ConfigError(
            f"Unknown config key `{prefix}{unknown[0]}`.",
            hint="Remove the key or check its spelling.",
            context={"path": location},
        )


def _optional_table(payload: Mapping[str, Any], key: str, location: str) -> dict[str, Any]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ConfigError(f"Invalid config `{key}` value.", context={"path": location})
    return value


def _str_value(payload: Mapping[str, Any], key: str, location: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str):
        raise ConfigError(f"Invalid config `{key}` value.", context={"path": location})
    return value


def _optional_str(payload: Mapping[str, Any], key: str, location: str) -> str | None:
    if key not in payload:
        return None
    return _str_value(payload, key, location)


def _bool_value(payload: Mapping[str, Any], key: str, location: str) -> bool:
    value = payload.get(key, False)
    if not isinstance(value, bool):
        raise ConfigError(f"Invalid config `{key}` value.", context={"path": location})
    return value


def _str_list(payload: Mapping[str, Any], key: str, location: str) -> tuple[str, ...]:
    value = payload.get(key, [])
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"Invalid config `{key}` value.", context={"path": location})
    return tuple(value)


__all__ = [
    "BuckConfig",
    "CONFIG_FILE_NAME",
    "Config",
    "PlatformConfig",
    "parse_config",
    "read_config",
]
