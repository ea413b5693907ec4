"""Render rules into Buck file content and write generated outputs."""

from __future__ import annotations

import subprocess
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, assert_never

from buckify.config import BuckConfig
from buckify.emit.starlark import Call, Field, function_call, render_value
from buckify.errors import FormatterError, OutputWriteError
from buckify.rules.model import (
    Alias,
    BuckPath,
    BuildscriptBinary,
    BuildscriptGenrule,
    Common,
    CxxLibrary,
    GitFetch,
    HttpArchive,
    PlatformAttributes,
    PrebuiltCxxLibrary,
    RootPackage,
    Rule,
    RuleRef,
    RustBinary,
    RustCommon,
    RustLibrary,
)
from buckify.rules.ordering import sorted_labels

PUBLIC_VISIBILITY = ["PUBLIC"]

TARGETS_FILE_HEADER = "# @generated by buckify\n"


def rule_kind(rule: Rule, config: BuckConfig) -> str:
    """Name of the macro or rule a declaration is emitted as."""
    if isinstance(rule, Alias):
        return config.alias
    if isinstance(rule, HttpArchive):
        return config.http_archive
    if isinstance(rule, GitFetch):
        return config.git_fetch
    if isinstance(rule, (RustLibrary, RootPackage)):
        return config.rust_library
    if isinstance(rule, RustBinary):
        return config.rust_binary
    if isinstance(rule, BuildscriptBinary):
        return config.buildscript_binary or config.rust_binary
    if isinstance(rule, BuildscriptGenrule):
        return config.buildscript_genrule
    if isinstance(rule, CxxLibrary):
        return config.cxx_library
    if isinstance(rule, PrebuiltCxxLibrary):
        return config.prebuilt_cxx_library
    assert_never(rule)


def rule_fields(rule: Rule) -> list[Field]:
    """Attributes of *rule* in emission order, before omission."""
    if isinstance(rule, Alias):
        return [
            ("name", rule.name),
            ("actual", str(rule.actual)),
            ("visibility", _visibility(rule.public)),
        ]
    if isinstance(rule, HttpArchive):
        return [
            ("name", rule.name),
            ("visibility", _visibility(rule.public)),
            ("urls", list(rule.urls)),
            ("sha256", rule.sha256),
            ("strip_prefix", rule.strip_prefix),
            ("type", rule.archive_type),
            ("sub_targets", sorted_labels(rule.sub_targets)),
        ]
    if isinstance(rule, GitFetch):
        return [
            ("name", rule.name),
            ("visibility", _visibility(rule.public)),
            ("repo", rule.repo),
            ("rev", rule.rev),
        ]
    if isinstance(rule, RustLibrary):
        return _library_fields(rule)
    if isinstance(rule, RootPackage):
        return _library_fields(rule.library)
    if isinstance(rule, (RustBinary, BuildscriptBinary)):
        return _rust_common_fields(rule.common)
    if isinstance(rule, BuildscriptGenrule):
        return [
            ("name", rule.name),
            ("buildscript_rule", str(rule.buildscript_rule)),
            ("package_name", rule.package_name),
            ("version", rule.version),
            ("features", sorted(rule.features)),
            ("env", _sorted_dict(rule.env)),
            ("path_env", _sorted_dict(rule.path_env)),
            ("manifest_dir", rule.manifest_dir.as_text() if rule.manifest_dir else None),
        ]
    if isinstance(rule, CxxLibrary):
        exported: Any
        if isinstance(rule.exported_headers, Mapping):
            exported = {
                key: path.as_text() for key, path in sorted(rule.exported_headers.items())
            }
        else:
            exported = _paths(rule.exported_headers)
        return [
            *_common_fields(rule.common),
            ("srcs", _paths(rule.srcs)),
            ("headers", _paths(rule.headers)),
            ("exported_headers", exported),
            ("compiler_flags", list(rule.compiler_flags)),
            ("preprocessor_flags", list(rule.preprocessor_flags)),
            ("header_namespace", rule.header_namespace),
            ("include_directories", [path.as_text() for path in rule.include_directories]),
            ("deps", _refs(rule.deps)),
            ("preferred_linkage", rule.preferred_linkage),
        ]
    if isinstance(rule, PrebuiltCxxLibrary):
        return [
            *_common_fields(rule.common),
            ("static_lib", rule.static_lib.as_text()),
        ]
    assert_never(rule)


def render_rule(rule: Rule, config: BuckConfig) -> str:
    return function_call(rule_kind(rule, config), rule_fields(rule))


def render_buckfile(config: BuckConfig, rules: Iterable[Rule]) -> str:
    """Render a whole file: header, imports, then each rule and a blank line.

    Every rule is rendered before anything is returned, so serialization
    failures surface before any output is written.
    """
    parts: list[str] = []
    if config.generated_file_header:
        parts.append(config.generated_file_header + "\n")
    if config.buckfile_imports:
        parts.append(config.buckfile_imports + "\n")
    for rule in rules:
        parts.append(render_rule(rule, config))
        parts.append("\n")
    return "".join(parts)


def render_targets_file(public_names: Iterable[str]) -> str:
    names = sorted(set(public_names))
    return f"{TARGETS_FILE_HEADER}RUST_TARGETS = {render_value(names)}\n"


def run_formatter(formatter: Path, content: bytes) -> bytes:
    """Pipe *content* through the formatter executable and return its stdout."""
    try:
        result = subprocess.run(
            [str(formatter)],
            input=content,
            capture_output=True,
            check=False,
        )
    except OSError as exc:
        raise FormatterError(
            "Failed to run formatter.",
            hint=str(exc),
            context={"formatter": str(formatter)},
        ) from exc

    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace") if result.stderr else ""
        raise FormatterError(
            f"Formatter failed with code {result.returncode}.",
            hint="Check the formatter stderr for details.",
            context={
                "formatter": str(formatter),
                "returncode": str(result.returncode),
                "stderr": stderr[:2000],
            },
        )
    return result.stdout


def write_if_changed(path: Path, content: bytes) -> bool:
    """Write *content* unless *path* already holds exactly these bytes."""
    try:
        existing: bytes | None = path.read_bytes()
    except FileNotFoundError:
        existing = None
    except OSError as exc:
        raise OutputWriteError(
            f"Failed to read existing {path.name}.",
            hint=str(exc),
            context={"path": str(path)},
        ) from exc
    if existing == content:
        return False
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    except OSError as exc:
        raise OutputWriteError(
            f"Failed to write {path.name}.",
            hint=str(exc),
            context={"path": str(path)},
        ) from exc
    return True


def _visibility(public: bool) -> list[str]:
    return list(PUBLIC_VISIBILITY) if public else []


def _paths(paths: Iterable[BuckPath]) -> list[str]:
    return sorted_labels(path.as_text() for path in paths)


def _refs(refs: Iterable[RuleRef]) -> list[str]:
    return sorted_labels(str(ref) for ref in refs)


def _sorted_dict(entries: Mapping[str, str]) -> dict[str, str]:
    return {key: entries[key] for key in sorted(entries)}


def _common_fields(common: Common) -> list[Field]:
    return [
        ("name", common.name),
        ("visibility", _visibility(common.public)),
        ("licenses", _paths(common.licenses)),
        ("compatible_with", _refs(common.compatible_with)),
    ]


def _platform_fields(attrs: PlatformAttributes) -> list[Field]:
    return [
        ("srcs", _paths(attrs.srcs)),
        (
            "mapped_srcs",
            {key: attrs.mapped_srcs[key].as_text() for key in sorted(attrs.mapped_srcs)},
        ),
        ("rustc_flags", list(attrs.rustc_flags)),
        ("features", sorted(attrs.features)),
        ("deps", _refs(attrs.deps)),
        (
            "named_deps",
            {key: str(attrs.named_deps[key]) for key in sorted(attrs.named_deps)},
        ),
        ("env", _sorted_dict(attrs.env)),
        ("link_style", attrs.link_style),
        ("preferred_linkage", attrs.preferred_linkage),
    ]


def _rust_common_fields(rust: RustCommon) -> list[Field]:
    platform = {
        name: Call("dict", tuple(_platform_fields(rust.platform[name])))
        for name in sorted(rust.platform)
        if not rust.platform[name].is_empty()
    }
    return [
        *_common_fields(rust.common),
        ("crate", rust.crate),
        ("crate_root", rust.crate_root.as_text()),
        ("edition", rust.edition),
        *_platform_fields(rust.base),
        ("platform", platform),
    ]


def _library_fields(rule: RustLibrary) -> list[Field]:
    return [
        *_rust_common_fields(rule.common),
        ("proc_macro", rule.proc_macro),
        ("dlopen_enable", rule.dlopen_enable),
        ("python_ext", rule.python_ext),
        ("linkable_alias", rule.linkable_alias),
    ]
