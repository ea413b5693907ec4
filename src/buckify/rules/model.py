"""Declaration model for generated Buck rules.

Rules form a closed set of frozen dataclass variants joined in the ``Rule``
union. Operations over rules dispatch on the variant and end in
``assert_never`` so a new variant fails type checking until every operation
handles it. Identity is the rule name alone.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import TYPE_CHECKING, Union, assert_never

from buckify.errors import SerializationError
from buckify.models import Edition
from buckify.rules.ordering import label_sort_key

if TYPE_CHECKING:
    from buckify.config import PlatformConfig
    from buckify.platform import PlatformResolver


@dataclass(frozen=True, slots=True)
class RuleRef:
    """Reference to a rule, optionally guarded by a platform expression."""

    target: str
    is_local: bool = False
    platform: str | None = None

    @classmethod
    def local(cls, name: str) -> RuleRef:
        return cls(target=name, is_local=True)

    @classmethod
    def absolute(cls, label: str) -> RuleRef:
        return cls(target=label, is_local=False)

    @classmethod
    def parse(cls, label: str) -> RuleRef:
        if label.startswith(":"):
            return cls.local(label[1:])
        return cls.absolute(label)

    def with_platform(self, platform: str | None) -> RuleRef:
        return RuleRef(target=self.target, is_local=self.is_local, platform=platform)

    @property
    def has_platform(self) -> bool:
        return self.platform is not None

    def filter(self, resolver: PlatformResolver, platform_config: PlatformConfig) -> bool:
        """Return True when this ref applies to *platform_config*; unguarded refs always do."""
        if self.platform is None:
            return True
        return resolver.evaluate(self.platform, platform_config)

    def sort_key(self) -> tuple[tuple[int, tuple[str, ...], str], str]:
        return (label_sort_key(str(self)), self.platform or "")

    def __str__(self) -> str:
        return f":{self.target}" if self.is_local else self.target


@dataclass(frozen=True, slots=True)
class BuckPath:
    """A source path rendered with forward slashes regardless of host OS."""

    path: PurePath

    @classmethod
    def of(cls, path: str | PurePath) -> BuckPath:
        return cls(PurePath(path))

    def as_text(self) -> str:
        text = self.path.as_posix().replace("\\", "/")
        try:
            text.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise SerializationError(
                "Path contains characters that are not valid UTF-8.",
                context={"path": repr(text)},
            ) from exc
        return text

    def sort_key(self) -> tuple[int, tuple[str, ...], str]:
        return label_sort_key(self.path.as_posix())


@dataclass(slots=True)
class PlatformAttributes:
    """Rule attributes that may differ per platform.

    Mutable while generation folds attribute streams into it; rules hold
    instances that are never modified after construction.
    """

    srcs: set[BuckPath] = field(default_factory=set)
    mapped_srcs: dict[str, BuckPath] = field(default_factory=dict)
    rustc_flags: list[str] = field(default_factory=list)
    features: set[str] = field(default_factory=set)
    deps: set[RuleRef] = field(default_factory=set)
    named_deps: dict[str, RuleRef] = field(default_factory=dict)
    env: dict[str, str] = field(default_factory=dict)
    # Binaries only
    link_style: str | None = None
    # Libraries only
    preferred_linkage: str | None = None

    def clone(self) -> PlatformAttributes:
        return PlatformAttributes(
            srcs=set(self.srcs),
            mapped_srcs=dict(self.mapped_srcs),
            rustc_flags=list(self.rustc_flags),
            features=set(self.features),
            deps=set(self.deps),
            named_deps=dict(self.named_deps),
            env=dict(self.env),
            link_style=self.link_style,
            preferred_linkage=self.preferred_linkage,
        )

    def is_empty(self) -> bool:
        return not (
            self.srcs
            or self.mapped_srcs
            or self.rustc_flags
            or self.features
            or self.deps
            or self.named_deps
            or self.env
            or self.link_style
            or self.preferred_linkage
        )


def clone_platforms(perplat: Mapping[str, PlatformAttributes]) -> dict[str, PlatformAttributes]:
    return {name: attrs.clone() for name, attrs in perplat.items()}


@dataclass(frozen=True, slots=True)
class Common:
    name: str
    public: bool = False
    licenses: frozenset[BuckPath] = frozenset()
    compatible_with: tuple[RuleRef, ...] = ()


@dataclass(frozen=True, slots=True)
class RustCommon:
    common: Common
    crate: str
    crate_root: BuckPath
    edition: Edition
    base: PlatformAttributes = field(default_factory=PlatformAttributes)
    platform: Mapping[str, PlatformAttributes] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Alias:
    name: str
    actual: RuleRef
    public: bool = True


@dataclass(frozen=True, slots=True)
class HttpArchive:
    name: str
    urls: tuple[str, ...]
    sha256: str
    strip_prefix: str | None = None
    archive_type: str | None = None
    sub_targets: frozenset[str] = frozenset()
    public: bool = False


@dataclass(frozen=True, slots=True)
class GitFetch:
    name: str
    repo: str
    rev: str
    public: bool = False


@dataclass(frozen=True, slots=True)
class RustLibrary:
    common: RustCommon
    proc_macro: bool = False
    dlopen_enable: bool = False
    python_ext: str | None = None
    linkable_alias: str | None = None


@dataclass(frozen=True, slots=True)
class RootPackage:
    """Library of the synthetic aggregate package, exposed under its public name."""

    library: RustLibrary


@dataclass(frozen=True, slots=True)
class RustBinary:
    common: RustCommon


@dataclass(frozen=True, slots=True)
class BuildscriptBinary:
    common: RustCommon


@dataclass(frozen=True, slots=True)
class BuildscriptGenrule:
    name: str
    buildscript_rule: RuleRef
    package_name: str
    version: str
    features: frozenset[str] = frozenset()
    env: Mapping[str, str] = field(default_factory=dict)
    path_env: Mapping[str, str] = field(default_factory=dict)
    manifest_dir: BuckPath | None = None


@dataclass(frozen=True, slots=True)
class CxxLibrary:
    common: Common
    srcs: frozenset[BuckPath] = frozenset()
    headers: frozenset[BuckPath] = frozenset()
    exported_headers: frozenset[BuckPath] | Mapping[str, BuckPath] = frozenset()
    compiler_flags: tuple[str, ...] = ()
    preprocessor_flags: tuple[str, ...] = ()
    header_namespace: str | None = None
    include_directories: tuple[BuckPath, ...] = ()
    deps: frozenset[RuleRef] = frozenset()
    preferred_linkage: str | None = None


@dataclass(frozen=True, slots=True)
class PrebuiltCxxLibrary:
    common: Common
    static_lib: BuckPath


Rule = Union[
    Alias,
    HttpArchive,
    GitFetch,
    RustLibrary,
    RootPackage,
    RustBinary,
    BuildscriptBinary,
    BuildscriptGenrule,
    CxxLibrary,
    PrebuiltCxxLibrary,
]


def rule_name(rule: Rule) -> str:
    if isinstance(rule, (Alias, HttpArchive, GitFetch, BuildscriptGenrule)):
        return rule.name
    if isinstance(rule, (RustLibrary, RustBinary, BuildscriptBinary)):
        return rule.common.common.name
    if isinstance(rule, RootPackage):
        return rule.library.common.common.name
    if isinstance(rule, (CxxLibrary, PrebuiltCxxLibrary)):
        return rule.common.name
    assert_never(rule)


def rule_is_public(rule: Rule) -> bool:
    if isinstance(rule, (Alias, HttpArchive, GitFetch)):
        return rule.public
    if isinstance(rule, (RustLibrary, RustBinary, BuildscriptBinary)):
        return rule.common.common.public
    if isinstance(rule, RootPackage):
        return rule.library.common.common.public
    if isinstance(rule, BuildscriptGenrule):
        return False
    if isinstance(rule, (CxxLibrary, PrebuiltCxxLibrary)):
        return rule.common.public
    assert_never(rule)


def rule_sort_key(rule: Rule) -> tuple[int, str, int, str]:
    """Order rules for the generated file.

    Git fetches come first, aliases directly precede the rule they point at,
    and the root package library is always last.
    """
    name = rule_name(rule)
    if isinstance(rule, GitFetch):
        return (0, name, 0, name)
    if isinstance(rule, RootPackage):
        return (2, name, 0, name)
    if isinstance(rule, Alias):
        return (1, rule.actual.target, 0, name)
    if isinstance(
        rule,
        (
            HttpArchive,
            RustLibrary,
            RustBinary,
            BuildscriptBinary,
            BuildscriptGenrule,
            CxxLibrary,
            PrebuiltCxxLibrary,
        ),
    ):
        return (1, name, 1, name)
    assert_never(rule)


class RuleSet:
    """Rules keyed by name; adding a rule with an existing name replaces it."""

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: dict[str, Rule] = {}
        for rule in rules:
            self.add(rule)

    def add(self, rule: Rule) -> None:
        self._rules[rule_name(rule)] = rule

    def get(self, name: str) -> Rule | None:
        return self._rules.get(name)

    def sorted(self) -> list[Rule]:
        return sorted(self._rules.values(), key=rule_sort_key)

    def public_names(self) -> list[str]:
        return sorted(rule_name(rule) for rule in self._rules.values() if rule_is_public(rule))

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.sorted())

    def __len__(self) -> int:
        return len(self._rules)


__all__ = [
    "Alias",
    "BuckPath",
    "BuildscriptBinary",
    "BuildscriptGenrule",
    "Common",
    "CxxLibrary",
    "GitFetch",
    "HttpArchive",
    "PlatformAttributes",
    "PrebuiltCxxLibrary",
    "RootPackage",
    "Rule",
    "RuleRef",
    "RuleSet",
    "RustBinary",
    "RustCommon",
    "RustLibrary",
    "clone_platforms",
    "rule_is_public",
    "rule_name",
    "rule_sort_key",
]
