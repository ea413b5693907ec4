"""Per-package override collaborator interface and its no-override default."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import PurePath
from typing import TYPE_CHECKING, Protocol

from buckify.models import PackageNode, Paths, Target
from buckify.rules.model import BuildscriptBinary, Rule, RuleRef

if TYPE_CHECKING:
    from buckify.config import Config
    from buckify.index import RuleIndex

# (dependency package, rule reference, rename); the package drives traversal
ResolvedDep = tuple[PackageNode | None, RuleRef, str | None]


class Fixups(Protocol):
    def omit_target(self) -> bool: ...

    def precise_srcs(self) -> bool: ...

    def python_ext(self) -> str | None: ...

    def compute_cmdline(self) -> Iterable[tuple[str | None, list[str]]]: ...

    def compute_srcs(
        self, srcs: list[PurePath]
    ) -> Iterable[tuple[str | None, list[PurePath]]]: ...

    def compute_gen_srcs(
        self, srcdir: PurePath
    ) -> Iterable[tuple[str | None, dict[RuleRef, PurePath]]]: ...

    def compute_mapped_srcs(self) -> Iterable[tuple[str | None, dict[PurePath, PurePath]]]: ...

    def compute_features(self) -> Iterable[tuple[str | None, set[str]]]: ...

    def compute_env(self) -> Iterable[tuple[str | None, dict[str, str]]]: ...

    def compute_deps(self) -> Iterable[ResolvedDep]: ...

    def compute_link_style(self) -> Iterable[tuple[str | None, str]]: ...

    def compute_preferred_linkage(self) -> Iterable[tuple[str | None, str]]: ...

    def emit_buildscript_rules(
        self, buildscript: BuildscriptBinary, config: Config
    ) -> list[Rule]: ...


class FixupsFactory(Protocol):
    def __call__(
        self,
        *,
        config: Config,
        paths: Paths,
        index: RuleIndex,
        package: PackageNode,
        target: Target,
    ) -> Fixups:
        """Load the overrides that apply to one package target."""


class BaseFixups:
    """Fixups for a package with no overrides.

    Sources pass through unchanged, nothing is platform specific, and build
    scripts produce no rules. Subclass and override individual hooks to
    supply real overrides.
    """

    def __init__(
        self,
        *,
        config: Config,
        package: PackageNode,
        target: Target,
        deps: Iterable[ResolvedDep] = (),
        features: Iterable[str] = (),
    ) -> None:
        self.config = config
        self.package = package
        self.target = target
        self._deps = list(deps)
        self._features = set(features)

    def omit_target(self) -> bool:
        return False

    def precise_srcs(self) -> bool:
        return self.config.precise_srcs

    def python_ext(self) -> str | None:
        return None

    def compute_cmdline(self) -> list[tuple[str | None, list[str]]]:
        return []

    def compute_srcs(self, srcs: list[PurePath]) -> list[tuple[str | None, list[PurePath]]]:
        return [(None, list(srcs))]

    def compute_gen_srcs(
        self, srcdir: PurePath
    ) -> list[tuple[str | None, dict[RuleRef, PurePath]]]:
        return []

    def compute_mapped_srcs(self) -> list[tuple[str | None, dict[PurePath, PurePath]]]:
        return []

    def compute_features(self) -> list[tuple[str | None, set[str]]]:
        if not self._features:
            return []
        return [(None, set(self._features))]

    def compute_env(self) -> list[tuple[str | None, dict[str, str]]]:
        return []

    def compute_deps(self) -> list[ResolvedDep]:
        return list(self._deps)

    def compute_link_style(self) -> list[tuple[str | None, str]]:
        return []

    def compute_preferred_linkage(self) -> list[tuple[str | None, str]]:
        return []

    def emit_buildscript_rules(self, buildscript: BuildscriptBinary, config: Config) -> list[Rule]:
        return []
