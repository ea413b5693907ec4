"""Package naming and visibility index."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Protocol

from buckify.models import PackageId, PackageNode


class RuleIndex(Protocol):
    def public_rule_name(self, pkg: PackageNode) -> str:
        """Stable name dependents use to refer to *pkg*."""

    def private_rule_name(self, pkg: PackageNode) -> str:
        """Version-qualified name of the rule implementing *pkg*."""

    def is_root_package(self, pkg: PackageNode) -> bool:
        """True for the synthetic package aggregating all top-level dependencies."""

    def is_public(self, pkg: PackageNode) -> bool:
        """True when *pkg* is exposed outside the generated file."""

    def public_packages(self) -> Iterable[PackageNode]:
        """Roots of the traversal."""

    def all_packages(self) -> Iterable[PackageNode]:
        """Every package in the resolved graph."""


class PackageIndex:
    """Default naming policy over a resolved package set.

    Public packages are the root package's direct dependencies (plus the root
    itself when ``include_top_level`` is set). Public names are bare package
    names; private names carry the version.
    """

    def __init__(
        self,
        packages: Iterable[PackageNode],
        *,
        root: PackageId | None = None,
        public: Iterable[PackageId] = (),
        include_top_level: bool = False,
    ) -> None:
        self._packages: dict[PackageId, PackageNode] = {pkg.id: pkg for pkg in packages}
        self._root = root
        self._public = set(public)
        if root is not None and include_top_level:
            self._public.add(root)

    def public_rule_name(self, pkg: PackageNode) -> str:
        return pkg.name

    def private_rule_name(self, pkg: PackageNode) -> str:
        return str(pkg.id)

    def is_root_package(self, pkg: PackageNode) -> bool:
        return self._root is not None and pkg.id == self._root

    def is_public(self, pkg: PackageNode) -> bool:
        return pkg.id in self._public

    def public_packages(self) -> Iterator[PackageNode]:
        for pkg_id in sorted(self._public):
            pkg = self._packages.get(pkg_id)
            if pkg is not None:
                yield pkg

    def all_packages(self) -> Iterator[PackageNode]:
        for pkg_id in sorted(self._packages):
            yield self._packages[pkg_id]

    def get(self, pkg_id: PackageId) -> PackageNode | None:
        return self._packages.get(pkg_id)
