"""Typed dataclasses for the resolved package graph consumed by generation."""

from __future__ import annotations

from dataclasses import dataclass
from functools import total_ordering
from pathlib import Path
from typing import Literal

Edition = Literal["2015", "2018", "2021", "2024"]

EDITION_ORDER: tuple[Edition, ...] = ("2015", "2018", "2021", "2024")

# Precise source detection relies on 2018+ module path rules
PRECISE_SRCS_MIN_EDITION: Edition = "2018"

LIBRARY_CRATE_TYPES = frozenset({"lib", "rlib"})


def edition_at_least(edition: Edition, minimum: Edition) -> bool:
    return EDITION_ORDER.index(edition) >= EDITION_ORDER.index(minimum)


def version_key(version: str) -> tuple[tuple[int, ...], int, tuple[tuple[int, int | str], ...]]:
    """Semver precedence key: numeric core, then release above pre-release."""
    core, _, _build = version.partition("+")
    release, _, pre = core.partition("-")
    numbers = tuple(int(part) if part.isdigit() else 0 for part in release.split("."))
    if not pre:
        return numbers, 1, ()
    identifiers = tuple(
        (0, int(part)) if part.isdigit() else (1, part) for part in pre.split(".")
    )
    return numbers, 0, identifiers


@total_ordering
@dataclass(frozen=True, slots=True)
class PackageId:
    name: str
    version: str

    def sort_key(self) -> tuple[object, ...]:
        return (self.name, version_key(self.version), self.version)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, PackageId):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __str__(self) -> str:
        return f"{self.name}-{self.version}"


@dataclass(frozen=True, slots=True)
class Target:
    """One buildable unit of a package, as reported by cargo metadata."""

    name: str
    kind: tuple[str, ...]
    crate_types: tuple[str, ...]
    src_path: Path
    edition: Edition | None = None

    @property
    def kind_lib(self) -> bool:
        return "lib" in self.kind

    @property
    def kind_proc_macro(self) -> bool:
        return "proc-macro" in self.kind

    @property
    def kind_cdylib(self) -> bool:
        return "cdylib" in self.kind

    @property
    def kind_bin(self) -> bool:
        return "bin" in self.kind

    @property
    def kind_custom_build(self) -> bool:
        return "custom-build" in self.kind

    @property
    def crate_lib(self) -> bool:
        return not LIBRARY_CRATE_TYPES.isdisjoint(self.crate_types)

    @property
    def crate_proc_macro(self) -> bool:
        return "proc-macro" in self.crate_types

    @property
    def crate_cdylib(self) -> bool:
        return "cdylib" in self.crate_types

    @property
    def crate_bin(self) -> bool:
        return "bin" in self.crate_types

    @property
    def is_library_like(self) -> bool:
        return (
            (self.kind_lib and self.crate_lib)
            or (self.kind_proc_macro and self.crate_proc_macro)
            or (self.kind_cdylib and self.crate_cdylib)
        )

    @property
    def is_buildscript(self) -> bool:
        return self.kind_custom_build and self.crate_bin

    @property
    def is_binary(self) -> bool:
        return self.kind_bin and self.crate_bin


@dataclass(frozen=True, slots=True)
class PackageNode:
    """A resolved upstream package with its manifest location and targets."""

    id: PackageId
    manifest_path: Path
    edition: Edition = "2015"
    license_files: tuple[str, ...] = ()
    targets: tuple[Target, ...] = ()

    @property
    def name(self) -> str:
        return self.id.name

    @property
    def version(self) -> str:
        return self.id.version

    @property
    def manifest_dir(self) -> Path:
        return self.manifest_path.parent

    def dependency_target(self) -> Target | None:
        """Return the target dependents link against, if the package has one."""
        for target in self.targets:
            if target.is_library_like:
                return target
        return None

    def __str__(self) -> str:
        return str(self.id)


@dataclass(frozen=True, slots=True)
class Paths:
    """Filesystem roots resolved once per run."""

    third_party_dir: Path
    fixups_dir: Path | None = None


__all__ = [
    "EDITION_ORDER",
    "Edition",
    "LIBRARY_CRATE_TYPES",
    "PRECISE_SRCS_MIN_EDITION",
    "PackageId",
    "PackageNode",
    "Paths",
    "Target",
    "edition_at_least",
    "version_key",
]
