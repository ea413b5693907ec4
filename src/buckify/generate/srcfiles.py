"""Precise source discovery for Rust crates.

Starting from the crate root, follow ``mod name;`` declarations (honoring
``#[path = "..."]`` and inline ``mod name { ... }`` nesting) and literal
``include!``/``include_str!``/``include_bytes!`` paths to list every file the
crate reads. Module lookup follows the 2018 edition rules; older editions
should fall back to globbing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

_TOKEN = re.compile(
    r"""
    (?P<comment>//[^\n]*|/\*.*?\*/)
    |(?P<raw>b?r(?P<hashes>\#*)".*?"(?P=hashes))
    |(?P<attr>\#\[\s*path\s*=\s*"(?P<path>(?:\\.|[^"\\])*)"\s*\])
    |(?P<include>\binclude(?:_str|_bytes)?!\s*\(\s*"(?P<inc>(?:\\.|[^"\\])*)"\s*\))
    |(?P<str>b?"(?:\\.|[^"\\])*")
    |(?P<char>b?'(?:\\.|[^'\\\n])')
    |(?P<mod>\bmod\s+(?:r\#)?(?P<name>[A-Za-z_][A-Za-z0-9_]*)\s*(?P<term>[;{]))
    |(?P<open>\{)
    |(?P<close>\})
    """,
    re.VERBOSE | re.DOTALL,
)


class SourceDetectionError(Exception):
    """A module file referenced by the crate could not be found or read."""


@dataclass(slots=True)
class _Inline:
    # Directory component contributed by this inline module
    component: str
    depth: int


@dataclass(slots=True)
class SourceFile:
    path: Path
    # mod-rs files (crate roots, mod.rs, #[path] targets) own their directory
    mod_rs: bool


@dataclass(slots=True)
class _Walk:
    found: list[Path] = field(default_factory=list)
    seen: set[Path] = field(default_factory=set)

    def add(self, path: Path) -> bool:
        if path in self.seen:
            return False
        self.seen.add(path)
        self.found.append(path)
        return True


def crate_srcfiles(root: Path) -> list[Path]:
    """Return every source file reachable from the crate root *root*."""
    walk = _Walk()
    pending = [SourceFile(path=root, mod_rs=True)]
    walk.add(root)
    while pending:
        current = pending.pop()
        for child in _scan(current, walk):
            pending.append(child)
    return walk.found


def _children_dir(source: SourceFile) -> Path:
    if source.mod_rs:
        return source.path.parent
    return source.path.parent / source.path.stem


def _scan(source: SourceFile, walk: _Walk) -> list[SourceFile]:
    try:
        text = source.path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceDetectionError(f"cannot read {source.path}: {exc}") from exc

    children: list[SourceFile] = []
    inline: list[_Inline] = []
    depth = 0
    pending_path: str | None = None

    for match in _TOKEN.finditer(text):
        kind = match.lastgroup
        if kind == "attr":
            pending_path = match.group("path")
        elif kind == "include":
            walk.add(source.path.parent / match.group("inc"))
        elif kind == "mod":
            name = match.group("name")
            if match.group("term") == "{":
                depth += 1
                inline.append(_Inline(component=pending_path or name, depth=depth))
            else:
                child = _resolve_module(source, inline, name, pending_path)
                if walk.add(child.path):
                    children.append(child)
            pending_path = None
        elif kind == "open":
            depth += 1
        elif kind == "close":
            if inline and inline[-1].depth == depth:
                inline.pop()
            depth -= 1
    return children


def _resolve_module(
    source: SourceFile, inline: list[_Inline], name: str, path_attr: str | None
) -> SourceFile:
    if path_attr is not None:
        if inline:
            base = _children_dir(source).joinpath(*(item.component for item in inline))
        else:
            base = source.path.parent
        candidate = base / path_attr
        if not candidate.is_file():
            raise SourceDetectionError(f"module {name} not found at {candidate}")
        return SourceFile(path=candidate, mod_rs=True)

    base = _children_dir(source).joinpath(*(item.component for item in inline))
    flat = base / f"{name}.rs"
    if flat.is_file():
        return SourceFile(path=flat, mod_rs=False)
    nested = base / name / "mod.rs"
    if nested.is_file():
        return SourceFile(path=nested, mod_rs=True)
    raise SourceDetectionError(f"module {name} not found under {base}")
