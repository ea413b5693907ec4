"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from crate_graph import LINUX, MACOS, WINDOWS, CrateGraph, FakePlatformResolver

from buckify.config import Config, PlatformConfig


@pytest.fixture
def graph(tmp_path: Path) -> CrateGraph:
    """Provide an empty vendored crate graph rooted in a temp directory."""
    return CrateGraph(tmp_path)


@pytest.fixture
def platforms() -> dict[str, PlatformConfig]:
    return {"linux-x86_64": LINUX, "macos-arm64": MACOS, "windows-x86_64": WINDOWS}


@pytest.fixture
def config(platforms: dict[str, PlatformConfig]) -> Config:
    return Config(rustc_flags=("--cap-lints=allow",), platforms=platforms)


@pytest.fixture
def resolver(platforms: dict[str, PlatformConfig]) -> FakePlatformResolver:
    return FakePlatformResolver(platforms)
