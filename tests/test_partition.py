"""Tests for platform attribute partitioning."""

import pytest

from buckify.errors import ErrorCode, PlatformExprError
from buckify.generate.partition import unzip_platform
from buckify.rules.model import PlatformAttributes
from crate_graph import FakePlatformResolver, platform

PLATFORMS = {
    "linux-arm64": platform(os="linux", arch="aarch64"),
    "linux-x86_64": platform(os="linux", arch="x86_64"),
    "macos": platform(os="macos", arch="aarch64"),
}


def _add_features(rule: PlatformAttributes, features: set[str]) -> None:
    rule.features.update(features)


def test_untagged_items_only_reach_base() -> None:
    base = PlatformAttributes()
    perplat: dict[str, PlatformAttributes] = {}
    unzip_platform(
        FakePlatformResolver(PLATFORMS),
        base,
        perplat,
        _add_features,
        [(None, {"std"})],
        category="features",
    )
    assert base.features == {"std"}
    assert perplat == {}


def test_tagged_items_reach_exactly_the_satisfying_buckets() -> None:
    base = PlatformAttributes()
    perplat: dict[str, PlatformAttributes] = {"macos": PlatformAttributes(features={"mac"})}
    unzip_platform(
        FakePlatformResolver(PLATFORMS),
        base,
        perplat,
        _add_features,
        [("os=linux", {"epoll"}), ("arch=aarch64", {"neon"}), (None, {"std"})],
        category="features",
    )
    assert base.features == {"std"}
    assert sorted(perplat) == ["linux-arm64", "linux-x86_64", "macos"]
    assert perplat["linux-x86_64"].features == {"epoll"}
    assert perplat["linux-arm64"].features == {"epoll", "neon"}
    assert perplat["macos"].features == {"mac", "neon"}


def test_expression_matching_nothing_creates_no_bucket() -> None:
    base = PlatformAttributes()
    perplat: dict[str, PlatformAttributes] = {}
    unzip_platform(
        FakePlatformResolver(PLATFORMS),
        base,
        perplat,
        _add_features,
        [("os=windows", {"winapi"})],
        category="features",
    )
    assert perplat == {}
    assert base.is_empty()


def test_bad_expression_names_category_and_expression() -> None:
    with pytest.raises(PlatformExprError) as exc_info:
        unzip_platform(
            FakePlatformResolver(PLATFORMS),
            PlatformAttributes(),
            {},
            _add_features,
            [("not an expression", {"x"})],
            category="features",
        )
    error = exc_info.value
    assert error.code == ErrorCode.PLATFORM_EXPR.value
    assert error.expr == "not an expression"
    assert error.context["category"] == "features"
    assert 'Bad platform expression "not an expression" for features.' in str(error)
