from pathlib import PurePosixPath

import pytest

from buckify.config import PlatformConfig
from buckify.errors import ErrorCode, PlatformExprError, SerializationError
from buckify.rules import (
    Alias,
    BuckPath,
    Common,
    GitFetch,
    PrebuiltCxxLibrary,
    RootPackage,
    RuleRef,
    RuleSet,
    RustBinary,
    RustCommon,
    RustLibrary,
    rule_is_public,
    rule_name,
)
from crate_graph import LINUX, MACOS, FakePlatformResolver


def _library(name: str, *, public: bool = False) -> RustLibrary:
    return RustLibrary(
        common=RustCommon(
            common=Common(name=name, public=public),
            crate=name.split("-")[0],
            crate_root=BuckPath.of("vendor/x/src/lib.rs"),
            edition="2021",
        )
    )


def test_rule_ref_parse_and_render() -> None:
    assert RuleRef.parse(":foo-1.0.0") == RuleRef.local("foo-1.0.0")
    assert str(RuleRef.parse(":foo-1.0.0")) == ":foo-1.0.0"
    assert str(RuleRef.parse("//third-party:foo")) == "//third-party:foo"
    assert not RuleRef.parse("//third-party:foo").is_local


def test_rule_refs_with_different_guards_are_distinct() -> None:
    plain = RuleRef.local("foo")
    guarded = plain.with_platform("os=linux")
    assert plain != guarded
    assert len({plain, guarded}) == 2
    assert str(plain) == str(guarded)


def test_rule_ref_filter_evaluates_guard() -> None:
    resolver = FakePlatformResolver({"linux": LINUX, "macos": MACOS})
    ref = RuleRef.local("foo").with_platform("os=linux")
    assert ref.filter(resolver, LINUX)
    assert not ref.filter(resolver, MACOS)
    assert RuleRef.local("foo").filter(resolver, PlatformConfig())

    with pytest.raises(PlatformExprError) as exc_info:
        RuleRef.local("foo").with_platform("linux").filter(resolver, LINUX)
    assert exc_info.value.code == ErrorCode.PLATFORM_EXPR.value


def test_buck_path_renders_forward_slashes() -> None:
    assert BuckPath.of(PurePosixPath("vendor/foo/src/lib.rs")).as_text() == "vendor/foo/src/lib.rs"


def test_buck_path_rejects_unencodable_text() -> None:
    path = BuckPath.of("vendor/\udcff.rs")
    with pytest.raises(SerializationError) as exc_info:
        path.as_text()
    assert exc_info.value.code == ErrorCode.SERIALIZATION.value


def test_rule_set_identity_is_name_only() -> None:
    rules = RuleSet()
    rules.add(_library("foo-1.0.0"))
    rules.add(
        RustBinary(
            common=RustCommon(
                common=Common(name="foo-1.0.0"),
                crate="foo",
                crate_root=BuckPath.of("vendor/foo/src/main.rs"),
                edition="2018",
            )
        )
    )
    assert len(rules) == 1
    assert isinstance(rules.get("foo-1.0.0"), RustBinary)
    assert "foo-1.0.0" in rules
    assert "bar" not in rules


def test_declaration_order() -> None:
    root = RootPackage(library=_library("aaa-root", public=True))
    rules = RuleSet(
        [
            root,
            _library("zed-0.1.0"),
            Alias(name="zed", actual=RuleRef.local("zed-0.1.0")),
            _library("abc-1.0.0"),
            Alias(name="abc", actual=RuleRef.local("abc-1.0.0")),
            GitFetch(name="zz-git", repo="https://example.com/zz.git", rev="deadbeef"),
            PrebuiltCxxLibrary(common=Common(name="mid"), static_lib=BuckPath.of("lib.a")),
        ]
    )
    assert [rule_name(rule) for rule in rules] == [
        "zz-git",
        "abc",
        "abc-1.0.0",
        "mid",
        "zed",
        "zed-0.1.0",
        "aaa-root",
    ]


def test_public_names() -> None:
    rules = RuleSet(
        [
            Alias(name="foo", actual=RuleRef.local("foo-1.0.0")),
            _library("foo-1.0.0"),
            RootPackage(library=_library("top", public=True)),
        ]
    )
    assert rules.public_names() == ["foo", "top"]
    assert rule_is_public(rules.get("top"))  # type: ignore[arg-type]
    assert not rule_is_public(rules.get("foo-1.0.0"))  # type: ignore[arg-type]
