"""Tests for Starlark rendering, formatting and output writes."""

import os
import stat
from pathlib import Path

import pytest

from buckify.config import BuckConfig
from buckify.emit import (
    Call,
    function_call,
    render_buckfile,
    render_rule,
    render_targets_file,
    render_value,
    run_formatter,
    write_if_changed,
)
from buckify.errors import ErrorCode, FormatterError, OutputWriteError
from buckify.rules import (
    Alias,
    BuckPath,
    BuildscriptBinary,
    BuildscriptGenrule,
    Common,
    CxxLibrary,
    HttpArchive,
    PlatformAttributes,
    RootPackage,
    RuleRef,
    RuleSet,
    RustCommon,
    RustLibrary,
)


def _rust_common(name: str, **kwargs: object) -> RustCommon:
    return RustCommon(
        common=Common(name=name),
        crate="foo",
        crate_root=BuckPath.of("vendor/foo-1.0.0/src/lib.rs"),
        edition="2021",
        **kwargs,  # type: ignore[arg-type]
    )


def test_render_value_shapes() -> None:
    assert render_value("a\"b\\c\n") == '"a\\"b\\\\c\\n"'
    assert render_value(True) == "True"
    assert render_value(3) == "3"
    assert render_value(["one"]) == '["one"]'
    assert render_value(["one", "two"]) == '[\n    "one",\n    "two",\n]'
    assert render_value({"k": "v"}) == '{\n    "k": "v",\n}'
    assert render_value(Call("dict", ())) == "dict()"


def test_function_call_omits_absent_and_empty_fields() -> None:
    rendered = function_call(
        "thing",
        [
            ("name", "x"),
            ("none", None),
            ("flag", False),
            ("on", True),
            ("empty_list", []),
            ("empty_dict", {}),
            ("empty_set", frozenset()),
        ],
    )
    assert rendered == 'thing(\n    name = "x",\n    on = True,\n)\n'


def test_alias_rendering() -> None:
    alias = Alias(name="foo", actual=RuleRef.local("foo-1.0.0"))
    assert render_rule(alias, BuckConfig()) == (
        'alias(\n    name = "foo",\n    actual = ":foo-1.0.0",\n    visibility = ["PUBLIC"],\n)\n'
    )


def test_library_rendering_with_platform_groups() -> None:
    library = RustLibrary(
        common=_rust_common(
            "foo-1.0.0",
            base=PlatformAttributes(
                srcs={
                    BuckPath.of("vendor/foo-1.0.0/src/lib.rs"),
                    BuckPath.of("vendor/foo-1.0.0/src/a.rs"),
                },
                rustc_flags=["--cap-lints=allow"],
                features={"std"},
                deps={RuleRef.local("bar-1.0.0")},
            ),
            platform={"linux-x86_64": PlatformAttributes(deps={RuleRef.local("libc-0.2.0")})},
        ),
    )
    assert render_rule(library, BuckConfig()) == (
        "rust_library(\n"
        '    name = "foo-1.0.0",\n'
        '    crate = "foo",\n'
        '    crate_root = "vendor/foo-1.0.0/src/lib.rs",\n'
        '    edition = "2021",\n'
        "    srcs = [\n"
        '        "vendor/foo-1.0.0/src/a.rs",\n'
        '        "vendor/foo-1.0.0/src/lib.rs",\n'
        "    ],\n"
        '    rustc_flags = ["--cap-lints=allow"],\n'
        '    features = ["std"],\n'
        '    deps = [":bar-1.0.0"],\n'
        "    platform = {\n"
        '        "linux-x86_64": dict(\n'
        '            deps = [":libc-0.2.0"],\n'
        "        ),\n"
        "    },\n"
        ")\n"
    )


def test_library_flags_and_root_package() -> None:
    library = RustLibrary(
        common=RustCommon(
            common=Common(name="top", public=True),
            crate="top",
            crate_root=BuckPath.of("top/src/lib.rs"),
            edition="2018",
        ),
        proc_macro=True,
        python_ext="top_ext",
        linkable_alias="top",
    )
    config = BuckConfig(rust_library="cargo.rust_library")
    rendered = render_rule(RootPackage(library=library), config)
    assert rendered.startswith("cargo.rust_library(\n")
    assert '    visibility = ["PUBLIC"],\n' in rendered
    assert "    proc_macro = True,\n" in rendered
    assert "dlopen_enable" not in rendered
    assert rendered.endswith('    python_ext = "top_ext",\n    linkable_alias = "top",\n)\n')


def test_buildscript_rules_use_configured_kinds() -> None:
    binary = BuildscriptBinary(common=_rust_common("foo-1.0.0-build-script-build"))
    genrule = BuildscriptGenrule(
        name="foo-1.0.0-build-script-run",
        buildscript_rule=RuleRef.local("foo-1.0.0-build-script-build"),
        package_name="foo",
        version="1.0.0",
        features=frozenset({"std", "alloc"}),
    )
    assert render_rule(binary, BuckConfig()).startswith("rust_binary(\n")
    assert render_rule(binary, BuckConfig(buildscript_binary="buildscript_bin")).startswith(
        "buildscript_bin(\n"
    )
    assert render_rule(genrule, BuckConfig()) == (
        "buildscript_run(\n"
        '    name = "foo-1.0.0-build-script-run",\n'
        '    buildscript_rule = ":foo-1.0.0-build-script-build",\n'
        '    package_name = "foo",\n'
        '    version = "1.0.0",\n'
        "    features = [\n"
        '        "alloc",\n'
        '        "std",\n'
        "    ],\n"
        ")\n"
    )


def test_cxx_and_archive_rendering() -> None:
    cxx = CxxLibrary(
        common=Common(name="foo-1.0.0-native"),
        srcs=frozenset({BuckPath.of("vendor/foo/c/b.c"), BuckPath.of("vendor/foo/c/a.c")}),
        exported_headers={"foo.h": BuckPath.of("vendor/foo/include/foo.h")},
        compiler_flags=("-O2",),
    )
    rendered = render_rule(cxx, BuckConfig())
    assert rendered == (
        "cxx_library(\n"
        '    name = "foo-1.0.0-native",\n'
        "    srcs = [\n"
        '        "vendor/foo/c/a.c",\n'
        '        "vendor/foo/c/b.c",\n'
        "    ],\n"
        "    exported_headers = {\n"
        '        "foo.h": "vendor/foo/include/foo.h",\n'
        "    },\n"
        '    compiler_flags = ["-O2"],\n'
        ")\n"
    )

    archive = HttpArchive(
        name="foo-1.0.0.crate",
        urls=("https://static.crates.io/crates/foo/1.0.0/download",),
        sha256="00" * 32,
        strip_prefix="foo-1.0.0",
        archive_type="tar.gz",
    )
    rendered = render_rule(archive, BuckConfig())
    assert '    type = "tar.gz",\n' in rendered
    assert "visibility" not in rendered
    assert "sub_targets" not in rendered


def test_omission_law_over_rendered_rules() -> None:
    rules = [
        Alias(name="foo", actual=RuleRef.local("foo-1.0.0"), public=False),
        RustLibrary(common=_rust_common("foo-1.0.0")),
        CxxLibrary(common=Common(name="native")),
    ]
    for rule in rules:
        rendered = render_rule(rule, BuckConfig())
        assert "= []" not in rendered
        assert "= {}" not in rendered
        assert "None" not in rendered
        assert "False" not in rendered


def test_buckfile_preamble_and_spacing() -> None:
    config = BuckConfig(
        generated_file_header="# @generated",
        buckfile_imports='load("//tools:rust.bzl", "rust_library")',
    )
    rules = RuleSet(
        [
            RustLibrary(common=_rust_common("foo-1.0.0")),
            Alias(name="foo", actual=RuleRef.local("foo-1.0.0")),
        ]
    )
    content = render_buckfile(config, rules)
    assert content.startswith(
        '# @generated\nload("//tools:rust.bzl", "rust_library")\nalias(\n'
    )
    assert content.endswith(")\n\n")
    assert content.count(")\n\n") == 2
    assert content.index("alias(") < content.index("rust_library(")


def test_empty_preamble_emits_only_rules() -> None:
    rules = RuleSet([Alias(name="foo", actual=RuleRef.local("foo-1.0.0"))])
    assert render_buckfile(BuckConfig(), rules).startswith("alias(\n")
    assert render_buckfile(BuckConfig(), RuleSet()) == ""


def test_targets_file_lists_sorted_public_names() -> None:
    assert render_targets_file(["foo", "bar", "foo"]) == (
        '# @generated by buckify\nRUST_TARGETS = [\n    "bar",\n    "foo",\n]\n'
    )


def _script(path: Path, body: str) -> Path:
    path.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


@pytest.mark.skipif(os.name != "posix", reason="uses a shell script formatter")
def test_formatter_output_replaces_content(tmp_path: Path) -> None:
    formatter = _script(tmp_path / "fmt.sh", "tr a-z A-Z")
    assert run_formatter(formatter, b"alias()\n") == b"ALIAS()\n"


@pytest.mark.skipif(os.name != "posix", reason="uses a shell script formatter")
def test_formatter_failure_carries_exit_code_and_stderr(tmp_path: Path) -> None:
    formatter = _script(tmp_path / "fmt.sh", "echo 'syntax error' >&2\nexit 3")
    with pytest.raises(FormatterError) as exc_info:
        run_formatter(formatter, b"alias(\n")
    error = exc_info.value
    assert error.code == ErrorCode.FORMATTER.value
    assert error.context["returncode"] == "3"
    assert "syntax error" in error.context["stderr"]


def test_formatter_spawn_failure(tmp_path: Path) -> None:
    with pytest.raises(FormatterError) as exc_info:
        run_formatter(tmp_path / "missing-buildifier", b"")
    assert exc_info.value.context["formatter"].endswith("missing-buildifier")


def test_write_if_changed(tmp_path: Path) -> None:
    path = tmp_path / "out" / "BUCK"
    assert write_if_changed(path, b"one\n")
    assert path.read_bytes() == b"one\n"
    assert not write_if_changed(path, b"one\n")
    assert write_if_changed(path, b"two\n")
    assert path.read_bytes() == b"two\n"


def test_write_failure_is_typed(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    with pytest.raises(OutputWriteError) as exc_info:
        write_if_changed(blocker / "BUCK", b"content")
    assert exc_info.value.code == ErrorCode.OUTPUT_WRITE.value
    assert exc_info.value.context["path"].endswith("BUCK")


def test_empty_platform_bucket_is_omitted() -> None:
    library = RustLibrary(
        common=_rust_common(
            "foo-1.0.0",
            platform={
                "linux-x86_64": PlatformAttributes(),
                "macos-arm64": PlatformAttributes(rustc_flags=["--cfg=mac"]),
            },
        ),
    )
    rendered = render_rule(library, BuckConfig())
    assert "linux-x86_64" not in rendered
    assert "dict()" not in rendered
    assert '        "macos-arm64": dict(\n' in rendered

    only_empty = RustLibrary(
        common=_rust_common("bar-1.0.0", platform={"linux-x86_64": PlatformAttributes()})
    )
    assert "platform" not in render_rule(only_empty, BuckConfig())
