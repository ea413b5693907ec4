"""Per-target rule generation.

Decides which rules a package target produces and assembles their attributes
from the package metadata, the global config and the package's fixups. Every
attribute stream may be tagged with a platform expression and is folded into
either the base attributes or per-platform buckets.
"""

from __future__ import annotations

from pathlib import Path, PurePath

from buckify.errors import BuckifyError, FixupError, PlatformExprError
from buckify.fixups import Fixups
from buckify.generate.context import RuleContext
from buckify.generate.partition import unzip_platform
from buckify.generate.srcfiles import SourceDetectionError, crate_srcfiles
from buckify.models import (
    PRECISE_SRCS_MIN_EDITION,
    PackageNode,
    Target,
    edition_at_least,
)
from buckify.platform import is_default_platform
from buckify.rules.model import (
    Alias,
    BuckPath,
    BuildscriptBinary,
    Common,
    PlatformAttributes,
    RootPackage,
    Rule,
    RuleRef,
    RustBinary,
    RustCommon,
    RustLibrary,
    clone_platforms,
)

SRC_GLOB = "**/*.rs"


def normalize_dotdot(path: PurePath) -> PurePath:
    """Collapse ``a/../b`` into ``b`` without touching the filesystem."""
    parts: list[str] = []
    for part in path.parts:
        if part == ".." and parts and parts[-1] != ".." and parts[-1] != path.anchor:
            parts.pop()
        else:
            parts.append(part)
    return type(path)(*parts) if parts else type(path)()


def relative_path(base: PurePath, to: PurePath) -> PurePath:
    """Express *to* relative to *base*, climbing with ``..`` as needed."""
    ups = 0
    while not to.is_relative_to(base):
        parent = base.parent
        if parent == base:
            raise ValueError(f"{base} and {to} share no common root")
        base = parent
        ups += 1
    return PurePath(*([".."] * ups), to.relative_to(base))


def generate_target_rules(
    context: RuleContext, pkg: PackageNode, tgt: Target
) -> tuple[list[Rule], list[PackageNode]]:
    """Return the rules for one target and the packages it depends on."""
    config = context.config
    paths = context.paths
    index = context.index
    platforms = context.platforms
    log = context.logger

    log.log(
        operation="generate",
        package=str(pkg),
        target=tgt.name,
        message=f"Generating rules for package {pkg} target {tgt.name}",
    )

    fixups = _load_fixups(context, pkg, tgt)
    if fixups.omit_target():
        log.log(
            operation="generate",
            package=str(pkg),
            target=tgt.name,
            message="Target omitted by fixups",
        )
        return [], []

    third_party = paths.third_party_dir
    rootmod = relative_path(third_party, tgt.src_path)
    edition = tgt.edition or pkg.edition
    licenses = _licenses(context, pkg)
    srcdir = relative_path(pkg.manifest_dir, tgt.src_path.parent)

    srcs: list[PurePath] = []
    if fixups.precise_srcs() and edition_at_least(edition, PRECISE_SRCS_MIN_EDITION):
        try:
            detected = crate_srcfiles(tgt.src_path)
        except SourceDetectionError as exc:
            log.log(
                operation="srcfiles",
                package=str(pkg),
                target=tgt.name,
                message=f"crate_srcfiles failed: {exc}",
                level="debug",
            )
        else:
            srcs = [relative_path(third_party, normalize_dotdot(src)) for src in detected]
            log.log(
                operation="srcfiles",
                package=str(pkg),
                target=tgt.name,
                message="crate_srcfiles returned sources",
                level="debug",
                extra={"srcs": [src.as_posix() for src in srcs]},
            )
    if not srcs:
        srcs = [relative_path(third_party, tgt.src_path.parent) / SRC_GLOB]

    base = PlatformAttributes(rustc_flags=list(config.rustc_flags))
    perplat: dict[str, PlatformAttributes] = {}
    for name, flags in sorted(config.platform_rustc_flags.items()):
        perplat.setdefault(name, PlatformAttributes()).rustc_flags.extend(flags)

    def add_flags(rule: PlatformAttributes, flags: list[str]) -> None:
        rule.rustc_flags.extend(flags)

    def add_srcs(rule: PlatformAttributes, paths_: list[PurePath]) -> None:
        rule.srcs.update(BuckPath(normalize_dotdot(path)) for path in paths_)

    def add_gen_srcs(rule: PlatformAttributes, mapping: dict[RuleRef, PurePath]) -> None:
        for ref, path in mapping.items():
            rule.mapped_srcs[str(ref)] = BuckPath(path)

    def add_mapped_srcs(rule: PlatformAttributes, mapping: dict[PurePath, PurePath]) -> None:
        for source, path in mapping.items():
            rule.mapped_srcs[source.as_posix()] = BuckPath(path)

    def add_features(rule: PlatformAttributes, features: set[str]) -> None:
        rule.features.update(features)

    def add_env(rule: PlatformAttributes, env: dict[str, str]) -> None:
        rule.env.update(env)

    unzip_platform(
        platforms, base, perplat, add_flags, fixups.compute_cmdline(), category="rustc_flags"
    )
    unzip_platform(platforms, base, perplat, add_srcs, fixups.compute_srcs(srcs), category="srcs")
    unzip_platform(
        platforms,
        base,
        perplat,
        add_gen_srcs,
        fixups.compute_gen_srcs(srcdir),
        category="mapped_srcs(gen_srcs)",
    )
    unzip_platform(
        platforms,
        base,
        perplat,
        add_mapped_srcs,
        fixups.compute_mapped_srcs(),
        category="mapped_srcs(paths)",
    )
    unzip_platform(
        platforms, base, perplat, add_features, fixups.compute_features(), category="features"
    )
    unzip_platform(platforms, base, perplat, add_env, fixups.compute_env(), category="env")

    dep_pkgs: list[PackageNode] = []
    for dep_pkg, dep, rename in fixups.compute_deps():
        if dep.has_platform:
            for name, platform in sorted(config.platforms.items()):
                try:
                    applies = dep.filter(platforms, platform)
                except PlatformExprError as exc:
                    raise PlatformExprError(
                        f'Bad platform expression "{dep.platform}" for deps.',
                        expr=dep.platform or "",
                        hint=exc.hint,
                        context={"category": "deps", "dep": str(dep)},
                    ) from exc
                if not applies:
                    continue
                bucket = base if is_default_platform(name) else perplat.setdefault(
                    name, PlatformAttributes()
                )
                if rename is not None:
                    bucket.named_deps[rename] = dep
                else:
                    bucket.deps.add(dep)
                if dep_pkg is not None:
                    dep_pkgs.append(dep_pkg)
        else:
            if rename is not None:
                base.named_deps[rename] = dep
            else:
                base.deps.add(dep)
            if dep_pkg is not None:
                dep_pkgs.append(dep_pkg)

    # link_style applies to binaries, preferred_linkage to libraries; keep them apart
    bin_base = base.clone()
    bin_perplat = clone_platforms(perplat)

    def set_link_style(rule: PlatformAttributes, link_style: str) -> None:
        rule.link_style = link_style

    unzip_platform(
        platforms,
        bin_base,
        bin_perplat,
        set_link_style,
        fixups.compute_link_style(),
        category="link_style",
    )

    lib_base = base.clone()
    lib_perplat = clone_platforms(perplat)

    def set_preferred_linkage(rule: PlatformAttributes, preferred_linkage: str) -> None:
        rule.preferred_linkage = preferred_linkage

    unzip_platform(
        platforms,
        lib_base,
        lib_perplat,
        set_preferred_linkage,
        fixups.compute_preferred_linkage(),
        category="preferred_linkage",
    )

    # A package's binaries always link its library
    dependency_target = pkg.dependency_target()
    if dependency_target is not None and dependency_target.kind_lib:
        bin_base.deps.add(RuleRef.local(index.private_rule_name(pkg)))

    crate = tgt.name.replace("-", "_")
    crate_root = BuckPath(rootmod)
    rules: list[Rule]

    if tgt.is_library_like:
        rules = []
        is_root = index.is_root_package(pkg)
        # The root package is exposed directly rather than through an alias
        if index.is_public(pkg) and not is_root:
            rules.append(
                Alias(
                    name=index.public_rule_name(pkg),
                    actual=RuleRef.local(index.private_rule_name(pkg)),
                    public=True,
                )
            )
        python_ext = fixups.python_ext()
        library = RustLibrary(
            common=RustCommon(
                common=Common(
                    name=index.public_rule_name(pkg) if is_root else index.private_rule_name(pkg),
                    public=is_root,
                    licenses=licenses,
                ),
                crate=crate,
                crate_root=crate_root,
                edition=edition,
                base=lib_base,
                platform=lib_perplat,
            ),
            proc_macro=tgt.crate_proc_macro,
            dlopen_enable=tgt.kind_cdylib and python_ext is None,
            python_ext=python_ext,
            linkable_alias=(
                index.public_rule_name(pkg)
                if index.is_public(pkg) and (tgt.kind_cdylib or python_ext is not None)
                else None
            ),
        )
        rules.append(RootPackage(library=library) if is_root else library)
    elif tgt.is_buildscript:
        # Global flags only; fixup flags may depend on the script's own output
        script_base = base.clone()
        script_base.rustc_flags = list(config.rustc_flags)
        buildscript = BuildscriptBinary(
            common=RustCommon(
                common=Common(name=f"{index.private_rule_name(pkg)}-{tgt.name}"),
                crate=crate,
                crate_root=crate_root,
                edition=edition,
                base=script_base,
                platform=clone_platforms(perplat),
            )
        )
        rules = _emit_buildscript_rules(fixups, buildscript, context, pkg, tgt)
    elif tgt.is_binary and index.is_public(pkg):
        actual = f"{index.private_rule_name(pkg)}-{tgt.name}"
        rules = [
            Alias(
                name=f"{index.public_rule_name(pkg)}-{tgt.name}",
                actual=RuleRef.local(actual),
                public=True,
            ),
            RustBinary(
                common=RustCommon(
                    common=Common(name=actual, public=False, licenses=licenses),
                    crate=crate,
                    crate_root=crate_root,
                    edition=edition,
                    base=bin_base,
                    platform=bin_perplat,
                )
            ),
        ]
    else:
        log.log(
            operation="generate",
            package=str(pkg),
            target=tgt.name,
            message=f"Skipping target kind {', '.join(tgt.kind)}",
        )
        rules = []

    # Targets that emit nothing do not pull in their dependencies
    if not rules:
        return [], []
    return rules, _unique_packages(dep_pkgs)


def _load_fixups(context: RuleContext, pkg: PackageNode, tgt: Target) -> Fixups:
    try:
        return context.fixups(
            config=context.config,
            paths=context.paths,
            index=context.index,
            package=pkg,
            target=tgt,
        )
    except BuckifyError:
        raise
    except Exception as exc:
        raise FixupError(
            "Failed to load fixups.",
            hint=str(exc),
            context={"package": str(pkg), "target": tgt.name},
        ) from exc


def _emit_buildscript_rules(
    fixups: Fixups,
    buildscript: BuildscriptBinary,
    context: RuleContext,
    pkg: PackageNode,
    tgt: Target,
) -> list[Rule]:
    try:
        return list(fixups.emit_buildscript_rules(buildscript, context.config))
    except BuckifyError:
        raise
    except Exception as exc:
        raise FixupError(
            "Failed to generate build script rules.",
            hint=str(exc),
            context={"package": str(pkg), "target": tgt.name},
        ) from exc


def _licenses(context: RuleContext, pkg: PackageNode) -> frozenset[BuckPath]:
    third_party = context.paths.third_party_dir
    manifest_dir = pkg.manifest_dir
    found: set[Path] = set()
    for pattern in context.config.license_patterns:
        found.update(path for path in manifest_dir.glob(pattern) if path.is_file())
    licenses = {BuckPath(relative_path(third_party, path)) for path in found}
    package_dir = relative_path(third_party, manifest_dir)
    licenses.update(BuckPath(package_dir / name) for name in pkg.license_files)
    return frozenset(licenses)


def _unique_packages(packages: list[PackageNode]) -> list[PackageNode]:
    seen: set[object] = set()
    unique: list[PackageNode] = []
    for pkg in packages:
        if pkg.id in seen:
            continue
        seen.add(pkg.id)
        unique.append(pkg)
    return unique
