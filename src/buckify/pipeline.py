"""Top-level generation run: walk, render, format, write."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from buckify.config import Config
from buckify.emit.buckfile import (
    render_buckfile,
    render_targets_file,
    run_formatter,
    write_if_changed,
)
from buckify.fixups import FixupsFactory
from buckify.generate.context import RuleContext
from buckify.generate.walker import generate_rules
from buckify.index import RuleIndex
from buckify.models import Paths
from buckify.observability import StructuredLogger
from buckify.platform import PlatformResolver
from buckify.rules.model import RuleSet


@dataclass(slots=True)
class BuckifyResult:
    rules: RuleSet
    buckfile: bytes
    buckfile_path: Path
    targets_file: bytes | None = None
    targets_path: Path | None = None
    # Output path -> whether its content changed on disk
    written: dict[Path, bool] = field(default_factory=dict)


def formatter_path(config: Config, paths: Paths) -> Path | None:
    if config.buildifier_path is None:
        return None
    return paths.third_party_dir / config.buildifier_path


def buckify(
    config: Config,
    paths: Paths,
    index: RuleIndex,
    fixups: FixupsFactory,
    platforms: PlatformResolver,
    *,
    stdout: bool = False,
    logger: StructuredLogger | None = None,
) -> BuckifyResult:
    """Generate the Buck file for every package reachable from *index*.

    With ``stdout`` set nothing is written and the rendered bytes are only
    returned. Otherwise the Buck file (and the public targets file, when
    configured) are rewritten if their content changed.
    """
    log = logger if logger is not None else StructuredLogger()
    context = RuleContext(
        config=config,
        paths=paths,
        index=index,
        platforms=platforms,
        fixups=fixups,
        logger=log,
    )
    rules = generate_rules(context)
    formatter = formatter_path(config, paths)

    buckfile = render_buckfile(config.buck, rules).encode("utf-8")
    if formatter is not None:
        buckfile = run_formatter(formatter, buckfile)

    result = BuckifyResult(
        rules=rules,
        buckfile=buckfile,
        buckfile_path=paths.third_party_dir / config.buck.file_name,
    )

    if config.buck.targets_name is not None:
        targets = render_targets_file(rules.public_names()).encode("utf-8")
        if formatter is not None:
            targets = run_formatter(formatter, targets)
        result.targets_file = targets
        result.targets_path = paths.third_party_dir / config.buck.targets_name

    if stdout:
        return result

    result.written[result.buckfile_path] = write_if_changed(result.buckfile_path, buckfile)
    if result.targets_path is not None and result.targets_file is not None:
        result.written[result.targets_path] = write_if_changed(
            result.targets_path, result.targets_file
        )
    for path, changed in sorted(result.written.items()):
        log.log(
            operation="write",
            package=None,
            target=None,
            message=f"{path.name} {'written' if changed else 'unchanged'}",
            extra={"path": str(path)},
        )
    return result
