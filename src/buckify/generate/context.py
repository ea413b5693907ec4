"""Run-scoped context shared by every generation task."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field

from buckify.config import Config
from buckify.fixups import FixupsFactory
from buckify.index import RuleIndex
from buckify.models import PackageId, PackageNode, Paths
from buckify.observability import StructuredLogger
from buckify.platform import PlatformResolver


@dataclass(frozen=True, slots=True)
class RuleContext:
    """Immutable inputs for one run plus the locked set of visited packages."""

    config: Config
    paths: Paths
    index: RuleIndex
    platforms: PlatformResolver
    fixups: FixupsFactory
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    _done: set[PackageId] = field(default_factory=set, repr=False)
    _done_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def claim(self, packages: Iterable[PackageNode]) -> list[PackageNode]:
        """Mark *packages* visited and return those not visited before."""
        claimed: list[PackageNode] = []
        with self._done_lock:
            for pkg in packages:
                if pkg.id in self._done:
                    continue
                self._done.add(pkg.id)
                claimed.append(pkg)
        return claimed

    def visited(self) -> frozenset[PackageId]:
        with self._done_lock:
            return frozenset(self._done)
