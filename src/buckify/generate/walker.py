"""Concurrent traversal of the package graph.

Starting from the public packages, every target of every reachable package is
handed to the rule builder on a bounded thread pool. Results and failures are
sent back over a single channel drained by the calling thread; the walk ends
when no task is in flight.
"""

from __future__ import annotations

import os
import queue
import threading
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Union

from buckify.errors import BuckifyError, GenerationError
from buckify.generate.builder import generate_target_rules
from buckify.generate.context import RuleContext
from buckify.models import PackageNode, Target
from buckify.rules.model import Rule, RuleSet


@dataclass(frozen=True, slots=True)
class TargetFailure:
    package: PackageNode
    target: Target
    error: Exception

    def sort_key(self) -> tuple[object, str]:
        return (self.package.id, self.target.name)


@dataclass(frozen=True, slots=True)
class _Generated:
    rules: tuple[Rule, ...]


class _Done:
    pass


_Message = Union[_Generated, TargetFailure, _Done]


class _Channel:
    """Multi-producer, single-consumer queue that drops sends after close."""

    def __init__(self) -> None:
        self._queue: queue.Queue[_Message] = queue.Queue()
        self._closed = False
        self._lock = threading.Lock()

    def send(self, message: _Message) -> None:
        with self._lock:
            if self._closed:
                return
            self._queue.put(message)

    def recv(self) -> _Message:
        return self._queue.get()

    def close(self) -> None:
        with self._lock:
            self._closed = True


class _Walk:
    def __init__(self, context: RuleContext, executor: ThreadPoolExecutor) -> None:
        self.context = context
        self.executor = executor
        self.channel = _Channel()
        self._pending = 0
        self._pending_lock = threading.Lock()

    def visit(self, packages: Iterable[PackageNode]) -> None:
        for pkg in self.context.claim(packages):
            for tgt in pkg.targets:
                self._submit(pkg, tgt)

    def seed(self, packages: Iterable[PackageNode]) -> None:
        # Held open while scheduling so early finishers cannot end the walk
        with self._pending_lock:
            self._pending += 1
        try:
            self.visit(packages)
        finally:
            self._release()

    def _submit(self, pkg: PackageNode, tgt: Target) -> None:
        with self._pending_lock:
            self._pending += 1
        self.executor.submit(self._run, pkg, tgt)

    def _run(self, pkg: PackageNode, tgt: Target) -> None:
        try:
            self._generate(pkg, tgt)
        finally:
            self._release()

    def _release(self) -> None:
        with self._pending_lock:
            self._pending -= 1
            idle = self._pending == 0
        if idle:
            self.channel.send(_Done())

    def _generate(self, pkg: PackageNode, tgt: Target) -> None:
        try:
            rules, deps = generate_target_rules(self.context, pkg, tgt)
        except Exception as exc:
            self.context.logger.log(
                operation="generate",
                package=str(pkg),
                target=tgt.name,
                message=str(exc),
                level="error",
                extra=exc.to_dict() if isinstance(exc, BuckifyError) else None,
            )
            self.channel.send(TargetFailure(package=pkg, target=tgt, error=exc))
            return
        self.channel.send(_Generated(rules=tuple(rules)))
        self.visit(deps)


def walk_packages(context: RuleContext) -> tuple[RuleSet, list[TargetFailure]]:
    """Generate rules for every package reachable from the public packages.

    Returns the collected rules and every per-target failure, sorted by
    package id and target name.
    """
    jobs = context.config.jobs or os.cpu_count() or 1
    rules = RuleSet()
    failures: list[TargetFailure] = []
    with ThreadPoolExecutor(max_workers=jobs, thread_name_prefix="buckify") as executor:
        walk = _Walk(context, executor)
        walk.seed(context.index.public_packages())
        while True:
            message = walk.channel.recv()
            if isinstance(message, _Done):
                break
            if isinstance(message, TargetFailure):
                failures.append(message)
                continue
            for rule in message.rules:
                rules.add(rule)
        walk.channel.close()
    failures.sort(key=TargetFailure.sort_key)
    return rules, failures


def generate_rules(context: RuleContext) -> RuleSet:
    """Run the walk and fail with a :class:`GenerationError` if any target failed."""
    rules, failures = walk_packages(context)
    if not failures:
        return rules

    first = failures[0]
    hint = context.config.unresolved_fixup_error_message
    if hint:
        context.logger.log(
            operation="generate",
            package=str(first.package),
            target=first.target.name,
            message=hint,
            level="warning",
        )
    raise GenerationError(
        f"Failed to generate rules for package {first.package} target {first.target.name}: "
        f"{first.error}",
        errors=[failure.error for failure in failures],
        hint=hint,
        context={
            "package": str(first.package),
            "target": first.target.name,
            "failed_targets": str(len(failures)),
        },
    ) from first.error
