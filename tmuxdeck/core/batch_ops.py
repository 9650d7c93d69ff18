"""Batch mutation orchestration for multi-select deletes.

Every target is attempted independently; the batch waits for all outcomes
and never short-circuits on a failure. Targets addressed by positional index
within a shared parent are issued in descending index order, one after the
other, so an earlier kill never shifts a not-yet-issued target's index.
Unrelated parents run concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from tmuxdeck.core.models import TmuxPane, TmuxSession, TmuxWindow
from tmuxdeck.core.tmux_service import TmuxService

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class BatchOutcome(Generic[T]):
    """Settled result for one target."""

    target: T
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class BatchResult(Generic[T]):
    """All settled outcomes of a batch, in issue order."""

    outcomes: list[BatchOutcome[T]] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)

    def summary(self, noun: str, verb: str) -> str:
        """User-facing count message, e.g. '2 windows deleted, 1 failed'."""
        plural = noun if self.succeeded == 1 else f"{noun}s"
        message = f"{self.succeeded} {plural} {verb}"
        if self.failed:
            message += f", {self.failed} failed"
        return message


def order_descending(
    targets: Iterable[T],
    group_key: Callable[[T], Hashable],
    index: Callable[[T], int],
    identity: Callable[[T], Hashable] | None = None,
) -> list[list[T]]:
    """Group targets by parent and sort each group by descending index.

    Duplicates within a group (same `identity`, default the index) are
    dropped: a second kill of a positional index would hit whichever
    sibling shifted into it. Groups keep first-seen order.
    """
    identity = identity or index
    groups: dict[Hashable, dict[Hashable, T]] = {}
    for target in targets:
        groups.setdefault(group_key(target), {}).setdefault(identity(target), target)
    return [sorted(group.values(), key=index, reverse=True) for group in groups.values()]


async def run_batch(
    groups: Sequence[Sequence[T]],
    operation: Callable[[T], Awaitable[None]],
    describe: Callable[[T], str],
) -> BatchResult[T]:
    """Run `operation` for every target; groups concurrently, members in order."""

    async def run_group(group: Sequence[T]) -> list[BatchOutcome[T]]:
        outcomes: list[BatchOutcome[T]] = []
        for target in group:
            try:
                await operation(target)
            except Exception as e:  # pylint: disable=broad-exception-caught  # Settle every target
                logger.warning("Batch operation failed for %s: %s", describe(target), e)
                outcomes.append(BatchOutcome(target=target, error=e))
            else:
                outcomes.append(BatchOutcome(target=target))
        return outcomes

    settled = await asyncio.gather(*(run_group(group) for group in groups))
    result: BatchResult[T] = BatchResult()
    for outcomes in settled:
        result.outcomes.extend(outcomes)
    logger.debug("Batch completed (%d success, %d failed)", result.succeeded, result.failed)
    return result


class BatchMutationOrchestrator:
    """Multi-target deletes on top of TmuxService."""

    def __init__(self, service: TmuxService) -> None:
        self.service = service

    async def kill_sessions(self, sessions: Sequence[TmuxSession]) -> BatchResult[TmuxSession]:
        # Sessions are addressed by name, so each name is its own group
        groups = order_descending(sessions, lambda s: (s.connection_id, s.name), lambda s: 0)
        return await run_batch(
            groups,
            lambda s: self.service.kill_session(s.connection_id, s.name),
            lambda s: f"session {s.name}",
        )

    async def kill_windows(self, windows: Sequence[TmuxWindow]) -> BatchResult[TmuxWindow]:
        groups = order_descending(windows, lambda w: (w.connection_id, w.session_name), lambda w: w.index)
        return await run_batch(
            groups,
            lambda w: self.service.kill_window(w.connection_id, w.session_name, w.index),
            lambda w: f"window {w.target} ({w.name})",
        )

    async def kill_panes(self, panes: Sequence[TmuxPane]) -> BatchResult[TmuxPane]:
        groups = order_descending(
            panes,
            lambda p: (p.connection_id, p.session_name, p.window_id),
            lambda p: p.index,
            identity=lambda p: p.id,
        )
        return await run_batch(
            groups,
            lambda p: self.service.kill_pane(p.connection_id, p.id),
            lambda p: f"pane {p.id}",
        )
