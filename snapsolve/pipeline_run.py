"""PipelineRun - one cancellable execution of a lane's pipeline."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from .errors import GatewayTimeout, RunCancelled

if TYPE_CHECKING:
    from .frame_store import Lane
    from .schema import ProblemInfo

T = TypeVar("T")


class CancelToken:
    """Cooperative cancellation signal owned by a single run."""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> bool:
        """Fire the token. Returns False if it had already fired."""
        if self._event.is_set():
            return False
        self.reason = reason
        self._event.set()
        return True

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelled(self.reason or "cancelled")


async def run_cancellable(
    work: Awaitable[T],
    token: CancelToken,
    timeout: float | None = None,
) -> T:
    """
    Await ``work`` unless the token fires or the timeout elapses first.

    A fired token always wins, even when the work finished in the same tick,
    so a cancelled run never observes a late result.

    Raises:
        RunCancelled: The token fired.
        GatewayTimeout: ``timeout`` seconds passed without a result.
    """
    if token.cancelled:
        _close(work)
        raise RunCancelled(token.reason or "cancelled")
    task = asyncio.ensure_future(work)
    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait(
            {task, waiter},
            timeout=timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if token.cancelled:
        await _discard(task)
        raise RunCancelled(token.reason or "cancelled")
    if task in done:
        return task.result()

    await _discard(task)
    raise GatewayTimeout(f"Request exceeded {timeout:g}s")


def _close(work: Awaitable[Any]) -> None:
    # Work that never started: close a coroutine, cancel a future and its children.
    if asyncio.iscoroutine(work):
        work.close()
    elif asyncio.isfuture(work):
        work.cancel()


async def _discard(task: asyncio.Future) -> None:
    # Result or failure of abandoned work is irrelevant once the run unwinds.
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)


class Stage(Enum):
    """Lifecycle stage of a pipeline run."""

    IDLE = "idle"
    EXTRACTING = "extracting"
    SOLVING = "solving"
    DEBUGGING = "debugging"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STAGES = frozenset({Stage.DONE, Stage.FAILED, Stage.CANCELLED})

# IDLE -> EXTRACTING -> SOLVING -> DONE for the primary lane,
# IDLE -> DEBUGGING -> DONE for the supplementary lane.
VALID_TRANSITIONS: dict[Stage, frozenset[Stage]] = {
    Stage.IDLE: frozenset({Stage.EXTRACTING, Stage.DEBUGGING, Stage.FAILED, Stage.CANCELLED}),
    Stage.EXTRACTING: frozenset({Stage.SOLVING, Stage.FAILED, Stage.CANCELLED}),
    Stage.SOLVING: frozenset({Stage.DONE, Stage.FAILED, Stage.CANCELLED}),
    Stage.DEBUGGING: frozenset({Stage.DONE, Stage.FAILED, Stage.CANCELLED}),
    Stage.DONE: frozenset(),
    Stage.FAILED: frozenset(),
    Stage.CANCELLED: frozenset(),
}


def can_transition(from_stage: Stage, to_stage: Stage) -> bool:
    """Check if a stage transition is valid."""
    return to_stage in VALID_TRANSITIONS.get(from_stage, frozenset())


@dataclass
class PipelineRun:
    """
    A single run of one lane's pipeline.

    The run owns its cancellation token; the orchestrator keeps at most one
    live run per lane and replaces it by cancelling the token first.
    """

    lane: "Lane"
    token: CancelToken = field(default_factory=CancelToken)
    stage: Stage = Stage.IDLE
    started_at: datetime = field(default_factory=datetime.now)
    error: str | None = None
    result: Any = None
    # ProblemInfo before the run started, and the one it wrote (if any).
    problem_before: "ProblemInfo | None" = None
    problem_written: "ProblemInfo | None" = None
    _finished: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def is_live(self) -> bool:
        """Registered and not yet ended, including while still IDLE."""
        return not self._finished.is_set() and self.stage not in TERMINAL_STAGES

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def advance(self, stage: Stage) -> None:
        """
        Move to ``stage``.

        Raises:
            ValueError: If the transition is not allowed.
        """
        if not can_transition(self.stage, stage):
            raise ValueError(f"Invalid stage transition {self.stage.value} -> {stage.value}")
        self.stage = stage

    def cancel(self, reason: str = "cancelled") -> bool:
        """Fire this run's token. Returns True only if a live run was cancelled now."""
        if not self.is_live:
            return False
        return self.token.cancel(reason)

    def mark_finished(self) -> None:
        self._finished.set()

    async def wait_finished(self) -> None:
        await self._finished.wait()


__all__ = [
    "CancelToken",
    "PipelineRun",
    "Stage",
    "TERMINAL_STAGES",
    "VALID_TRANSITIONS",
    "can_transition",
    "run_cancellable",
]
