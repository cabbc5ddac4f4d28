"""Process-wide session state shared by both pipelines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .frame_store import Lane
from .schema import ProblemInfo


class View(str, Enum):
    """Which screen the host is showing; selects the capture/processing lane."""

    QUEUE = "queue"
    SOLUTIONS = "solutions"

    @property
    def lane(self) -> Lane:
        return Lane.PRIMARY if self is View.QUEUE else Lane.SUPPLEMENTARY


@dataclass
class SessionState:
    """
    Shared single-slot state.

    Writers: the primary pipeline sets ``problem_info`` and ``view``; the
    debug pipeline only reads ``problem_info`` and sets ``has_debugged``;
    cancellation resets both.
    """

    problem_info: ProblemInfo | None = None
    has_debugged: bool = False
    view: View = View.QUEUE

    def reset(self) -> None:
        self.problem_info = None
        self.has_debugged = False


__all__ = ["SessionState", "View"]
