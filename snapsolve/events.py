"""
Lifecycle events delivered to the host UI.

The vocabulary is fixed; each event is emitted at most once per logical
transition, in the order the pipeline produces it.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .frame_store import Lane


class EventType(Enum):
    """Pipeline event names."""

    INITIAL_START = "initial_start"
    NO_FRAMES = "no_frames"
    PROBLEM_EXTRACTED = "problem_extracted"
    PARTIAL_DELTA = "partial_delta"
    SOLUTION_SUCCESS = "solution_success"
    EXTRACTION_FAILED = "extraction_failed"
    DEBUG_START = "debug_start"
    DEBUG_SUCCESS = "debug_success"
    DEBUG_FAILED = "debug_failed"
    OUT_OF_QUOTA = "out_of_quota"
    INVALID_CREDENTIAL = "invalid_credential"
    RESET = "reset"


@dataclass
class PipelineEvent:
    """
    A single event.

    Payload by type: PARTIAL_DELTA -> str, PROBLEM_EXTRACTED -> ProblemInfo,
    SOLUTION_SUCCESS -> SolutionPayload, DEBUG_SUCCESS -> DebugPayload,
    *_FAILED -> reason str, others -> None.
    """

    type: EventType
    lane: "Lane | None" = None
    payload: Any = None
    created_at: datetime = field(default_factory=datetime.now)


class EventSink(Protocol):
    """Consumer of pipeline events."""

    def emit(self, event: PipelineEvent) -> None:
        ...


class RecordingSink:
    """Keeps every event in memory, in emission order."""

    def __init__(self):
        self.events: list[PipelineEvent] = []

    def emit(self, event: PipelineEvent) -> None:
        self.events.append(event)

    def types(self) -> list[EventType]:
        return [e.type for e in self.events]

    def of_type(self, event_type: EventType) -> list[PipelineEvent]:
        return [e for e in self.events if e.type == event_type]

    def clear(self) -> None:
        self.events.clear()


class CallbackSink:
    """Forwards each event to a callable."""

    def __init__(self, callback: Callable[[PipelineEvent], None]):
        self.callback = callback

    def emit(self, event: PipelineEvent) -> None:
        self.callback(event)


__all__ = ["CallbackSink", "EventSink", "EventType", "PipelineEvent", "RecordingSink"]
