"""
Pipeline orchestration for both screenshot lanes.

The primary lane runs two gateway calls (extract the problem, then solve it);
the supplementary lane runs a single call to the hosted debug endpoint. Each
lane has at most one live PipelineRun; starting another cancels the first.
Every run ends in exactly one terminal event, or in none when it was
cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from .collaborators import CredentialProvider, LanguageProvider, QuotaProvider, SessionInvalidator
from .config import DEFAULT_LANGUAGE
from .errors import (
    AuthError,
    GatewayTimeout,
    InvalidCredentialError,
    NoInputError,
    QuotaExceeded,
    RunCancelled,
    SnapSolveError,
)
from .events import EventSink, EventType, PipelineEvent
from .frame_store import FrameStore, Lane
from .gateway import AIGateway
from .pipeline_run import PipelineRun, Stage, TERMINAL_STAGES, run_cancellable
from .prompts import build_extraction_prompt, build_solution_prompt
from .remote_debug import RemoteDebugClient
from .schema import ProblemInfo, SolutionPayload
from .session import SessionState, View
from .stream_decoder import DeltaCallback

logger = logging.getLogger(__name__)


class Orchestrator:
    """
    Owns the per-lane pipeline runs and the shared session state.

    Both lanes may run concurrently. They share only ``session.problem_info``
    (written by the primary lane, read by the debug lane) and
    ``session.has_debugged`` (written by the debug lane).
    """

    def __init__(
        self,
        store: FrameStore,
        gateway: AIGateway,
        sink: EventSink,
        *,
        session: SessionState | None = None,
        remote_debug: RemoteDebugClient | None = None,
        languages: LanguageProvider | None = None,
        credentials: CredentialProvider | None = None,
        quota: QuotaProvider | None = None,
        invalidator: SessionInvalidator | None = None,
        default_language: str = DEFAULT_LANGUAGE,
    ):
        self.store = store
        self.gateway = gateway
        self.sink = sink
        self.session = session or SessionState()
        self.remote_debug = remote_debug
        self.languages = languages
        self.credentials = credentials
        self.quota = quota
        self.invalidator = invalidator
        self.default_language = default_language
        self._runs: dict[Lane, PipelineRun] = {}

    def current_run(self, lane: Lane) -> PipelineRun | None:
        """Most recent run on ``lane``, live or finished."""
        return self._runs.get(lane)

    def lane_stage(self, lane: Lane) -> Stage:
        """Stage of the live run on ``lane``; IDLE when nothing is running."""
        run = self._runs.get(lane)
        if run is None or not run.is_live:
            return Stage.IDLE
        return run.stage

    def is_running(self, lane: Lane | None = None) -> bool:
        """Whether ``lane`` (or any lane) has a live run."""
        lanes = [lane] if lane is not None else list(Lane)
        runs = [self._runs.get(l) for l in lanes]
        return any(run is not None and run.is_live for run in runs)

    def start(self, lane: Lane) -> asyncio.Task:
        """Schedule ``run(lane)`` as a task and return it."""
        return asyncio.create_task(self.run(lane), name=f"snapsolve-{lane.value}")

    async def run(self, lane: Lane) -> PipelineRun:
        """
        Run the pipeline for ``lane`` to completion.

        A live run on the same lane is cancelled and allowed to unwind before
        this one begins. The new run is registered first, so a third caller
        arriving meanwhile supersedes this one rather than running alongside.
        """
        run = PipelineRun(lane=lane)
        prior = self._runs.get(lane)
        self._runs[lane] = run

        try:
            if prior is not None and prior.cancel("superseded"):
                logger.info(f"Cancelling live {lane.value} run superseded by a new run")
            if prior is not None:
                await prior.wait_finished()
            await self._execute(run)
        finally:
            run.mark_finished()
        return run

    def cancel_all(self) -> bool:
        """
        Cancel every live run and reset the shared session state.

        Emits a single RESET event if at least one run was live. Returns
        whether anything was cancelled.
        """
        was_live = False
        for run in self._runs.values():
            if run.cancel("reset"):
                was_live = True

        self.session.reset()

        if was_live:
            logger.info("Cancelled in-flight processing")
            self.sink.emit(PipelineEvent(type=EventType.RESET))
        return was_live

    async def aclose(self) -> None:
        self.cancel_all()
        await self.gateway.aclose()
        if self.remote_debug is not None:
            await self.remote_debug.aclose()

    async def _execute(self, run: PipelineRun) -> None:
        lane = run.lane
        try:
            run.token.raise_if_cancelled()
            if lane is Lane.PRIMARY:
                await self._run_primary(run)
            else:
                await self._run_debug(run)
        except RunCancelled as e:
            self._finish_cancelled(run, e.reason)
        except asyncio.CancelledError:
            self._finish_cancelled(run, "task cancelled")
            raise
        except NoInputError as e:
            logger.info(f"Nothing to process in {lane.value} lane: {e}")
            self._emit(run, EventType.NO_FRAMES)
        except QuotaExceeded as e:
            self._fail(run, e.message)
            self._emit(run, EventType.OUT_OF_QUOTA)
        except InvalidCredentialError as e:
            self._fail(run, e.message)
            self._emit(run, EventType.INVALID_CREDENTIAL)
        except AuthError as e:
            await self._handle_auth_error(run, e)
        except GatewayTimeout as e:
            await self._handle_timeout(run, e)
        except SnapSolveError as e:
            self._fail(run, e.message)
            self._emit_failure(run, e.message)
        except Exception as e:
            logger.exception(f"Unexpected error in {lane.value} pipeline")
            self._fail(run, str(e) or type(e).__name__)
            self._emit_failure(run, str(e) or "Server error. Please try again.")

    async def _run_primary(self, run: PipelineRun) -> None:
        lane = Lane.PRIMARY
        if self.store.is_empty(lane):
            raise NoInputError("Primary lane is empty")
        if self.quota is not None and self.quota.remaining() < 1:
            logger.info("No credits left; not processing")
            self._emit(run, EventType.OUT_OF_QUOTA)
            return

        run.problem_before = self.session.problem_info
        self._emit(run, EventType.INITIAL_START)
        language = self._language()
        forward = self._delta_forwarder(run)

        run.advance(Stage.EXTRACTING)
        images = await self._encode(run, [lane])
        text = await self.gateway.request(build_extraction_prompt(language), images, run.token, forward)
        run.token.raise_if_cancelled()

        problem = ProblemInfo.from_text(text)
        self.session.problem_info = problem
        run.problem_written = problem
        logger.info(f"Extracted problem ({len(text)} chars, structured={problem.is_structured})")
        self._emit(run, EventType.PROBLEM_EXTRACTED, problem)

        run.advance(Stage.SOLVING)
        text = await self.gateway.request(build_solution_prompt(problem, language), [], run.token, forward)
        run.token.raise_if_cancelled()
        solution = SolutionPayload.from_text(text)

        await self.store.clear(Lane.SUPPLEMENTARY)
        run.token.raise_if_cancelled()

        run.advance(Stage.DONE)
        run.result = solution
        self.session.view = View.SOLUTIONS
        self._emit(run, EventType.SOLUTION_SUCCESS, solution)

    async def _run_debug(self, run: PipelineRun) -> None:
        lane = Lane.SUPPLEMENTARY
        if self.store.is_empty(lane):
            raise NoInputError("Supplementary lane is empty")

        self._emit(run, EventType.DEBUG_START)
        run.advance(Stage.DEBUGGING)

        problem = self.session.problem_info
        if problem is None:
            raise SnapSolveError("No problem information available", code="no_problem")
        token = self.credentials.current_token() if self.credentials is not None else None
        if not token:
            raise AuthError("Authentication required. Please log in.", code="auth_required")
        if self.remote_debug is None:
            raise SnapSolveError("No debug endpoint configured", code="not_configured")

        images = await self._encode(run, [Lane.PRIMARY, lane])
        payload = await self.remote_debug.debug(images, problem, self._language(), token, run.token)
        run.token.raise_if_cancelled()

        run.advance(Stage.DONE)
        run.result = payload
        self.session.has_debugged = True
        self._emit(run, EventType.DEBUG_SUCCESS, payload)

    async def _encode(self, run: PipelineRun, lanes: Sequence[Lane]) -> list[str]:
        frames = [frame for lane in lanes for frame in self.store.list(lane)]
        logger.debug(f"Encoding {len(frames)} frame(s) for {run.lane.value} run")
        return await run_cancellable(
            asyncio.gather(*(self.store.encode(frame) for frame in frames)),
            run.token,
        )

    async def _handle_auth_error(self, run: PipelineRun, error: AuthError) -> None:
        self._fail(run, error.message)
        if run.lane is Lane.PRIMARY:
            self._emit(run, EventType.INVALID_CREDENTIAL)
            return

        if error.invalidate_session and self.invalidator is not None:
            try:
                await self.invalidator.invalidate_session()
            except Exception:
                logger.exception("Failed to invalidate session")
        reason = "Your session has expired. Please sign in again." if error.invalidate_session else error.message
        self._emit(run, EventType.DEBUG_FAILED, reason)

    async def _handle_timeout(self, run: PipelineRun, error: GatewayTimeout) -> None:
        self._fail(run, error.message)
        if run.lane is Lane.SUPPLEMENTARY:
            # A timed-out debug call leaves stale screenshots; start over.
            await self.store.clear_all()
            self.session.view = View.QUEUE
        self._emit_failure(run, f"Operation timed out: {error.message}")

    def _fail(self, run: PipelineRun, reason: str) -> None:
        stage = run.stage
        run.error = reason
        if stage not in TERMINAL_STAGES:
            run.advance(Stage.FAILED)
        logger.warning(f"{run.lane.value} pipeline failed during {stage.value}: {reason}")

        if run.lane is Lane.PRIMARY:
            if stage is Stage.EXTRACTING:
                self.session.problem_info = None
            self.session.view = View.QUEUE

    def _finish_cancelled(self, run: PipelineRun, reason: str) -> None:
        if run.stage not in TERMINAL_STAGES:
            run.advance(Stage.CANCELLED)
        run.error = reason
        if run.problem_written is not None and self.session.problem_info is run.problem_written:
            self.session.problem_info = run.problem_before
        logger.info(f"{run.lane.value} run cancelled ({reason})")

    def _delta_forwarder(self, run: PipelineRun) -> DeltaCallback:
        def forward(text: str) -> None:
            self._emit(run, EventType.PARTIAL_DELTA, text)

        return forward

    def _emit_failure(self, run: PipelineRun, reason: str) -> None:
        event_type = EventType.EXTRACTION_FAILED if run.lane is Lane.PRIMARY else EventType.DEBUG_FAILED
        self._emit(run, event_type, reason)

    def _emit(self, run: PipelineRun, event_type: EventType, payload: Any = None) -> None:
        # A cancelled run goes quiet; the canceller owns the notice.
        if run.token.cancelled:
            return
        self.sink.emit(PipelineEvent(type=event_type, lane=run.lane, payload=payload))

    def _language(self) -> str:
        if self.languages is None:
            return self.default_language
        return self.languages.current_language() or self.default_language


__all__ = ["Orchestrator"]
