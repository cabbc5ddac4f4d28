"""
ScreenshotController - the entry points a host UI binds to its shortcuts.

The current view decides which lane a screenshot goes to and which pipeline
"process" runs: the queue view feeds the primary lane, the solutions view
collects follow-up screenshots for debugging.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .collaborators import CaptureDevice
from .frame_store import Frame, FrameStore, Lane
from .orchestrator import Orchestrator
from .pipeline_run import PipelineRun
from .session import View

logger = logging.getLogger(__name__)

# Delays around hiding the host window so it is not in the capture.
HIDE_SETTLE_SECONDS = 0.1
SHOW_DELAY_SECONDS = 0.05


class ScreenshotController:
    def __init__(
        self,
        store: FrameStore,
        orchestrator: Orchestrator,
        capture: CaptureDevice,
        hide_window: Callable[[], None] | None = None,
        show_window: Callable[[], None] | None = None,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.capture = capture
        self.hide_window = hide_window
        self.show_window = show_window

    @property
    def view(self) -> View:
        return self.orchestrator.session.view

    def set_view(self, view: View) -> None:
        logger.debug(f"Switching view to {view.value}")
        self.orchestrator.session.view = view

    async def take_screenshot(self) -> Frame:
        """
        Capture the screen into the lane selected by the current view.

        The host window is hidden for the duration of the capture and shown
        again even if capture or storage fails.
        """
        lane = self.view.lane
        if self.hide_window is not None:
            self.hide_window()
        try:
            await asyncio.sleep(HIDE_SETTLE_SECONDS)
            data = await self.capture.capture()
            frame = await self.store.push(lane, data)
            logger.info(f"Captured screenshot {frame.id} into {lane.value} lane")
            return frame
        finally:
            await asyncio.sleep(SHOW_DELAY_SECONDS)
            if self.show_window is not None:
                self.show_window()

    async def process(self) -> PipelineRun:
        """Run the pipeline for the lane selected by the current view."""
        return await self.orchestrator.run(self.view.lane)

    async def delete_screenshot(self, frame: Frame) -> bool:
        return await self.store.remove(frame)

    async def previews(self, lane: Lane | None = None) -> list[tuple[Frame, str]]:
        """Frames of ``lane`` (default: the current view's lane) with data URLs."""
        lane = lane or self.view.lane
        return [(frame, await self.store.preview(frame)) for frame in self.store.list(lane)]

    async def reset(self) -> None:
        """Cancel everything, drop all screenshots and return to the queue view."""
        self.orchestrator.cancel_all()
        await self.store.clear_all()
        self.set_view(View.QUEUE)


__all__ = ["ScreenshotController"]
