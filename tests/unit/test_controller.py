"""Tests for ScreenshotController."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import Reply, ScriptedGateway
from snapsolve.controller import ScreenshotController
from snapsolve.events import EventType
from snapsolve.frame_store import Lane
from snapsolve.orchestrator import Orchestrator
from snapsolve.session import View


@pytest.fixture(autouse=True)
def no_window_delays(monkeypatch):
    monkeypatch.setattr("snapsolve.controller.HIDE_SETTLE_SECONDS", 0)
    monkeypatch.setattr("snapsolve.controller.SHOW_DELAY_SECONDS", 0)


@pytest.fixture
def capture():
    capture = MagicMock()
    capture.capture = AsyncMock(return_value=b"screen")
    return capture


def make_controller(store, sink, capture, gateway=None, **kwargs):
    orchestrator = Orchestrator(store, gateway or ScriptedGateway(), sink)
    return ScreenshotController(store, orchestrator, capture, **kwargs)


class TestTakeScreenshot:
    """Tests for take_screenshot."""

    @pytest.mark.asyncio
    async def test_queue_view_targets_primary(self, store, sink, capture):
        """In the queue view screenshots go to the primary lane."""
        controller = make_controller(store, sink, capture)

        frame = await controller.take_screenshot()

        assert frame.lane == Lane.PRIMARY
        assert store.list(Lane.PRIMARY) == [frame]

    @pytest.mark.asyncio
    async def test_solutions_view_targets_supplementary(self, store, sink, capture):
        """In the solutions view screenshots go to the supplementary lane."""
        controller = make_controller(store, sink, capture)
        controller.set_view(View.SOLUTIONS)

        frame = await controller.take_screenshot()

        assert frame.lane == Lane.SUPPLEMENTARY

    @pytest.mark.asyncio
    async def test_window_hidden_during_capture(self, store, sink, capture):
        """The host window is hidden, then shown again."""
        calls = []
        capture.capture.side_effect = lambda: calls.append("capture") or b"screen"
        controller = make_controller(
            store,
            sink,
            capture,
            hide_window=lambda: calls.append("hide"),
            show_window=lambda: calls.append("show"),
        )

        await controller.take_screenshot()

        assert calls == ["hide", "capture", "show"]

    @pytest.mark.asyncio
    async def test_window_shown_after_failure(self, store, sink, capture):
        """A failed capture still restores the window."""
        capture.capture.side_effect = OSError("no display")
        show = MagicMock()
        controller = make_controller(store, sink, capture, show_window=show)

        with pytest.raises(OSError):
            await controller.take_screenshot()

        show.assert_called_once()
        assert len(store) == 0


class TestProcessAndReset:
    """Tests for process, delete_screenshot, previews and reset."""

    @pytest.mark.asyncio
    async def test_process_runs_lane_of_view(self, store, sink, capture):
        """process dispatches on the current view."""
        gateway = ScriptedGateway(Reply('{"title": "t"}'), Reply('{"code": "c"}'))
        controller = make_controller(store, sink, capture, gateway=gateway)
        await controller.take_screenshot()

        run = await controller.process()

        assert run.lane == Lane.PRIMARY
        assert sink.types()[-1] == EventType.SOLUTION_SUCCESS
        assert controller.view == View.SOLUTIONS

    @pytest.mark.asyncio
    async def test_delete_and_previews(self, store, sink, capture):
        """Previews list the current lane; deleted frames disappear."""
        controller = make_controller(store, sink, capture)
        first = await controller.take_screenshot()
        second = await controller.take_screenshot()

        assert await controller.delete_screenshot(first) is True
        previews = await controller.previews()

        assert [frame for frame, _ in previews] == [second]
        assert previews[0][1].startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_reset(self, store, sink, capture):
        """reset empties both lanes and returns to the queue view."""
        controller = make_controller(store, sink, capture)
        await controller.take_screenshot()
        controller.set_view(View.SOLUTIONS)
        await controller.take_screenshot()

        await controller.reset()

        assert len(store) == 0
        assert controller.view == View.QUEUE
        assert sink.types() == []
