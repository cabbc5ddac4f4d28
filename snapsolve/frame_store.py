"""FrameStore - bounded on-disk screenshot queues.

Two independent lanes ("primary" and "supplementary") each keep at most
``max_frames`` screenshots, oldest first. Pushing past the bound evicts the
oldest frame and deletes its bytes.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_MAX_FRAMES = 2


class Lane(str, Enum):
    """Screenshot queue."""

    PRIMARY = "primary"
    SUPPLEMENTARY = "supplementary"


@dataclass(frozen=True)
class Frame:
    """
    One stored screenshot.

    Identity is the storage handle, not the image content: two pushes of the
    same bytes produce two distinct frames.
    """

    id: str
    lane: Lane
    handle: str
    created_at: datetime = field(default_factory=datetime.now)


class BlobStorage(Protocol):
    """Byte storage behind the frame queues. Calls may block."""

    def write(self, lane: Lane, name: str, data: bytes) -> str:
        """Persist ``data`` and return an opaque handle."""
        ...

    def read(self, handle: str) -> bytes:
        ...

    def delete(self, handle: str) -> None:
        ...


class DiskStorage:
    """
    Stores each frame as a file under a per-lane directory.

    Layout: ``{root}/screenshots/*.png`` and ``{root}/extra_screenshots/*.png``.
    """

    LANE_DIRS = {
        Lane.PRIMARY: "screenshots",
        Lane.SUPPLEMENTARY: "extra_screenshots",
    }

    def __init__(self, root: Path | str):
        self.root = Path(root).expanduser()
        for dirname in self.LANE_DIRS.values():
            (self.root / dirname).mkdir(parents=True, exist_ok=True)

    def lane_dir(self, lane: Lane) -> Path:
        return self.root / self.LANE_DIRS[lane]

    def write(self, lane: Lane, name: str, data: bytes) -> str:
        path = self.lane_dir(lane) / name
        path.write_bytes(data)
        return str(path)

    def read(self, handle: str) -> bytes:
        return Path(handle).read_bytes()

    def delete(self, handle: str) -> None:
        Path(handle).unlink()


class FrameStore:
    """
    Bounded FIFO screenshot queues, one per lane.

    Mutations of a lane (push, clear, remove) are serialized by a per-lane
    lock so eviction decisions never interleave. Lanes do not share a lock.
    Blocking storage calls run in a worker thread.
    """

    def __init__(self, storage: BlobStorage, max_frames: int = DEFAULT_MAX_FRAMES):
        if max_frames < 1:
            raise ValueError("max_frames must be at least 1")
        self.storage = storage
        self.max_frames = max_frames
        self._lanes: dict[Lane, deque[Frame]] = {lane: deque() for lane in Lane}
        self._locks: dict[Lane, asyncio.Lock] = {lane: asyncio.Lock() for lane in Lane}

    async def push(self, lane: Lane, data: bytes) -> Frame:
        """
        Store ``data`` at the tail of ``lane``, evicting the oldest frame if
        the lane is over its bound.

        Storage write failures propagate; a failed eviction delete is logged
        and does not undo the push.
        """
        async with self._locks[lane]:
            frame_id = uuid.uuid4().hex
            handle = await asyncio.to_thread(self.storage.write, lane, f"{frame_id}.png", data)
            frame = Frame(id=frame_id, lane=lane, handle=handle)
            queue = self._lanes[lane]
            queue.append(frame)
            logger.debug(f"Stored frame {frame.id} in {lane.value} lane ({len(queue)} queued)")

            while len(queue) > self.max_frames:
                evicted = queue.popleft()
                logger.debug(f"Evicting frame {evicted.id} from {lane.value} lane")
                await self._release(evicted)

            return frame

    def list(self, lane: Lane) -> list[Frame]:
        """Current contents of ``lane``, oldest first."""
        return list(self._lanes[lane])

    def __len__(self) -> int:
        return sum(len(queue) for queue in self._lanes.values())

    def is_empty(self, lane: Lane) -> bool:
        return not self._lanes[lane]

    async def clear(self, lane: Lane) -> int:
        """
        Empty ``lane`` and delete its bytes.

        Returns the number of frames removed. Delete failures are logged; the
        in-memory queue is emptied regardless.
        """
        async with self._locks[lane]:
            queue = self._lanes[lane]
            frames = list(queue)
            queue.clear()
            for frame in frames:
                await self._release(frame)
            return len(frames)

    async def clear_all(self) -> None:
        for lane in Lane:
            await self.clear(lane)

    async def remove(self, frame: Frame) -> bool:
        """
        Remove ``frame`` from whichever lane holds it and delete its bytes.

        Returns False if no lane holds the frame. A delete failure propagates
        and leaves the frame queued.
        """
        for lane in Lane:
            async with self._locks[lane]:
                queue = self._lanes[lane]
                match = next((f for f in queue if f.id == frame.id), None)
                if match is None:
                    continue
                await asyncio.to_thread(self.storage.delete, match.handle)
                queue.remove(match)
                logger.debug(f"Removed frame {match.id} from {lane.value} lane")
                return True
        return False

    async def encode(self, frame: Frame) -> str:
        """Base64 payload of the frame for transmission."""
        data = await asyncio.to_thread(self.storage.read, frame.handle)
        return base64.b64encode(data).decode("ascii")

    async def preview(self, frame: Frame) -> str:
        """Data URL suitable for displaying the frame."""
        return f"data:image/png;base64,{await self.encode(frame)}"

    async def _release(self, frame: Frame) -> None:
        try:
            await asyncio.to_thread(self.storage.delete, frame.handle)
        except OSError as e:
            logger.error(f"Failed to delete frame {frame.id} at {frame.handle}: {e}")


__all__ = [
    "BlobStorage",
    "DEFAULT_MAX_FRAMES",
    "DiskStorage",
    "Frame",
    "FrameStore",
    "Lane",
]
