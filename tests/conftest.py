"""
Shared fixtures for snapsolve tests.

Provides an in-memory blob storage that counts writes and deletes, and a
scripted stand-in for AIGateway that replays canned replies in call order.
"""

import asyncio
import sys
from dataclasses import dataclass, field
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from snapsolve.events import RecordingSink
from snapsolve.frame_store import FrameStore, Lane
from snapsolve.pipeline_run import CancelToken, run_cancellable


class MemoryStorage:
    """BlobStorage keeping bytes in a dict; tracks what is still held."""

    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.writes = 0
        self.deletes = 0
        self.fail_writes = False
        self.undeletable: set[str] = set()

    @property
    def held(self) -> int:
        return len(self.blobs)

    def write(self, lane: Lane, name: str, data: bytes) -> str:
        if self.fail_writes:
            raise OSError("No space left on device")
        handle = f"{lane.value}/{name}"
        self.blobs[handle] = data
        self.writes += 1
        return handle

    def read(self, handle: str) -> bytes:
        if handle not in self.blobs:
            raise FileNotFoundError(handle)
        return self.blobs[handle]

    def delete(self, handle: str) -> None:
        if handle in self.undeletable:
            raise PermissionError(f"Cannot delete {handle}")
        if handle not in self.blobs:
            raise FileNotFoundError(handle)
        del self.blobs[handle]
        self.deletes += 1


BLOCK = object()


@dataclass
class Reply:
    """One scripted gateway answer: ``deltas`` are streamed, ``text`` returned."""

    text: str
    deltas: list[str] = field(default_factory=list)

    @classmethod
    def streamed(cls, *deltas: str) -> "Reply":
        return cls(text="".join(deltas), deltas=list(deltas))


class ScriptedGateway:
    """
    Stand-in for AIGateway.

    Each call consumes the next script entry: a Reply, an exception to raise,
    or BLOCK to wait until the run's token fires.
    """

    def __init__(self, *script):
        self.script = list(script)
        self.calls: list[tuple[str, list[str]]] = []
        self.entered = asyncio.Event()
        self.closed = False

    async def request(self, prompt, images, cancel: CancelToken, on_delta=None) -> str:
        self.calls.append((prompt, list(images)))
        step = self.script.pop(0)
        if step is BLOCK:
            self.entered.set()
            await run_cancellable(asyncio.Event().wait(), cancel)
        if isinstance(step, Exception):
            raise step
        for delta in step.deltas:
            if on_delta is not None:
                on_delta(delta)
        return step.text

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return FrameStore(storage, max_frames=2)


@pytest.fixture
def sink():
    return RecordingSink()
