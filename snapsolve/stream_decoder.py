"""
Decode a chat-completions event stream into text deltas.

The stream is a sequence of lines of the form ``data: <json>`` where
``<json>.choices[0].delta.content`` carries the incremental text, ended by
``data: [DONE]``. Lines may arrive split across arbitrary byte chunks.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable, Iterator
from typing import Any

from .errors import MalformedResponse

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
# Event-stream fields other than data carry no delta.
IGNORED_FIELDS = ("event:", "id:", "retry:")

DeltaCallback = Callable[[str], None]


class StreamDecoder:
    """
    Incremental decoder for one streamed response.

    Each decoded delta is passed to ``on_delta`` before it is appended to the
    running aggregate, exactly once and in stream order. Undecodable lines are
    logged and skipped. A decoder serves a single request; iterating it a
    second time raises ``RuntimeError``.
    """

    def __init__(self, on_delta: DeltaCallback | None = None):
        self.on_delta = on_delta
        self._parts: list[str] = []
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._done = False
        self._started = False
        self.skipped = 0

    @property
    def text(self) -> str:
        """Aggregate of all deltas decoded so far."""
        return "".join(self._parts)

    @property
    def done(self) -> bool:
        """True once the terminator line has been seen."""
        return self._done

    def feed(self, chunk: bytes | str) -> list[str]:
        """Consume a raw chunk and return the deltas it completed."""
        if self._done:
            return []
        if isinstance(chunk, bytes):
            chunk = self._utf8.decode(chunk)
        self._buffer += chunk

        deltas: list[str] = []
        while not self._done:
            newline = self._buffer.find("\n")
            if newline < 0:
                break
            line = self._buffer[:newline]
            self._buffer = self._buffer[newline + 1:]
            delta = self._process_line(line)
            if delta is not None:
                deltas.append(delta)
        return deltas

    def flush(self) -> list[str]:
        """Process a trailing line left without a newline at stream close."""
        if self._done:
            return []
        self._buffer += self._utf8.decode(b"", final=True)
        line, self._buffer = self._buffer, ""
        delta = self._process_line(line)
        return [delta] if delta is not None else []

    async def decode(self, chunks: AsyncIterable[bytes | str]) -> AsyncIterator[str]:
        """Lazily yield deltas from an async byte stream."""
        self._claim()
        async for chunk in chunks:
            for delta in self.feed(chunk):
                yield delta
            if self._done:
                return
        for delta in self.flush():
            yield delta

    def decode_lines(self, lines: Iterable[str]) -> Iterator[str]:
        """Yield deltas from already-split lines."""
        self._claim()
        for line in lines:
            delta = self._process_line(line)
            if delta is not None:
                yield delta
            if self._done:
                return

    def _claim(self) -> None:
        if self._started:
            raise RuntimeError("StreamDecoder is single-use; create a new decoder per request")
        self._started = True

    def _process_line(self, line: str) -> str | None:
        line = line.strip()
        if not line or line.startswith(":") or line.startswith(IGNORED_FIELDS):
            return None

        payload = line[len(DATA_PREFIX):].strip() if line.startswith(DATA_PREFIX) else line
        if payload == DONE_SENTINEL:
            self._done = True
            return None

        try:
            delta = parse_delta(payload)
        except MalformedResponse as e:
            self.skipped += 1
            logger.warning(f"Skipping malformed stream frame: {e}")
            return None

        if not delta:
            return None
        if self.on_delta is not None:
            self.on_delta(delta)
        self._parts.append(delta)
        return delta


def parse_delta(payload: str) -> str | None:
    """
    Extract ``choices[0].delta.content`` from one JSON envelope.

    Returns None for envelopes without text (role headers, finish markers,
    usage records).

    Raises:
        MalformedResponse: The payload is not JSON, or ``choices`` is not
            a list.
    """
    try:
        envelope: Any = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"{e.msg} in {payload[:100]!r}") from e

    if not isinstance(envelope, dict):
        return None
    if "error" in envelope:
        logger.warning(f"Provider reported an error mid-stream: {envelope['error']}")
        return None

    choices = envelope.get("choices") or []
    if not isinstance(choices, list):
        raise MalformedResponse(f"Unexpected choices of type {type(choices).__name__} in {payload[:100]!r}")
    if not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta") or {}
    content = delta.get("content") if isinstance(delta, dict) else None
    return content if isinstance(content, str) else None


__all__ = ["DATA_PREFIX", "DONE_SENTINEL", "DeltaCallback", "IGNORED_FIELDS", "StreamDecoder", "parse_delta"]
