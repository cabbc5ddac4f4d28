"""
Result models for the extraction, solution and debug stages.

Models answer with JSON most of the time, occasionally wrapped in a markdown
fence and occasionally not at all; parsing never fails, it falls back to
keeping the raw text.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


def strip_code_fence(raw: str) -> str:
    """Remove a surrounding ```json ... ``` (or bare ```) fence."""
    text = raw.strip()
    if text.startswith("```json"):
        text = text[7:].strip()
    elif text.startswith("```"):
        text = text[3:].strip()
    if text.endswith("```"):
        text = text[:-3].strip()
    return text


def parse_json_object(raw: str) -> dict[str, Any] | None:
    """Parse ``raw`` as a JSON object, or return None."""
    text = strip_code_fence(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        # Models sometimes wrap the object in prose; try the outermost braces.
        start, end = text.find("{"), text.rfind("}")
        if start < 0 or end <= start:
            logger.warning(f"Model did not return valid JSON: {e}")
            return None
        try:
            data = json.loads(text[start:end + 1])
        except json.JSONDecodeError:
            logger.warning(f"Model did not return valid JSON: {e}")
            return None
    return data if isinstance(data, dict) else None


class ProblemInfo(BaseModel):
    """Structured problem extracted from screenshots."""

    raw: str
    data: dict[str, Any] | None = None

    @classmethod
    def from_text(cls, raw: str) -> "ProblemInfo":
        return cls(raw=raw, data=parse_json_object(raw))

    @property
    def is_structured(self) -> bool:
        return self.data is not None

    def for_prompt(self) -> str:
        """Serialized form embedded into follow-up prompts."""
        if self.data is not None:
            return json.dumps(self.data, ensure_ascii=False)
        return self.raw


class SolutionPayload(BaseModel):
    """Interview-style answer produced by the solving stage."""

    code: str = ""
    thoughts: list[str] = Field(default_factory=list)
    time_complexity: str = ""
    space_complexity: str = ""
    raw: str = ""

    @classmethod
    def from_text(cls, raw: str) -> "SolutionPayload":
        data = parse_json_object(raw)
        if data is None:
            # Unstructured answer: surface the text as the code body.
            return cls(code=raw.strip(), raw=raw)
        thoughts = data.get("thoughts") or []
        if isinstance(thoughts, str):
            thoughts = [thoughts]
        return cls(
            code=str(data.get("code") or ""),
            thoughts=[str(t) for t in thoughts],
            time_complexity=str(data.get("time_complexity") or ""),
            space_complexity=str(data.get("space_complexity") or ""),
            raw=raw,
        )


class DebugPayload(BaseModel):
    """Response of the hosted debug endpoint. Unknown keys are preserved."""

    model_config = ConfigDict(extra="allow")

    new_code: str | None = None
    thoughts: list[str] = Field(default_factory=list)
    time_complexity: str | None = None
    space_complexity: str | None = None


__all__ = [
    "DebugPayload",
    "ProblemInfo",
    "SolutionPayload",
    "parse_json_object",
    "strip_code_fence",
]
