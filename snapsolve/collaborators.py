"""
Host-side collaborators consumed by the pipeline.

These are thin I/O edges (screen capture, login state, settings UI). The
pipeline only depends on the protocols; the static implementations cover
scripts and tests.
"""

from __future__ import annotations

from typing import Protocol

from .config import DEFAULT_LANGUAGE


class CaptureDevice(Protocol):
    """Takes a screenshot. May suspend while the host window is hidden."""

    async def capture(self) -> bytes:
        ...


class CredentialProvider(Protocol):
    """Current session token; None means logged out, which is not an error."""

    def current_token(self) -> str | None:
        ...


class LanguageProvider(Protocol):
    """Preferred solution language."""

    def current_language(self) -> str:
        ...


class QuotaProvider(Protocol):
    """Remaining credits for the primary pipeline."""

    def remaining(self) -> int:
        ...


class SessionInvalidator(Protocol):
    """Signs the host out after the debug endpoint rejects its session."""

    async def invalidate_session(self) -> None:
        ...


class StaticCredentials:
    def __init__(self, token: str | None = None):
        self.token = token

    def current_token(self) -> str | None:
        return self.token or None


class StaticLanguage:
    def __init__(self, language: str | None = None, default: str = DEFAULT_LANGUAGE):
        self.language = language
        self.default = default

    def current_language(self) -> str:
        return self.language or self.default


class StaticQuota:
    def __init__(self, credits: int):
        self.credits = credits

    def remaining(self) -> int:
        return self.credits


__all__ = [
    "CaptureDevice",
    "CredentialProvider",
    "LanguageProvider",
    "QuotaProvider",
    "SessionInvalidator",
    "StaticCredentials",
    "StaticLanguage",
    "StaticQuota",
]
