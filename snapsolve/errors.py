"""
Error taxonomy for the screenshot pipeline.

Every failure the gateway or the remote debug endpoint can produce is mapped
onto one of these types before it reaches the orchestrator. Cancellation is
kept outside the hierarchy: ``RunCancelled`` is an outcome, not a failure.
"""

from __future__ import annotations

import json
from typing import Any


class SnapSolveError(Exception):
    """Base class for pipeline failures."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code


class TransportError(SnapSolveError):
    """Network failure talking to an endpoint."""
    pass


class GatewayTimeout(TransportError):
    """The request exceeded its upper time bound."""
    pass


class ProviderError(SnapSolveError):
    """Endpoint answered with a non-2xx status."""
    pass


class AuthError(SnapSolveError):
    """Missing, expired or rejected session credential."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: str | None = None,
        invalidate_session: bool = False,
    ):
        super().__init__(message, status=status, code=code)
        self.invalidate_session = invalidate_session


class InvalidCredentialError(AuthError):
    """The provider rejected the configured API key."""
    pass


class QuotaExceeded(SnapSolveError):
    """Provider or account quota is exhausted."""
    pass


class MalformedResponse(SnapSolveError):
    """A single stream frame could not be decoded."""
    pass


class NoInputError(SnapSolveError):
    """The lane to process holds no frames."""
    pass


class RunCancelled(Exception):
    """A run was cancelled by the user or superseded by a newer run."""

    def __init__(self, reason: str = "cancelled"):
        super().__init__(reason)
        self.reason = reason


# Structured provider codes, checked before any message matching.
_QUOTA_CODES = frozenset({"insufficient_quota", "out_of_credits", "billing_hard_limit_reached"})
_INVALID_KEY_CODES = frozenset({"invalid_api_key", "api_key_invalid", "missing_api_key"})
_TIMEOUT_CODES = frozenset({"timeout", "operation_timeout"})

# Fallback for providers that only report free-text errors. Order matters:
# the first needle contained in the message wins.
MESSAGE_FALLBACKS: tuple[tuple[str, str], ...] = (
    ("API Key out of credits", "quota"),
    ("re-enter a valid Open AI API key", "invalid_key"),
    ("OpenAI API key not found", "invalid_key"),
    ("Invalid token", "session"),
    ("No token provided", "login"),
    ("Operation timed out", "timeout"),
)


def extract_error_detail(body: str | bytes | None) -> tuple[str, str | None]:
    """
    Pull a human-readable message and an optional code out of an error body.

    Understands ``{"error": {"message", "code", "type"}}``, ``{"error": "text"}``
    and ``{"message": "text"}``; anything else is returned as plain text.
    """
    if body is None:
        return "", None
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    text = body.strip()
    try:
        data: Any = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return text, None

    if not isinstance(data, dict):
        return text, None

    error = data.get("error")
    if isinstance(error, dict):
        message = str(error.get("message") or error.get("type") or text)
        code = error.get("code") or error.get("type")
        return message, str(code) if code else None
    if isinstance(error, str):
        code = data.get("code")
        return error, str(code) if code else None
    if "message" in data:
        code = data.get("code")
        return str(data["message"]), str(code) if code else None
    return text, None


def classify_provider_error(
    status: int | None,
    message: str,
    code: str | None = None,
) -> SnapSolveError:
    """
    Map a provider failure onto the error taxonomy.

    The provider code is checked first, then the ``MESSAGE_FALLBACKS``
    substring table, then the HTTP status. A recognised message therefore
    overrides a generic status (a 403 "API Key out of credits" is a quota
    failure).
    """
    message = message or f"Provider returned HTTP {status}"

    if code in _QUOTA_CODES:
        return QuotaExceeded(message, status=status, code=code)
    if code in _INVALID_KEY_CODES:
        return InvalidCredentialError(message, status=status, code=code)
    if code in _TIMEOUT_CODES:
        return GatewayTimeout(message, status=status, code=code)

    for needle, kind in MESSAGE_FALLBACKS:
        if needle in message:
            return _from_kind(kind, message, status, code)

    if status == 401:
        return AuthError(message, status=status, code=code, invalidate_session=True)
    if status == 403:
        return InvalidCredentialError(message, status=status, code=code)
    if status in (408, 504):
        return GatewayTimeout(message, status=status, code=code)

    return ProviderError(message, status=status, code=code)


def _from_kind(kind: str, message: str, status: int | None, code: str | None) -> SnapSolveError:
    if kind == "quota":
        return QuotaExceeded(message, status=status, code=code)
    if kind == "invalid_key":
        return InvalidCredentialError(message, status=status, code=code)
    if kind == "session":
        return AuthError(message, status=status, code=code, invalidate_session=True)
    if kind == "login":
        return AuthError(message, status=status, code=code)
    return GatewayTimeout(message, status=status, code=code)


__all__ = [
    "AuthError",
    "GatewayTimeout",
    "InvalidCredentialError",
    "MESSAGE_FALLBACKS",
    "MalformedResponse",
    "NoInputError",
    "ProviderError",
    "QuotaExceeded",
    "RunCancelled",
    "SnapSolveError",
    "TransportError",
    "classify_provider_error",
    "extract_error_detail",
]
