"""Client for the hosted debug endpoint used by the supplementary pipeline."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx
from pydantic import ValidationError

from .config import RemoteDebugConfig
from .errors import (
    AuthError,
    GatewayTimeout,
    ProviderError,
    TransportError,
    classify_provider_error,
    extract_error_detail,
)
from .pipeline_run import CancelToken, run_cancellable
from .schema import DebugPayload, ProblemInfo

logger = logging.getLogger(__name__)


class RemoteDebugClient:
    """
    Single-call debug pipeline backend.

    Unlike the gateway this is one non-streaming request: the endpoint
    receives every screenshot plus the extracted problem and answers with the
    revised solution.
    """

    def __init__(
        self,
        config: RemoteDebugConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.config = config or RemoteDebugConfig()
        self._client = client
        self._owns_client = client is None

    @property
    def url(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/api/debug"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds),
                follow_redirects=True,
                max_redirects=self.config.max_redirects,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def debug(
        self,
        images: Sequence[str],
        problem: ProblemInfo,
        language: str,
        token: str,
        cancel: CancelToken,
    ) -> DebugPayload:
        """
        Submit screenshots for debugging.

        Raises:
            RunCancelled: The token fired before completion
            AuthError: The session was rejected (401 invalidates it)
            SnapSolveError: Any other classified failure
        """
        body = {
            "imageDataList": list(images),
            "problemInfo": problem.data if problem.data is not None else problem.raw,
            "language": language,
        }
        return await run_cancellable(
            self._post(body, token),
            cancel,
            timeout=self.config.timeout_seconds,
        )

    async def _post(self, body: dict, token: str) -> DebugPayload:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }
        try:
            response = await self._get_client().post(self.url, json=body, headers=headers)
        except httpx.TimeoutException as e:
            raise GatewayTimeout(f"Debug endpoint timed out: {e}") from e
        except httpx.TooManyRedirects as e:
            raise ProviderError(f"Debug endpoint redirected too many times: {e}") from e
        except httpx.TransportError as e:
            raise TransportError(f"Debug endpoint unreachable: {e}") from e

        if response.status_code >= 400:
            message, code = extract_error_detail(response.content)
            logger.warning(f"Debug endpoint returned HTTP {response.status_code}: {message}")
            if response.status_code == 401:
                raise AuthError(
                    message or "Session expired",
                    status=401,
                    code=code,
                    invalidate_session=True,
                )
            raise classify_provider_error(response.status_code, message, code)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"Debug endpoint returned non-JSON body: {e}", status=response.status_code) from e
        if not isinstance(data, dict):
            raise ProviderError("Debug endpoint returned an unexpected payload", status=response.status_code)
        try:
            return DebugPayload.model_validate(data)
        except ValidationError as e:
            raise ProviderError(f"Debug endpoint payload did not validate: {e}", status=response.status_code) from e


__all__ = ["RemoteDebugClient"]
