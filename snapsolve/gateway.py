"""
Streaming client for a vision-capable chat-completions endpoint.

Sends one multimodal request per call and returns the aggregated text while
forwarding every decoded delta to the caller as it arrives.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from .config import GatewayConfig
from .errors import (
    GatewayTimeout,
    InvalidCredentialError,
    TransportError,
    classify_provider_error,
    extract_error_detail,
)
from .pipeline_run import CancelToken, run_cancellable
from .stream_decoder import DeltaCallback, StreamDecoder

logger = logging.getLogger(__name__)


def build_chat_request(model: str, prompt: str, images: Sequence[str]) -> dict[str, Any]:
    """
    Build the chat-completions body for a prompt plus base64 images.

    Images are sent as JPEG data URLs after the text part, in order.
    """
    content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
    content.extend(
        {"type": "image_url", "image_url": {"url": f"data:image/jpeg;base64,{image}"}}
        for image in images
    )
    return {
        "model": model,
        "messages": [{"role": "user", "content": content}],
        "stream": True,
    }


class AIGateway:
    """
    Cancellable streaming gateway to the model endpoint.

    Does not retry; retries, if any, belong to the caller.
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.config = config or GatewayConfig()
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.config.timeout_seconds))
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        prompt: str,
        images: Sequence[str],
        cancel: CancelToken,
        on_delta: DeltaCallback | None = None,
    ) -> str:
        """
        Stream one completion.

        Args:
            prompt: Text part of the message
            images: Base64-encoded images, in order
            cancel: Token aborting the in-flight request when fired
            on_delta: Called synchronously with each text delta

        Returns:
            Aggregated text; empty if the model produced no content

        Raises:
            RunCancelled: The token fired before completion
            GatewayTimeout: The request exceeded ``timeout_seconds``
            TransportError: Network failure
            SnapSolveError: Non-2xx response, classified
        """
        if not self.config.api_key:
            raise InvalidCredentialError("No API key configured for the model endpoint")

        body = build_chat_request(self.config.model, prompt, images)
        logger.debug(f"Requesting completion from {self.config.api_url} with {len(images)} image(s)")
        decoder = StreamDecoder(on_delta=on_delta)
        return await run_cancellable(
            self._stream(body, decoder),
            cancel,
            timeout=self.config.timeout_seconds,
        )

    async def _stream(self, body: dict[str, Any], decoder: StreamDecoder) -> str:
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        client = self._get_client()
        try:
            async with client.stream("POST", self.config.api_url, json=body, headers=headers) as response:
                if response.status_code >= 400:
                    raw = await response.aread()
                    message, code = extract_error_detail(raw)
                    logger.warning(f"Model endpoint returned HTTP {response.status_code}: {message}")
                    raise classify_provider_error(response.status_code, message, code)

                async for _ in decoder.decode(response.aiter_bytes()):
                    pass
        except httpx.TimeoutException as e:
            raise GatewayTimeout(f"Model endpoint timed out: {e}") from e
        except httpx.TransportError as e:
            raise TransportError(f"Model endpoint unreachable: {e}") from e

        if decoder.skipped:
            logger.info(f"Completed stream with {decoder.skipped} malformed frame(s) skipped")
        return decoder.text


__all__ = ["AIGateway", "build_chat_request"]
