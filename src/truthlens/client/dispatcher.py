"""HTTP dispatch of analysis requests with a local fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from truthlens.client.sources import FALLBACK_VERDICT, ChunkSource, FallbackChunkSource, HttpChunkSource

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatcherConfig:
    """Where to send analysis requests and how to simulate a verdict offline."""

    endpoint: str = "http://localhost:8000/api/analyze"
    timeout: float = 60.0
    fallback_text: str = FALLBACK_VERDICT
    fallback_step: int = 4
    fallback_interval: float = 0.03


class RequestDispatcher:
    """Opens a chunk source for a selected text.

    Never raises for network problems: a failed request or a non-success
    status yields the timer-backed fallback source instead.
    """

    def __init__(self, config: DispatcherConfig | None = None, *, client: httpx.AsyncClient | None = None) -> None:
        self._config = config or DispatcherConfig()
        self._client = client or httpx.AsyncClient(timeout=self._config.timeout)

    async def open(self, text: str) -> ChunkSource:
        request = self._client.build_request(
            "POST",
            self._config.endpoint,
            json={"text": text},
            headers={"Accept": "text/plain"},
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            LOGGER.warning("Analysis request failed, falling back to local verdict: %s", exc)
            return self.fallback()
        if not response.is_success:
            cid = response.headers.get("X-Correlation-ID", "-")
            LOGGER.warning("Analysis request returned %s [cid=%s], falling back to local verdict", response.status_code, cid)
            await response.aclose()
            return self.fallback()
        return HttpChunkSource(response, fallback=self.fallback)

    def fallback(self) -> FallbackChunkSource:
        return FallbackChunkSource(
            self._config.fallback_text,
            step=self._config.fallback_step,
            interval=self._config.fallback_interval,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
