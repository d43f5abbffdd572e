"""Forward model output deltas to an HTTP response as they arrive."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

import httpx

from truthlens.errors import UpstreamError
from truthlens.metrics.observability import PipelineMetrics, get_correlation_id, get_logger


class StreamingRelay:
    """Async iterator of UTF-8 encoded chunks, one per non-empty model delta.

    Chunks are emitted in arrival order with no buffering. Once iteration
    starts the HTTP status is already committed, so upstream failures and
    idle timeouts are raised out of the iterator: the server then aborts the
    response instead of ending it cleanly, and clients see a truncated body.
    """

    def __init__(
        self,
        deltas: AsyncIterator[str],
        *,
        idle_timeout: float | None = None,
        encoding: str = "utf-8",
        correlation_id: str | None = None,
    ) -> None:
        self._deltas = deltas
        self._idle_timeout = idle_timeout
        self._encoding = encoding
        self._closed = False
        self._logger = get_logger("relay").bind(correlation_id=correlation_id or get_correlation_id())
        self.chunks_sent = 0

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._relay()

    async def _relay(self) -> AsyncIterator[bytes]:
        try:
            while True:
                try:
                    delta = await self._next_delta()
                except StopAsyncIteration:
                    break
                if not delta:
                    continue
                self.chunks_sent += 1
                PipelineMetrics.relayed_chunks.inc()
                yield delta.encode(self._encoding)
        except asyncio.TimeoutError as exc:
            self._logger.warning("relay.timeout", idle_timeout=self._idle_timeout, chunks=self.chunks_sent)
            raise UpstreamError("Model stream stalled", stage="synthesis") from exc
        except (UpstreamError, httpx.HTTPError) as exc:
            self._logger.error("relay.upstream_error", detail=str(exc), chunks=self.chunks_sent)
            raise
        finally:
            await self.aclose()
        self._logger.info("relay.complete", chunks=self.chunks_sent)

    async def _next_delta(self) -> str:
        if self._idle_timeout is None:
            return await anext(self._deltas)
        return await asyncio.wait_for(anext(self._deltas), self._idle_timeout)

    async def aclose(self) -> None:
        """Stop relaying and release the upstream stream."""

        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._deltas, "aclose", None)
        if aclose is not None:
            await aclose()
