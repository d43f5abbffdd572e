"""Sources of incremental verdict text, backed by the network or by a timer."""

from __future__ import annotations

import asyncio
import codecs
import logging
from typing import AsyncIterator, Callable, Protocol

import httpx

from truthlens.errors import DecodeError

LOGGER = logging.getLogger(__name__)

FALLBACK_VERDICT = (
    "总结：待验证\n\n"
    "核心分析：根据深度分析，这段文本包含事实性描述，但部分数据可能需要进一步核实。\n\n"
    "支持点：文本描述与公开报道基本相符。\n\n"
    "矛盾点：暂无明确冲突证据。\n\n"
    "结论：建议查阅官方公告以获取最新准确信息。\n\n"
    "(注：检测到后端服务未启动，当前显示为演示数据)"
)

# Inserted between partially received live text and the fallback verdict.
FALLBACK_SEPARATOR = "\n\n"


class ChunkSource(Protocol):
    """Cancellable async sequence of text chunks."""

    def __aiter__(self) -> AsyncIterator[str]:
        ...

    async def aclose(self) -> None:
        """Stop producing chunks and release underlying resources."""


class FallbackChunkSource:
    """Reveals a canned verdict a few characters per timer tick."""

    def __init__(self, text: str = FALLBACK_VERDICT, *, step: int = 4, interval: float = 0.03) -> None:
        if step < 1:
            raise ValueError("step must be positive")
        self._text = text
        self._step = step
        self._interval = interval
        self._closed = False

    @property
    def text(self) -> str:
        return self._text

    def __aiter__(self) -> AsyncIterator[str]:
        return self._reveal()

    async def _reveal(self) -> AsyncIterator[str]:
        for start in range(0, len(self._text), self._step):
            await asyncio.sleep(self._interval)
            if self._closed:
                return
            yield self._text[start : start + self._step]

    async def aclose(self) -> None:
        self._closed = True


class HttpChunkSource:
    """Decodes a streamed HTTP response body into text chunks.

    A transport error or an undecodable byte sequence during the read hands
    over to ``fallback`` (when given); its output is appended after whatever
    was already emitted, so consumers still only see the text grow.
    """

    def __init__(
        self,
        response: httpx.Response,
        *,
        fallback: Callable[[], ChunkSource] | None = None,
        encoding: str = "utf-8",
    ) -> None:
        self._response = response
        self._fallback_factory = fallback
        self._encoding = encoding
        self._fallback: ChunkSource | None = None

    @property
    def used_fallback(self) -> bool:
        return self._fallback is not None

    def __aiter__(self) -> AsyncIterator[str]:
        return self._read()

    async def _read(self) -> AsyncIterator[str]:
        decoder = codecs.getincrementaldecoder(self._encoding)()
        emitted = False
        try:
            async for raw in self._response.aiter_bytes():
                text = _decode(decoder, raw)
                if text:
                    emitted = True
                    yield text
            tail = _decode(decoder, b"", final=True)
            if tail:
                yield tail
            return
        except (httpx.HTTPError, DecodeError) as exc:
            if self._fallback_factory is None:
                raise
            LOGGER.warning("Response stream failed, switching to local fallback: %s", exc)
        finally:
            await self._response.aclose()

        self._fallback = self._fallback_factory()
        if emitted:
            yield FALLBACK_SEPARATOR
        async for piece in self._fallback:
            yield piece

    async def aclose(self) -> None:
        await self._response.aclose()
        if self._fallback is not None:
            await self._fallback.aclose()


def _decode(decoder: codecs.IncrementalDecoder, raw: bytes, final: bool = False) -> str:
    try:
        return decoder.decode(raw, final)
    except UnicodeDecodeError as exc:
        raise DecodeError(f"Malformed response bytes: {exc.reason}") from exc
