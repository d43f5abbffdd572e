"""Chat completion backends for TruthLens."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Protocol, Sequence

from openai import AsyncOpenAI, OpenAIError

from truthlens.errors import UpstreamError

LOGGER = logging.getLogger(__name__)

ChatMessage = dict[str, str]


@dataclass(frozen=True)
class GenerationConfig:
    """Connection settings for an OpenAI-compatible chat endpoint."""

    model: str = "deepseek-chat"
    api_key: str | None = None
    base_url: str = "https://api.deepseek.com/v1"
    timeout: float = 60.0


class ChatBackend(Protocol):
    """Protocol describing the LLM collaborator."""

    async def complete(self, messages: Sequence[ChatMessage], *, max_tokens: int, temperature: float) -> str:
        """Return the text of a single completion (empty string if the model returned none)."""

    async def open_stream(
        self,
        messages: Sequence[ChatMessage],
        *,
        max_tokens: int,
        temperature: float,
    ) -> AsyncIterator[str]:
        """Start a streamed completion and return an iterator over its text deltas."""


def user_message(content: str) -> list[ChatMessage]:
    return [{"role": "user", "content": content}]


class OpenAIChatBackend:
    """Backend calling chat completions through the ``openai`` client."""

    def __init__(self, config: GenerationConfig | None = None, *, client: AsyncOpenAI | None = None) -> None:
        self._config = config or GenerationConfig()
        if client is None:
            if not self._config.api_key:
                LOGGER.warning("No LLM API key configured; model calls will fail.")
            client = AsyncOpenAI(
                api_key=self._config.api_key or "missing",
                base_url=self._config.base_url,
                timeout=self._config.timeout,
            )
        self._client = client

    @property
    def model(self) -> str:
        return self._config.model

    async def complete(self, messages: Sequence[ChatMessage], *, max_tokens: int, temperature: float) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._config.model,
                messages=list(messages),
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except OpenAIError as exc:
            raise UpstreamError(f"Completion request failed: {exc}") from exc
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def open_stream(
        self,
        messages: Sequence[ChatMessage],
        *,
        max_tokens: int,
        temperature: float,
    ) -> AsyncIterator[str]:
        try:
            stream = await self._client.chat.completions.create(
                model=self._config.model,
                messages=list(messages),
                max_tokens=max_tokens,
                temperature=temperature,
                stream=True,
            )
        except OpenAIError as exc:
            raise UpstreamError(f"Streaming request failed: {exc}") from exc
        return _iter_deltas(stream)

    async def aclose(self) -> None:
        await self._client.close()


async def _iter_deltas(stream) -> AsyncIterator[str]:
    try:
        async for chunk in stream:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield content
    except OpenAIError as exc:
        raise UpstreamError(f"Completion stream failed: {exc}") from exc
    finally:
        await stream.close()
