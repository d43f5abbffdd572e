"""Web evidence retrieval backed by the Tavily search API."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Literal, Mapping, Protocol, Sequence

import httpx

from truthlens.models import SearchResult

LOGGER = logging.getLogger(__name__)

PRO_QUERY_SUFFIX = "证实 支持 官方"
CON_QUERY_SUFFIX = "辟谣 质疑 反对"


@dataclass(frozen=True)
class RetrievalConfig:
    """Configuration for web retrieval."""

    api_key: str | None = None
    endpoint: str = "https://api.tavily.com/search"
    search_depth: Literal["basic", "advanced"] = "advanced"
    include_raw_content: bool = True
    max_results: int = 5
    timeout: float = 20.0


@dataclass(frozen=True)
class ProConResults:
    """Raw results of the supporting and refuting searches."""

    pro: Sequence[SearchResult]
    con: Sequence[SearchResult]


class EvidenceRetriever(Protocol):
    """Search the web for documents relevant to a query."""

    async def search(self, query: str, *, max_results: int | None = None) -> Sequence[SearchResult]:
        """Return ranked results; an empty sequence when the search is unavailable."""

    async def search_pro_and_con(
        self,
        text: str,
        *,
        max_results: int | None = None,
        timeout: float | None = None,
    ) -> ProConResults:
        """Run the supporting and refuting searches concurrently, each bounded by ``timeout``."""


class TavilyRetriever:
    """Retriever calling the Tavily search endpoint over HTTPX."""

    def __init__(self, config: RetrievalConfig | None = None, *, client: httpx.AsyncClient | None = None) -> None:
        self._config = config or RetrievalConfig()
        self._client = client or httpx.AsyncClient(
            timeout=self._config.timeout,
            headers={"Content-Type": "application/json"},
        )

    async def search(self, query: str, *, max_results: int | None = None) -> Sequence[SearchResult]:
        if not self._config.api_key:
            LOGGER.warning("Tavily API key not configured, returning empty results")
            return []
        payload = {
            "api_key": self._config.api_key,
            "query": query,
            "search_depth": self._config.search_depth,
            "max_results": max_results or self._config.max_results,
            "include_answer": False,
            "include_raw_content": self._config.include_raw_content,
        }
        try:
            response = await self._client.post(self._config.endpoint, json=payload)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            LOGGER.error("Tavily search failed: %s", exc)
            return []
        return [_to_result(item) for item in data.get("results") or [] if isinstance(item, Mapping)]

    async def search_pro_and_con(
        self,
        text: str,
        *,
        max_results: int | None = None,
        timeout: float | None = None,
    ) -> ProConResults:
        legs = await asyncio.gather(
            self._leg(f"{text} {PRO_QUERY_SUFFIX}", max_results, timeout),
            self._leg(f"{text} {CON_QUERY_SUFFIX}", max_results, timeout),
            return_exceptions=True,
        )
        pro, con = (_leg_or_empty(leg) for leg in legs)
        return ProConResults(pro=pro, con=con)

    async def _leg(self, query: str, max_results: int | None, timeout: float | None) -> Sequence[SearchResult]:
        search = self.search(query, max_results=max_results)
        if timeout is None:
            return await search
        return await asyncio.wait_for(search, timeout)

    async def aclose(self) -> None:
        await self._client.aclose()


def _leg_or_empty(leg: Sequence[SearchResult] | BaseException) -> Sequence[SearchResult]:
    if isinstance(leg, BaseException):
        LOGGER.error("Evidence search leg failed: %r", leg)
        return []
    return leg


def _to_result(item: Mapping[str, Any]) -> SearchResult:
    # Prefer the fetched page body; fall back to Tavily's snippet.
    content = item.get("raw_content") or item.get("content") or ""
    return SearchResult(
        title=str(item.get("title") or ""),
        url=str(item.get("url") or ""),
        content=str(content),
        relevance=float(item.get("score") or 0.0),
        published_date=item.get("published_date"),
    )
