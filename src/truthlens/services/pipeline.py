"""Four-stage evidence pipeline: keywords, retrieval, scoring, weighted synthesis."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Sequence, TypeVar

from truthlens.credibility import DomainTable, load_domain_table, score
from truthlens.errors import UpstreamError, ValidationError
from truthlens.metrics.observability import PipelineMetrics, TimedSection, get_logger
from truthlens.models import BalancedEvidence, EvidenceItem, SearchResult
from truthlens.retrieval.service import EvidenceRetriever
from truthlens.services.generation import ChatBackend, user_message
from truthlens.services.prompts import build_final_analysis_prompt, build_keyword_prompt
from truthlens.services.relay import StreamingRelay

T = TypeVar("T")

EVIDENCE_SEPARATOR = "\n"


@dataclass(frozen=True)
class PipelineConfig:
    """Limits and sampling parameters for each stage."""

    min_text_length: int = 10
    keyword_max_tokens: int = 50
    keyword_temperature: float = 0.1
    search_max_results: int = 4
    balanced_max_results: int = 5
    excerpt_chars: int = 1500
    analysis_max_tokens: int = 500
    analysis_temperature: float = 0.2
    stage_timeout_seconds: float | None = 30.0
    stream_idle_timeout_seconds: float | None = 30.0


def validate_text(text: object, *, min_length: int = 10) -> str:
    """Return ``text`` if it is a string of at least ``min_length`` characters."""

    if not isinstance(text, str) or len(text) < min_length:
        raise ValidationError("文本过短")
    return text


def format_evidence(item: EvidenceItem) -> str:
    result = item.result
    return (
        f"[信源: {result.title}] [等级: {item.credibility.label}] [权重: {item.credibility.weight}]\n"
        f"网址: {result.url}\n"
        f"内容: {item.excerpt}\n"
        "---"
    )


def build_evidence_block(items: Sequence[EvidenceItem]) -> str:
    return EVIDENCE_SEPARATOR.join(format_evidence(item) for item in items)


class AnalysisPipeline:
    """Sequences the LLM, retriever and credibility scorer for one claim."""

    def __init__(
        self,
        llm: ChatBackend,
        retriever: EvidenceRetriever,
        *,
        domain_table: DomainTable | None = None,
        config: PipelineConfig | None = None,
    ) -> None:
        self._llm = llm
        self._retriever = retriever
        self._table = domain_table or load_domain_table()
        self._config = config or PipelineConfig()
        self._logger = get_logger("pipeline")

    @property
    def config(self) -> PipelineConfig:
        return self._config

    def validate(self, text: object) -> str:
        return validate_text(text, min_length=self._config.min_text_length)

    async def extract_keywords(self, claim: str) -> str:
        content = await self._stage(
            "keywords",
            self._llm.complete(
                user_message(build_keyword_prompt(claim)),
                max_tokens=self._config.keyword_max_tokens,
                temperature=self._config.keyword_temperature,
            ),
        )
        keywords = content.strip() or claim
        self._logger.info("stage.keywords.complete", keywords=keywords)
        return keywords

    async def retrieve(self, query: str, *, max_results: int | None = None) -> Sequence[SearchResult]:
        try:
            results = await self._stage(
                "retrieval",
                self._retriever.search(query, max_results=max_results or self._config.search_max_results),
            )
        except Exception as exc:  # retrieval failures degrade to no evidence
            self._logger.warning("stage.retrieval.degraded", detail=str(exc))
            return []
        self._logger.info("stage.retrieval.complete", query=query, result_count=len(results))
        return results

    def score_results(self, results: Sequence[SearchResult]) -> list[EvidenceItem]:
        with TimedSection(lambda elapsed: PipelineMetrics.observe_stage("scoring", elapsed)):
            items = [
                EvidenceItem(
                    result=result,
                    credibility=score(result.url, self._table),
                    excerpt=(result.content or "")[: self._config.excerpt_chars],
                )
                for result in results
            ]
        PipelineMetrics.observe_scoring(item.weight for item in items)
        self._logger.info(
            "stage.scoring.complete",
            sources=[{"url": item.result.url, "tier": item.credibility.tier.value} for item in items],
        )
        return items

    async def synthesize(self, claim: str, evidence: Sequence[EvidenceItem], *, correlation_id: str | None = None) -> StreamingRelay:
        prompt = build_final_analysis_prompt(claim, build_evidence_block(evidence))
        deltas = await self._stage(
            "synthesis",
            self._llm.open_stream(
                user_message(prompt),
                max_tokens=self._config.analysis_max_tokens,
                temperature=self._config.analysis_temperature,
            ),
        )
        self._logger.info("stage.synthesis.streaming", evidence_count=len(evidence))
        return StreamingRelay(
            deltas,
            idle_timeout=self._config.stream_idle_timeout_seconds,
            correlation_id=correlation_id,
        )

    async def analyze(self, text: object, *, correlation_id: str | None = None) -> StreamingRelay:
        """Run all four stages and return the relay for the verdict stream.

        Raises ``ValidationError`` before any collaborator is called and
        ``UpstreamError`` when the keyword or synthesis model call fails.
        """

        claim = self.validate(text)
        keywords = await self.extract_keywords(claim)
        results = await self.retrieve(keywords)
        evidence = self.score_results(results)
        return await self.synthesize(claim, evidence, correlation_id=correlation_id)

    async def gather_balanced_evidence(self, text: object) -> BalancedEvidence:
        """Search supporting and refuting evidence concurrently and score both legs.

        Each leg gets its own stage timeout; a leg that fails or times out is
        empty while the other keeps its results.
        """

        claim = self.validate(text)
        with TimedSection(lambda elapsed: PipelineMetrics.observe_stage("balanced_retrieval", elapsed)):
            legs = await self._retriever.search_pro_and_con(
                claim,
                max_results=self._config.balanced_max_results,
                timeout=self._config.stage_timeout_seconds,
            )
        self._logger.info("stage.balanced_retrieval.complete", pro_count=len(legs.pro), con_count=len(legs.con))
        return BalancedEvidence(pro=self.score_results(legs.pro), con=self.score_results(legs.con))

    async def _stage(self, name: str, awaitable: Awaitable[T]) -> T:
        with TimedSection(lambda elapsed: PipelineMetrics.observe_stage(name, elapsed)):
            try:
                return await self._with_timeout(awaitable)
            except asyncio.TimeoutError as exc:
                raise UpstreamError(f"Stage '{name}' timed out", stage=name) from exc
            except UpstreamError as exc:
                exc.stage = exc.stage or name
                raise

    async def _with_timeout(self, awaitable: Awaitable[T]) -> T:
        timeout = self._config.stage_timeout_seconds
        if timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout)
