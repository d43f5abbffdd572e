"""Observability helpers for TruthLens."""

from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from typing import Iterable

import structlog
from prometheus_client import Counter, Histogram

_logger_configured = False
_correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")


def configure_logging(level: int = logging.INFO) -> None:
    global _logger_configured  # noqa: PLW0603 - module-level guard
    if _logger_configured:
        return
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _logger_configured = True


def bind_correlation_id(correlation_id: str) -> None:
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    structlog.contextvars.clear_contextvars()
    _correlation_id_var.set("-")


def get_correlation_id() -> str:
    return _correlation_id_var.get()


def get_logger(name: str = "truthlens") -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)


class PipelineMetrics:
    """Prometheus metrics for pipeline stages."""

    stage_latency = Histogram(
        "truthlens_stage_duration_seconds",
        "Time spent in each pipeline stage.",
        ["stage"],
        buckets=(0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    )
    evidence_count = Histogram(
        "truthlens_evidence_count",
        "Search results scored per analysis.",
        buckets=(0, 1, 2, 3, 4, 5, 8, 10),
    )
    source_weight = Histogram(
        "truthlens_source_weight",
        "Credibility weight of scored sources.",
        buckets=(0.2, 0.3, 0.4, 0.5, 0.8, 1.0),
    )
    relayed_chunks = Counter(
        "truthlens_relayed_chunks_total",
        "Model output chunks forwarded to clients.",
    )
    requests = Counter(
        "truthlens_analysis_requests_total",
        "Analysis requests by outcome.",
        ["outcome"],
    )

    @classmethod
    def observe_stage(cls, stage: str, duration_seconds: float) -> None:
        cls.stage_latency.labels(stage=stage).observe(duration_seconds)

    @classmethod
    def observe_scoring(cls, weights: Iterable[float]) -> None:
        values = list(weights)
        cls.evidence_count.observe(len(values))
        for weight in values:
            cls.source_weight.observe(weight)

    @classmethod
    def observe_request(cls, outcome: str) -> None:
        cls.requests.labels(outcome=outcome).inc()


class TimedSection:
    """Context manager capturing elapsed time for metrics."""

    def __init__(self, callback) -> None:
        self._callback = callback
        self._start = 0.0

    def __enter__(self) -> "TimedSection":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        duration = time.perf_counter() - self._start
        self._callback(duration)


__all__ = [
    "PipelineMetrics",
    "TimedSection",
    "bind_correlation_id",
    "clear_correlation_id",
    "configure_logging",
    "get_correlation_id",
    "get_logger",
]
