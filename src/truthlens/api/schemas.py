"""Pydantic models for the TruthLens API."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from truthlens.models import EvidenceItem


class AnalyzeRequest(BaseModel):
    # Length is checked by the pipeline so short text yields 400, not 422.
    text: Optional[str] = Field(default=None, description="Text selected by the user")


class ErrorResponse(BaseModel):
    error: str


class EvidenceModel(BaseModel):
    title: str
    url: str
    tier: str
    label: str
    weight: float
    excerpt: str
    relevance: float = 0.0
    published_date: Optional[str] = None

    @classmethod
    def from_item(cls, item: EvidenceItem) -> "EvidenceModel":
        return cls(
            title=item.result.title,
            url=item.result.url,
            tier=item.credibility.tier.value,
            label=item.credibility.label,
            weight=item.credibility.weight,
            excerpt=item.excerpt,
            relevance=item.result.relevance,
            published_date=item.result.published_date,
        )


class EvidenceResponse(BaseModel):
    pro: List[EvidenceModel]
    con: List[EvidenceModel]
