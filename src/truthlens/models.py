"""Shared domain models used across the TruthLens pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Sequence


class CredibilityTier(str, Enum):
    """Trust classification assigned to a source URL."""

    A_CLASS = "A_CLASS"
    B_CLASS = "B_CLASS"
    C_CLASS = "C_CLASS"
    D_CLASS = "D_CLASS"
    UNKNOWN = "UNKNOWN"
    INVALID = "INVALID"

    @property
    def weight(self) -> float:
        return _TIER_WEIGHTS[self]

    @property
    def label(self) -> str:
        return _TIER_LABELS[self]


_TIER_WEIGHTS: Mapping[CredibilityTier, float] = {
    CredibilityTier.A_CLASS: 1.0,
    CredibilityTier.B_CLASS: 0.8,
    CredibilityTier.C_CLASS: 0.5,
    CredibilityTier.D_CLASS: 0.2,
    CredibilityTier.UNKNOWN: 0.4,
    CredibilityTier.INVALID: 0.3,
}

_TIER_LABELS: Mapping[CredibilityTier, str] = {
    CredibilityTier.A_CLASS: "权威官媒",
    CredibilityTier.B_CLASS: "专业媒体",
    CredibilityTier.C_CLASS: "普通信源",
    CredibilityTier.D_CLASS: "社交平台",
    CredibilityTier.UNKNOWN: "未知信源",
    CredibilityTier.INVALID: "非法链接",
}


@dataclass(frozen=True)
class CredibilityScore:
    """Tier, weight and display label computed for one URL."""

    tier: CredibilityTier
    weight: float
    label: str


@dataclass(frozen=True)
class SearchResult:
    """One document returned by the web search collaborator."""

    title: str
    url: str
    content: str
    relevance: float = 0.0
    published_date: str | None = None


@dataclass(frozen=True)
class EvidenceItem:
    """Search result paired with the credibility of its source."""

    result: SearchResult
    credibility: CredibilityScore
    excerpt: str

    @property
    def weight(self) -> float:
        return self.credibility.weight


@dataclass(frozen=True)
class BalancedEvidence:
    """Evidence gathered by the supporting and the refuting query legs."""

    pro: Sequence[EvidenceItem]
    con: Sequence[EvidenceItem]
