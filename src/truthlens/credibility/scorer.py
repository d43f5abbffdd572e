"""Table-driven credibility scoring for source URLs."""

from __future__ import annotations

import json
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Mapping, Sequence

import httpx

from truthlens.models import CredibilityScore, CredibilityTier

# Checked in this order; the first class listing the host wins.
CLASS_ORDER: tuple[CredibilityTier, ...] = (
    CredibilityTier.A_CLASS,
    CredibilityTier.B_CLASS,
    CredibilityTier.C_CLASS,
    CredibilityTier.D_CLASS,
)


@dataclass(frozen=True)
class DomainTable:
    """Domain lists per credibility class."""

    classes: Mapping[CredibilityTier, Sequence[str]]

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> "DomainTable":
        classes: dict[CredibilityTier, tuple[str, ...]] = {}
        for tier in CLASS_ORDER:
            entry = payload.get(tier.value) or {}
            domains = entry.get("domains", []) if isinstance(entry, Mapping) else entry
            classes[tier] = tuple(_normalize_domain(str(d)) for d in domains if str(d).strip())
        return cls(classes=classes)

    def domains(self, tier: CredibilityTier) -> Sequence[str]:
        return self.classes.get(tier, ())


def load_domain_table(path: Path | None = None) -> DomainTable:
    """Load a domain table from ``path`` or from the packaged default."""

    if path is None:
        raw = resources.files("truthlens.credibility").joinpath("data/source_credibility.json").read_text(encoding="utf-8")
    else:
        raw = Path(path).read_text(encoding="utf-8")
    return DomainTable.from_mapping(json.loads(raw))


def resolve_host(url: str) -> str | None:
    """Return the lower-cased host without a leading ``www.``, or None if there is none."""

    try:
        host = httpx.URL(url).host
    except (httpx.InvalidURL, TypeError, ValueError):
        return None
    host = (host or "").lower().rstrip(".")
    if host.startswith("www."):
        host = host[len("www.") :]
    return host or None


def score(url: str, table: DomainTable) -> CredibilityScore:
    """Classify ``url`` against ``table``. Malformed URLs are INVALID, never an error."""

    host = resolve_host(url) if isinstance(url, str) else None
    if host is None:
        return _score_for(CredibilityTier.INVALID)
    for tier in CLASS_ORDER:
        if any(_host_matches(host, domain) for domain in table.domains(tier)):
            return _score_for(tier)
    return _score_for(CredibilityTier.UNKNOWN)


def _score_for(tier: CredibilityTier) -> CredibilityScore:
    return CredibilityScore(tier=tier, weight=tier.weight, label=tier.label)


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def _normalize_domain(domain: str) -> str:
    domain = domain.strip().lower().lstrip(".")
    if domain.startswith("www."):
        domain = domain[len("www.") :]
    return domain
