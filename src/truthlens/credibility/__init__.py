"""Source credibility scoring."""

from .scorer import CLASS_ORDER, DomainTable, load_domain_table, resolve_host, score

__all__ = ["CLASS_ORDER", "DomainTable", "load_domain_table", "resolve_host", "score"]
