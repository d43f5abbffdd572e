"""Retrieval components."""

from .service import EvidenceRetriever, ProConResults, RetrievalConfig, TavilyRetriever

__all__ = ["EvidenceRetriever", "ProConResults", "RetrievalConfig", "TavilyRetriever"]
