"""Service layer orchestrations for TruthLens."""

from .generation import ChatBackend, GenerationConfig, OpenAIChatBackend
from .pipeline import AnalysisPipeline, PipelineConfig, build_evidence_block, validate_text
from .prompts import build_final_analysis_prompt, build_keyword_prompt
from .relay import StreamingRelay

__all__ = [
    "AnalysisPipeline",
    "ChatBackend",
    "GenerationConfig",
    "OpenAIChatBackend",
    "PipelineConfig",
    "StreamingRelay",
    "build_evidence_block",
    "build_final_analysis_prompt",
    "build_keyword_prompt",
    "validate_text",
]
