"""Runtime configuration for the TruthLens services."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed configuration model."""

    model_config = SettingsConfigDict(env_prefix="truthlens_", env_file=".env", case_sensitive=False)

    environment: Literal["dev", "test", "prod"] = "dev"

    # LLM collaborator (any OpenAI-compatible endpoint)
    llm_api_key: str | None = None
    llm_base_url: str = "https://api.deepseek.com/v1"
    llm_model: str = "deepseek-chat"
    llm_timeout_seconds: float = 60.0

    # Web search
    tavily_api_key: str | None = None
    tavily_endpoint: str = "https://api.tavily.com/search"
    tavily_search_depth: Literal["basic", "advanced"] = "advanced"
    tavily_include_raw_content: bool = True
    tavily_timeout_seconds: float = 20.0

    # Pipeline
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
    credibility_table_path: Path | None = None  # defaults to the packaged table

    # CORS (applied to every response, including errors and preflight)
    cors_allow_origin: str = "*"
    cors_allow_methods: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
    cors_allow_headers: tuple[str, ...] = ("Content-Type", "Authorization")

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Client
    api_url: str = "http://localhost:8000/api/analyze"
    client_timeout_seconds: float = 60.0
    fallback_step_chars: int = 4
    fallback_interval_seconds: float = 0.03
    selection_debounce_seconds: float = 0.05

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    @property
    def cors_headers(self) -> dict[str, str]:
        return {
            "Access-Control-Allow-Origin": self.cors_allow_origin,
            "Access-Control-Allow-Methods": ", ".join(self.cors_allow_methods),
            "Access-Control-Allow-Headers": ", ".join(self.cors_allow_headers),
        }


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return Settings()


def get_settings(override: Optional[dict[str, object]] = None) -> Settings:
    """Return settings, optionally overriding values without mutating cache."""

    if override:
        return Settings(**override)
    return _cached_settings()
