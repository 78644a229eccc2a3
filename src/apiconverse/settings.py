"""Runtime configuration, read from API_CONVERSE_* environment variables."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConverseSettings(BaseSettings):
    """Configuration settings for the conversational API core."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_file: Optional[str] = None

    # Dialogue
    min_confidence: float = Field(default=0.55, ge=0.0, le=1.0)
    conversation_timeout: float = 30 * 60  # seconds of inactivity before eviction
    cleanup_interval: float = 5 * 60

    # Ranking
    min_candidate_score: float = 0.1
    max_candidates: int = 5
    max_alternatives: int = 3
    max_input_chars: int = 4096
    llm_rerank: bool = True

    # Query embedding cache
    cache_max_size: int = 100
    cache_ttl: float = 30 * 60
    cache_sweep_interval: float = 15 * 60

    # Providers
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    embedding_model: str = "text-embedding-3-small"
    chat_model: str = "gpt-4o-mini"
    temperature: float = 0.1
    max_tokens: int = 1000

    # Executor
    request_timeout: float = 30.0

    # Files
    catalog_path: Optional[str] = None
    conversation_dir: Optional[str] = None
    audit_log_dir: Optional[str] = None

    model_config = SettingsConfigDict(env_prefix="API_CONVERSE_")
