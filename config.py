"""
Configuration settings for the personalization engine.

Uses Pydantic Settings for environment variable management with .env file support.
Every threshold the engine relies on is a field here; the defaults are the
values the engine has always shipped with.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_ROOT = Path(__file__).parent
DEFAULT_SYNONYMS_PATH = PACKAGE_ROOT / "src" / "scoring" / "data" / "keyword_synonyms.json"
DEFAULT_PREREQUISITES_PATH = PACKAGE_ROOT / "src" / "knowledge" / "data" / "topic_prerequisites.json"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Database
    # ========================================
    database_url: str = Field(
        default="sqlite:///personalization_engine.db",
        description="SQLAlchemy connection string (PostgreSQL in production)",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level for the stderr sink",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path of a rotating log file",
    )

    # ========================================
    # Embeddings
    # ========================================
    embedding_model: str = Field(
        default="all-MiniLM-L6-v2",
        description="Model name used by the embedding provider",
    )
    embedding_dimension: int = Field(
        default=384,
        description="Expected embedding vector length",
    )
    embedding_api_url: str | None = Field(
        default=None,
        description="OpenAI-compatible embeddings endpoint; local model is used when unset",
    )
    embedding_api_key: str = Field(
        default="",
        description="Bearer token for the embeddings endpoint",
    )
    embedding_timeout_seconds: float = Field(
        default=30.0,
        description="Per-request timeout for the embeddings endpoint",
    )
    embedding_retries: int = Field(
        default=3,
        description="Retry attempts for failed embedding requests",
    )
    embedding_backoff_factor: float = Field(
        default=0.5,
        description="Exponential backoff factor between embedding retries",
    )
    embedding_cache_max_age_hours: int = Field(
        default=168,
        description="Cached embeddings older than this are regenerated",
    )
    embedding_max_text_chars: int = Field(
        default=2000,
        description="Body text is truncated to this many characters before embedding",
    )

    # ========================================
    # Content Scoring
    # ========================================
    scoring_weight_relevance: float = Field(default=0.4, description="Relevance weight")
    scoring_weight_quality: float = Field(default=0.3, description="Quality weight")
    scoring_weight_recency: float = Field(default=0.2, description="Recency weight")
    scoring_weight_diversity: float = Field(default=0.1, description="Diversity penalty weight")
    scoring_max_age_hours: int = Field(
        default=168,
        description="Recency decays linearly to zero over this many hours",
    )
    keyword_synonyms_path: Path = Field(
        default=DEFAULT_SYNONYMS_PATH,
        description="JSON file mapping a keyword to its synonyms",
    )

    # ========================================
    # Knowledge Progression
    # ========================================
    knowledge_min_content_count: int = Field(
        default=3,
        description="Interactions required before a topic can advance a tier",
    )
    knowledge_beginner_to_intermediate: float = Field(
        default=0.7,
        description="Confidence required to leave beginner",
    )
    knowledge_intermediate_to_advanced: float = Field(
        default=0.8,
        description="Confidence required to leave intermediate",
    )
    knowledge_initial_confidence: float = Field(
        default=0.3,
        description="Confidence of a new topic when no comprehension score is given",
    )

    # ========================================
    # Gap Analysis
    # ========================================
    gap_detection_threshold: float = Field(
        default=0.3,
        description="Prerequisites below this confidence count as gaps",
    )
    gap_shallow_confidence: float = Field(
        default=0.5,
        description="Confidence below this despite enough content is a shallow gap",
    )
    gap_outdated_confidence: float = Field(
        default=0.7,
        description="Confident topics untouched for too long are outdated",
    )
    gap_outdated_months: int = Field(
        default=6,
        description="Months without interaction before a topic is outdated",
    )
    prerequisite_catalog_path: Path = Field(
        default=DEFAULT_PREREQUISITES_PATH,
        description="JSON file with the topic prerequisite graph",
    )

    # ========================================
    # Similarity & Relationships
    # ========================================
    similarity_high_threshold: float = Field(default=0.8, description="High similarity bar")
    similarity_medium_threshold: float = Field(default=0.6, description="Medium similarity bar")
    similarity_low_threshold: float = Field(default=0.4, description="Low similarity bar")
    relationship_min_strength: float = Field(
        default=0.3,
        description="Relationships weaker than this are not emitted",
    )
    topic_overlap_prefilter: float = Field(
        default=0.1,
        description="Pairs with less topic overlap skip similarity entirely",
    )
    cross_domain_min_strength: float = Field(
        default=0.4,
        description="Minimum strength of a cross-domain connection",
    )
    similarity_max_workers: int = Field(
        default=4,
        description="Thread pool size for pairwise comparisons",
    )
    similarity_embedding_memo_size: int = Field(
        default=2048,
        description="Embeddings kept in memory per similarity service, least recently used evicted",
    )
    default_novelty_preference: float = Field(
        default=0.7,
        description="Novelty preference used when a profile does not set one",
    )

    def get_scoring_weights(self) -> dict[str, float]:
        """Get composite scoring weights as a dictionary."""
        return {
            "relevance": self.scoring_weight_relevance,
            "quality": self.scoring_weight_quality,
            "recency": self.scoring_weight_recency,
            "diversity": self.scoring_weight_diversity,
        }

    def get_progression_config(self) -> dict[str, Any]:
        """Get knowledge progression thresholds as a dictionary."""
        return {
            "min_content_count": self.knowledge_min_content_count,
            "beginner_to_intermediate": self.knowledge_beginner_to_intermediate,
            "intermediate_to_advanced": self.knowledge_intermediate_to_advanced,
            "initial_confidence": self.knowledge_initial_confidence,
        }

    def get_similarity_thresholds(self) -> dict[str, float]:
        """Get similarity bands as a dictionary."""
        return {
            "high": self.similarity_high_threshold,
            "medium": self.similarity_medium_threshold,
            "low": self.similarity_low_threshold,
        }

    def get_embedding_config(self) -> dict[str, Any]:
        """Get embedding provider configuration as a dictionary."""
        return {
            "model": self.embedding_model,
            "dimension": self.embedding_dimension,
            "api_url": self.embedding_api_url,
            "timeout": self.embedding_timeout_seconds,
            "retries": self.embedding_retries,
            "backoff_factor": self.embedding_backoff_factor,
            "cache_max_age_hours": self.embedding_cache_max_age_hours,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
