"""
Core Module - Shared domain models and interfaces.

Components:
- models: Content, user, knowledge, gap and relationship records
- errors: Engine exception hierarchy
- repositories: Persistence protocols the engine consumes
- log_config: loguru sink setup for host applications

Design Principle:
Engine modules (src/scoring/, src/knowledge/, src/semantic/) import shared
concepts from src/core/ rather than redefining them.
"""

from src.core.errors import (
    ConfigurationError,
    ContentNotFoundError,
    DimensionMismatch,
    EmbeddingProviderError,
    EngineError,
    PrerequisiteCycleError,
)
from src.core.models import (
    ComparisonType,
    ContentCluster,
    ContentDepth,
    ContentItem,
    ContentRelationship,
    Difficulty,
    EmbeddingCacheEntry,
    GapAnalysisResult,
    GapSeverity,
    GapType,
    InteractionSignal,
    KnowledgeDepth,
    KnowledgeGap,
    RelationshipAnalysis,
    RelationshipType,
    RepetitionVerdict,
    ScoreBreakdown,
    ScoredContent,
    SimilarityRecord,
    TopicPrerequisite,
    TopicReadiness,
    UserKnowledgeState,
    UserProfile,
)

__all__ = [
    # Errors
    "EngineError",
    "DimensionMismatch",
    "ConfigurationError",
    "PrerequisiteCycleError",
    "EmbeddingProviderError",
    "ContentNotFoundError",
    # Content & users
    "ContentItem",
    "ContentDepth",
    "EmbeddingCacheEntry",
    "UserProfile",
    # Knowledge
    "KnowledgeDepth",
    "UserKnowledgeState",
    "InteractionSignal",
    "Difficulty",
    "TopicPrerequisite",
    # Gaps
    "GapType",
    "GapSeverity",
    "KnowledgeGap",
    "GapAnalysisResult",
    "TopicReadiness",
    # Relationships
    "RelationshipType",
    "ContentRelationship",
    "ContentCluster",
    "RelationshipAnalysis",
    "SimilarityRecord",
    "ComparisonType",
    "RepetitionVerdict",
    # Scoring
    "ScoreBreakdown",
    "ScoredContent",
]
