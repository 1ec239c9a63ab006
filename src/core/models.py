"""
Domain models for the personalization engine.

Content, users and their per-topic knowledge, plus the derived records the
engine produces (gaps, relationships, clusters, similarity records). Closed
sets are string enums so they serialize as their plain values.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a value into [low, high]."""
    return max(low, min(high, value))


def normalize_topic(topic: str) -> str:
    """Topics are keyed lower-case with surrounding whitespace removed."""
    return topic.strip().lower()


def pair_key(content_id_1: str, content_id_2: str) -> tuple[str, str]:
    """Order-independent key for a pair of content ids."""
    if content_id_1 <= content_id_2:
        return (content_id_1, content_id_2)
    return (content_id_2, content_id_1)


# =============================================================================
# ENUMS
# =============================================================================


class ContentDepth(str, Enum):
    """How much detail a user wants in delivered content."""
    BRIEF = "brief"
    DETAILED = "detailed"


class KnowledgeDepth(str, Enum):
    """Learning stage for a topic. Only ever advances forward."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def rank(self) -> int:
        return _DEPTH_ORDER.index(self)

    @property
    def next_level(self) -> KnowledgeDepth | None:
        """The tier after this one, or None at advanced."""
        if self.rank + 1 < len(_DEPTH_ORDER):
            return _DEPTH_ORDER[self.rank + 1]
        return None


_DEPTH_ORDER = [KnowledgeDepth.BEGINNER, KnowledgeDepth.INTERMEDIATE, KnowledgeDepth.ADVANCED]


class Difficulty(str, Enum):
    """Perceived difficulty reported with an interaction."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class GapType(str, Enum):
    MISSING = "missing"            # Declared interest, never engaged
    SHALLOW = "shallow"            # Lots of content, little confidence
    OUTDATED = "outdated"          # Confident but stale
    PREREQUISITE = "prerequisite"  # Foundation missing under an engaged topic


class GapSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def weight(self) -> int:
        """Ordinal used for sorting, critical highest."""
        return {"low": 1, "medium": 2, "high": 3, "critical": 4}[self.value]


class RelationshipType(str, Enum):
    BUILDS_ON = "builds_on"
    PREREQUISITE = "prerequisite"
    RELATED = "related"
    CONTRASTS = "contrasts"
    CROSS_DOMAIN = "cross_domain"

    @property
    def is_directional(self) -> bool:
        """Parent must precede child only for ordering relationships."""
        return self in (RelationshipType.BUILDS_ON, RelationshipType.PREREQUISITE)


class ComparisonType(str, Enum):
    SEMANTIC = "semantic"
    TOPICAL = "topical"
    THEMATIC = "thematic"


# =============================================================================
# CONTENT & USERS
# =============================================================================


@dataclass(frozen=True)
class EmbeddingCacheEntry:
    """An embedding vector cached on a content item."""

    text_hash: str
    vector: tuple[float, ...]
    model: str
    created_at: datetime

    def __post_init__(self):
        object.__setattr__(self, "vector", tuple(float(v) for v in self.vector))

    def age_hours(self, now: datetime | None = None) -> float:
        now = ensure_utc(now or utc_now())
        return (now - ensure_utc(self.created_at)).total_seconds() / 3600

    @property
    def dimension(self) -> int:
        return len(self.vector)


@dataclass(frozen=True)
class ContentItem:
    """
    A piece of externally-sourced content.

    Immutable once created. The cached embedding is the only thing that
    changes, and that is done by building a new item via with_embedding().

    Attributes:
        source_metadata: Platform engagement counters (reddit: score, comments,
            subreddit; producthunt: votesCount, commentsCount, categories)
        complexity_score: Precomputed 0-1 complexity, if the ingestion
            pipeline already analyzed the item
    """

    id: str
    title: str
    body: str
    source_platform: str
    topics: tuple[str, ...]
    published_at: datetime
    source_metadata: dict[str, Any] = field(default_factory=dict, compare=False)
    summary: str = ""
    embedding: EmbeddingCacheEntry | None = field(default=None, compare=False)
    complexity_score: float | None = None

    def __post_init__(self):
        object.__setattr__(self, "topics", tuple(self.topics))

    @property
    def primary_topic(self) -> str:
        return self.topics[0] if self.topics else "general"

    def with_embedding(self, entry: EmbeddingCacheEntry) -> ContentItem:
        return replace(self, embedding=entry)


def _ordered_unique(values) -> tuple[str, ...]:
    seen: set[str] = set()
    result = []
    for value in values:
        value = value.strip()
        if value and value.lower() not in seen:
            seen.add(value.lower())
            result.append(value)
    return tuple(result)


@dataclass(frozen=True)
class UserProfile:
    """Preferences of a single user. Read-only to the engine."""

    user_id: str
    interests: tuple[str, ...] = ()
    tech_stack: tuple[str, ...] = ()
    professional_role: str | None = None
    industry: str | None = None
    content_depth: ContentDepth = ContentDepth.DETAILED
    novelty_preference: float = 0.7
    curiosity_areas: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "interests", _ordered_unique(self.interests))
        object.__setattr__(self, "tech_stack", _ordered_unique(self.tech_stack))
        object.__setattr__(self, "curiosity_areas", _ordered_unique(self.curiosity_areas))
        object.__setattr__(self, "content_depth", ContentDepth(self.content_depth))
        object.__setattr__(self, "novelty_preference", clamp(self.novelty_preference))

    @property
    def engaged_topics(self) -> tuple[str, ...]:
        """Every topic the user declared, lower-cased and de-duplicated."""
        return _ordered_unique(
            t.lower() for t in (*self.interests, *self.tech_stack, *self.curiosity_areas)
        )


# =============================================================================
# KNOWLEDGE STATE
# =============================================================================


@dataclass(frozen=True)
class UserKnowledgeState:
    """
    Per-user, per-topic knowledge.

    Only the knowledge tracker produces new states. knowledge_depth never
    moves backwards.
    """

    user_id: str
    topic: str
    confidence_level: float
    content_count: int
    knowledge_depth: KnowledgeDepth
    last_interaction: datetime

    @property
    def key(self) -> tuple[str, str]:
        return (self.user_id, self.topic)


@dataclass(frozen=True)
class InteractionSignal:
    """What we learned from one content interaction."""

    was_helpful: bool | None = None
    difficulty: Difficulty | None = None
    time_spent_minutes: float | None = None
    comprehension: float | None = None


@dataclass(frozen=True)
class TopicPrerequisite:
    """Static prerequisite configuration for one topic."""

    topic: str
    prerequisites: tuple[str, ...]
    difficulty: KnowledgeDepth
    importance: float


# =============================================================================
# GAPS
# =============================================================================


@dataclass(frozen=True)
class KnowledgeGap:
    topic: str
    gap_type: GapType
    severity: GapSeverity
    description: str
    suggested_content: tuple[str, ...]
    related_topics: tuple[str, ...]
    priority: float
    foundational_importance: float


@dataclass
class GapAnalysisResult:
    identified_gaps: list[KnowledgeGap]
    total_gaps: int
    critical_gaps: int
    foundational_gaps: int
    recommended_actions: list[str]
    learning_path: list[str]


@dataclass
class TopicReadiness:
    """How ready a user is to take on a topic."""

    topic: str
    missing_prerequisites: list[KnowledgeGap]
    readiness_score: float
    blockers: list[str]
    recommended_preparation: list[str]


# =============================================================================
# SIMILARITY & RELATIONSHIPS
# =============================================================================


@dataclass(frozen=True)
class SimilarityRecord:
    """Similarity of an unordered content pair."""

    content_id_1: str
    content_id_2: str
    similarity_score: float
    comparison_type: ComparisonType = ComparisonType.SEMANTIC

    @property
    def key(self) -> tuple[str, str]:
        return pair_key(self.content_id_1, self.content_id_2)

    def other(self, content_id: str) -> str:
        """The id on the opposite side of the pair."""
        return self.content_id_2 if content_id == self.content_id_1 else self.content_id_1


@dataclass(frozen=True)
class ContentRelationship:
    parent_content_id: str
    child_content_id: str
    relationship_type: RelationshipType
    strength: float

    @property
    def is_directional(self) -> bool:
        return self.relationship_type.is_directional

    @property
    def key(self) -> tuple[str, str]:
        return (self.parent_content_id, self.child_content_id)

    def touches(self, content_id: str) -> bool:
        return content_id in (self.parent_content_id, self.child_content_id)


@dataclass
class ContentCluster:
    topic: str
    content_ids: list[str]
    central_content_id: str
    average_complexity: float


@dataclass
class RelationshipAnalysis:
    relationships: list[ContentRelationship]
    connection_map: dict[str, list[str]]
    learning_path: list[str]
    clusters: list[ContentCluster]


@dataclass
class RepetitionVerdict:
    is_repetitive: bool
    matches: list[SimilarityRecord]
    threshold_used: float


# =============================================================================
# SCORING
# =============================================================================


@dataclass(frozen=True)
class ScoreBreakdown:
    """Sub-scores behind a composite content score, each 0-100."""

    relevance: float
    quality: float
    recency: float
    diversity_penalty: float


@dataclass(frozen=True)
class ScoredContent:
    item: ContentItem
    score: float
    breakdown: ScoreBreakdown
