"""
Knowledge State Tracker.

Per (user, topic) state machine:

    beginner ──> intermediate ──> advanced

A topic advances one tier when all of these hold after an interaction:
- content_count >= min content count (default 3)
- confidence >= the threshold of the current tier (0.7, then 0.8)
- progression score >= 1.0

Progression score:
    ((min(1, count / min_count) · 0.3) + (confidence · 0.7)) / tier_threshold

Depth never regresses and is only ever derived here; callers cannot set it.
Read-modify-write of a single (user, topic) row is serialized by a per-key
lock so concurrent interactions never lose an update.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from loguru import logger

from config import Settings, get_settings
from src.core.concurrency import KeyedLocks
from src.core.models import (
    Difficulty,
    InteractionSignal,
    KnowledgeDepth,
    UserKnowledgeState,
    clamp,
    normalize_topic,
    utc_now,
)
from src.core.repositories import KnowledgeStateRepository

BASE_CONFIDENCE_DELTA = 0.05
UNHELPFUL_PENALTY = 0.02
DIFFICULTY_BONUS = {Difficulty.EASY: 0.01, Difficulty.MEDIUM: 0.0, Difficulty.HARD: 0.03}
COMPREHENSION_FACTOR = 0.1

DEPTH_SCORES = {
    KnowledgeDepth.BEGINNER: 0.3,
    KnowledgeDepth.INTERMEDIATE: 0.6,
    KnowledgeDepth.ADVANCED: 1.0,
}


@dataclass(frozen=True)
class ProgressionThresholds:
    """Progression thresholds, normally built from Settings."""

    min_content_count: int = 3
    beginner_to_intermediate: float = 0.7
    intermediate_to_advanced: float = 0.8
    initial_confidence: float = 0.3

    @classmethod
    def from_settings(cls, settings: Settings) -> ProgressionThresholds:
        return cls(**settings.get_progression_config())

    def for_depth(self, depth: KnowledgeDepth) -> float | None:
        """Confidence needed to leave this tier, None at the top."""
        if depth == KnowledgeDepth.BEGINNER:
            return self.beginner_to_intermediate
        if depth == KnowledgeDepth.INTERMEDIATE:
            return self.intermediate_to_advanced
        return None


@dataclass
class ProgressionRecommendation:
    can_progress: bool
    next_level: KnowledgeDepth | None
    required_content_count: int
    current_progress: float
    blockers: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class KnowledgeSnapshot:
    """A knowledge row plus its derived progression score."""

    state: UserKnowledgeState
    progression_score: float


@dataclass
class KnowledgeOverview:
    knowledge_areas: list[KnowledgeSnapshot]
    total_topics: int
    average_confidence: float
    progression_opportunities: int


@dataclass
class DepthRecommendation:
    recommended_depth: KnowledgeDepth
    reasoning: list[str]
    user_readiness: float


# =============================================================================
# PURE RULES
# =============================================================================


def progression_score(
    confidence: float,
    content_count: int,
    depth: KnowledgeDepth,
    thresholds: ProgressionThresholds,
) -> float:
    threshold = thresholds.for_depth(depth)
    if threshold is None:
        return 1.0
    content_factor = min(1.0, content_count / thresholds.min_content_count)
    return (content_factor * 0.3 + confidence * 0.7) / threshold


def analyze_progression_readiness(
    confidence: float,
    content_count: int,
    depth: KnowledgeDepth,
    thresholds: ProgressionThresholds,
) -> ProgressionRecommendation:
    score = progression_score(confidence, content_count, depth, thresholds)
    threshold = thresholds.for_depth(depth)

    if threshold is None:
        return ProgressionRecommendation(
            can_progress=False,
            next_level=None,
            required_content_count=thresholds.min_content_count,
            current_progress=score,
        )

    blockers = []
    if content_count < thresholds.min_content_count:
        blockers.append(f"Need {thresholds.min_content_count - content_count} more pieces of content")
    if confidence < threshold:
        blockers.append("Confidence level too low")

    return ProgressionRecommendation(
        can_progress=not blockers and score >= 1.0,
        next_level=depth.next_level,
        required_content_count=thresholds.min_content_count,
        current_progress=score,
        blockers=blockers,
    )


def confidence_delta(signal: InteractionSignal) -> float:
    delta = BASE_CONFIDENCE_DELTA
    if signal.was_helpful is False:
        delta -= UNHELPFUL_PENALTY
    if signal.difficulty is not None:
        delta += DIFFICULTY_BONUS[Difficulty(signal.difficulty)]
    if signal.comprehension is not None:
        delta += (signal.comprehension - 0.5) * COMPREHENSION_FACTOR
    return delta


def apply_interaction(
    existing: UserKnowledgeState | None,
    signal: InteractionSignal,
    user_id: str,
    topic: str,
    now: datetime,
    thresholds: ProgressionThresholds,
) -> UserKnowledgeState:
    """Compute the state that follows one interaction."""
    if existing is None:
        # Comprehension of 0 is a real answer, not "unknown"
        if signal.comprehension is not None:
            confidence = clamp(signal.comprehension)
        else:
            confidence = thresholds.initial_confidence
        return UserKnowledgeState(
            user_id=user_id,
            topic=topic,
            confidence_level=confidence,
            content_count=1,
            knowledge_depth=KnowledgeDepth.BEGINNER,
            last_interaction=now,
        )

    content_count = existing.content_count + 1
    confidence = clamp(existing.confidence_level + confidence_delta(signal))

    depth = existing.knowledge_depth
    readiness = analyze_progression_readiness(confidence, content_count, depth, thresholds)
    if readiness.can_progress and readiness.next_level is not None:
        depth = readiness.next_level

    return UserKnowledgeState(
        user_id=user_id,
        topic=topic,
        confidence_level=confidence,
        content_count=content_count,
        knowledge_depth=depth,
        last_interaction=now,
    )


# =============================================================================
# TRACKER
# =============================================================================


class KnowledgeStateTracker:
    """
    Owns updates to per-user, per-topic knowledge state.

    Example:
        >>> tracker = KnowledgeStateTracker(InMemoryKnowledgeRepository())
        >>> snap = tracker.record_interaction("u1", "react", InteractionSignal(comprehension=0.8))
        >>> snap.state.knowledge_depth
        <KnowledgeDepth.BEGINNER: 'beginner'>
    """

    def __init__(self, repository: KnowledgeStateRepository, settings: Settings | None = None):
        self.repository = repository
        self.settings = settings or get_settings()
        self.thresholds = ProgressionThresholds.from_settings(self.settings)
        self._locks = KeyedLocks()

    def _snapshot(self, state: UserKnowledgeState) -> KnowledgeSnapshot:
        return KnowledgeSnapshot(
            state=state,
            progression_score=progression_score(
                state.confidence_level, state.content_count, state.knowledge_depth, self.thresholds
            ),
        )

    def record_interaction(
        self,
        user_id: str,
        topic: str,
        signal: InteractionSignal,
        now: datetime | None = None,
    ) -> KnowledgeSnapshot:
        """Apply one content interaction to the (user, topic) row and persist it."""
        topic = normalize_topic(topic)
        now = now or utc_now()

        with self._locks((user_id, topic)):
            existing = self.repository.get(user_id, topic)
            updated = apply_interaction(existing, signal, user_id, topic, now, self.thresholds)
            self.repository.save(updated)

        if existing is not None and updated.knowledge_depth != existing.knowledge_depth:
            logger.info(
                f"User {user_id} advanced in '{topic}': "
                f"{existing.knowledge_depth.value} -> {updated.knowledge_depth.value}"
            )
        return self._snapshot(updated)

    def get_state(self, user_id: str, topic: str) -> KnowledgeSnapshot | None:
        state = self.repository.get(user_id, normalize_topic(topic))
        return self._snapshot(state) if state else None

    def readiness(self, user_id: str, topic: str) -> ProgressionRecommendation | None:
        """Progression readiness for an existing row, None if never engaged."""
        state = self.repository.get(user_id, normalize_topic(topic))
        if state is None:
            return None
        return analyze_progression_readiness(
            state.confidence_level, state.content_count, state.knowledge_depth, self.thresholds
        )

    def overview(self, user_id: str) -> KnowledgeOverview:
        """All of a user's topics, most recently touched first."""
        states = sorted(
            self.repository.list_for_user(user_id),
            key=lambda s: s.last_interaction,
            reverse=True,
        )
        areas = [self._snapshot(s) for s in states]
        total = len(areas)
        average = sum(s.confidence_level for s in states) / total if total else 0.0
        opportunities = sum(
            1 for s in states
            if analyze_progression_readiness(
                s.confidence_level, s.content_count, s.knowledge_depth, self.thresholds
            ).can_progress
        )
        return KnowledgeOverview(
            knowledge_areas=areas,
            total_topics=total,
            average_confidence=average,
            progression_opportunities=opportunities,
        )

    def recommend_content_depth(self, user_id: str, topics: Iterable[str]) -> DepthRecommendation:
        """Pick a content depth from the user's standing in the given topics."""
        wanted = {normalize_topic(t) for t in topics}
        related = [s for s in self.repository.list_for_user(user_id) if s.topic in wanted]

        if not related:
            return DepthRecommendation(
                recommended_depth=KnowledgeDepth.BEGINNER,
                reasoning=["No prior knowledge in related topics"],
                user_readiness=0.2,
            )

        avg_depth = sum(DEPTH_SCORES[s.knowledge_depth] for s in related) / len(related)
        avg_confidence = sum(s.confidence_level for s in related) / len(related)
        readiness = clamp(avg_depth * 0.6 + avg_confidence * 0.4)

        if readiness < 0.4:
            depth = KnowledgeDepth.BEGINNER
            reasoning = ["Low confidence in related topics suggests starting with basics"]
        elif readiness < 0.7:
            depth = KnowledgeDepth.INTERMEDIATE
            reasoning = ["Moderate knowledge in related topics suggests intermediate content"]
        else:
            depth = KnowledgeDepth.ADVANCED
            reasoning = ["Strong knowledge in related topics allows for advanced content"]

        reasoning.append(f"Average knowledge depth: {avg_depth:.2f}")
        reasoning.append(f"Average confidence: {avg_confidence:.2f}")
        return DepthRecommendation(recommended_depth=depth, reasoning=reasoning, user_readiness=readiness)
