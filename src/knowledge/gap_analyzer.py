"""
Knowledge Gap Analyzer.

Combines the static prerequisite catalog with a user's live knowledge state
to find four kinds of gaps:

- prerequisite: an engaged topic depends on something the user lacks
- shallow:      plenty of content consumed, confidence still low
- outdated:     confident once, untouched for months
- missing:      declared interest with no knowledge tracked at all

Each kind is an independent rule. Rules run in a fixed order, gaps are then
ranked by severity and priority, and a learning path is produced by a
topological sort over the gap topics and their transitive prerequisites.

Analysis is a pure function of (knowledge rows, profile, catalog, now), so
repeated calls with unchanged inputs give identical output.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Sequence

from dateutil.relativedelta import relativedelta
from loguru import logger

from config import Settings, get_settings
from src.core.models import (
    GapAnalysisResult,
    GapSeverity,
    GapType,
    KnowledgeGap,
    TopicReadiness,
    UserKnowledgeState,
    UserProfile,
    ensure_utc,
    normalize_topic,
    utc_now,
)
from src.core.repositories import KnowledgeStateRepository
from src.knowledge.prerequisites import PrerequisiteCatalog

FOUNDATIONAL_CUTOFF = 0.7
READY_TO_LEARN = 0.8

SUGGESTION_TEMPLATES = {
    "beginner": (
        "{topic} fundamentals",
        "Introduction to {topic}",
        "{topic} basics for beginners",
        "Getting started with {topic}",
    ),
    "foundational": (
        "{topic} core concepts",
        "Deep dive into {topic}",
        "{topic} best practices",
        "Advanced {topic} patterns",
    ),
    "update": (
        "What's new in {topic}",
        "{topic} recent developments",
        "Modern {topic} practices",
        "{topic} trends and updates",
    ),
}


def content_suggestions(topic: str, kind: str = "beginner") -> tuple[str, ...]:
    return tuple(template.format(topic=topic) for template in SUGGESTION_TEMPLATES[kind])


def severity_for(combined_importance: float) -> GapSeverity:
    if combined_importance > 0.8:
        return GapSeverity.CRITICAL
    if combined_importance > 0.6:
        return GapSeverity.HIGH
    if combined_importance > 0.4:
        return GapSeverity.MEDIUM
    return GapSeverity.LOW


@dataclass(frozen=True)
class GapThresholds:
    detection: float = 0.3
    shallow_confidence: float = 0.5
    shallow_min_content: int = 3
    outdated_confidence: float = 0.7
    outdated_months: int = 6

    @classmethod
    def from_settings(cls, settings: Settings) -> GapThresholds:
        return cls(
            detection=settings.gap_detection_threshold,
            shallow_confidence=settings.gap_shallow_confidence,
            shallow_min_content=settings.knowledge_min_content_count,
            outdated_confidence=settings.gap_outdated_confidence,
            outdated_months=settings.gap_outdated_months,
        )


@dataclass(frozen=True)
class GapContext:
    """Everything a gap rule may look at."""

    states: dict[str, UserKnowledgeState]
    profile: UserProfile | None
    catalog: PrerequisiteCatalog
    thresholds: GapThresholds
    now: datetime

    @property
    def engaged_topics(self) -> list[str]:
        topics = set(self.states)
        if self.profile is not None:
            topics.update(self.profile.engaged_topics)
        return sorted(topics)

    def is_known(self, topic: str) -> bool:
        state = self.states.get(topic)
        return state is not None and state.confidence_level >= self.thresholds.detection


@dataclass
class TopicSuggestion:
    topic: str
    reasoning: str
    priority: float
    readiness_score: float


# =============================================================================
# RULES
# =============================================================================


class GapRule(ABC):
    """One kind of gap detection."""

    @property
    @abstractmethod
    def rule_name(self) -> str:
        ...

    @abstractmethod
    def detect(self, context: GapContext) -> list[KnowledgeGap]:
        ...


class PrerequisiteGapRule(GapRule):
    """
    Prerequisites of engaged topics that the user lacks.

    A prerequisite needed by several engaged topics becomes one gap listing
    all of them, with the highest severity and priority among them.
    """

    rule_name = "Missing prerequisites"

    def detect(self, context: GapContext) -> list[KnowledgeGap]:
        catalog = context.catalog
        found: dict[str, dict] = {}

        for topic in context.engaged_topics:
            for prerequisite in catalog.prerequisites_of(topic):
                if context.is_known(prerequisite):
                    continue
                importance = catalog.importance(topic)
                foundational = catalog.foundational_importance(prerequisite)
                severity = severity_for((importance + foundational) / 2)

                entry = found.setdefault(
                    prerequisite,
                    {"dependents": [], "severity": severity, "priority": importance},
                )
                entry["dependents"].append(topic)
                if severity.weight > entry["severity"].weight:
                    entry["severity"] = severity
                entry["priority"] = max(entry["priority"], importance)

        return [
            KnowledgeGap(
                topic=prerequisite,
                gap_type=GapType.PREREQUISITE,
                severity=entry["severity"],
                description=f"Missing prerequisite knowledge for {', '.join(entry['dependents'])}",
                suggested_content=content_suggestions(prerequisite),
                related_topics=tuple(entry["dependents"]),
                priority=entry["priority"],
                foundational_importance=catalog.foundational_importance(prerequisite),
            )
            for prerequisite, entry in found.items()
        ]


class ShallowKnowledgeRule(GapRule):
    rule_name = "Shallow knowledge"

    def detect(self, context: GapContext) -> list[KnowledgeGap]:
        limits = context.thresholds
        return [
            KnowledgeGap(
                topic=state.topic,
                gap_type=GapType.SHALLOW,
                severity=GapSeverity.MEDIUM,
                description=f"Low confidence despite consuming {state.content_count} pieces of content",
                suggested_content=content_suggestions(state.topic, "foundational"),
                related_topics=context.catalog.related_topics(state.topic),
                priority=0.6,
                foundational_importance=context.catalog.foundational_importance(state.topic),
            )
            for topic, state in sorted(context.states.items())
            if state.confidence_level < limits.shallow_confidence
            and state.content_count >= limits.shallow_min_content
        ]


class OutdatedKnowledgeRule(GapRule):
    rule_name = "Outdated knowledge"

    def detect(self, context: GapContext) -> list[KnowledgeGap]:
        limits = context.thresholds
        cutoff = ensure_utc(context.now) - relativedelta(months=limits.outdated_months)
        return [
            KnowledgeGap(
                topic=state.topic,
                gap_type=GapType.OUTDATED,
                severity=GapSeverity.LOW,
                description=(
                    f"No recent interaction with {state.topic} "
                    f"(last: {state.last_interaction:%a %b %d %Y})"
                ),
                suggested_content=content_suggestions(state.topic, "update"),
                related_topics=context.catalog.related_topics(state.topic),
                priority=0.3,
                foundational_importance=context.catalog.foundational_importance(state.topic),
            )
            for topic, state in sorted(context.states.items())
            if state.confidence_level > limits.outdated_confidence
            and ensure_utc(state.last_interaction) < cutoff
        ]


class InterestGapRule(GapRule):
    rule_name = "Untracked interests"

    def detect(self, context: GapContext) -> list[KnowledgeGap]:
        if context.profile is None:
            return []
        interests = dict.fromkeys(
            normalize_topic(t) for t in (*context.profile.interests, *context.profile.curiosity_areas)
        )
        return [
            KnowledgeGap(
                topic=interest,
                gap_type=GapType.MISSING,
                severity=GapSeverity.MEDIUM,
                description=f"Expressed interest in {interest} but no knowledge tracked",
                suggested_content=content_suggestions(interest, "beginner"),
                related_topics=context.catalog.related_topics(interest),
                priority=0.7,
                foundational_importance=context.catalog.foundational_importance(interest),
            )
            for interest in interests
            if interest not in context.states
        ]


DEFAULT_GAP_RULES: tuple[GapRule, ...] = (
    PrerequisiteGapRule(),
    ShallowKnowledgeRule(),
    OutdatedKnowledgeRule(),
    InterestGapRule(),
)


# =============================================================================
# ANALYZER
# =============================================================================


def recommended_actions(gaps: Sequence[KnowledgeGap]) -> list[str]:
    actions = []
    critical = sum(1 for g in gaps if g.severity == GapSeverity.CRITICAL)
    foundational = sum(1 for g in gaps if g.foundational_importance > FOUNDATIONAL_CUTOFF)
    shallow = sum(1 for g in gaps if g.gap_type == GapType.SHALLOW)
    outdated = sum(1 for g in gaps if g.gap_type == GapType.OUTDATED)

    if critical:
        actions.append(f"Address {critical} critical knowledge gaps immediately")
    if foundational:
        actions.append(f"Focus on {foundational} foundational topics that unlock other areas")
    if any(g.gap_type == GapType.PREREQUISITE for g in gaps):
        actions.append("Learn prerequisite topics before advancing to dependent areas")
    if shallow:
        actions.append(f"Deepen understanding in {shallow} areas with low confidence")
    if outdated:
        actions.append(f"Refresh knowledge in {outdated} areas with stale information")
    return actions


def learning_path(gaps: Sequence[KnowledgeGap], catalog: PrerequisiteCatalog) -> list[str]:
    """
    Order gap topics so every prerequisite comes before its dependents.

    The DAG holds the gap topics plus their transitive prerequisites. Kahn's
    algorithm is seeded with zero in-degree nodes in discovery order; only
    gap topics are emitted.
    """
    gap_topics = list(dict.fromkeys(g.topic for g in gaps))
    nodes: dict[str, None] = {}
    for topic in gap_topics:
        nodes[topic] = None
        for prerequisite in catalog.transitive_prerequisites(topic):
            nodes[prerequisite] = None

    in_degree = {node: 0 for node in nodes}
    children: dict[str, list[str]] = {node: [] for node in nodes}
    for node in nodes:
        for prerequisite in catalog.prerequisites_of(node):
            if prerequisite in nodes:
                children[prerequisite].append(node)
                in_degree[node] += 1

    queue = deque(node for node in nodes if in_degree[node] == 0)
    ordered = []
    while queue:
        node = queue.popleft()
        ordered.append(node)
        for child in children[node]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                queue.append(child)

    wanted = set(gap_topics)
    return [node for node in ordered if node in wanted]


class GapAnalyzer:
    """
    Detect and rank knowledge gaps for a user.

    Example:
        >>> analyzer = GapAnalyzer(repository=knowledge_repo)
        >>> result = analyzer.analyze_user("u1", profile)
        >>> result.learning_path
        ['programming-basics', 'javascript', 'html', 'css']
    """

    def __init__(
        self,
        catalog: PrerequisiteCatalog | None = None,
        repository: KnowledgeStateRepository | None = None,
        settings: Settings | None = None,
        rules: Iterable[GapRule] | None = None,
    ):
        self.settings = settings or get_settings()
        self.catalog = catalog or PrerequisiteCatalog.load(self.settings.prerequisite_catalog_path)
        self.repository = repository
        self.thresholds = GapThresholds.from_settings(self.settings)
        self.rules = tuple(rules) if rules is not None else DEFAULT_GAP_RULES

    def _context(
        self,
        states: Iterable[UserKnowledgeState],
        profile: UserProfile | None,
        now: datetime | None,
    ) -> GapContext:
        return GapContext(
            states={normalize_topic(s.topic): s for s in states},
            profile=profile,
            catalog=self.catalog,
            thresholds=self.thresholds,
            now=now or utc_now(),
        )

    def _states_for(self, user_id: str) -> list[UserKnowledgeState]:
        if self.repository is None:
            raise RuntimeError("GapAnalyzer needs a knowledge repository to look up users")
        return self.repository.list_for_user(user_id)

    def analyze(
        self,
        states: Iterable[UserKnowledgeState],
        profile: UserProfile | None = None,
        now: datetime | None = None,
    ) -> GapAnalysisResult:
        """Run every rule, rank the gaps and build the learning path."""
        context = self._context(states, profile, now)

        gaps: list[KnowledgeGap] = []
        for rule in self.rules:
            detected = rule.detect(context)
            logger.debug(f"{rule.rule_name}: {len(detected)} gaps")
            gaps.extend(detected)

        # An untracked interest that is also a missing prerequisite is reported once, as the prerequisite
        prerequisite_topics = {g.topic for g in gaps if g.gap_type == GapType.PREREQUISITE}
        gaps = [g for g in gaps if not (g.gap_type == GapType.MISSING and g.topic in prerequisite_topics)]

        gaps.sort(key=lambda g: (-g.severity.weight, -g.priority))

        result = GapAnalysisResult(
            identified_gaps=gaps,
            total_gaps=len(gaps),
            critical_gaps=sum(1 for g in gaps if g.severity == GapSeverity.CRITICAL),
            foundational_gaps=sum(1 for g in gaps if g.foundational_importance > FOUNDATIONAL_CUTOFF),
            recommended_actions=recommended_actions(gaps),
            learning_path=learning_path(gaps, self.catalog),
        )
        logger.info(
            f"Gap analysis (catalog v{self.catalog.version}): "
            f"{result.total_gaps} gaps, {result.critical_gaps} critical"
        )
        return result

    def analyze_user(
        self,
        user_id: str,
        profile: UserProfile | None = None,
        now: datetime | None = None,
    ) -> GapAnalysisResult:
        return self.analyze(self._states_for(user_id), profile, now)

    def analyze_topic_gaps(self, topic: str, states: Iterable[UserKnowledgeState]) -> TopicReadiness:
        """How many of a topic's direct prerequisites the user already has."""
        topic = normalize_topic(topic)
        context = self._context(states, None, None)
        prerequisites = self.catalog.prerequisites_of(topic)

        missing = [
            KnowledgeGap(
                topic=prerequisite,
                gap_type=GapType.PREREQUISITE,
                severity=GapSeverity.HIGH,
                description=f"Required prerequisite for learning {topic}",
                suggested_content=content_suggestions(prerequisite),
                related_topics=(topic,),
                priority=0.9,
                foundational_importance=self.catalog.foundational_importance(prerequisite),
            )
            for prerequisite in prerequisites
            if not context.is_known(prerequisite)
        ]
        readiness = (len(prerequisites) - len(missing)) / len(prerequisites) if prerequisites else 1.0

        return TopicReadiness(
            topic=topic,
            missing_prerequisites=missing,
            readiness_score=readiness,
            blockers=[f"Missing knowledge in {g.topic}" for g in missing],
            recommended_preparation=[f"Learn {g.topic} fundamentals" for g in missing],
        )

    def topic_readiness(self, user_id: str, topic: str) -> TopicReadiness:
        return self.analyze_topic_gaps(topic, self._states_for(user_id))

    def suggest_next_topics(
        self,
        states: Iterable[UserKnowledgeState],
        limit: int = 5,
    ) -> list[TopicSuggestion]:
        """Catalog topics the user has not started but is ready for."""
        context = self._context(states, None, None)
        suggestions = []

        for entry in self.catalog:
            if entry.topic in context.states:
                continue
            total = len(entry.prerequisites)
            met = sum(1 for p in entry.prerequisites if context.is_known(p))
            readiness = met / total if total else 1.0
            if readiness >= READY_TO_LEARN:
                suggestions.append(
                    TopicSuggestion(
                        topic=entry.topic,
                        reasoning=f"Ready to learn - {met}/{total} prerequisites met",
                        priority=entry.importance,
                        readiness_score=readiness,
                    )
                )

        suggestions.sort(key=lambda s: s.priority * s.readiness_score, reverse=True)
        return suggestions[:limit]
