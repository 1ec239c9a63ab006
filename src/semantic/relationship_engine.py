"""
Content Relationship Engine.

Discovers how content items relate to each other and derives three views of
the resulting graph:

- connection map: undirected adjacency for navigation
- learning path:  topological order over builds_on / prerequisite edges
- clusters:       items grouped by primary topic, with the most connected
                  member as the cluster's center

Pair classification is an ordered list of rules; the first rule whose
condition holds decides the pair, even if its strength then falls below the
floor:

    1. similarity > 0.7                        builds_on (complexity gap > 0.3) or related
    2. 0.4 < similarity <= 0.7, overlap > 0.5  prerequisite (keyword heuristic) or related
    3. similarity < 0.2, overlap > 0.3         contrasts
    4. no embedding, overlap >= 0.5            related (topic-only fallback)

Pairs whose topic overlap is below 0.1 are skipped before any similarity
lookup. Relationships weaker than 0.3 are never emitted.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from itertools import combinations
from typing import Iterable, Sequence

from loguru import logger

from config import Settings, get_settings
from src.core.models import (
    ContentCluster,
    ContentItem,
    ContentRelationship,
    RelationshipAnalysis,
    RelationshipType,
    clamp,
    pair_key,
)
from src.core.repositories import RelationshipRepository
from src.knowledge.complexity import ContentComplexityAnalyzer
from src.semantic.similarity_service import SemanticSimilarityService, topic_overlap

FUNDAMENTAL_KEYWORDS = ("basic", "introduction", "getting started", "fundamentals", "overview")
ADVANCED_KEYWORDS = ("advanced", "deep dive", "optimization", "best practices", "patterns")

BUILDS_ON_COMPLEXITY_GAP = 0.3
SUGGESTION_OVERLAP = 0.5
MAX_SUGGESTIONS = 10


@dataclass(frozen=True)
class PairFeatures:
    """What the classification rules know about a pair."""

    item_1: ContentItem
    item_2: ContentItem
    similarity: float | None
    overlap: float
    complexity_1: float
    complexity_2: float


def prerequisite_direction(item_1: ContentItem, item_2: ContentItem) -> tuple[str, str] | None:
    """(prerequisite id, dependent id) when one item reads as fundamental and the other as advanced."""
    text_1 = f"{item_1.title} {item_1.summary}".lower()
    text_2 = f"{item_2.title} {item_2.summary}".lower()

    fundamental_1 = any(k in text_1 for k in FUNDAMENTAL_KEYWORDS)
    advanced_1 = any(k in text_1 for k in ADVANCED_KEYWORDS)
    fundamental_2 = any(k in text_2 for k in FUNDAMENTAL_KEYWORDS)
    advanced_2 = any(k in text_2 for k in ADVANCED_KEYWORDS)

    if fundamental_1 and advanced_2:
        return item_1.id, item_2.id
    if fundamental_2 and advanced_1:
        return item_2.id, item_1.id
    return None


# =============================================================================
# RULES
# =============================================================================


class RelationshipRule(ABC):
    """One branch of pair classification."""

    @property
    @abstractmethod
    def rule_name(self) -> str:
        ...

    @abstractmethod
    def applies(self, pair: PairFeatures) -> bool:
        ...

    @abstractmethod
    def classify(self, pair: PairFeatures) -> tuple[str, str, RelationshipType, float]:
        """Return (parent id, child id, type, strength)."""
        ...


class StrongSimilarityRule(RelationshipRule):
    rule_name = "Strong similarity"

    def applies(self, pair: PairFeatures) -> bool:
        return pair.similarity is not None and pair.similarity > 0.7

    def classify(self, pair: PairFeatures) -> tuple[str, str, RelationshipType, float]:
        strength = min(1.0, pair.similarity + pair.overlap * 0.2)
        diff = pair.complexity_2 - pair.complexity_1
        if abs(diff) > BUILDS_ON_COMPLEXITY_GAP:
            # Simpler item is the parent
            if diff > 0:
                return pair.item_1.id, pair.item_2.id, RelationshipType.BUILDS_ON, strength
            return pair.item_2.id, pair.item_1.id, RelationshipType.BUILDS_ON, strength
        return pair.item_1.id, pair.item_2.id, RelationshipType.RELATED, strength


class SharedTopicSimilarityRule(RelationshipRule):
    rule_name = "Moderate similarity with shared topics"

    def applies(self, pair: PairFeatures) -> bool:
        return pair.similarity is not None and 0.4 < pair.similarity <= 0.7 and pair.overlap > 0.5

    def classify(self, pair: PairFeatures) -> tuple[str, str, RelationshipType, float]:
        strength = pair.similarity * 0.7 + pair.overlap * 0.3
        direction = prerequisite_direction(pair.item_1, pair.item_2)
        if direction is not None:
            return direction[0], direction[1], RelationshipType.PREREQUISITE, strength
        return pair.item_1.id, pair.item_2.id, RelationshipType.RELATED, strength


class ContrastRule(RelationshipRule):
    rule_name = "Same topics, divergent content"

    def applies(self, pair: PairFeatures) -> bool:
        return pair.similarity is not None and pair.similarity < 0.2 and pair.overlap > 0.3

    def classify(self, pair: PairFeatures) -> tuple[str, str, RelationshipType, float]:
        return pair.item_1.id, pair.item_2.id, RelationshipType.CONTRASTS, pair.overlap


class TopicOnlyRule(RelationshipRule):
    """Used only when an embedding is missing. Never yields contrasts."""

    rule_name = "Topic overlap without embeddings"
    min_overlap = 0.5
    weight = 0.6

    def applies(self, pair: PairFeatures) -> bool:
        return pair.similarity is None and pair.overlap >= self.min_overlap

    def classify(self, pair: PairFeatures) -> tuple[str, str, RelationshipType, float]:
        return pair.item_1.id, pair.item_2.id, RelationshipType.RELATED, pair.overlap * self.weight


DEFAULT_RELATIONSHIP_RULES: tuple[RelationshipRule, ...] = (
    StrongSimilarityRule(),
    SharedTopicSimilarityRule(),
    ContrastRule(),
    TopicOnlyRule(),
)


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass
class ContentRelationshipGroups:
    """Relationships of one content item, grouped by role."""

    prerequisites: list[ContentRelationship] = field(default_factory=list)
    dependents: list[ContentRelationship] = field(default_factory=list)
    related: list[ContentRelationship] = field(default_factory=list)
    contrasts: list[ContentRelationship] = field(default_factory=list)


@dataclass
class SuggestedRelationship:
    content_id_1: str
    content_id_2: str
    relationship_type: RelationshipType
    confidence: float
    reasoning: str


@dataclass
class MissingConnection:
    topic: str
    content_ids: list[str]
    reason: str


@dataclass
class RelationshipRecommendation:
    suggested_relationships: list[SuggestedRelationship]
    missing_connections: list[MissingConnection]


# =============================================================================
# GRAPH VIEWS
# =============================================================================


def connection_map(relationships: Iterable[ContentRelationship]) -> dict[str, list[str]]:
    """Undirected adjacency list, both directions stored."""
    adjacency: dict[str, list[str]] = {}
    for rel in relationships:
        forward = adjacency.setdefault(rel.parent_content_id, [])
        if rel.child_content_id not in forward:
            forward.append(rel.child_content_id)
        backward = adjacency.setdefault(rel.child_content_id, [])
        if rel.parent_content_id not in backward:
            backward.append(rel.parent_content_id)
    return adjacency


def content_learning_path(content_ids: Sequence[str], relationships: Iterable[ContentRelationship]) -> list[str]:
    """
    Kahn topological sort over directional edges.

    Nodes caught in a cycle cannot be ordered; they are appended in input
    order after everything that could be.
    """
    nodes = list(dict.fromkeys(content_ids))
    known = set(nodes)
    children: dict[str, list[str]] = {node: [] for node in nodes}
    in_degree = {node: 0 for node in nodes}

    seen_edges: set[tuple[str, str]] = set()
    for rel in relationships:
        if not rel.is_directional or rel.key in seen_edges:
            continue
        if rel.parent_content_id in known and rel.child_content_id in known:
            seen_edges.add(rel.key)
            children[rel.parent_content_id].append(rel.child_content_id)
            in_degree[rel.child_content_id] += 1

    queue = deque(node for node in nodes if in_degree[node] == 0)
    path = []
    while queue:
        node = queue.popleft()
        path.append(node)
        for child in children[node]:
            in_degree[child] -= 1
            if in_degree[child] == 0:
                queue.append(child)

    if len(path) < len(nodes):
        placed = set(path)
        leftover = [node for node in nodes if node not in placed]
        logger.warning(f"Content graph has a cycle; {len(leftover)} items appended unordered")
        path.extend(leftover)
    return path


def content_clusters(
    items: Sequence[ContentItem],
    relationships: Sequence[ContentRelationship],
    complexities: dict[str, float],
) -> list[ContentCluster]:
    """Group by primary topic; clusters need at least two members."""
    groups: dict[str, list[str]] = {}
    for item in items:
        groups.setdefault(item.primary_topic, []).append(item.id)

    degree: dict[str, int] = {}
    for rel in relationships:
        degree[rel.parent_content_id] = degree.get(rel.parent_content_id, 0) + 1
        degree[rel.child_content_id] = degree.get(rel.child_content_id, 0) + 1

    clusters = []
    for topic, content_ids in groups.items():
        if len(content_ids) < 2:
            continue
        # max() keeps the first of equally connected members
        central = max(content_ids, key=lambda cid: degree.get(cid, 0))
        scores = [complexities[cid] for cid in content_ids if cid in complexities]
        clusters.append(
            ContentCluster(
                topic=topic,
                content_ids=content_ids,
                central_content_id=central,
                average_complexity=sum(scores) / len(scores) if scores else 0.5,
            )
        )
    return clusters


# =============================================================================
# ENGINE
# =============================================================================


class RelationshipEngine:
    """
    Discover relationships between content items.

    Example:
        >>> engine = RelationshipEngine(similarity_service, relationship_repo)
        >>> analysis = engine.discover(items)
        >>> analysis.learning_path[:3]
        ['intro-react', 'react-hooks', 'react-performance']
    """

    def __init__(
        self,
        similarity_service: SemanticSimilarityService,
        repository: RelationshipRepository | None = None,
        complexity_analyzer: ContentComplexityAnalyzer | None = None,
        settings: Settings | None = None,
        rules: Iterable[RelationshipRule] | None = None,
    ):
        self.similarity_service = similarity_service
        self.repository = repository
        self.complexity_analyzer = complexity_analyzer or ContentComplexityAnalyzer()
        self.settings = settings or get_settings()
        self.min_strength = self.settings.relationship_min_strength
        self.overlap_prefilter = self.settings.topic_overlap_prefilter
        self.rules = tuple(rules) if rules is not None else DEFAULT_RELATIONSHIP_RULES

    def classify(self, pair: PairFeatures) -> ContentRelationship | None:
        """Apply the first matching rule and enforce the strength floor."""
        for rule in self.rules:
            if not rule.applies(pair):
                continue
            parent_id, child_id, rel_type, strength = rule.classify(pair)
            strength = clamp(strength)
            if strength < self.min_strength:
                return None
            logger.debug(f"{rule.rule_name}: {parent_id} -> {child_id} ({rel_type.value}, {strength:.2f})")
            return ContentRelationship(parent_id, child_id, rel_type, strength)
        return None

    def _features(
        self,
        item_1: ContentItem,
        item_2: ContentItem,
        similarity: float | None,
        overlap: float,
        complexities: dict[str, float],
    ) -> PairFeatures:
        return PairFeatures(
            item_1=item_1,
            item_2=item_2,
            similarity=similarity,
            overlap=overlap,
            complexity_1=complexities[item_1.id],
            complexity_2=complexities[item_2.id],
        )

    def analyze_pair(self, item_1: ContentItem, item_2: ContentItem) -> ContentRelationship | None:
        overlap = topic_overlap(item_1.topics, item_2.topics)
        if overlap < self.overlap_prefilter:
            return None
        similarity = self.similarity_service.similarity(item_1, item_2)
        complexities = {
            item_1.id: self.complexity_analyzer.complexity_of(item_1),
            item_2.id: self.complexity_analyzer.complexity_of(item_2),
        }
        return self.classify(self._features(item_1, item_2, similarity, overlap, complexities))

    def analyze_pairs(self, items: Sequence[ContentItem]) -> list[ContentRelationship]:
        """Classify every candidate pair; similarity lookups run in parallel."""
        complexities = {item.id: self.complexity_analyzer.complexity_of(item) for item in items}

        candidates = []
        for item_1, item_2 in combinations(items, 2):
            overlap = topic_overlap(item_1.topics, item_2.topics)
            if overlap >= self.overlap_prefilter:
                candidates.append((item_1, item_2, overlap))

        records = self.similarity_service.compare_many([(a, b) for a, b, _ in candidates])

        relationships = []
        for (item_1, item_2, overlap), record in zip(candidates, records):
            similarity = record.similarity_score if record is not None else None
            relationship = self.classify(self._features(item_1, item_2, similarity, overlap, complexities))
            if relationship is not None:
                relationships.append(relationship)
        return relationships

    def _existing_for(self, items: Sequence[ContentItem]) -> list[ContentRelationship]:
        if self.repository is None:
            return []
        ids = {item.id for item in items}
        return [r for r in self.repository.list_all() if r.parent_content_id in ids or r.child_content_id in ids]

    def discover(
        self,
        items: Sequence[ContentItem],
        existing: Iterable[ContentRelationship] | None = None,
    ) -> RelationshipAnalysis:
        """
        Find new relationships and build the graph views.

        Already-known relationships win over newly discovered ones for the
        same pair of items. New relationships are persisted.
        """
        existing = list(existing) if existing is not None else self._existing_for(items)
        known_pairs = {pair_key(r.parent_content_id, r.child_content_id) for r in existing}

        discovered = [
            r for r in self.analyze_pairs(items)
            if pair_key(r.parent_content_id, r.child_content_id) not in known_pairs
        ]
        if self.repository is not None and discovered:
            self.repository.save_many(discovered)

        relationships = [*existing, *discovered]
        complexities = {item.id: self.complexity_analyzer.complexity_of(item) for item in items}

        analysis = RelationshipAnalysis(
            relationships=relationships,
            connection_map=connection_map(relationships),
            learning_path=content_learning_path([item.id for item in items], relationships),
            clusters=content_clusters(items, relationships, complexities),
        )
        logger.info(
            f"Relationship discovery: {len(items)} items, {len(discovered)} new, "
            f"{len(existing)} existing, {len(analysis.clusters)} clusters"
        )
        return analysis

    def relationships_for(
        self,
        content_id: str,
        relationships: Iterable[ContentRelationship] | None = None,
    ) -> ContentRelationshipGroups:
        """Group an item's relationships into prerequisites, dependents, related and contrasts."""
        if relationships is None:
            relationships = self.repository.list_for_content(content_id) if self.repository else []

        groups = ContentRelationshipGroups()
        for rel in relationships:
            if not rel.touches(content_id):
                continue
            if rel.is_directional:
                if rel.child_content_id == content_id:
                    groups.prerequisites.append(rel)
                else:
                    groups.dependents.append(rel)
            elif rel.relationship_type == RelationshipType.RELATED:
                groups.related.append(rel)
            elif rel.relationship_type == RelationshipType.CONTRASTS:
                groups.contrasts.append(rel)
        return groups

    def recommend_relationships(
        self,
        items: Sequence[ContentItem],
        existing: Iterable[ContentRelationship] | None = None,
    ) -> RelationshipRecommendation:
        """Unconnected pairs that share most of their topics, and topics whose items are isolated."""
        existing = list(existing) if existing is not None else self._existing_for(items)
        connected = {pair_key(r.parent_content_id, r.child_content_id) for r in existing}

        suggestions = []
        for item_1, item_2 in combinations(items, 2):
            overlap = topic_overlap(item_1.topics, item_2.topics)
            if overlap > SUGGESTION_OVERLAP and pair_key(item_1.id, item_2.id) not in connected:
                suggestions.append(
                    SuggestedRelationship(
                        content_id_1=item_1.id,
                        content_id_2=item_2.id,
                        relationship_type=RelationshipType.RELATED,
                        confidence=overlap,
                        reasoning=f"High topic overlap ({round(overlap * 100)}%)",
                    )
                )
        suggestions.sort(key=lambda s: s.confidence, reverse=True)

        topic_groups: dict[str, list[str]] = {}
        for item in items:
            for topic in item.topics:
                topic_groups.setdefault(topic, []).append(item.id)

        missing = []
        for topic, content_ids in topic_groups.items():
            if len(content_ids) < 2:
                continue
            members = set(content_ids)
            if not any(r.parent_content_id in members and r.child_content_id in members for r in existing):
                missing.append(
                    MissingConnection(
                        topic=topic,
                        content_ids=content_ids,
                        reason=f"{len(content_ids)} pieces of content about {topic} are not connected",
                    )
                )

        return RelationshipRecommendation(
            suggested_relationships=suggestions[:MAX_SUGGESTIONS],
            missing_connections=missing,
        )
