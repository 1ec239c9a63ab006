"""
Cross-domain connection discovery.

Each item is assigned one professional domain by keyword matching over its
topics. Pairs of items from different domains are scored:

    strength = 0.6 · similarity + 0.4 · topic overlap   (+0.2 strategic pair, cap 1)

and kept at 0.4 or above. Each kept pair gets a connection type plus
bridging concepts, opportunities, synergies and risks from fixed tables.
Items without an embedding count as similarity 0.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from itertools import combinations
from typing import Sequence

from loguru import logger

from config import Settings, get_settings
from src.core.models import ContentItem, ContentRelationship, RelationshipType, clamp
from src.knowledge.complexity import ContentComplexityAnalyzer
from src.semantic.similarity_service import SemanticSimilarityService, topic_overlap

GENERAL_DOMAIN = "general"

DOMAIN_KEYWORDS: dict[str, tuple[str, ...]] = {
    "technology": ("programming", "software", "development", "tech", "coding", "api", "framework"),
    "business": ("strategy", "management", "leadership", "finance", "marketing", "sales"),
    "design": ("ui", "ux", "design", "interface", "user experience", "visual"),
    "data": ("data", "analytics", "machine learning", "ai", "statistics", "analysis"),
    "product": ("product", "roadmap", "feature", "user", "customer", "requirement"),
    "operations": ("process", "workflow", "automation", "efficiency", "operations"),
    "security": ("security", "privacy", "compliance", "risk", "vulnerability"),
    "innovation": ("innovation", "emerging", "future", "trends", "disruption"),
}

STRATEGIC_DOMAINS = frozenset({"technology", "business", "data", "product"})

BOOSTED_PAIRS = frozenset(
    frozenset(pair)
    for pair in (
        ("technology", "business"),
        ("data", "business"),
        ("design", "technology"),
        ("product", "technology"),
        ("security", "business"),
    )
)
COMPLEMENTARY_PAIRS = frozenset(
    frozenset(pair)
    for pair in (
        ("technology", "business"),
        ("design", "technology"),
        ("product", "data"),
    )
)
STRATEGIC_BOOST = 0.2

TRANSFORMATIVE_MARKERS = ("transform", "disrupt", "innovate", "revolutionize")
CAUSAL_MARKERS = ("cause", "effect", "impact", "result")

BRIDGING_KEYWORDS = (
    "integration", "platform", "system", "process", "workflow",
    "automation", "optimization", "strategy", "implementation",
)
MAX_BRIDGING_CONCEPTS = 5
MAX_LIST_ITEMS = 3
MAX_RECOMMENDATIONS = 4

DOMAIN_OPPORTUNITIES: dict[frozenset, tuple[str, ...]] = {
    frozenset(("technology", "business")): (
        "Technical leadership with business acumen",
        "Product-technology strategy alignment",
        "Digital transformation initiatives",
    ),
    frozenset(("data", "business")): (
        "Data-driven decision making",
        "Business intelligence leadership",
        "Analytics strategy development",
    ),
    frozenset(("design", "technology")): (
        "User experience engineering",
        "Design system architecture",
        "Human-centered technology development",
    ),
    frozenset(("product", "technology")): (
        "Technical product management",
        "Engineering-product collaboration",
        "Technology roadmap planning",
    ),
}

BASE_SYNERGIES = (
    "Shared knowledge base leveraging",
    "Cross-domain skill application",
    "Integrated project approach",
)
BASE_RISKS = (
    "Context switching complexity",
    "Skill depth vs breadth trade-offs",
    "Resource allocation challenges",
)


class ConnectionType(str, Enum):
    SYNERGISTIC = "synergistic"
    COMPETITIVE = "competitive"
    COMPLEMENTARY = "complementary"
    CAUSAL = "causal"
    TRANSFORMATIVE = "transformative"


TYPE_OPPORTUNITIES = {
    ConnectionType.TRANSFORMATIVE: ("Innovation leadership", "Market disruption strategy"),
    ConnectionType.SYNERGISTIC: ("Cross-functional expertise", "Integrated solutions development"),
}
TYPE_SYNERGIES = {
    ConnectionType.COMPLEMENTARY: "Complementary skill set utilization",
    ConnectionType.SYNERGISTIC: "Amplified impact through combination",
}
TYPE_RISKS = {
    ConnectionType.TRANSFORMATIVE: "High uncertainty in outcomes",
}


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass
class CrossDomainConnection:
    id: str
    primary_content_id: str
    secondary_content_id: str
    primary_domain: str
    secondary_domain: str
    connection_type: ConnectionType
    connection_strength: float
    bridging_concepts: list[str]
    professional_opportunities: list[str]
    implementation_synergies: list[str]
    risk_factors: list[str]
    confidence: float

    def to_relationship(self) -> ContentRelationship:
        return ContentRelationship(
            parent_content_id=self.primary_content_id,
            child_content_id=self.secondary_content_id,
            relationship_type=RelationshipType.CROSS_DOMAIN,
            strength=self.connection_strength,
        )


@dataclass
class DomainAnalysis:
    domain: str
    content_count: int
    key_topics: list[str]
    average_complexity: float
    connection_potential: float
    professional_relevance: float


@dataclass
class CrossDomainInsight:
    domains: list[str]
    connection_pattern: str
    strategic_implications: list[str]
    actionable_opportunities: list[str]
    skill_transfer_potential: list[str]
    market_differentiation: list[str]


@dataclass
class CrossDomainReport:
    connections: list[CrossDomainConnection] = field(default_factory=list)
    domain_analysis: list[DomainAnalysis] = field(default_factory=list)
    insights: list[CrossDomainInsight] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


# =============================================================================
# PURE HELPERS
# =============================================================================


def infer_domain(topics: Sequence[str]) -> str:
    """Domain whose keywords appear most often in the topics; first wins ties."""
    text = " ".join(topics).lower()
    best, best_score = GENERAL_DOMAIN, 0
    for domain, keywords in DOMAIN_KEYWORDS.items():
        score = sum(1 for keyword in keywords if keyword in text)
        if score > best_score:
            best, best_score = domain, score
    return best


def cross_domain_strength(similarity: float, overlap: float, domain_1: str, domain_2: str) -> float:
    strength = similarity * 0.6 + overlap * 0.4
    if frozenset((domain_1, domain_2)) in BOOSTED_PAIRS:
        strength += STRATEGIC_BOOST
    return min(1.0, strength)


def connection_type(
    item_1: ContentItem,
    item_2: ContentItem,
    domain_1: str,
    domain_2: str,
    similarity: float,
) -> ConnectionType:
    text = f"{item_1.title} {item_1.summary} {item_2.title} {item_2.summary}".lower()
    if any(marker in text for marker in TRANSFORMATIVE_MARKERS):
        return ConnectionType.TRANSFORMATIVE
    if any(marker in text for marker in CAUSAL_MARKERS):
        return ConnectionType.CAUSAL
    if similarity > 0.7:
        return ConnectionType.SYNERGISTIC
    if frozenset((domain_1, domain_2)) in COMPLEMENTARY_PAIRS:
        return ConnectionType.COMPLEMENTARY
    return ConnectionType.SYNERGISTIC


def bridging_concepts(topics_1: Sequence[str], topics_2: Sequence[str]) -> list[str]:
    """Shared topics first, then any topic that contains or is contained in a bridging keyword."""
    lowered_2 = {t.lower() for t in topics_2}
    common = [t for t in topics_1 if t.lower() in lowered_2]
    bridging = [
        t for t in (*topics_1, *topics_2)
        if any(k in t.lower() or t.lower() in k for k in BRIDGING_KEYWORDS)
    ]
    return list(dict.fromkeys([*common, *bridging]))[:MAX_BRIDGING_CONCEPTS]


def professional_opportunities(domain_1: str, domain_2: str, kind: ConnectionType) -> list[str]:
    opportunities = [
        *DOMAIN_OPPORTUNITIES.get(frozenset((domain_1, domain_2)), ()),
        *TYPE_OPPORTUNITIES.get(kind, ()),
    ]
    return opportunities[:MAX_LIST_ITEMS]


def implementation_synergies(kind: ConnectionType) -> list[str]:
    # Type-specific entry leads so the cap never drops it
    specific = TYPE_SYNERGIES.get(kind)
    synergies = [specific, *BASE_SYNERGIES] if specific else list(BASE_SYNERGIES)
    return synergies[:MAX_LIST_ITEMS]


def risk_factors(kind: ConnectionType) -> list[str]:
    specific = TYPE_RISKS.get(kind)
    risks = [specific, *BASE_RISKS] if specific else list(BASE_RISKS)
    return risks[:MAX_LIST_ITEMS]


def most_common(values: Sequence[str]) -> str:
    """Most frequent value; the earliest one wins ties."""
    return Counter(values).most_common(1)[0][0]


# =============================================================================
# ANALYZER
# =============================================================================


class CrossDomainAnalyzer:
    """
    Find connections between content from different professional domains.

    Example:
        >>> analyzer = CrossDomainAnalyzer(similarity_service)
        >>> report = analyzer.discover(items)
        >>> report.connections[0].connection_type
        <ConnectionType.COMPLEMENTARY: 'complementary'>
    """

    def __init__(
        self,
        similarity_service: SemanticSimilarityService,
        complexity_analyzer: ContentComplexityAnalyzer | None = None,
        settings: Settings | None = None,
    ):
        self.similarity_service = similarity_service
        self.complexity_analyzer = complexity_analyzer or ContentComplexityAnalyzer()
        self.settings = settings or get_settings()
        self.min_strength = self.settings.cross_domain_min_strength

    def analyze_domains(self, items: Sequence[ContentItem]) -> list[DomainAnalysis]:
        grouped: dict[str, list[ContentItem]] = {}
        for item in items:
            grouped.setdefault(infer_domain(item.topics), []).append(item)

        analyses = []
        for domain, members in grouped.items():
            topics = list(dict.fromkeys(t for item in members for t in item.topics))
            complexities = [self.complexity_analyzer.complexity_of(item) for item in members]
            analyses.append(
                DomainAnalysis(
                    domain=domain,
                    content_count=len(members),
                    key_topics=topics[:10],
                    average_complexity=sum(complexities) / len(complexities) if complexities else 0.5,
                    connection_potential=min(1.0, len(topics) / 10),
                    professional_relevance=0.9 if domain in STRATEGIC_DOMAINS else 0.7,
                )
            )
        return analyses

    def connection_for(
        self,
        item_1: ContentItem,
        item_2: ContentItem,
        domain_1: str,
        domain_2: str,
        similarity: float | None,
    ) -> CrossDomainConnection | None:
        similarity = similarity or 0.0
        strength = cross_domain_strength(
            similarity, topic_overlap(item_1.topics, item_2.topics), domain_1, domain_2
        )
        if strength < self.min_strength:
            return None

        kind = connection_type(item_1, item_2, domain_1, domain_2, similarity)
        return CrossDomainConnection(
            id=f"cross-domain-{item_1.id}-{item_2.id}",
            primary_content_id=item_1.id,
            secondary_content_id=item_2.id,
            primary_domain=domain_1,
            secondary_domain=domain_2,
            connection_type=kind,
            connection_strength=clamp(strength),
            bridging_concepts=bridging_concepts(item_1.topics, item_2.topics),
            professional_opportunities=professional_opportunities(domain_1, domain_2, kind),
            implementation_synergies=implementation_synergies(kind),
            risk_factors=risk_factors(kind),
            confidence=min(0.9, strength + 0.1),
        )

    def find_connections(self, items: Sequence[ContentItem]) -> list[CrossDomainConnection]:
        """Strongest first. Nothing to find with fewer than two domains."""
        domains = {item.id: infer_domain(item.topics) for item in items}
        if len(set(domains.values())) < 2:
            return []

        pairs = [(a, b) for a, b in combinations(items, 2) if domains[a.id] != domains[b.id]]
        records = self.similarity_service.compare_many(pairs)

        connections = []
        for (item_1, item_2), record in zip(pairs, records):
            connection = self.connection_for(
                item_1,
                item_2,
                domains[item_1.id],
                domains[item_2.id],
                record.similarity_score if record else None,
            )
            if connection is not None:
                connections.append(connection)

        connections.sort(key=lambda c: c.connection_strength, reverse=True)
        return connections

    def insights(self, connections: Sequence[CrossDomainConnection]) -> list[CrossDomainInsight]:
        """One insight per unordered domain pair."""
        by_pair: dict[tuple[str, ...], list[CrossDomainConnection]] = {}
        for conn in connections:
            key = tuple(sorted((conn.primary_domain, conn.secondary_domain)))
            by_pair.setdefault(key, []).append(conn)

        insights = []
        for domains, conns in by_pair.items():
            pattern = most_common([c.connection_type.value for c in conns])
            average = sum(c.connection_strength for c in conns) / len(conns)
            opportunities = list(dict.fromkeys(o for c in conns for o in c.professional_opportunities))
            insights.append(
                CrossDomainInsight(
                    domains=list(domains),
                    connection_pattern=f"Primarily {pattern} relationships",
                    strategic_implications=[
                        f"Strong {pattern} potential between {domains[0]} and {domains[1]}",
                        f"{len(conns)} connection opportunities identified",
                        f"Average connection strength: {round(average * 100)}%",
                    ],
                    actionable_opportunities=opportunities[:MAX_LIST_ITEMS],
                    skill_transfer_potential=[
                        f"{domains[0]} skills applicable to {domains[1]}",
                        "Integrated approach opportunities",
                        "Cross-pollination benefits",
                    ],
                    market_differentiation=[
                        "Unique cross-domain expertise",
                        "Integrated solution capability",
                        "Multi-disciplinary perspective advantage",
                    ],
                )
            )
        return insights

    @staticmethod
    def recommendations(connections: Sequence[CrossDomainConnection]) -> list[str]:
        if not connections:
            return ["Explore content from additional professional domains to discover cross-domain opportunities"]

        recommendations = []
        strong = [c for c in connections if c.connection_strength > 0.7]
        if strong:
            recommendations.append(
                f"Prioritize developing expertise in {strong[0].primary_domain}-{strong[0].secondary_domain} integration"
            )
        if any(c.connection_type == ConnectionType.TRANSFORMATIVE for c in connections):
            recommendations.append("Explore transformative opportunities for competitive advantage")

        domains = {d for c in connections for d in (c.primary_domain, c.secondary_domain)}
        if len(domains) >= 3:
            recommendations.append("Leverage multi-domain expertise for unique market positioning")

        opportunities = list(dict.fromkeys(o for c in connections for o in c.professional_opportunities))
        if opportunities:
            recommendations.append(f"Focus on: {' and '.join(opportunities[:2])}")

        return recommendations[:MAX_RECOMMENDATIONS]

    def discover(self, items: Sequence[ContentItem]) -> CrossDomainReport:
        connections = self.find_connections(items)
        report = CrossDomainReport(
            connections=connections,
            domain_analysis=self.analyze_domains(items),
            insights=self.insights(connections),
            recommendations=self.recommendations(connections),
        )
        logger.info(
            f"Cross-domain analysis: {len(report.domain_analysis)} domains, "
            f"{len(connections)} connections"
        )
        return report
