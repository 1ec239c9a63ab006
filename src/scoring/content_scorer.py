"""
Content Scoring Engine.

Combines four signals into a single 0-100 score per content item:

    score = wR·relevance + wQ·quality + wRec·recency − wD·diversity_penalty

Where:
    relevance  = interest / tech-stack / role keyword matches (synonym-aware)
    quality    = platform-specific engagement heuristic
    recency    = linear decay to zero over the max-age horizon
    diversity  = word-overlap penalty against items already scored

Scoring is a pure function of its inputs. Batch scoring evaluates diversity
against previously processed items only, in input order, so results are
reproducible.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Callable, Iterable, Mapping, Sequence

from loguru import logger

from config import Settings, get_settings
from src.core.errors import ConfigurationError
from src.core.models import (
    ContentDepth,
    ContentItem,
    ScoreBreakdown,
    ScoredContent,
    UserProfile,
    clamp,
    ensure_utc,
    utc_now,
)
from src.scoring.keywords import KeywordSynonyms

# Relevance points
INTEREST_POINTS = 10
INTEREST_CAP = 50
TECH_POINTS = 8
TECH_CAP = 40
ROLE_POINTS = 10

# Platform quality heuristics
QUALITY_SUBREDDITS = {
    "programming", "webdev", "technology", "MachineLearning",
    "javascript", "python", "reactjs", "devops",
}
HIGH_QUALITY_CATEGORIES = [
    "developer tools", "design tools", "productivity",
    "artificial intelligence", "api", "saas",
]

# Diversity penalty tiers: (similarity above, penalty)
DIVERSITY_TIERS = [(0.7, 50), (0.5, 30), (0.3, 15)]


@dataclass(frozen=True)
class ScoringWeights:
    """Composite weights. Always normalized to sum to 1."""

    relevance: float = 0.4
    quality: float = 0.3
    recency: float = 0.2
    diversity: float = 0.1

    @classmethod
    def from_settings(cls, settings: Settings) -> ScoringWeights:
        return cls(**settings.get_scoring_weights()).normalized()

    def normalized(self) -> ScoringWeights:
        values = asdict(self)
        if any(v < 0 for v in values.values()):
            raise ConfigurationError(f"Scoring weights must be non-negative: {values}")
        total = sum(values.values())
        if total <= 0:
            raise ConfigurationError("Scoring weights must not all be zero")
        return ScoringWeights(**{k: v / total for k, v in values.items()})

    def merged(self, overrides: Mapping[str, float] | ScoringWeights | None) -> ScoringWeights:
        """Apply a partial override, then renormalize."""
        if overrides is None:
            return self
        if isinstance(overrides, ScoringWeights):
            return overrides.normalized()

        unknown = set(overrides) - set(asdict(self))
        if unknown:
            raise ConfigurationError(f"Unknown scoring weights: {sorted(unknown)}")
        return ScoringWeights(**{**asdict(self), **overrides}).normalized()


def _words(item: ContentItem) -> frozenset[str]:
    text = f"{item.title} {item.body}".lower()
    return frozenset(word for word in text.split() if len(word) > 2)


def text_similarity(words_1: frozenset[str], words_2: frozenset[str]) -> float:
    """Jaccard similarity of two word sets."""
    union = words_1 | words_2
    if not union:
        return 0.0
    return len(words_1 & words_2) / len(union)


# =============================================================================
# QUALITY HEURISTICS
# =============================================================================


def reddit_quality(item: ContentItem) -> float:
    metadata = item.source_metadata
    score = min(((metadata.get("score") or 0) + (metadata.get("comments") or 0)) / 5, 60)

    length = len(item.body)
    if length > 500:
        score += 20
    elif length > 200:
        score += 15
    elif length > 50:
        score += 10

    if metadata.get("subreddit") in QUALITY_SUBREDDITS:
        score += 20
    return score


def producthunt_quality(item: ContentItem) -> float:
    metadata = item.source_metadata
    score = min((metadata.get("votesCount") or 0) / 2, 40)
    score += min((metadata.get("commentsCount") or 0) * 2, 20)

    categories = metadata.get("categories") or []
    matched = [
        cat for cat in categories
        if any(quality in cat.lower() for quality in HIGH_QUALITY_CATEGORIES)
    ]
    score += min(len(matched) * 8, 25)

    length = len(item.body)
    if length > 200:
        score += 15
    elif length > 100:
        score += 10
    elif length > 50:
        score += 5
    return score


def generic_quality(item: ContentItem) -> float:
    score = 50
    length = len(item.body)
    if length > 300:
        score += 20
    elif length > 100:
        score += 10

    if len(item.topics) > 0:
        score += 15
    if len(item.topics) > 3:
        score += 15
    return score


QUALITY_HEURISTICS: dict[str, Callable[[ContentItem], float]] = {
    "reddit": reddit_quality,
    "producthunt": producthunt_quality,
}


# =============================================================================
# ENGINE
# =============================================================================


class ContentScoringEngine:
    """
    Multi-factor content scorer.

    Example:
        >>> engine = ContentScoringEngine()
        >>> ranked = engine.score_batch(items, profile)
        >>> ranked[0].score  # best item first
    """

    def __init__(
        self,
        settings: Settings | None = None,
        synonyms: KeywordSynonyms | None = None,
    ):
        self.settings = settings or get_settings()
        self.synonyms = synonyms or KeywordSynonyms.from_file(self.settings.keyword_synonyms_path)
        self.default_weights = ScoringWeights.from_settings(self.settings)
        self.max_age_hours = self.settings.scoring_max_age_hours

    # ========================================
    # Sub-scores
    # ========================================

    def relevance(self, item: ContentItem, profile: UserProfile) -> float:
        search_text = f"{item.title} {item.body} {' '.join(item.topics)}".lower()

        interest_matches = sum(1 for i in profile.interests if self.synonyms.matches(search_text, i))
        tech_matches = sum(1 for t in profile.tech_stack if self.synonyms.matches(search_text, t))

        score = min(interest_matches * INTEREST_POINTS, INTEREST_CAP)
        score += min(tech_matches * TECH_POINTS, TECH_CAP)
        if profile.professional_role and self.synonyms.matches(search_text, profile.professional_role):
            score += ROLE_POINTS
        return clamp(score, 0, 100)

    def quality(self, item: ContentItem) -> float:
        heuristic = QUALITY_HEURISTICS.get(item.source_platform, generic_quality)
        return clamp(heuristic(item), 0, 100)

    def recency(self, item: ContentItem, now: datetime | None = None) -> float:
        now = ensure_utc(now or utc_now())
        age_hours = (now - ensure_utc(item.published_at)).total_seconds() / 3600
        if age_hours > self.max_age_hours:
            return 0.0
        return clamp(100 * (1 - age_hours / self.max_age_hours), 0, 100)

    def diversity_penalty(self, item: ContentItem, already_scored: Iterable[ContentItem]) -> float:
        return self._diversity_penalty(_words(item), (_words(other) for other in already_scored))

    @staticmethod
    def _diversity_penalty(words: frozenset[str], others: Iterable[frozenset[str]]) -> float:
        penalty = 0
        for other in others:
            similarity = text_similarity(words, other)
            for bar, points in DIVERSITY_TIERS:
                if similarity > bar:
                    penalty += points
                    break
            if penalty >= 100:
                break
        return min(penalty, 100)

    # ========================================
    # Composite
    # ========================================

    def breakdown(
        self,
        item: ContentItem,
        profile: UserProfile,
        already_scored: Sequence[ContentItem] = (),
        now: datetime | None = None,
    ) -> ScoreBreakdown:
        return ScoreBreakdown(
            relevance=self.relevance(item, profile),
            quality=self.quality(item),
            recency=self.recency(item, now),
            diversity_penalty=self.diversity_penalty(item, already_scored),
        )

    @staticmethod
    def combine(breakdown: ScoreBreakdown, weights: ScoringWeights) -> float:
        weighted = (
            breakdown.relevance * weights.relevance
            + breakdown.quality * weights.quality
            + breakdown.recency * weights.recency
            - breakdown.diversity_penalty * weights.diversity
        )
        return clamp(weighted, 0, 100)

    def score(
        self,
        item: ContentItem,
        profile: UserProfile,
        already_scored: Sequence[ContentItem] = (),
        weights: Mapping[str, float] | ScoringWeights | None = None,
        now: datetime | None = None,
    ) -> float:
        """Score one item in [0, 100]."""
        final_weights = self.default_weights.merged(weights)
        return self.combine(self.breakdown(item, profile, already_scored, now), final_weights)

    def score_batch(
        self,
        items: Sequence[ContentItem],
        profile: UserProfile,
        weights: Mapping[str, float] | ScoringWeights | None = None,
        now: datetime | None = None,
    ) -> list[ScoredContent]:
        """
        Score items in input order, then rank them.

        Each item's diversity penalty is computed against the items before it
        in the input, never against later ones.

        Returns:
            ScoredContent list sorted by descending score (stable on ties)
        """
        final_weights = self.default_weights.merged(weights)
        now = now or utc_now()
        word_sets = [_words(item) for item in items]

        results = []
        for index, item in enumerate(items):
            breakdown = ScoreBreakdown(
                relevance=self.relevance(item, profile),
                quality=self.quality(item),
                recency=self.recency(item, now),
                diversity_penalty=self._diversity_penalty(word_sets[index], word_sets[:index]),
            )
            results.append(ScoredContent(item, self.combine(breakdown, final_weights), breakdown))

        logger.debug(f"Scored {len(results)} items for user {profile.user_id}")
        return sorted(results, key=lambda r: r.score, reverse=True)

    def optimized_weights(self, profile: UserProfile) -> ScoringWeights:
        """
        Shift weight toward what the user's depth preference values.

        Detailed readers trade relevance for quality; brief readers trade
        quality for recency.
        """
        weights = asdict(self.default_weights)
        if profile.content_depth == ContentDepth.DETAILED:
            weights["quality"] += 0.1
            weights["relevance"] -= 0.1
        else:
            weights["recency"] += 0.1
            weights["quality"] -= 0.1
        weights = {k: max(v, 0.0) for k, v in weights.items()}
        return ScoringWeights(**weights).normalized()
