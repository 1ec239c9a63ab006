"""
Anti-Repetition Filter.

A candidate is repetitive for a user when it is at least as similar as the
effective threshold to something the user has already been delivered:

    threshold = high similarity threshold (0.8) - novelty_preference · 0.2

A user who wants more novelty gets a lower threshold, so less similarity is
tolerated. Every match is returned, not only the verdict.
"""

from __future__ import annotations

from typing import Iterable

from loguru import logger

from config import Settings, get_settings
from src.core.models import ContentItem, RepetitionVerdict, clamp
from src.core.repositories import ContentRepository
from src.semantic.similarity_service import SemanticSimilarityService

NOVELTY_WEIGHT = 0.2


class AntiRepetitionFilter:
    def __init__(
        self,
        similarity_service: SemanticSimilarityService,
        content_repository: ContentRepository,
        settings: Settings | None = None,
    ):
        self.similarity_service = similarity_service
        self.content_repository = content_repository
        self.settings = settings or get_settings()
        self.base_threshold = self.settings.similarity_high_threshold
        self.default_novelty = self.settings.default_novelty_preference

    def effective_threshold(self, novelty_preference: float | None = None) -> float:
        """Similarity at or above which content counts as a repeat."""
        novelty = self.default_novelty if novelty_preference is None else clamp(novelty_preference)
        return self.base_threshold - novelty * NOVELTY_WEIGHT

    def is_repetitive(
        self,
        candidate: ContentItem,
        user_id: str,
        novelty_preference: float | None = None,
    ) -> RepetitionVerdict:
        """Compare a candidate against everything already delivered to the user."""
        threshold = self.effective_threshold(novelty_preference)
        delivered = self.content_repository.delivered_to(user_id)

        records = self.similarity_service.compare_many([(candidate, item) for item in delivered])
        matches = [r for r in records if r is not None and r.similarity_score >= threshold]
        matches.sort(key=lambda r: r.similarity_score, reverse=True)

        if matches:
            logger.debug(
                f"Content {candidate.id} repeats {len(matches)} delivered items for user {user_id} "
                f"(threshold {threshold:.2f})"
            )
        return RepetitionVerdict(is_repetitive=bool(matches), matches=matches, threshold_used=threshold)

    def filter_new(
        self,
        candidates: Iterable[ContentItem],
        user_id: str,
        novelty_preference: float | None = None,
    ) -> list[ContentItem]:
        """Candidates that are not repeats, in input order."""
        kept = []
        dropped = 0
        for candidate in candidates:
            if self.is_repetitive(candidate, user_id, novelty_preference).is_repetitive:
                dropped += 1
            else:
                kept.append(candidate)
        logger.info(f"Anti-repetition for user {user_id}: kept {len(kept)}, dropped {dropped}")
        return kept
