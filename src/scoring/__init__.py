"""
Content scoring: relevance, quality, recency and diversity in one 0-100 score.
"""

from src.scoring.content_scorer import ContentScoringEngine, ScoringWeights
from src.scoring.keywords import KeywordSynonyms

__all__ = [
    "ContentScoringEngine",
    "ScoringWeights",
    "KeywordSynonyms",
]
