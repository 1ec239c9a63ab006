"""
Heuristic content complexity analysis.

Scores text on a 0-1 scale from surface features and maps the score to a
difficulty and a recommended knowledge depth.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.core.models import ContentItem, Difficulty, KnowledgeDepth, clamp

TECHNICAL_TERMS = re.compile(
    r"\b(API|SDK|framework|architecture|algorithm|implementation|optimization|"
    r"scalability|deployment|infrastructure)\b",
    re.IGNORECASE,
)
CODE_BLOCK = re.compile(r"```[\s\S]*?```")
SENTENCE_SPLIT = re.compile(r"[.!?]+")
SENIORITY_MARKERS = ("advanced", "expert", "senior")


@dataclass
class ComplexityAnalysis:
    complexity_score: float
    recommended_depth: KnowledgeDepth
    concepts: list[str]
    difficulty: Difficulty


def _bands(score: float) -> tuple[Difficulty, KnowledgeDepth]:
    if score < 0.3:
        return Difficulty.EASY, KnowledgeDepth.BEGINNER
    if score < 0.7:
        return Difficulty.MEDIUM, KnowledgeDepth.INTERMEDIATE
    return Difficulty.HARD, KnowledgeDepth.ADVANCED


class ContentComplexityAnalyzer:
    """Surface-feature complexity scoring for content items."""

    def score_text(self, text: str, topics: tuple[str, ...] = ()) -> tuple[float, list[str]]:
        """Return (complexity score, technical terms found)."""
        words = text.split(" ")
        word_count = len(words)
        avg_word_length = sum(len(w) for w in words) / word_count
        avg_sentence_length = word_count / len(SENTENCE_SPLIT.split(text))

        terms = TECHNICAL_TERMS.findall(text)

        score = 0.0
        if avg_word_length > 6:
            score += 0.2
        if avg_sentence_length > 20:
            score += 0.2
        if len(terms) > 5:
            score += 0.3
        if CODE_BLOCK.search(text):
            score += 0.2
        if any(marker in topic.lower() for topic in topics for marker in SENIORITY_MARKERS):
            score += 0.3
        return clamp(score), terms

    def analyze(self, item: ContentItem) -> ComplexityAnalysis:
        score, terms = self.score_text(item.body, item.topics)
        if item.complexity_score is not None:
            score = clamp(item.complexity_score)

        concepts = list(dict.fromkeys([*item.topics, *(t.lower() for t in terms)]))
        difficulty, depth = _bands(score)
        return ComplexityAnalysis(
            complexity_score=score,
            recommended_depth=depth,
            concepts=concepts,
            difficulty=difficulty,
        )

    def complexity_of(self, item: ContentItem) -> float:
        """Just the score, preferring a precomputed value."""
        if item.complexity_score is not None:
            return clamp(item.complexity_score)
        return self.score_text(item.body, item.topics)[0]
