"""
Unit tests for heuristic content complexity.
"""
import pytest

from src.core.models import Difficulty, KnowledgeDepth
from src.knowledge.complexity import ContentComplexityAnalyzer


@pytest.fixture
def analyzer():
    return ContentComplexityAnalyzer()


class TestContentComplexityAnalyzer:
    """Tests for ContentComplexityAnalyzer."""

    def test_simple_text_is_easy(self, analyzer, make_item):
        item = make_item("a", body="A cat sat on the mat. It was warm.")

        analysis = analyzer.analyze(item)

        assert analysis.complexity_score == 0
        assert analysis.difficulty == Difficulty.EASY
        assert analysis.recommended_depth == KnowledgeDepth.BEGINNER

    def test_technical_dense_text_with_code_is_hard(self, analyzer, make_item):
        body = (
            "The architecture of this framework favors scalability: deployment, "
            "infrastructure, optimization and the API implementation are covered. "
            "```python\nprint('hi')\n```"
        )
        item = make_item("a", body=body, topics=("advanced python",))

        analysis = analyzer.analyze(item)

        # terms > 5 (+0.3), code block (+0.2), seniority topic (+0.3), long words (+0.2)
        assert analysis.complexity_score == pytest.approx(1.0)
        assert analysis.difficulty == Difficulty.HARD
        assert "framework" in analysis.concepts

    def test_empty_body_does_not_fail(self, analyzer, make_item):
        assert analyzer.complexity_of(make_item("a", body="")) == 0

    def test_precomputed_score_wins(self, analyzer, make_item):
        item = make_item("a", body="A cat sat on the mat.", complexity_score=0.6)

        assert analyzer.complexity_of(item) == pytest.approx(0.6)
        assert analyzer.analyze(item).recommended_depth == KnowledgeDepth.INTERMEDIATE

    def test_concepts_start_with_topics(self, analyzer, make_item):
        item = make_item("a", body="An API walkthrough.", topics=("rest",))

        assert analyzer.analyze(item).concepts == ["rest", "api"]
