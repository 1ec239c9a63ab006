"""
Unit tests for the Knowledge State Tracker.

Tests confidence updates, tier advancement, readiness reporting and
per-key serialization of concurrent interactions.
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from src.core.models import Difficulty, InteractionSignal, KnowledgeDepth, UserKnowledgeState
from src.knowledge.progression import (
    KnowledgeStateTracker,
    ProgressionThresholds,
    analyze_progression_readiness,
    confidence_delta,
    progression_score,
)


@pytest.fixture
def thresholds():
    return ProgressionThresholds()


@pytest.fixture
def tracker(knowledge_repo, settings):
    return KnowledgeStateTracker(knowledge_repo, settings)


class TestProgressionRules:
    """Tests for the pure progression rules."""

    def test_ready_beginner_can_progress(self, thresholds):
        """Confidence 0.75 with 4 items at beginner -> intermediate."""
        recommendation = analyze_progression_readiness(0.75, 4, KnowledgeDepth.BEGINNER, thresholds)

        assert recommendation.can_progress is True
        assert recommendation.next_level == KnowledgeDepth.INTERMEDIATE
        assert recommendation.blockers == []

    def test_progression_score_formula(self, thresholds):
        # (1.0 * 0.3 + 0.75 * 0.7) / 0.7
        score = progression_score(0.75, 4, KnowledgeDepth.BEGINNER, thresholds)
        assert score == pytest.approx(0.825 / 0.7)

    def test_blockers_reported(self, thresholds):
        recommendation = analyze_progression_readiness(0.5, 1, KnowledgeDepth.BEGINNER, thresholds)

        assert recommendation.can_progress is False
        assert recommendation.blockers == ["Need 2 more pieces of content", "Confidence level too low"]

    def test_intermediate_uses_higher_threshold(self, thresholds):
        recommendation = analyze_progression_readiness(0.75, 4, KnowledgeDepth.INTERMEDIATE, thresholds)

        assert recommendation.can_progress is False
        assert recommendation.next_level == KnowledgeDepth.ADVANCED
        assert "Confidence level too low" in recommendation.blockers

    def test_advanced_never_progresses(self, thresholds):
        recommendation = analyze_progression_readiness(1.0, 50, KnowledgeDepth.ADVANCED, thresholds)

        assert recommendation.can_progress is False
        assert recommendation.next_level is None

    @pytest.mark.parametrize(
        "signal,expected",
        [
            (InteractionSignal(), 0.05),
            (InteractionSignal(was_helpful=False), 0.03),
            (InteractionSignal(difficulty=Difficulty.HARD), 0.08),
            (InteractionSignal(difficulty=Difficulty.EASY), 0.06),
            (InteractionSignal(comprehension=1.0), 0.10),
            (InteractionSignal(comprehension=0.0), 0.0),
        ],
    )
    def test_confidence_delta(self, signal, expected):
        assert confidence_delta(signal) == pytest.approx(expected)


class TestKnowledgeStateTracker:
    """Tests for KnowledgeStateTracker."""

    def test_first_interaction_uses_comprehension(self, tracker, now):
        snapshot = tracker.record_interaction("u1", "React", InteractionSignal(comprehension=0.8), now=now)

        assert snapshot.state.topic == "react"
        assert snapshot.state.confidence_level == pytest.approx(0.8)
        assert snapshot.state.content_count == 1
        assert snapshot.state.knowledge_depth == KnowledgeDepth.BEGINNER

    def test_first_interaction_zero_comprehension_is_kept(self, tracker, now):
        snapshot = tracker.record_interaction("u1", "react", InteractionSignal(comprehension=0.0), now=now)

        assert snapshot.state.confidence_level == 0.0

    def test_first_interaction_default_confidence(self, tracker, now):
        snapshot = tracker.record_interaction("u1", "react", InteractionSignal(), now=now)

        assert snapshot.state.confidence_level == pytest.approx(0.3)

    def test_advances_to_intermediate(self, tracker, knowledge_repo, now):
        knowledge_repo.save(
            UserKnowledgeState("u1", "javascript", 0.72, 3, KnowledgeDepth.BEGINNER, now - timedelta(days=1))
        )

        snapshot = tracker.record_interaction("u1", "javascript", InteractionSignal(), now=now)

        assert snapshot.state.knowledge_depth == KnowledgeDepth.INTERMEDIATE
        assert snapshot.state.content_count == 4
        assert snapshot.state.confidence_level == pytest.approx(0.77)

    def test_confidence_clamped(self, tracker, knowledge_repo, now):
        knowledge_repo.save(UserKnowledgeState("u1", "go", 0.99, 10, KnowledgeDepth.ADVANCED, now))

        snapshot = tracker.record_interaction("u1", "go", InteractionSignal(comprehension=1.0), now=now)

        assert snapshot.state.confidence_level == 1.0

    def test_depth_never_regresses(self, tracker, now):
        """Depth is monotonic over any sequence of interactions."""
        signals = [InteractionSignal(comprehension=1.0)] * 8 + [
            InteractionSignal(was_helpful=False, comprehension=0.0)
        ] * 20

        previous_rank = -1
        for signal in signals:
            snapshot = tracker.record_interaction("u1", "python", signal, now=now)
            assert snapshot.state.knowledge_depth.rank >= previous_rank
            previous_rank = snapshot.state.knowledge_depth.rank

        assert tracker.get_state("u1", "python").state.knowledge_depth == KnowledgeDepth.ADVANCED

    def test_concurrent_interactions_not_lost(self, tracker):
        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(lambda _: tracker.record_interaction("u1", "rust", InteractionSignal()), range(50)))

        assert tracker.get_state("u1", "rust").state.content_count == 50

    def test_readiness_for_unknown_topic(self, tracker):
        assert tracker.readiness("u1", "haskell") is None

    def test_overview(self, tracker, now):
        tracker.record_interaction("u1", "react", InteractionSignal(comprehension=0.6), now=now - timedelta(days=1))
        tracker.record_interaction("u1", "css", InteractionSignal(comprehension=0.4), now=now)

        overview = tracker.overview("u1")

        assert overview.total_topics == 2
        assert overview.average_confidence == pytest.approx(0.5)
        assert [s.state.topic for s in overview.knowledge_areas] == ["css", "react"]

    def test_recommend_depth_without_history(self, tracker):
        recommendation = tracker.recommend_content_depth("u1", ["react"])

        assert recommendation.recommended_depth == KnowledgeDepth.BEGINNER
        assert recommendation.user_readiness == pytest.approx(0.2)

    def test_recommend_depth_for_strong_user(self, tracker, knowledge_repo, now):
        knowledge_repo.save(UserKnowledgeState("u1", "react", 0.9, 10, KnowledgeDepth.ADVANCED, now))

        recommendation = tracker.recommend_content_depth("u1", ["React"])

        # 1.0 * 0.6 + 0.9 * 0.4
        assert recommendation.user_readiness == pytest.approx(0.96)
        assert recommendation.recommended_depth == KnowledgeDepth.ADVANCED
