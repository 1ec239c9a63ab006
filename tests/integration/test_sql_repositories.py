"""
Integration Tests for the SQLAlchemy repositories.

Runs every repository against an in-memory SQLite database built from the
ORM models, and wires one through the knowledge tracker end to end.
"""
from datetime import timedelta

import pytest

from src.core.errors import ContentNotFoundError
from src.core.models import (
    ContentRelationship,
    EmbeddingCacheEntry,
    InteractionSignal,
    KnowledgeDepth,
    RelationshipType,
    SimilarityRecord,
    UserKnowledgeState,
)
from src.db.database import create_db_engine, init_db, make_session_factory, session_scope
from src.db.models import ContentSimilarity
from src.db.repositories import (
    SqlContentRepository,
    SqlKnowledgeRepository,
    SqlRelationshipRepository,
    SqlSimilarityRepository,
)
from src.knowledge.progression import KnowledgeStateTracker

pytestmark = pytest.mark.integration


@pytest.fixture
def session_factory():
    """Fresh in-memory database per test."""
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


class TestSqlKnowledgeRepository:
    """Test user_knowledge persistence."""

    def test_save_and_get(self, session_factory, now):
        repo = SqlKnowledgeRepository(session_factory)
        repo.save(UserKnowledgeState("u1", "react", 0.6, 2, KnowledgeDepth.BEGINNER, now))

        state = repo.get("u1", "React")

        assert state == UserKnowledgeState("u1", "react", 0.6, 2, KnowledgeDepth.BEGINNER, now)

    def test_save_updates_existing_row(self, session_factory, now):
        repo = SqlKnowledgeRepository(session_factory)
        repo.save(UserKnowledgeState("u1", "react", 0.6, 2, KnowledgeDepth.BEGINNER, now))
        repo.save(UserKnowledgeState("u1", "react", 0.75, 4, KnowledgeDepth.INTERMEDIATE, now))

        states = repo.list_for_user("u1")

        assert len(states) == 1
        assert states[0].knowledge_depth == KnowledgeDepth.INTERMEDIATE

    def test_missing_state(self, session_factory):
        assert SqlKnowledgeRepository(session_factory).get("u1", "rust") is None

    def test_tracker_over_sql(self, session_factory, settings, now):
        repo = SqlKnowledgeRepository(session_factory)
        tracker = KnowledgeStateTracker(repo, settings)

        for _ in range(3):
            tracker.record_interaction("u1", "python", InteractionSignal(comprehension=1.0), now=now)

        state = repo.get("u1", "python")
        assert state.content_count == 3
        assert state.knowledge_depth == KnowledgeDepth.INTERMEDIATE


class TestSqlSimilarityRepository:
    """Test the write-once similarity cache."""

    def test_pair_order_independent(self, session_factory):
        repo = SqlSimilarityRepository(session_factory)
        repo.save(SimilarityRecord("b", "a", 0.8))

        record = repo.get("a", "b")

        assert (record.content_id_1, record.content_id_2) == ("a", "b")
        assert record.similarity_score == pytest.approx(0.8)

    def test_first_write_stands(self, session_factory):
        repo = SqlSimilarityRepository(session_factory)
        repo.save(SimilarityRecord("a", "b", 0.8))
        repo.save(SimilarityRecord("a", "b", 0.1))

        assert repo.get("b", "a").similarity_score == pytest.approx(0.8)
        with session_scope(session_factory) as session:
            assert session.query(ContentSimilarity).count() == 1

    def test_list_for_content(self, session_factory):
        repo = SqlSimilarityRepository(session_factory)
        repo.save(SimilarityRecord("a", "b", 0.8))
        repo.save(SimilarityRecord("c", "a", 0.4))
        repo.save(SimilarityRecord("b", "c", 0.2))

        assert {r.key for r in repo.list_for_content("a")} == {("a", "b"), ("a", "c")}


class TestSqlRelationshipRepository:
    """Test content graph persistence."""

    def test_save_many_skips_duplicates(self, session_factory):
        repo = SqlRelationshipRepository(session_factory)
        first = ContentRelationship("a", "b", RelationshipType.BUILDS_ON, 0.8)
        second = ContentRelationship("a", "b", RelationshipType.RELATED, 0.6)

        assert repo.save_many([first, second, first]) == 2
        assert repo.save_many([first]) == 0
        assert repo.list_all() == [first, second]

    def test_list_for_content(self, session_factory):
        repo = SqlRelationshipRepository(session_factory)
        repo.save_many(
            [
                ContentRelationship("a", "b", RelationshipType.BUILDS_ON, 0.8),
                ContentRelationship("c", "a", RelationshipType.CONTRASTS, 0.5),
                ContentRelationship("c", "d", RelationshipType.RELATED, 0.5),
            ]
        )

        assert [r.key for r in repo.list_for_content("a")] == [("a", "b"), ("c", "a")]


class TestSqlContentRepository:
    """Test content items and the delivery log."""

    def test_round_trip_with_embedding(self, session_factory, make_item, now):
        repo = SqlContentRepository(session_factory)
        entry = EmbeddingCacheEntry("hash", (0.1, 0.2, 0.3), "fake-embedder", now - timedelta(hours=2))
        item = make_item("a", title="React", topics=("react", "hooks"), source_metadata={"score": 12})
        repo.save(item.with_embedding(entry))

        stored = repo.get("a")

        assert stored == item
        assert stored.source_metadata == {"score": 12}
        assert stored.embedding == entry

    def test_unknown_content(self, session_factory):
        with pytest.raises(ContentNotFoundError):
            SqlContentRepository(session_factory).get("missing")

    def test_deliveries(self, session_factory, make_item):
        repo = SqlContentRepository(session_factory)
        for content_id in ("a", "b", "c"):
            repo.save(make_item(content_id))

        repo.mark_delivered("u1", "b")
        repo.mark_delivered("u1", "a")
        repo.mark_delivered("u1", "b")
        repo.mark_delivered("u2", "c")

        assert [item.id for item in repo.delivered_to("u1")] == ["b", "a"]

    def test_delivering_unknown_content_fails(self, session_factory):
        with pytest.raises(ContentNotFoundError):
            SqlContentRepository(session_factory).mark_delivered("u1", "missing")
