"""
SQLAlchemy-backed repositories.

Each method runs in its own session_scope transaction and converts between
ORM rows and the engine's frozen domain dataclasses, so no ORM object ever
leaves this module.

Usage:
    from src.db.database import get_session_factory, init_db
    from src.db.repositories import SqlKnowledgeRepository

    init_db()
    repo = SqlKnowledgeRepository(get_session_factory())
"""

from __future__ import annotations

from typing import Iterable

from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from src.core.errors import ContentNotFoundError
from src.core.models import (
    ComparisonType,
    ContentItem,
    ContentRelationship,
    EmbeddingCacheEntry,
    KnowledgeDepth,
    RelationshipType,
    SimilarityRecord,
    UserKnowledgeState,
    ensure_utc,
    normalize_topic,
    pair_key,
)
from src.db.database import get_session_factory, session_scope
from src.db.models import (
    ContentDelivery,
    ContentItemRecord,
    ContentRelationshipRecord,
    ContentSimilarity,
    UserKnowledge,
)


class _SqlRepository:
    def __init__(self, session_factory: sessionmaker | None = None):
        self.session_factory = session_factory or get_session_factory()

    def _scope(self):
        return session_scope(self.session_factory)


# ========================================
# Knowledge state
# ========================================


def _to_state(row: UserKnowledge) -> UserKnowledgeState:
    return UserKnowledgeState(
        user_id=row.user_id,
        topic=row.topic,
        confidence_level=row.confidence_level,
        content_count=row.content_count,
        knowledge_depth=KnowledgeDepth(row.knowledge_depth),
        last_interaction=ensure_utc(row.last_interaction),
    )


class SqlKnowledgeRepository(_SqlRepository):
    def get(self, user_id: str, topic: str) -> UserKnowledgeState | None:
        with self._scope() as session:
            row = session.execute(
                select(UserKnowledge).where(
                    UserKnowledge.user_id == user_id,
                    UserKnowledge.topic == normalize_topic(topic),
                )
            ).scalar_one_or_none()
            return _to_state(row) if row else None

    def list_for_user(self, user_id: str) -> list[UserKnowledgeState]:
        with self._scope() as session:
            rows = session.execute(
                select(UserKnowledge).where(UserKnowledge.user_id == user_id).order_by(UserKnowledge.topic)
            ).scalars()
            return [_to_state(row) for row in rows]

    def save(self, state: UserKnowledgeState) -> None:
        with self._scope() as session:
            row = session.execute(
                select(UserKnowledge).where(
                    UserKnowledge.user_id == state.user_id,
                    UserKnowledge.topic == state.topic,
                )
            ).scalar_one_or_none()
            if row is None:
                row = UserKnowledge(user_id=state.user_id, topic=state.topic)
                session.add(row)
            row.confidence_level = state.confidence_level
            row.content_count = state.content_count
            row.knowledge_depth = state.knowledge_depth.value
            row.last_interaction = state.last_interaction


# ========================================
# Similarity cache
# ========================================


def _to_similarity(row: ContentSimilarity) -> SimilarityRecord:
    return SimilarityRecord(
        content_id_1=row.content_id_1,
        content_id_2=row.content_id_2,
        similarity_score=row.similarity_score,
        comparison_type=ComparisonType(row.comparison_type),
    )


class SqlSimilarityRepository(_SqlRepository):
    def get(self, content_id_1: str, content_id_2: str) -> SimilarityRecord | None:
        with self._scope() as session:
            row = session.get(ContentSimilarity, pair_key(content_id_1, content_id_2))
            return _to_similarity(row) if row else None

    def save(self, record: SimilarityRecord) -> None:
        id_1, id_2 = record.key
        try:
            with self._scope() as session:
                # Same pair always yields the same score, so the first write stands
                if session.get(ContentSimilarity, (id_1, id_2)) is None:
                    session.add(
                        ContentSimilarity(
                            content_id_1=id_1,
                            content_id_2=id_2,
                            similarity_score=record.similarity_score,
                            comparison_type=record.comparison_type.value,
                        )
                    )
        except IntegrityError:
            logger.debug(f"Similarity for ({id_1}, {id_2}) already stored by another writer")

    def list_for_content(self, content_id: str) -> list[SimilarityRecord]:
        with self._scope() as session:
            rows = session.execute(
                select(ContentSimilarity).where(
                    or_(
                        ContentSimilarity.content_id_1 == content_id,
                        ContentSimilarity.content_id_2 == content_id,
                    )
                )
            ).scalars()
            return [_to_similarity(row) for row in rows]


# ========================================
# Relationships
# ========================================


def _to_relationship(row: ContentRelationshipRecord) -> ContentRelationship:
    return ContentRelationship(
        parent_content_id=row.parent_content_id,
        child_content_id=row.child_content_id,
        relationship_type=RelationshipType(row.relationship_type),
        strength=row.strength,
    )


class SqlRelationshipRepository(_SqlRepository):
    def list_all(self) -> list[ContentRelationship]:
        with self._scope() as session:
            rows = session.execute(
                select(ContentRelationshipRecord).order_by(ContentRelationshipRecord.id)
            ).scalars()
            return [_to_relationship(row) for row in rows]

    def list_for_content(self, content_id: str) -> list[ContentRelationship]:
        with self._scope() as session:
            rows = session.execute(
                select(ContentRelationshipRecord)
                .where(
                    or_(
                        ContentRelationshipRecord.parent_content_id == content_id,
                        ContentRelationshipRecord.child_content_id == content_id,
                    )
                )
                .order_by(ContentRelationshipRecord.id)
            ).scalars()
            return [_to_relationship(row) for row in rows]

    def save_many(self, relationships: Iterable[ContentRelationship]) -> int:
        added = 0
        with self._scope() as session:
            existing = {
                (r.parent_content_id, r.child_content_id, r.relationship_type)
                for r in session.execute(select(ContentRelationshipRecord)).scalars()
            }
            for rel in relationships:
                key = (rel.parent_content_id, rel.child_content_id, rel.relationship_type.value)
                if key in existing:
                    continue
                existing.add(key)
                session.add(
                    ContentRelationshipRecord(
                        parent_content_id=rel.parent_content_id,
                        child_content_id=rel.child_content_id,
                        relationship_type=rel.relationship_type.value,
                        strength=rel.strength,
                    )
                )
                added += 1
        if added:
            logger.debug(f"Stored {added} new content relationships")
        return added


# ========================================
# Content & deliveries
# ========================================


def _to_item(row: ContentItemRecord) -> ContentItem:
    embedding = None
    if row.embedding and row.embedding_created_at is not None:
        embedding = EmbeddingCacheEntry(
            text_hash=row.embedding_text_hash or "",
            vector=tuple(row.embedding),
            model=row.embedding_model or "",
            created_at=ensure_utc(row.embedding_created_at),
        )
    return ContentItem(
        id=row.id,
        title=row.title,
        body=row.body,
        source_platform=row.source_platform,
        topics=tuple(row.topics or ()),
        published_at=ensure_utc(row.published_at),
        source_metadata=dict(row.source_metadata or {}),
        summary=row.summary,
        embedding=embedding,
        complexity_score=row.complexity_score,
    )


class SqlContentRepository(_SqlRepository):
    def get(self, content_id: str) -> ContentItem:
        with self._scope() as session:
            row = session.get(ContentItemRecord, content_id)
            if row is None:
                raise ContentNotFoundError(content_id)
            return _to_item(row)

    def save(self, item: ContentItem) -> None:
        with self._scope() as session:
            row = session.get(ContentItemRecord, item.id)
            if row is None:
                row = ContentItemRecord(id=item.id)
                session.add(row)
            row.title = item.title
            row.body = item.body
            row.summary = item.summary
            row.source_platform = item.source_platform
            row.topics = list(item.topics)
            row.source_metadata = dict(item.source_metadata)
            row.published_at = item.published_at
            row.complexity_score = item.complexity_score
            if item.embedding is not None:
                row.embedding = list(item.embedding.vector)
                row.embedding_model = item.embedding.model
                row.embedding_text_hash = item.embedding.text_hash
                row.embedding_created_at = item.embedding.created_at

    def delivered_to(self, user_id: str) -> list[ContentItem]:
        with self._scope() as session:
            rows = session.execute(
                select(ContentItemRecord)
                .join(ContentDelivery, ContentDelivery.content_id == ContentItemRecord.id)
                .where(ContentDelivery.user_id == user_id)
                .order_by(ContentDelivery.id)
            ).scalars()
            return [_to_item(row) for row in rows]

    def mark_delivered(self, user_id: str, content_id: str) -> None:
        with self._scope() as session:
            if session.get(ContentItemRecord, content_id) is None:
                raise ContentNotFoundError(content_id)
            already = session.execute(
                select(ContentDelivery).where(
                    ContentDelivery.user_id == user_id,
                    ContentDelivery.content_id == content_id,
                )
            ).scalar_one_or_none()
            if already is None:
                session.add(ContentDelivery(user_id=user_id, content_id=content_id))
