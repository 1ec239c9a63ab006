"""
Persistence interfaces consumed by the engine.

Storage technology is the host application's choice. src/db ships an
in-memory implementation and a SQLAlchemy one; anything else only has to
satisfy these protocols.
"""

from __future__ import annotations

from typing import Iterable, Protocol

from src.core.models import (
    ContentItem,
    ContentRelationship,
    SimilarityRecord,
    UserKnowledgeState,
)


class KnowledgeStateRepository(Protocol):
    """Read/write UserKnowledgeState keyed by (user_id, topic)."""

    def get(self, user_id: str, topic: str) -> UserKnowledgeState | None:
        ...

    def list_for_user(self, user_id: str) -> list[UserKnowledgeState]:
        ...

    def save(self, state: UserKnowledgeState) -> None:
        ...


class SimilarityRepository(Protocol):
    """Write-once-per-pair cache of similarity scores."""

    def get(self, content_id_1: str, content_id_2: str) -> SimilarityRecord | None:
        ...

    def save(self, record: SimilarityRecord) -> None:
        ...

    def list_for_content(self, content_id: str) -> list[SimilarityRecord]:
        ...


class RelationshipRepository(Protocol):
    """Read/write ContentRelationship keyed by (parent, child)."""

    def list_all(self) -> list[ContentRelationship]:
        ...

    def list_for_content(self, content_id: str) -> list[ContentRelationship]:
        ...

    def save_many(self, relationships: Iterable[ContentRelationship]) -> int:
        """Persist relationships not already stored. Returns how many were new."""
        ...


class ContentRepository(Protocol):
    """Read access to content plus the per-user delivery log."""

    def get(self, content_id: str) -> ContentItem:
        ...

    def save(self, item: ContentItem) -> None:
        ...

    def delivered_to(self, user_id: str) -> list[ContentItem]:
        ...

    def mark_delivered(self, user_id: str, content_id: str) -> None:
        ...
