"""
In-memory repositories.

Thread-safe implementations of the persistence protocols, used in tests and
for hosts that keep state elsewhere. Every method holds one lock for its
whole body, so readers never see a half-applied write.
"""

from __future__ import annotations

import threading
from typing import Iterable

from src.core.errors import ContentNotFoundError
from src.core.models import (
    ContentItem,
    ContentRelationship,
    SimilarityRecord,
    UserKnowledgeState,
    normalize_topic,
    pair_key,
)


class InMemoryKnowledgeRepository:
    def __init__(self, states: Iterable[UserKnowledgeState] = ()):
        self._lock = threading.Lock()
        self._states: dict[tuple[str, str], UserKnowledgeState] = {s.key: s for s in states}

    def get(self, user_id: str, topic: str) -> UserKnowledgeState | None:
        with self._lock:
            return self._states.get((user_id, normalize_topic(topic)))

    def list_for_user(self, user_id: str) -> list[UserKnowledgeState]:
        with self._lock:
            return [s for (uid, _), s in self._states.items() if uid == user_id]

    def save(self, state: UserKnowledgeState) -> None:
        with self._lock:
            self._states[state.key] = state


class InMemorySimilarityRepository:
    def __init__(self):
        self._lock = threading.Lock()
        self._records: dict[tuple[str, str], SimilarityRecord] = {}

    def get(self, content_id_1: str, content_id_2: str) -> SimilarityRecord | None:
        with self._lock:
            return self._records.get(pair_key(content_id_1, content_id_2))

    def save(self, record: SimilarityRecord) -> None:
        with self._lock:
            self._records[record.key] = record

    def list_for_content(self, content_id: str) -> list[SimilarityRecord]:
        with self._lock:
            return [r for key, r in self._records.items() if content_id in key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class InMemoryRelationshipRepository:
    def __init__(self, relationships: Iterable[ContentRelationship] = ()):
        self._lock = threading.Lock()
        self._relationships: dict[tuple[str, str, str], ContentRelationship] = {}
        self.save_many(relationships)

    @staticmethod
    def _key(rel: ContentRelationship) -> tuple[str, str, str]:
        return (rel.parent_content_id, rel.child_content_id, rel.relationship_type.value)

    def list_all(self) -> list[ContentRelationship]:
        with self._lock:
            return list(self._relationships.values())

    def list_for_content(self, content_id: str) -> list[ContentRelationship]:
        with self._lock:
            return [r for r in self._relationships.values() if r.touches(content_id)]

    def save_many(self, relationships: Iterable[ContentRelationship]) -> int:
        added = 0
        with self._lock:
            for rel in relationships:
                key = self._key(rel)
                if key not in self._relationships:
                    self._relationships[key] = rel
                    added += 1
        return added


class InMemoryContentRepository:
    def __init__(self, items: Iterable[ContentItem] = ()):
        self._lock = threading.Lock()
        self._items: dict[str, ContentItem] = {item.id: item for item in items}
        self._deliveries: dict[str, list[str]] = {}

    def get(self, content_id: str) -> ContentItem:
        with self._lock:
            try:
                return self._items[content_id]
            except KeyError:
                raise ContentNotFoundError(content_id) from None

    def save(self, item: ContentItem) -> None:
        with self._lock:
            self._items[item.id] = item

    def delivered_to(self, user_id: str) -> list[ContentItem]:
        with self._lock:
            ids = self._deliveries.get(user_id, [])
            return [self._items[cid] for cid in ids if cid in self._items]

    def mark_delivered(self, user_id: str, content_id: str) -> None:
        with self._lock:
            if content_id not in self._items:
                raise ContentNotFoundError(content_id)
            delivered = self._deliveries.setdefault(user_id, [])
            if content_id not in delivered:
                delivered.append(content_id)
