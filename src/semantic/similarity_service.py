"""
Semantic Similarity Service - Compare content pairs using embeddings.

Similarity is the cosine of the two items' embeddings. Results are cached per
unordered pair in a SimilarityRepository; content never changes after
creation, so a cached score stays valid indefinitely and concurrent writers of
the same pair store the same value.

Pairwise work is O(n²), so comparisons fan out over a thread pool. Each
item's embedding is fetched once even when many pairs need it at the same
time, then kept in a bounded LRU memo. Failed fetches are not memoized.

Default bands: high >= 0.8, medium >= 0.6, low >= 0.4.
"""
from __future__ import annotations

import threading
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Iterable, Sequence

from loguru import logger

from config import Settings, get_settings
from src.core.concurrency import KeyedLocks
from src.core.errors import DimensionMismatch
from src.core.models import (
    ComparisonType,
    ContentItem,
    EmbeddingCacheEntry,
    SimilarityRecord,
    pair_key,
)
from src.core.repositories import SimilarityRepository
from src.semantic.embedding_service import EmbeddingClient, cosine_similarity, is_cache_valid


def topic_overlap(topics_1: Iterable[str], topics_2: Iterable[str]) -> float:
    """Jaccard index over lower-cased topic tags."""
    set_1 = {t.lower() for t in topics_1}
    set_2 = {t.lower() for t in topics_2}
    union = set_1 | set_2
    if not union:
        return 0.0
    return len(set_1 & set_2) / len(union)


@dataclass
class SimilarityStats:
    total_comparisons: int
    average_similarity: float
    high_similarity_count: int


class SemanticSimilarityService:
    """
    Cached cosine similarity between content items.

    Example:
        >>> service = SemanticSimilarityService(EmbeddingClient(provider), repo)
        >>> record = service.compare(item_a, item_b)
        >>> record.similarity_score if record else "no embedding"
        0.83
    """

    def __init__(
        self,
        embedding_client: EmbeddingClient,
        repository: SimilarityRepository,
        settings: Settings | None = None,
    ):
        self.embedding_client = embedding_client
        self.repository = repository
        self.settings = settings or get_settings()
        self.thresholds = self.settings.get_similarity_thresholds()
        self.max_workers = self.settings.similarity_max_workers
        self.memo_size = self.settings.similarity_embedding_memo_size
        self._embeddings: OrderedDict[str, EmbeddingCacheEntry] = OrderedDict()
        self._memo_lock = threading.Lock()
        self._embedding_locks = KeyedLocks()

    # ========================================
    # Embeddings
    # ========================================

    def embedding_for(self, item: ContentItem) -> EmbeddingCacheEntry | None:
        """
        Embedding for an item, fetched once per item while it stays memoized.

        A failed fetch is not remembered; the next call asks the provider
        again. The memo holds at most memo_size entries.
        """
        with self._embedding_locks(item.id):
            with self._memo_lock:
                cached = self._embeddings.get(item.id)
                if cached is not None:
                    self._embeddings.move_to_end(item.id)
            if cached is not None and is_cache_valid(cached, self.embedding_client.max_age_hours):
                return cached

            entry = self.embedding_client.embedding_for(item)
            with self._memo_lock:
                if entry is None:
                    self._embeddings.pop(item.id, None)
                else:
                    self._embeddings[item.id] = entry
                    self._embeddings.move_to_end(item.id)
                    while len(self._embeddings) > self.memo_size:
                        self._embeddings.popitem(last=False)
            return entry

    # ========================================
    # Pair comparison
    # ========================================

    def cached(self, content_id_1: str, content_id_2: str) -> SimilarityRecord | None:
        return self.repository.get(*pair_key(content_id_1, content_id_2))

    def compare(
        self,
        item_1: ContentItem,
        item_2: ContentItem,
        comparison_type: ComparisonType = ComparisonType.SEMANTIC,
    ) -> SimilarityRecord | None:
        """
        Similarity record for a pair, from cache when available.

        Returns:
            None when either item has no embedding; nothing is cached then.

        Raises:
            DimensionMismatch: If the two embeddings differ in length.
        """
        existing = self.cached(item_1.id, item_2.id)
        if existing is not None:
            return existing

        embedding_1 = self.embedding_for(item_1)
        embedding_2 = self.embedding_for(item_2)
        if embedding_1 is None or embedding_2 is None:
            logger.debug(f"No similarity for ({item_1.id}, {item_2.id}): embedding unavailable")
            return None

        id_1, id_2 = pair_key(item_1.id, item_2.id)
        record = SimilarityRecord(
            content_id_1=id_1,
            content_id_2=id_2,
            similarity_score=cosine_similarity(embedding_1.vector, embedding_2.vector),
            comparison_type=comparison_type,
        )
        self.repository.save(record)
        return record

    def similarity(self, item_1: ContentItem, item_2: ContentItem) -> float | None:
        record = self.compare(item_1, item_2)
        return record.similarity_score if record else None

    def compare_many(
        self,
        pairs: Sequence[tuple[ContentItem, ContentItem]],
        comparison_type: ComparisonType = ComparisonType.SEMANTIC,
    ) -> list[SimilarityRecord | None]:
        """
        Compare many pairs in parallel.

        Results come back in the order of the input pairs regardless of
        completion order. A pair without embeddings comes back as None.

        Raises:
            DimensionMismatch: If any pair's embeddings differ in length.
            Every pair is still attempted before it is raised.
        """
        if not pairs:
            return []

        results: list[SimilarityRecord | None] = [None] * len(pairs)
        mismatch: DimensionMismatch | None = None
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_index = {
                executor.submit(self.compare, item_1, item_2, comparison_type): index
                for index, (item_1, item_2) in enumerate(pairs)
            }
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except DimensionMismatch as e:
                    item_1, item_2 = pairs[index]
                    logger.error(f"Dimension mismatch for pair ({item_1.id}, {item_2.id}): {e}")
                    mismatch = mismatch or e

        if mismatch is not None:
            raise mismatch

        computed = sum(1 for r in results if r is not None)
        logger.info(f"Compared {len(pairs)} content pairs ({computed} with embeddings)")
        return results

    # ========================================
    # Queries
    # ========================================

    def find_similar(
        self,
        item: ContentItem,
        candidates: Iterable[ContentItem],
        threshold: float | None = None,
        limit: int = 10,
    ) -> list[SimilarityRecord]:
        """Candidates at or above the threshold, most similar first."""
        threshold = self.thresholds["medium"] if threshold is None else threshold
        others = [c for c in candidates if c.id != item.id]
        records = self.compare_many([(item, other) for other in others])

        matches = [r for r in records if r is not None and r.similarity_score >= threshold]
        matches.sort(key=lambda r: r.similarity_score, reverse=True)
        return matches[:limit]

    def stats(self, records: Iterable[SimilarityRecord]) -> SimilarityStats:
        records = list(records)
        total = len(records)
        average = sum(r.similarity_score for r in records) / total if total else 0.0
        high = sum(1 for r in records if r.similarity_score >= self.thresholds["high"])
        return SimilarityStats(total_comparisons=total, average_similarity=average, high_similarity_count=high)

    def stats_for_content(self, content_ids: Iterable[str]) -> SimilarityStats:
        """Statistics over every cached comparison touching the given items."""
        seen: dict[tuple[str, str], SimilarityRecord] = {}
        for content_id in content_ids:
            for record in self.repository.list_for_content(content_id):
                seen[record.key] = record
        return self.stats(seen.values())
