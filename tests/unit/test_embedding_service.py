"""
Unit tests for the Embedding Service.

Tests cosine similarity, text preparation, cache validity, the HTTP
provider and the failure-tolerant embedding client.
"""
from datetime import timedelta
from unittest.mock import MagicMock

import numpy as np
import pytest
import requests

from src.core.errors import DimensionMismatch, EmbeddingProviderError
from src.core.models import EmbeddingCacheEntry, utc_now
from src.semantic.embedding_service import (
    EmbeddingClient,
    HttpEmbeddingProvider,
    cosine_similarity,
    is_cache_valid,
    prepare_text,
    text_hash,
)


class TestCosineSimilarity:
    """Tests for cosine_similarity."""

    def test_identical_vectors(self):
        """Identical vectors should have similarity of 1.0."""
        vec = [1.0, 2.0, 3.0]

        assert cosine_similarity(vec, vec) == pytest.approx(1.0)

    def test_opposite_vectors(self):
        """Opposite vectors should have similarity of -1.0."""
        assert cosine_similarity([1.0, 2.0, 3.0], [-1.0, -2.0, -3.0]) == pytest.approx(-1.0)

    def test_symmetric_and_bounded(self):
        rng = np.random.default_rng(7)
        for _ in range(20):
            a, b = rng.normal(size=8), rng.normal(size=8)
            ab, ba = cosine_similarity(a, b), cosine_similarity(b, a)
            assert ab == pytest.approx(ba)
            assert -1.0 <= ab <= 1.0

    def test_zero_vector_scores_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0

    def test_dimension_mismatch_raises(self):
        with pytest.raises(DimensionMismatch) as exc:
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])

        assert (exc.value.left, exc.value.right) == (2, 3)


class TestTextPreparation:
    """Tests for prepare_text and text_hash."""

    def test_prepare_text_sections(self, make_item):
        item = make_item("a", title="React", summary="Hooks", body="Body text", topics=("react", "hooks"))

        text = prepare_text(item)

        assert text == "Title: React\n\nSummary: Hooks\n\nContent: Body text\n\nTopics: react, hooks"

    def test_long_body_truncated(self, make_item):
        item = make_item("a", body="x" * 50)

        assert "Content: " + "x" * 10 + "..." in prepare_text(item, max_chars=10)

    def test_hash_ignores_whitespace_differences(self):
        assert text_hash("hello   world\n") == text_hash("hello world")
        assert text_hash("hello world") != text_hash("hello there")


class TestCacheValidity:
    """Tests for is_cache_valid."""

    def entry(self, age_hours=1.0, text_hash="h"):
        return EmbeddingCacheEntry(
            text_hash=text_hash,
            vector=(1.0, 0.0, 0.0),
            model="fake",
            created_at=utc_now() - timedelta(hours=age_hours),
        )

    def test_fresh_entry_valid(self):
        assert is_cache_valid(self.entry(), max_age_hours=168)

    def test_stale_entry_invalid(self):
        assert not is_cache_valid(self.entry(age_hours=200), max_age_hours=168)

    def test_missing_entry_invalid(self):
        assert not is_cache_valid(None, max_age_hours=168)

    def test_hash_mismatch_invalid(self):
        assert not is_cache_valid(self.entry(), max_age_hours=168, expected_hash="other")


class TestHttpEmbeddingProvider:
    """Tests for HttpEmbeddingProvider with a mocked session."""

    def provider(self, session):
        return HttpEmbeddingProvider(
            api_url="https://embeddings.example.com/v1/embeddings",
            api_key="secret",
            model_name="text-embedding-3-small",
            dimension=3,
            timeout=5,
            retries=0,
            session=session,
        )

    def test_embed_parses_response(self):
        session = MagicMock(spec=requests.Session)
        session.post.return_value.json.return_value = {"data": [{"embedding": [0.1, 0.2, 0.3]}]}

        vector = self.provider(session).embed("  hello  ")

        assert vector == [0.1, 0.2, 0.3]
        _, kwargs = session.post.call_args
        assert kwargs["json"] == {"model": "text-embedding-3-small", "input": "hello", "dimensions": 3}
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["timeout"] == 5

    def test_request_failure_becomes_provider_error(self):
        session = MagicMock(spec=requests.Session)
        session.post.side_effect = requests.ConnectionError("down")

        with pytest.raises(EmbeddingProviderError):
            self.provider(session).embed("hello")

    def test_malformed_response_becomes_provider_error(self):
        session = MagicMock(spec=requests.Session)
        session.post.return_value.json.return_value = {"data": []}

        with pytest.raises(EmbeddingProviderError):
            self.provider(session).embed("hello")

    def test_missing_url_rejected(self):
        with pytest.raises(EmbeddingProviderError):
            HttpEmbeddingProvider(api_url="", session=MagicMock(spec=requests.Session))


class TestEmbeddingClient:
    """Tests for EmbeddingClient caching and degradation."""

    def test_embedding_for_generates_entry(self, make_item, provider, settings):
        provider.vectors["React"] = [1.0, 0.0, 0.0]
        client = EmbeddingClient(provider, settings)

        entry = client.embedding_for(make_item("a", title="React"))

        assert entry.vector == (1.0, 0.0, 0.0)
        assert entry.model == "fake-embedder"
        assert entry.dimension == 3

    def test_valid_cached_entry_reused(self, make_item, provider, settings):
        provider.vectors["React"] = [1.0, 0.0, 0.0]
        client = EmbeddingClient(provider, settings)
        item = client.refresh(make_item("a", title="React"))

        assert client.embedding_for(item) is item.embedding
        assert provider.calls == ["React"]

    def test_changed_text_regenerates(self, make_item, provider, settings):
        provider.vectors["React"] = [1.0, 0.0, 0.0]
        client = EmbeddingClient(provider, settings)
        item = client.refresh(make_item("a", title="React"))

        changed = make_item("a", title="React", body="new body").with_embedding(item.embedding)
        client.embedding_for(changed)

        assert provider.calls == ["React", "React"]

    def test_provider_failure_returns_none(self, make_item, provider, settings):
        client = EmbeddingClient(provider, settings)

        assert client.embedding_for(make_item("a", title="Unknown")) is None

    def test_wrong_dimension_discarded(self, make_item, provider, settings):
        provider.vectors["React"] = [1.0, 0.0]
        client = EmbeddingClient(provider, settings)

        assert client.embedding_for(make_item("a", title="React")) is None

    def test_refresh_without_embedding_returns_item(self, make_item, provider, settings):
        client = EmbeddingClient(provider, settings)
        item = make_item("a", title="Unknown")

        assert client.refresh(item) is item
