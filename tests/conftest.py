"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import math
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings  # noqa: E402
from src.core.errors import EmbeddingProviderError  # noqa: E402
from src.core.models import ContentItem, EmbeddingCacheEntry, UserProfile  # noqa: E402
from src.db.memory import (  # noqa: E402
    InMemoryContentRepository,
    InMemoryKnowledgeRepository,
    InMemoryRelationshipRepository,
    InMemorySimilarityRepository,
)
from src.semantic.embedding_service import EmbeddingClient, prepare_text, text_hash  # noqa: E402
from src.semantic.similarity_service import SemanticSimilarityService  # noqa: E402

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (require database)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


def unit_vector(similarity: float) -> list[float]:
    """3-d unit vector whose cosine with (1, 0, 0) is the given similarity."""
    return [similarity, math.sqrt(max(0.0, 1 - similarity**2)), 0.0]


class FakeEmbeddingProvider:
    """
    Embedding provider returning fixed vectors keyed by content title.

    Unknown titles raise EmbeddingProviderError, which is how tests simulate
    an unavailable provider for a single item.
    """

    model_name = "fake-embedder"

    def __init__(self, vectors: dict[str, list[float]] | None = None):
        self.vectors = dict(vectors or {})
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        title = ""
        for line in text.splitlines():
            if line.startswith("Title: "):
                title = line[len("Title: "):]
                break
        self.calls.append(title)
        if title not in self.vectors:
            raise EmbeddingProviderError(f"no vector for {title!r}")
        return self.vectors[title]


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """Fixed reference time for time-dependent rules."""
    return NOW


@pytest.fixture
def settings():
    """Settings isolated from any local .env, with 3-d test embeddings."""
    return Settings(_env_file=None, embedding_dimension=3, similarity_max_workers=2)


@pytest.fixture
def make_item():
    """Factory for content items with sensible defaults."""

    def _make(
        id,
        title=None,
        topics=("general",),
        body="",
        summary="",
        source_platform="rss",
        published_at=NOW - timedelta(hours=1),
        source_metadata=None,
        complexity_score=None,
    ):
        return ContentItem(
            id=id,
            title=title or id,
            body=body,
            source_platform=source_platform,
            topics=tuple(topics),
            published_at=published_at,
            source_metadata=source_metadata or {},
            summary=summary,
            complexity_score=complexity_score,
        )

    return _make


@pytest.fixture
def sample_profile():
    """Provide a sample user profile for testing."""
    return UserProfile(
        user_id="user-1",
        interests=("React", "TypeScript", "Machine Learning"),
        tech_stack=("react", "node"),
        professional_role="Frontend Engineer",
        industry="SaaS",
        novelty_preference=0.7,
    )


@pytest.fixture
def knowledge_repo():
    return InMemoryKnowledgeRepository()


@pytest.fixture
def similarity_repo():
    return InMemorySimilarityRepository()


@pytest.fixture
def relationship_repo():
    return InMemoryRelationshipRepository()


@pytest.fixture
def content_repo():
    return InMemoryContentRepository()


@pytest.fixture
def provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def similarity_service(provider, similarity_repo, settings):
    """Similarity service over the fake provider; set provider.vectors per test."""
    return SemanticSimilarityService(EmbeddingClient(provider, settings), similarity_repo, settings)


@pytest.fixture
def vector_at():
    """unit_vector as a fixture: vector_at(0.75) scores 0.75 against vector_at(1.0)."""
    return unit_vector


@pytest.fixture
def with_cached_vector():
    """Attach a valid cached embedding to an item so the provider is never asked."""

    def _attach(item, vector):
        entry = EmbeddingCacheEntry(
            text_hash=text_hash(prepare_text(item)),
            vector=tuple(vector),
            model="cached",
            created_at=datetime.now(timezone.utc),
        )
        return item.with_embedding(entry)

    return _attach
