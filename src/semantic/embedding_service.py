"""
Embedding Service - Turn content into vectors and compare them.

Two providers are available:
- SentenceTransformerProvider: local sentence-transformers model
  (all-MiniLM-L6-v2, 384 dimensions by default), lazy-loaded on first use
- HttpEmbeddingProvider: OpenAI-compatible /embeddings endpoint over a
  requests session with urllib3 retry/backoff

EmbeddingClient wraps either one with the caching and failure policy the
engine relies on: cached vectors are reused while fresh and while the
normalized text hash still matches, dimensions are checked, and any provider
failure is logged and reported as "no embedding" (None) instead of raising.

References:
- https://www.sbert.net/docs/pretrained_models.html
- https://platform.openai.com/docs/api-reference/embeddings
"""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Any, Protocol, Sequence

import numpy as np
import requests
from loguru import logger
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config import Settings, get_settings
from src.core.errors import DimensionMismatch, EmbeddingProviderError
from src.core.models import ContentItem, EmbeddingCacheEntry, utc_now

RETRY_STATUS_CODES = [429, 500, 502, 503, 504]


# =============================================================================
# VECTOR MATH & TEXT PREPARATION
# =============================================================================


def cosine_similarity(vector_a: Sequence[float], vector_b: Sequence[float]) -> float:
    """
    Cosine similarity between two embedding vectors.

    Returns:
        Score in [-1, 1]; 0.0 when either vector has zero norm.

    Raises:
        DimensionMismatch: If the vectors differ in length.
    """
    a = np.asarray(vector_a, dtype=np.float64)
    b = np.asarray(vector_b, dtype=np.float64)
    if a.shape != b.shape:
        raise DimensionMismatch(a.size, b.size)

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.clip(np.dot(a, b) / (norm_a * norm_b), -1.0, 1.0))


def prepare_text(item: ContentItem, max_chars: int = 2000) -> str:
    """Build the text blob that is embedded for a content item."""
    parts = []
    if item.title:
        parts.append(f"Title: {item.title}")
    if item.summary:
        parts.append(f"Summary: {item.summary}")
    if item.body:
        body = item.body if len(item.body) <= max_chars else item.body[:max_chars] + "..."
        parts.append(f"Content: {body}")
    if item.topics:
        parts.append(f"Topics: {', '.join(item.topics)}")
    return "\n\n".join(parts)


def text_hash(text: str) -> str:
    """Hash of whitespace-normalized text, used as the embedding cache key."""
    normalized = " ".join(text.split())
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def is_cache_valid(
    entry: EmbeddingCacheEntry | None,
    max_age_hours: float,
    now: datetime | None = None,
    expected_hash: str | None = None,
) -> bool:
    """Whether a cached embedding can be reused."""
    if entry is None or not entry.vector:
        return False
    if expected_hash is not None and entry.text_hash != expected_hash:
        return False
    return entry.age_hours(now) < max_age_hours


# =============================================================================
# PROVIDERS
# =============================================================================


class EmbeddingProvider(Protocol):
    """Maps text to a fixed-length vector. May raise EmbeddingProviderError."""

    model_name: str

    def embed(self, text: str) -> list[float]:
        ...


class SentenceTransformerProvider:
    """
    Local embeddings with sentence-transformers.

    The model is lazy-loaded on first use to avoid startup delays; the first
    run downloads it from HuggingFace Hub (~90MB).
    """

    def __init__(self, model_name: str | None = None):
        settings = get_settings()
        self.model_name = model_name or settings.embedding_model
        self._model = None

    @property
    def model(self):
        if self._model is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as e:
                raise EmbeddingProviderError(
                    "sentence-transformers is not installed; install the 'embeddings' extra"
                ) from e

            logger.info(f"Loading embedding model: {self.model_name}")
            self._model = SentenceTransformer(self.model_name)
            logger.info(f"Embedding model loaded: {self.model_name}")
        return self._model

    def embed(self, text: str) -> list[float]:
        try:
            return self.model.encode(text, convert_to_numpy=True).tolist()
        except EmbeddingProviderError:
            raise
        except Exception as e:
            raise EmbeddingProviderError(f"Local embedding failed: {e}") from e


class HttpEmbeddingProvider:
    """
    OpenAI-compatible embeddings endpoint.

    Failed requests are retried by urllib3 with exponential backoff
    (backoff_factor 0.5 gives 0.5s, 1s, 2s) before the error surfaces.
    """

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        model_name: str | None = None,
        dimension: int | None = None,
        timeout: float | None = None,
        retries: int | None = None,
        backoff_factor: float | None = None,
        session: requests.Session | None = None,
    ):
        settings = get_settings()
        self.api_url = api_url or settings.embedding_api_url
        if not self.api_url:
            raise EmbeddingProviderError("No embedding API URL configured")
        self.api_key = api_key if api_key is not None else settings.embedding_api_key
        self.model_name = model_name or settings.embedding_model
        self.dimension = dimension or settings.embedding_dimension
        self.timeout = timeout or settings.embedding_timeout_seconds

        retries = settings.embedding_retries if retries is None else retries
        backoff_factor = settings.embedding_backoff_factor if backoff_factor is None else backoff_factor

        self.session = session or requests.Session()
        retry_strategy = Retry(
            total=retries,
            backoff_factor=backoff_factor,
            status_forcelist=RETRY_STATUS_CODES,
            allowed_methods=["POST"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        logger.debug(
            "Initialized embedding client: url={}, model={}, timeout={}s, retries={}",
            self.api_url,
            self.model_name,
            self.timeout,
            retries,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def embed(self, text: str) -> list[float]:
        payload: dict[str, Any] = {
            "model": self.model_name,
            "input": text.strip(),
            "dimensions": self.dimension,
        }
        try:
            response = self.session.post(
                self.api_url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise EmbeddingProviderError(f"Embedding request failed: {e}") from e

        try:
            return [float(v) for v in data["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError) as e:
            raise EmbeddingProviderError("No embedding returned from provider") from e


def create_provider(settings: Settings | None = None) -> EmbeddingProvider:
    """HTTP provider when an endpoint is configured, local model otherwise."""
    settings = settings or get_settings()
    if settings.embedding_api_url:
        return HttpEmbeddingProvider(api_url=settings.embedding_api_url)
    return SentenceTransformerProvider(settings.embedding_model)


# =============================================================================
# CLIENT
# =============================================================================


class EmbeddingClient:
    """
    Cached, failure-tolerant access to an embedding provider.

    Example:
        >>> client = EmbeddingClient(create_provider())
        >>> entry = client.embedding_for(item)
        >>> entry.dimension if entry else "no embedding"
        384
    """

    def __init__(self, provider: EmbeddingProvider, settings: Settings | None = None):
        self.provider = provider
        self.settings = settings or get_settings()
        self.expected_dimension = self.settings.embedding_dimension
        self.max_age_hours = self.settings.embedding_cache_max_age_hours
        self.max_text_chars = self.settings.embedding_max_text_chars

    def prepare(self, item: ContentItem) -> str:
        return prepare_text(item, self.max_text_chars)

    def is_cache_valid(self, entry: EmbeddingCacheEntry | None, max_age_hours: float | None = None) -> bool:
        return is_cache_valid(entry, max_age_hours or self.max_age_hours)

    def embed_text(self, text: str) -> EmbeddingCacheEntry | None:
        """Embed raw text. Returns None if the provider fails."""
        try:
            vector = self.provider.embed(text)
        except EmbeddingProviderError as e:
            logger.warning(f"Embedding unavailable ({self.provider.model_name}): {e}")
            return None

        if self.expected_dimension and len(vector) != self.expected_dimension:
            logger.warning(
                f"Discarding embedding with {len(vector)} dimensions "
                f"(expected {self.expected_dimension})"
            )
            return None

        return EmbeddingCacheEntry(
            text_hash=text_hash(text),
            vector=tuple(vector),
            model=self.provider.model_name,
            created_at=utc_now(),
        )

    def embedding_for(self, item: ContentItem, now: datetime | None = None) -> EmbeddingCacheEntry | None:
        """The item's cached embedding while fresh, otherwise a new one."""
        text = self.prepare(item)
        if is_cache_valid(item.embedding, self.max_age_hours, now, expected_hash=text_hash(text)):
            return item.embedding

        entry = self.embed_text(text)
        if entry is not None:
            logger.debug(f"Generated embedding for content {item.id} ({entry.dimension}-dim)")
        return entry

    def refresh(self, item: ContentItem, now: datetime | None = None) -> ContentItem:
        """Return the item carrying a fresh embedding, unchanged if none is available."""
        entry = self.embedding_for(item, now)
        if entry is None or entry is item.embedding:
            return item
        return item.with_embedding(entry)

