"""
Semantic module: embedding-based similarity and the content relationship graph.

Provides:
- Embedding providers (local sentence-transformers or HTTP) with caching
- Cached pairwise cosine similarity, computed in parallel
- Relationship discovery, connection map, learning path and clusters
- Cross-domain connection analysis
- Anti-repetition filtering against delivered content

Technology:
- sentence-transformers (all-MiniLM-L6-v2, 384-dim) or an OpenAI-compatible endpoint
- numpy for vector math
"""

from src.semantic.cross_domain import CrossDomainAnalyzer, CrossDomainConnection, CrossDomainReport
from src.semantic.embedding_service import (
    EmbeddingClient,
    EmbeddingProvider,
    HttpEmbeddingProvider,
    SentenceTransformerProvider,
    cosine_similarity,
    create_provider,
)
from src.semantic.relationship_engine import RelationshipEngine
from src.semantic.repetition_filter import AntiRepetitionFilter
from src.semantic.similarity_service import SemanticSimilarityService, SimilarityStats, topic_overlap

__all__ = [
    # Embedding
    "EmbeddingClient",
    "EmbeddingProvider",
    "HttpEmbeddingProvider",
    "SentenceTransformerProvider",
    "create_provider",
    "cosine_similarity",
    # Similarity
    "SemanticSimilarityService",
    "SimilarityStats",
    "topic_overlap",
    # Relationships
    "RelationshipEngine",
    "CrossDomainAnalyzer",
    "CrossDomainConnection",
    "CrossDomainReport",
    # Repetition
    "AntiRepetitionFilter",
]
