"""
Engine exceptions.

Configuration problems fail fast at load time. Provider problems are raised by
the embedding providers and absorbed by the embedding client, which degrades
to "no embedding" for the affected item.
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all personalization engine errors."""
    pass


class DimensionMismatch(EngineError, ValueError):
    """Raised when two embedding vectors of different lengths are compared."""

    def __init__(self, left: int, right: int):
        self.left = left
        self.right = right
        super().__init__(f"Embedding dimension mismatch: {left} != {right}")


class ConfigurationError(EngineError):
    """Raised when engine configuration is invalid."""
    pass


class PrerequisiteCycleError(ConfigurationError):
    """Raised when the topic prerequisite graph contains a cycle."""

    def __init__(self, cycle: list[str]):
        self.cycle = cycle
        super().__init__(f"Prerequisite graph contains a cycle: {' -> '.join(cycle)}")


class EmbeddingProviderError(EngineError):
    """Raised by an embedding provider when a vector cannot be produced."""
    pass


class ContentNotFoundError(EngineError, KeyError):
    """Raised when a content item is not present in a repository."""

    def __init__(self, content_id: str):
        self.content_id = content_id
        super().__init__(content_id)

    def __str__(self) -> str:
        return f"Content not found: {self.content_id}"
