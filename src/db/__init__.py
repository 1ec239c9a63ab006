"""
Persistence adapters: in-memory and SQLAlchemy implementations of the
repository protocols in src.core.repositories.
"""

from src.db.database import get_engine, get_session_factory, init_db, session_scope
from src.db.memory import (
    InMemoryContentRepository,
    InMemoryKnowledgeRepository,
    InMemoryRelationshipRepository,
    InMemorySimilarityRepository,
)
from src.db.repositories import (
    SqlContentRepository,
    SqlKnowledgeRepository,
    SqlRelationshipRepository,
    SqlSimilarityRepository,
)

__all__ = [
    "get_engine",
    "get_session_factory",
    "init_db",
    "session_scope",
    "InMemoryKnowledgeRepository",
    "InMemorySimilarityRepository",
    "InMemoryRelationshipRepository",
    "InMemoryContentRepository",
    "SqlKnowledgeRepository",
    "SqlSimilarityRepository",
    "SqlRelationshipRepository",
    "SqlContentRepository",
]
