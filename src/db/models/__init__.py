# SQLAlchemy models
from .base import Base, JsonType
from .content import (
    ContentDelivery,
    ContentItemRecord,
    ContentRelationshipRecord,
    ContentSimilarity,
)
from .knowledge import UserKnowledge

__all__ = [
    # Base
    "Base",
    "JsonType",
    # Knowledge
    "UserKnowledge",
    # Content
    "ContentItemRecord",
    "ContentDelivery",
    # Content graph
    "ContentSimilarity",
    "ContentRelationshipRecord",
]
