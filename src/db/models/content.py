"""
Content, delivery log and the content graph.

Tables:
- content_items: normalized content with its cached embedding
- content_deliveries: which items each user has already received
- content_similarity: write-once cache of pair similarity, stored with
  content_id_1 <= content_id_2
- content_relationships: directed edges of the content graph
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Float, ForeignKey, Integer, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JsonType


class ContentItemRecord(Base):
    __tablename__ = "content_items"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    source_platform: Mapped[str] = mapped_column(Text, nullable=False)
    topics: Mapped[list[str]] = mapped_column(JsonType, nullable=False, default=list)
    source_metadata: Mapped[dict[str, Any]] = mapped_column(JsonType, nullable=False, default=dict)
    published_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    complexity_score: Mapped[float | None] = mapped_column(Float)

    # Embedding cache
    embedding: Mapped[list[float] | None] = mapped_column(JsonType)
    embedding_model: Mapped[str | None] = mapped_column(Text)
    embedding_text_hash: Mapped[str | None] = mapped_column(Text)
    embedding_created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())

    def __repr__(self) -> str:
        return f"<ContentItemRecord({self.id}: {self.title[:40]})>"


class ContentDelivery(Base):
    __tablename__ = "content_deliveries"
    __table_args__ = (UniqueConstraint("user_id", "content_id", name="uq_content_delivery"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    content_id: Mapped[str] = mapped_column(
        ForeignKey("content_items.id", ondelete="CASCADE"), nullable=False
    )
    delivered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())


class ContentSimilarity(Base):
    __tablename__ = "content_similarity"

    content_id_1: Mapped[str] = mapped_column(Text, primary_key=True)
    content_id_2: Mapped[str] = mapped_column(Text, primary_key=True)
    similarity_score: Mapped[float] = mapped_column(Float, nullable=False)
    comparison_type: Mapped[str] = mapped_column(Text, nullable=False, default="semantic")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())

    def __repr__(self) -> str:
        return f"<ContentSimilarity({self.content_id_1}, {self.content_id_2}: {self.similarity_score:.3f})>"


class ContentRelationshipRecord(Base):
    __tablename__ = "content_relationships"
    __table_args__ = (
        UniqueConstraint(
            "parent_content_id", "child_content_id", "relationship_type", name="uq_content_relationship"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    parent_content_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    child_content_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    relationship_type: Mapped[str] = mapped_column(Text, nullable=False)  # builds_on/prerequisite/related/contrasts/cross_domain
    strength: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())

    def __repr__(self) -> str:
        return (
            f"<ContentRelationshipRecord({self.parent_content_id} -> {self.child_content_id}, "
            f"{self.relationship_type})>"
        )
