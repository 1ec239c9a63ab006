"""
Per-user knowledge state.

One row per (user_id, topic). Topics are stored lower-cased; depth only ever
moves beginner -> intermediate -> advanced.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Integer, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class UserKnowledge(Base):
    __tablename__ = "user_knowledge"
    __table_args__ = (UniqueConstraint("user_id", "topic", name="uq_user_knowledge_user_topic"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    topic: Mapped[str] = mapped_column(Text, nullable=False)

    confidence_level: Mapped[float] = mapped_column(Float, nullable=False)
    content_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    knowledge_depth: Mapped[str] = mapped_column(Text, nullable=False, default="beginner")
    last_interaction: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<UserKnowledge({self.user_id}, {self.topic}: {self.knowledge_depth} @ {self.confidence_level:.2f})>"
