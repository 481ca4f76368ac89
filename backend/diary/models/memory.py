# backend/diary/models/memory.py
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from diary.core.clock import utcnow
from diary.db.base import Base
from diary.models.letter import new_id
from diary.models.participant import Participant, ParticipantColumn


class Memory(Base):
    __tablename__ = "memories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    user_id: Mapped[Participant] = mapped_column(ParticipantColumn, index=True, nullable=False)

    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    # Object key in the "memories" bucket; null for seeded/external images
    storage_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str] = mapped_column(String(300), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True, nullable=False)

    likes = relationship("Like", back_populates="memory", cascade="all,delete-orphan")
    comments = relationship("Comment", back_populates="memory", cascade="all,delete-orphan")


class Like(Base):
    __tablename__ = "likes"
    __table_args__ = (UniqueConstraint("memory_id", "user_id", name="uq_like_memory_user"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    memory_id: Mapped[str] = mapped_column(ForeignKey("memories.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id: Mapped[Participant] = mapped_column(ParticipantColumn, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    memory = relationship("Memory", back_populates="likes")


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    memory_id: Mapped[str] = mapped_column(ForeignKey("memories.id", ondelete="CASCADE"), index=True, nullable=False)
    user_id: Mapped[Participant] = mapped_column(ParticipantColumn, nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)
    parent_comment_id: Mapped[str | None] = mapped_column(
        ForeignKey("comments.id", ondelete="CASCADE"), index=True, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    memory = relationship("Memory", back_populates="comments")
