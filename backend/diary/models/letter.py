# backend/diary/models/letter.py
import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from diary.core.clock import utcnow
from diary.db.base import Base
from diary.models.participant import Participant, ParticipantColumn


def new_id() -> str:
    return str(uuid.uuid4())


class Letter(Base):
    __tablename__ = "letters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    sender_id: Mapped[Participant] = mapped_column(ParticipantColumn, index=True, nullable=False)

    title: Mapped[str | None] = mapped_column(String(100), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Parent pointer; not a FK so a deleted parent leaves a dangling reference
    reply_to: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)

    scheduled_delivery_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime, index=True, nullable=True)
    read_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
