# backend/diary/models/voice_message.py
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from diary.core.clock import utcnow
from diary.db.base import Base
from diary.models.letter import new_id
from diary.models.participant import Participant, ParticipantColumn


class VoiceMessage(Base):
    __tablename__ = "voice_messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    sender_id: Mapped[Participant] = mapped_column(ParticipantColumn, index=True, nullable=False)
    recipient_id: Mapped[Participant] = mapped_column(ParticipantColumn, index=True, nullable=False)

    audio_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    storage_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    duration: Mapped[float] = mapped_column(Float, nullable=False)

    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
