# backend/diary/models/location.py
from datetime import datetime

from sqlalchemy import DateTime, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from diary.core.clock import utcnow
from diary.db.base import Base
from diary.models.letter import new_id
from diary.models.participant import Participant, ParticipantColumn


class DailyLocation(Base):
    __tablename__ = "daily_locations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    user_id: Mapped[Participant] = mapped_column(ParticipantColumn, index=True, nullable=False)

    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    mood_emoji: Mapped[str | None] = mapped_column(String(16), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True, nullable=False)
