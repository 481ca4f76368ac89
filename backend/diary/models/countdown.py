# backend/diary/models/countdown.py
from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from diary.core.clock import utcnow
from diary.db.base import Base
from diary.models.letter import new_id


class CountdownEvent(Base):
    __tablename__ = "countdown_events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)

    title: Mapped[str] = mapped_column(String(50), nullable=False)
    target_date: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False)
    background_image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
