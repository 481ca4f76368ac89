# backend/diary/models/participant.py
from __future__ import annotations

import enum

from sqlalchemy import Enum

from diary.core.config import settings


class Participant(str, enum.Enum):
    """The diary has exactly two members."""

    HIM = "him"
    HER = "her"

    @property
    def other(self) -> "Participant":
        return Participant.HER if self is Participant.HIM else Participant.HIM

    @property
    def display_name(self) -> str:
        return settings.user_him_name if self is Participant.HIM else settings.user_her_name


# stored as a plain short string ("him"/"her"), not a native DB enum
ParticipantColumn = Enum(
    Participant,
    native_enum=False,
    length=8,
    values_callable=lambda e: [m.value for m in e],
    validate_strings=True,
)
