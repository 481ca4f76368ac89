from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel

from diary.models.participant import Participant


class VoiceMessageOut(BaseModel):
    id: str
    sender_id: Participant
    recipient_id: Participant
    sender_name: str
    recipient_name: str
    audio_url: str
    duration: float
    is_read: bool
    is_new: bool
    is_sent_by_current_user: bool
    created_at: datetime


class VoiceSendResponse(BaseModel):
    voice_message: VoiceMessageOut
    message: str


class VoiceListResponse(BaseModel):
    voice_messages: List[VoiceMessageOut]
    total: int
    unread_count: int
