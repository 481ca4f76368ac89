from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from diary.core.clock import to_naive_utc
from diary.models.participant import Participant


class LetterComposeRequest(BaseModel):
    """
    Compose a letter. Length and content rules are enforced by the delivery
    gate so that the same messages come back through every entry point.
    """
    model_config = ConfigDict(extra='forbid')

    title: Optional[str] = Field(default=None, description='Optional title (max 100 chars)')
    content: str = Field(..., description='Letter body (1-2000 chars)')
    scheduled_delivery_at: Optional[datetime] = Field(
        default=None,
        description='Deliver later; must be in the future. Omit to send now.',
    )
    reply_to: Optional[str] = Field(default=None, max_length=36)

    @field_validator('scheduled_delivery_at')
    @classmethod
    def normalize_schedule(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else None


class LetterOut(BaseModel):
    """A letter as shown to one participant."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    sender_id: Participant
    title: Optional[str] = None
    content: str
    reply_to: Optional[str] = None
    scheduled_delivery_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    created_at: datetime

    sender_name: str
    receiver_name: str
    is_sent_by_current_user: bool
    is_delivered: bool
    is_read: bool
    thread_level: Optional[int] = None


class LetterComposeResponse(BaseModel):
    letter: LetterOut
    message: str


class LetterListResponse(BaseModel):
    box: Literal['inbox', 'sent', 'all']
    letters: List[LetterOut]
    total: int
    unread_count: int
    has_more: bool


class LetterThreadResponse(BaseModel):
    root_id: str
    thread: List[LetterOut]
    total_messages: int


class LetterUpdateResponse(BaseModel):
    """Response for delete operations."""
    model_config = ConfigDict(extra='forbid')
    status: str
