from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from diary.core.clock import to_naive_utc


class CountdownCreateRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    title: str = Field(..., description='Event title (1-50 chars)')
    target_date: datetime
    background_image_url: Optional[str] = Field(default=None, max_length=1024)

    @field_validator('target_date')
    @classmethod
    def _naive_utc(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class CountdownUpdateRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    title: Optional[str] = None
    target_date: Optional[datetime] = None
    background_image_url: Optional[str] = Field(default=None, max_length=1024)

    @field_validator('target_date')
    @classmethod
    def _naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else None


class CountdownEventOut(BaseModel):
    id: str
    title: str
    target_date: datetime
    background_image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    days: int
    hours: int
    minutes: int
    seconds: int
    is_expired: bool


class CountdownListResponse(BaseModel):
    active_events: List[CountdownEventOut]
    expired_events: List[CountdownEventOut]
    total_events: int
    has_active_events: bool


class CountdownDeleteResponse(BaseModel):
    deleted_count: int
