from __future__ import annotations

from datetime import date as calendar_date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from diary.models.participant import Participant


class LocationSyncRequest(BaseModel):
    model_config = ConfigDict(extra='forbid')

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    mood_emoji: Optional[str] = Field(default=None, max_length=16)


class LocationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: Participant
    latitude: float
    longitude: float
    mood_emoji: Optional[str] = None
    created_at: datetime


class LocationPoint(BaseModel):
    latitude: float
    longitude: float
    mood_emoji: Optional[str] = None
    created_at: Optional[datetime] = None


class LocationSyncResponse(BaseModel):
    location: LocationOut
    both_synced: bool
    distance: Optional[int] = None
    message: str


class LocationStatusResponse(BaseModel):
    him_synced: bool
    her_synced: bool
    both_synced: bool
    current_user_synced: bool
    distance: Optional[int] = None
    distance_message: str
    him_location: Optional[LocationPoint] = None
    her_location: Optional[LocationPoint] = None


class DistanceRecord(BaseModel):
    date: calendar_date
    distance: float
    him_location: LocationPoint
    her_location: LocationPoint


class DistanceStats(BaseModel):
    average_distance: int
    min_distance: int
    max_distance: int
    total_records: int


class LocationHistoryResponse(BaseModel):
    history: List[DistanceRecord]
    stats: DistanceStats
    has_more: bool
