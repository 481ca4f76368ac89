from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from diary.core.clock import Clock, get_clock
from diary.core.security import get_current_participant
from diary.db.session import get_db
from diary.models.participant import Participant
from diary.schemas.location import (
    LocationHistoryResponse,
    LocationStatusResponse,
    LocationSyncRequest,
    LocationSyncResponse,
)
from diary.services.locations import location_history, location_status, sync_location


router = APIRouter(prefix='/location', tags=['location'])


@router.post('/sync', response_model=LocationSyncResponse, status_code=201)
def sync(
    req: LocationSyncRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    participant: Participant = Depends(get_current_participant),
):
    return sync_location(db, participant, req.latitude, req.longitude, req.mood_emoji, clock=clock)


@router.get('/status', response_model=LocationStatusResponse)
def status(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    participant: Participant = Depends(get_current_participant),
):
    return location_status(db, participant, clock=clock)


@router.get('/history', response_model=LocationHistoryResponse)
def history(
    limit: int = Query(30, ge=1, le=365),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    participant: Participant = Depends(get_current_participant),
):
    return location_history(db, limit=limit, offset=offset)
