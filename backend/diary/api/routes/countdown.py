from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from diary.core.clock import Clock, get_clock
from diary.core.security import get_current_participant
from diary.db.session import get_db
from diary.models.participant import Participant
from diary.schemas.countdown import (
    CountdownCreateRequest,
    CountdownDeleteResponse,
    CountdownEventOut,
    CountdownListResponse,
    CountdownUpdateRequest,
)
from diary.services import countdown as svc


router = APIRouter(prefix='/countdown', tags=['countdown'])


@router.get('', response_model=CountdownListResponse)
def list_events(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    participant: Participant = Depends(get_current_participant),
):
    return svc.list_events(db, clock=clock)


@router.post('', response_model=CountdownEventOut, status_code=201)
def create_event(
    req: CountdownCreateRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    participant: Participant = Depends(get_current_participant),
):
    return svc.create_event(db, req.title, req.target_date, req.background_image_url, clock=clock)


@router.delete('', response_model=CountdownDeleteResponse)
def delete_all_events(
    db: Session = Depends(get_db),
    participant: Participant = Depends(get_current_participant),
):
    return svc.delete_all_events(db)


@router.get('/{event_id}', response_model=CountdownEventOut)
def get_event(
    event_id: str,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    participant: Participant = Depends(get_current_participant),
):
    return svc.get_event(db, event_id, clock=clock)


@router.put('/{event_id}', response_model=CountdownEventOut)
def update_event(
    event_id: str,
    req: CountdownUpdateRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    participant: Participant = Depends(get_current_participant),
):
    return svc.update_event(
        db,
        event_id,
        title=req.title,
        target_date=req.target_date,
        background_image_url=req.background_image_url,
        clock=clock,
    )


@router.delete('/{event_id}')
def delete_event(
    event_id: str,
    db: Session = Depends(get_db),
    participant: Participant = Depends(get_current_participant),
):
    svc.delete_event(db, event_id)
    return {"status": "deleted"}
