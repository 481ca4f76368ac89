from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from diary.core.clock import Clock, get_clock
from diary.core.security import get_current_participant
from diary.db.session import get_db
from diary.letters.service import LetterService
from diary.letters.store import SqlLetterStore
from diary.models.participant import Participant
from diary.schemas.letter import (
    LetterComposeRequest,
    LetterComposeResponse,
    LetterListResponse,
    LetterOut,
    LetterThreadResponse,
    LetterUpdateResponse,
)


router = APIRouter(prefix='/letters', tags=['letters'])


def get_letter_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> LetterService:
    return LetterService(SqlLetterStore(db), clock)


@router.post('', response_model=LetterComposeResponse, status_code=201)
def compose_letter(
    req: LetterComposeRequest,
    service: LetterService = Depends(get_letter_service),
    participant: Participant = Depends(get_current_participant),
) -> LetterComposeResponse:
    return service.compose(
        participant,
        req.content,
        title=req.title,
        scheduled_delivery_at=req.scheduled_delivery_at,
        reply_to=req.reply_to,
    )


@router.get('', response_model=LetterListResponse)
def list_letters(
    box: str = Query('all'),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    service: LetterService = Depends(get_letter_service),
    participant: Participant = Depends(get_current_participant),
):
    """Inbox, sent box or both; pending deliveries are swept first."""
    return service.list_letters(participant, box=box, limit=limit, offset=offset)


@router.get('/{letter_id}', response_model=LetterOut)
def get_letter(
    letter_id: str,
    service: LetterService = Depends(get_letter_service),
    participant: Participant = Depends(get_current_participant),
):
    return service.get_letter(participant, letter_id)


@router.patch('/{letter_id}/read', response_model=LetterOut)
def mark_letter_read(
    letter_id: str,
    service: LetterService = Depends(get_letter_service),
    participant: Participant = Depends(get_current_participant),
):
    return service.mark_read(participant, letter_id)


@router.get('/{letter_id}/thread', response_model=LetterThreadResponse)
def get_thread(
    letter_id: str,
    service: LetterService = Depends(get_letter_service),
    participant: Participant = Depends(get_current_participant),
):
    return service.thread(participant, letter_id)


@router.delete('/{letter_id}', response_model=LetterUpdateResponse)
def delete_letter(
    letter_id: str,
    service: LetterService = Depends(get_letter_service),
    participant: Participant = Depends(get_current_participant),
):
    service.delete(participant, letter_id)
    return LetterUpdateResponse(status='deleted')
