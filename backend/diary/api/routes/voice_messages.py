from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from diary.core.clock import Clock, get_clock
from diary.core.security import get_current_participant
from diary.db.session import get_db
from diary.models.participant import Participant
from diary.schemas.voice import VoiceListResponse, VoiceMessageOut, VoiceSendResponse
from diary.services import voice_messages as svc
from diary.storage.media import MediaStorage, get_media_storage


router = APIRouter(prefix='/voice-messages', tags=['voice-messages'])


@router.get('', response_model=VoiceListResponse)
def list_voice_messages(
    db: Session = Depends(get_db),
    participant: Participant = Depends(get_current_participant),
):
    return svc.list_voice_messages(db, participant)


@router.post('', response_model=VoiceSendResponse, status_code=201)
async def send_voice_message(
    audio: UploadFile = File(...),
    duration: float = Form(...),
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_media_storage),
    clock: Clock = Depends(get_clock),
    participant: Participant = Depends(get_current_participant),
):
    data = await audio.read(svc.MAX_AUDIO_SIZE + 1)
    return svc.send_voice_message(
        db,
        storage,
        participant,
        data,
        audio.filename,
        audio.content_type,
        duration,
        clock=clock,
    )


@router.patch('/{message_id}/read', response_model=VoiceMessageOut)
def mark_read(
    message_id: str,
    db: Session = Depends(get_db),
    participant: Participant = Depends(get_current_participant),
):
    return svc.mark_voice_read(db, participant, message_id)


@router.delete('/{message_id}')
def delete_voice_message(
    message_id: str,
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_media_storage),
    participant: Participant = Depends(get_current_participant),
):
    svc.delete_voice_message(db, storage, participant, message_id)
    return {"status": "deleted"}
