from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from diary.core.clock import Clock, get_clock
from diary.core.security import get_current_participant
from diary.db.session import get_db
from diary.models.participant import Participant
from diary.schemas.memory import (
    CommentCreateRequest,
    CommentDeleteResponse,
    CommentOut,
    CommentUpdateRequest,
    LikeInfo,
    LikeToggleResponse,
    MemoryListResponse,
    MemoryUploadResponse,
)
from diary.services import memories as svc
from diary.storage.media import MediaStorage, get_media_storage


router = APIRouter(prefix='/memories', tags=['memories'])
comments_router = APIRouter(prefix='/comments', tags=['memories'])


@router.get('', response_model=MemoryListResponse)
def list_memories(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    participant: Participant = Depends(get_current_participant),
):
    return svc.list_memories(db, limit=limit, offset=offset)


@router.post('/upload', response_model=MemoryUploadResponse, status_code=201)
async def upload_memory(
    file: UploadFile = File(...),
    description: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_media_storage),
    clock: Clock = Depends(get_clock),
    participant: Participant = Depends(get_current_participant),
):
    # read at most one byte past the limit so oversized uploads are still rejected
    data = await file.read(svc.MAX_IMAGE_SIZE + 1)
    return svc.upload_memory(
        db,
        storage,
        participant,
        data,
        file.filename,
        file.content_type,
        description,
        clock=clock,
    )


@router.delete('/{memory_id}')
def delete_memory(
    memory_id: str,
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_media_storage),
    participant: Participant = Depends(get_current_participant),
):
    svc.delete_memory(db, storage, participant, memory_id)
    return {"status": "deleted"}


@router.get('/{memory_id}/likes', response_model=LikeInfo)
def get_likes(
    memory_id: str,
    db: Session = Depends(get_db),
    participant: Participant = Depends(get_current_participant),
):
    return svc.like_info(db, memory_id)


@router.post('/{memory_id}/likes', response_model=LikeToggleResponse)
def toggle_like(
    memory_id: str,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    participant: Participant = Depends(get_current_participant),
):
    return svc.toggle_like(db, participant, memory_id, clock=clock)


@router.get('/{memory_id}/comments', response_model=List[CommentOut])
def list_comments(
    memory_id: str,
    db: Session = Depends(get_db),
    participant: Participant = Depends(get_current_participant),
):
    return svc.list_comments(db, memory_id)


@router.post('/{memory_id}/comments', response_model=CommentOut, status_code=201)
def add_comment(
    memory_id: str,
    req: CommentCreateRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    participant: Participant = Depends(get_current_participant),
):
    return svc.add_comment(db, participant, memory_id, req.content, req.parent_comment_id, clock=clock)


@comments_router.put('/{comment_id}', response_model=CommentOut)
def edit_comment(
    comment_id: str,
    req: CommentUpdateRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    participant: Participant = Depends(get_current_participant),
):
    return svc.edit_comment(db, participant, comment_id, req.content, clock=clock)


@comments_router.delete('/{comment_id}', response_model=CommentDeleteResponse)
def delete_comment(
    comment_id: str,
    db: Session = Depends(get_db),
    participant: Participant = Depends(get_current_participant),
):
    return svc.delete_comment(db, participant, comment_id)
