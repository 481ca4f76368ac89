from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from diary.storage.media import MEMORIES_BUCKET, VOICE_BUCKET, MediaStorage, get_media_storage


router = APIRouter(prefix='/media', tags=['media'])


@router.get('/{bucket}/{key}')
def get_media(
    bucket: str,
    key: str,
    storage: MediaStorage = Depends(get_media_storage),
):
    """Serve objects kept by the in-memory backend (demo mode, tests)."""
    if bucket not in (MEMORIES_BUCKET, VOICE_BUCKET):
        raise HTTPException(status_code=404, detail='Not found')

    found = storage.get(bucket, key)
    if found is None:
        raise HTTPException(status_code=404, detail='Not found')

    data, content_type = found
    return Response(content=data, media_type=content_type)
