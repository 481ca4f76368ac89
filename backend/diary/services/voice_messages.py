"""Voice mailbox: short recordings left for the other participant."""
from __future__ import annotations

import logging
import secrets
from datetime import timezone
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from diary.core.clock import Clock, utcnow
from diary.core.errors import NotFoundError, PermissionDenied, StoreError, ValidationError
from diary.db.session import commit_or_raise
from diary.models.participant import Participant
from diary.models.voice_message import VoiceMessage
from diary.schemas.voice import VoiceListResponse, VoiceMessageOut, VoiceSendResponse
from diary.security.sanitizer import InputSanitizer
from diary.storage.media import VOICE_BUCKET, MediaStorage

logger = logging.getLogger(__name__)

MAX_AUDIO_SIZE = 10 * 1024 * 1024  # 10 MB
MAX_DURATION_SECONDS = 300


def format_voice(message: VoiceMessage, viewer: Participant) -> VoiceMessageOut:
    sender = Participant(message.sender_id)
    recipient = Participant(message.recipient_id)
    return VoiceMessageOut(
        id=message.id,
        sender_id=sender,
        recipient_id=recipient,
        sender_name=sender.display_name,
        recipient_name=recipient.display_name,
        audio_url=message.audio_url,
        duration=message.duration,
        is_read=message.is_read,
        is_new=not message.is_read,
        is_sent_by_current_user=sender is viewer,
        created_at=message.created_at,
    )


def send_voice_message(
    db: Session,
    storage: MediaStorage,
    sender: Participant,
    data: bytes,
    filename: Optional[str],
    content_type: Optional[str],
    duration: float,
    clock: Clock = utcnow,
) -> VoiceSendResponse:
    if not data:
        raise ValidationError("Please record a message first")
    if not InputSanitizer.validate_audio_type(content_type):
        raise ValidationError("Only audio files can be sent")
    if len(data) > MAX_AUDIO_SIZE:
        raise ValidationError("Audio files cannot exceed 10 MB")
    if not (0 < duration <= MAX_DURATION_SECONDS):
        raise ValidationError("Voice messages must be between 0 and 300 seconds")

    now = clock()
    ext = InputSanitizer.file_extension(filename, default="webm")
    millis = int(now.replace(tzinfo=timezone.utc).timestamp() * 1000)
    key = f"voice-{sender.value}-{millis}-{secrets.token_hex(4)}.{ext}"

    audio_url = storage.put(VOICE_BUCKET, key, data, content_type)

    message = VoiceMessage(
        sender_id=sender,
        recipient_id=sender.other,
        audio_url=audio_url,
        storage_key=key,
        duration=duration,
        is_read=False,
        created_at=now,
    )
    db.add(message)
    try:
        commit_or_raise(db, "save voice message")
    except StoreError:
        storage.remove(VOICE_BUCKET, key)
        raise
    db.refresh(message)

    logger.info("Voice message %s from %s (%.1fs)", message.id, sender.value, duration)
    return VoiceSendResponse(
        voice_message=format_voice(message, sender),
        message=f"Voice message sent to {sender.other.display_name}",
    )


def list_voice_messages(db: Session, viewer: Participant) -> VoiceListResponse:
    messages = list(
        db.execute(
            select(VoiceMessage)
            .where(or_(VoiceMessage.sender_id == viewer, VoiceMessage.recipient_id == viewer))
            .order_by(VoiceMessage.created_at.desc(), VoiceMessage.id.desc())
        ).scalars()
    )
    unread = sum(1 for m in messages if m.recipient_id == viewer and not m.is_read)
    return VoiceListResponse(
        voice_messages=[format_voice(m, viewer) for m in messages],
        total=len(messages),
        unread_count=unread,
    )


def _get_visible(db: Session, viewer: Participant, message_id: str) -> VoiceMessage:
    message = db.get(VoiceMessage, message_id)
    if message is None or viewer not in (message.sender_id, message.recipient_id):
        raise NotFoundError("Voice message not found")
    return message


def mark_voice_read(db: Session, viewer: Participant, message_id: str) -> VoiceMessageOut:
    message = _get_visible(db, viewer, message_id)
    if message.recipient_id != viewer:
        raise PermissionDenied("Only the recipient can mark a voice message as read")

    if not message.is_read:
        message.is_read = True
        commit_or_raise(db, "mark voice message as read")
        db.refresh(message)
    return format_voice(message, viewer)


def delete_voice_message(db: Session, storage: MediaStorage, viewer: Participant, message_id: str) -> None:
    message = _get_visible(db, viewer, message_id)
    key = message.storage_key

    db.delete(message)
    commit_or_raise(db, "delete voice message")

    if key and not storage.remove(VOICE_BUCKET, key):
        logger.warning("Voice message %s deleted but %s could not be removed", message_id, key)
