from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from diary.core.clock import Clock, utcnow
from diary.core.errors import ConflictError, NotFoundError, PermissionDenied, ValidationError
from diary.letters.delivery import DeliveryGate
from diary.letters.store import BOXES, LetterStore
from diary.letters.thread import ThreadReconstructor, is_visible_to
from diary.models.letter import Letter
from diary.models.participant import Participant
from diary.schemas.letter import (
    LetterComposeResponse,
    LetterListResponse,
    LetterOut,
    LetterThreadResponse,
)

logger = logging.getLogger(__name__)


def format_letter(letter: Letter, viewer: Participant, thread_level: Optional[int] = None) -> LetterOut:
    sender = Participant(letter.sender_id)
    return LetterOut(
        id=letter.id,
        sender_id=sender,
        title=letter.title,
        content=letter.content,
        reply_to=letter.reply_to,
        scheduled_delivery_at=letter.scheduled_delivery_at,
        delivered_at=letter.delivered_at,
        read_at=letter.read_at,
        created_at=letter.created_at,
        sender_name=sender.display_name,
        receiver_name=sender.other.display_name,
        is_sent_by_current_user=sender == viewer,
        is_delivered=letter.delivered_at is not None,
        is_read=letter.read_at is not None,
        thread_level=thread_level,
    )


class LetterService:
    """The mailbox: compose, list, read, delete and thread letters."""

    def __init__(self, store: LetterStore, clock: Clock = utcnow):
        self.store = store
        self.clock = clock
        self.gate = DeliveryGate(store, clock)
        self.threads = ThreadReconstructor(store)

    def compose(
        self,
        sender: Participant,
        content: str,
        title: Optional[str] = None,
        scheduled_delivery_at: Optional[datetime] = None,
        reply_to: Optional[str] = None,
    ) -> LetterComposeResponse:
        letter = self.gate.compose(
            sender,
            content,
            title=title,
            scheduled_delivery_at=scheduled_delivery_at,
            reply_to=reply_to,
        )
        message = 'Letter scheduled for delivery' if letter.delivered_at is None else 'Letter sent'
        return LetterComposeResponse(letter=format_letter(letter, sender), message=message)

    def list_letters(self, viewer: Participant, box: str = 'all', limit: int = 20, offset: int = 0) -> LetterListResponse:
        if box not in BOXES:
            raise ValidationError(f"Unknown mailbox '{box}'")
        if limit < 1 or offset < 0:
            raise ValidationError("Invalid pagination parameters")

        self.gate.sweep()

        letters, total = self.store.list_box(viewer, box, limit, offset)
        return LetterListResponse(
            box=box,
            letters=[format_letter(l, viewer) for l in letters],
            total=total,
            unread_count=self.store.count_unread(viewer),
            has_more=offset + len(letters) < total,
        )

    def get_letter(self, viewer: Participant, letter_id: str) -> LetterOut:
        self.gate.sweep()
        letter = self.store.get(letter_id)
        if letter is None or not is_visible_to(letter, viewer):
            raise NotFoundError("Letter not found")
        return format_letter(letter, viewer)

    def mark_read(self, viewer: Participant, letter_id: str) -> LetterOut:
        self.gate.sweep()

        letter = self.store.get(letter_id)
        if letter is None or not is_visible_to(letter, viewer):
            raise NotFoundError("Letter not found")
        if letter.sender_id == viewer:
            raise PermissionDenied("Only the recipient can mark a letter as read")

        updated = self.store.mark_read(letter_id, self.clock())
        if updated is None:
            raise NotFoundError("Letter not found")
        return format_letter(updated, viewer)

    def delete(self, viewer: Participant, letter_id: str) -> None:
        letter = self.store.get(letter_id)
        if letter is None or not is_visible_to(letter, viewer):
            raise NotFoundError("Letter not found")
        if letter.sender_id != viewer:
            raise PermissionDenied("You can only delete letters you sent")
        if self.store.has_replies(letter_id):
            raise ConflictError("This letter has replies and cannot be deleted")

        if not self.store.delete(letter_id, viewer):
            raise NotFoundError("Letter not found")
        logger.info("Letter %s deleted by %s", letter_id, viewer.value)

    def thread(self, viewer: Participant, letter_id: str) -> LetterThreadResponse:
        self.gate.sweep()

        thread = self.threads.reconstruct(letter_id, viewer)
        entries = [
            format_letter(l, viewer, thread_level=0 if l.id == thread.root.id else 1)
            for l in thread.letters
        ]
        return LetterThreadResponse(
            root_id=thread.root.id,
            thread=entries,
            total_messages=len(entries),
        )
