from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from diary.core.clock import Clock, utcnow
from diary.core.errors import StoreError, ValidationError
from diary.letters.store import LetterStore
from diary.models.letter import Letter, new_id
from diary.models.participant import Participant
from diary.security.sanitizer import InputSanitizer

logger = logging.getLogger(__name__)

MAX_CONTENT_LENGTH = 2000
MAX_TITLE_LENGTH = 100


class DeliveryGate:
    """
    Decides when a letter becomes visible to its recipient.

    Delivery is either immediate (``delivered_at`` stamped on compose) or
    deferred until some later list/read request runs ``sweep`` after the
    scheduled time. There is no timer: a scheduled letter lands as soon as
    either participant next looks at the mailbox.
    """

    def __init__(self, store: LetterStore, clock: Clock = utcnow):
        self.store = store
        self.clock = clock

    def compose(
        self,
        sender: Participant,
        content: str,
        title: Optional[str] = None,
        scheduled_delivery_at: Optional[datetime] = None,
        reply_to: Optional[str] = None,
    ) -> Letter:
        now = self.clock()

        content = (content or "").strip()
        if not content:
            raise ValidationError("Letter content cannot be empty")
        if len(content) > MAX_CONTENT_LENGTH:
            raise ValidationError(f"Letter content cannot exceed {MAX_CONTENT_LENGTH} characters")
        try:
            content = InputSanitizer.sanitize_body(content, max_length=MAX_CONTENT_LENGTH)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        title = (title or "").strip() or None
        if title is not None:
            if len(title) > MAX_TITLE_LENGTH:
                raise ValidationError(f"Title cannot exceed {MAX_TITLE_LENGTH} characters")
            try:
                title = InputSanitizer.sanitize_subject(title, max_length=MAX_TITLE_LENGTH)
            except ValueError as e:
                raise ValidationError(str(e)) from e

        if reply_to:
            parent = self.store.get(reply_to)
            if parent is None:
                raise ValidationError("The letter you are replying to does not exist")
            if parent.sender_id == sender:
                raise ValidationError("You cannot reply to your own letter")
            if parent.delivered_at is None:
                # the replier cannot have seen it yet
                raise ValidationError("The letter you are replying to does not exist")

        if scheduled_delivery_at is not None:
            if scheduled_delivery_at <= now:
                raise ValidationError("Scheduled delivery time must be in the future")
            delivered_at = None
        else:
            delivered_at = now

        letter = Letter(
            id=new_id(),
            sender_id=sender,
            title=title,
            content=content,
            reply_to=reply_to or None,
            scheduled_delivery_at=scheduled_delivery_at,
            delivered_at=delivered_at,
            read_at=None,
            created_at=now,
        )
        saved = self.store.insert(letter)
        if delivered_at is None:
            logger.info("Letter %s from %s scheduled for %s", saved.id, sender.value, scheduled_delivery_at)
        else:
            logger.info("Letter %s from %s delivered", saved.id, sender.value)
        return saved

    def sweep(self) -> int:
        """Deliver every due scheduled letter. Failures are logged, never raised."""
        now = self.clock()
        try:
            delivered = self.store.deliver_due(now)
        except StoreError as e:
            logger.warning("Scheduled letter sweep failed: %s", e)
            return 0
        if delivered:
            logger.info("Delivered %d scheduled letter(s)", delivered)
        return delivered
