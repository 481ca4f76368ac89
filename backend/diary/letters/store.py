"""
Letter persistence behind one small interface.

The delivery gate, the thread reconstructor and the mailbox service only
talk to a ``LetterStore``. ``SqlLetterStore`` runs on a SQLAlchemy session,
``InMemoryLetterStore`` keeps rows in a dict (offline fakes, unit tests).
Both return ``Letter`` model instances.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Tuple

from sqlalchemy import and_, delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from diary.core.errors import StoreError
from diary.models.letter import Letter
from diary.models.participant import Participant

logger = logging.getLogger(__name__)

BOX_INBOX = "inbox"
BOX_SENT = "sent"
BOX_ALL = "all"
BOXES = (BOX_INBOX, BOX_SENT, BOX_ALL)


class LetterStore(Protocol):
    def insert(self, letter: Letter) -> Letter: ...

    def get(self, letter_id: str) -> Optional[Letter]: ...

    def delivered_children(self, parent_id: str) -> List[Letter]:
        """Delivered letters replying to ``parent_id``, oldest first."""
        ...

    def has_replies(self, letter_id: str) -> bool: ...

    def deliver_due(self, now: datetime) -> int:
        """Bulk conditional delivery of scheduled letters that are due."""
        ...

    def mark_read(self, letter_id: str, now: datetime) -> Optional[Letter]:
        """Set ``read_at`` if still unset; returns the (possibly unchanged) row."""
        ...

    def delete(self, letter_id: str, sender_id: Participant) -> bool:
        """Delete a letter only if ``sender_id`` sent it."""
        ...

    def list_box(
        self, viewer: Participant, box: str, limit: int, offset: int
    ) -> Tuple[List[Letter], int]:
        """One page of a mailbox (newest first) and the size of the whole box."""
        ...

    def count_unread(self, viewer: Participant) -> int: ...


class SqlLetterStore:
    """LetterStore on a SQLAlchemy session; every write commits."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Letter store failed to %s: %s", action, e)
            raise StoreError(f"Failed to {action}") from e

    def _run(self, stmt, action: str):
        try:
            return self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Letter store failed to %s: %s", action, e)
            raise StoreError(f"Failed to {action}") from e

    def insert(self, letter: Letter) -> Letter:
        self.db.add(letter)
        self._commit("save letter")
        self.db.refresh(letter)
        return letter

    def get(self, letter_id: str) -> Optional[Letter]:
        stmt = select(Letter).where(Letter.id == letter_id)
        return self._run(stmt, "load letter").scalar_one_or_none()

    def delivered_children(self, parent_id: str) -> List[Letter]:
        stmt = (
            select(Letter)
            .where(Letter.reply_to == parent_id, Letter.delivered_at.is_not(None))
            .order_by(Letter.created_at.asc(), Letter.id.asc())
        )
        return list(self._run(stmt, "load replies").scalars().all())

    def has_replies(self, letter_id: str) -> bool:
        stmt = select(func.count()).select_from(Letter).where(Letter.reply_to == letter_id)
        return self._run(stmt, "count replies").scalar_one() > 0

    def deliver_due(self, now: datetime) -> int:
        # The predicate only matches rows nobody delivered yet, so concurrent
        # sweeps never touch a row twice.
        stmt = (
            update(Letter)
            .where(
                and_(
                    Letter.delivered_at.is_(None),
                    Letter.scheduled_delivery_at.is_not(None),
                    Letter.scheduled_delivery_at <= now,
                )
            )
            .values(delivered_at=now)
            .execution_options(synchronize_session=False)
        )
        result = self._run(stmt, "deliver scheduled letters")
        self._commit("deliver scheduled letters")
        # rows already in the identity map must see the new delivered_at
        self.db.expire_all()
        return result.rowcount or 0

    def mark_read(self, letter_id: str, now: datetime) -> Optional[Letter]:
        stmt = (
            update(Letter)
            .where(Letter.id == letter_id, Letter.read_at.is_(None))
            .values(read_at=now)
            .execution_options(synchronize_session=False)
        )
        self._run(stmt, "mark letter as read")
        self._commit("mark letter as read")
        self.db.expire_all()
        return self.get(letter_id)

    def delete(self, letter_id: str, sender_id: Participant) -> bool:
        stmt = delete(Letter).where(Letter.id == letter_id, Letter.sender_id == sender_id)
        result = self._run(stmt, "delete letter")
        self._commit("delete letter")
        self.db.expire_all()
        return (result.rowcount or 0) > 0

    def _box_filter(self, viewer: Participant, box: str):
        if box == BOX_INBOX:
            return and_(Letter.sender_id == viewer.other, Letter.delivered_at.is_not(None))
        if box == BOX_SENT:
            return Letter.sender_id == viewer
        return Letter.delivered_at.is_not(None)

    def list_box(self, viewer: Participant, box: str, limit: int, offset: int) -> Tuple[List[Letter], int]:
        condition = self._box_filter(viewer, box)
        total = self._run(
            select(func.count()).select_from(Letter).where(condition), "count letters"
        ).scalar_one()
        stmt = (
            select(Letter)
            .where(condition)
            .order_by(Letter.created_at.desc(), Letter.id.desc())
            .offset(offset)
            .limit(limit)
        )
        letters = list(self._run(stmt, "list letters").scalars().all())
        return letters, total

    def count_unread(self, viewer: Participant) -> int:
        stmt = (
            select(func.count())
            .select_from(Letter)
            .where(
                Letter.sender_id == viewer.other,
                Letter.delivered_at.is_not(None),
                Letter.read_at.is_(None),
            )
        )
        return self._run(stmt, "count unread letters").scalar_one()


class InMemoryLetterStore:
    """Dict-backed LetterStore. Rows are copied in and out like a real store."""

    def __init__(self, letters: Optional[List[Letter]] = None):
        self._rows: Dict[str, Letter] = {}
        for letter in letters or []:
            self.insert(letter)

    @staticmethod
    def _copy(letter: Letter) -> Letter:
        return Letter(
            id=letter.id,
            sender_id=letter.sender_id,
            title=letter.title,
            content=letter.content,
            reply_to=letter.reply_to,
            scheduled_delivery_at=letter.scheduled_delivery_at,
            delivered_at=letter.delivered_at,
            read_at=letter.read_at,
            created_at=letter.created_at,
        )

    def insert(self, letter: Letter) -> Letter:
        if not letter.id or letter.created_at is None:
            raise StoreError("Failed to save letter")
        self._rows[letter.id] = self._copy(letter)
        return self._copy(letter)

    def get(self, letter_id: str) -> Optional[Letter]:
        row = self._rows.get(letter_id)
        return self._copy(row) if row else None

    def delivered_children(self, parent_id: str) -> List[Letter]:
        children = [
            row for row in self._rows.values()
            if row.reply_to == parent_id and row.delivered_at is not None
        ]
        children.sort(key=lambda l: (l.created_at, l.id))
        return [self._copy(c) for c in children]

    def has_replies(self, letter_id: str) -> bool:
        return any(row.reply_to == letter_id for row in self._rows.values())

    def deliver_due(self, now: datetime) -> int:
        delivered = 0
        for row in self._rows.values():
            if (
                row.delivered_at is None
                and row.scheduled_delivery_at is not None
                and row.scheduled_delivery_at <= now
            ):
                row.delivered_at = now
                delivered += 1
        return delivered

    def mark_read(self, letter_id: str, now: datetime) -> Optional[Letter]:
        row = self._rows.get(letter_id)
        if row is None:
            return None
        if row.read_at is None:
            row.read_at = now
        return self._copy(row)

    def delete(self, letter_id: str, sender_id: Participant) -> bool:
        row = self._rows.get(letter_id)
        if row is None or row.sender_id != sender_id:
            return False
        del self._rows[letter_id]
        return True

    def _in_box(self, row: Letter, viewer: Participant, box: str) -> bool:
        if box == BOX_INBOX:
            return row.sender_id == viewer.other and row.delivered_at is not None
        if box == BOX_SENT:
            return row.sender_id == viewer
        return row.delivered_at is not None

    def list_box(self, viewer: Participant, box: str, limit: int, offset: int) -> Tuple[List[Letter], int]:
        rows = [row for row in self._rows.values() if self._in_box(row, viewer, box)]
        rows.sort(key=lambda l: (l.created_at, l.id), reverse=True)
        page = rows[offset:offset + limit]
        return [self._copy(r) for r in page], len(rows)

    def count_unread(self, viewer: Participant) -> int:
        return sum(
            1 for row in self._rows.values()
            if row.sender_id == viewer.other and row.delivered_at is not None and row.read_at is None
        )
