"""Countdowns to the next time we meet (and other dates worth waiting for)."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from diary.core.clock import Clock, utcnow
from diary.core.errors import NotFoundError, ValidationError
from diary.db.session import commit_or_raise
from diary.models.countdown import CountdownEvent
from diary.schemas.countdown import CountdownDeleteResponse, CountdownEventOut, CountdownListResponse
from diary.security.sanitizer import InputSanitizer

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 50
MAX_ACTIVE_EVENTS = 5


def format_event(event: CountdownEvent, now: datetime) -> CountdownEventOut:
    remaining = int((event.target_date - now).total_seconds())
    expired = remaining <= 0
    remaining = max(remaining, 0)

    days, rest = divmod(remaining, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)

    return CountdownEventOut(
        id=event.id,
        title=event.title,
        target_date=event.target_date,
        background_image_url=event.background_image_url,
        created_at=event.created_at,
        updated_at=event.updated_at,
        days=days,
        hours=hours,
        minutes=minutes,
        seconds=seconds,
        is_expired=expired,
    )


def _clean_title(title: Optional[str]) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Please give the event a title")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Title cannot exceed {MAX_TITLE_LENGTH} characters")
    try:
        return InputSanitizer.sanitize_subject(title, max_length=MAX_TITLE_LENGTH)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def _active_count(db: Session, now: datetime, exclude_id: Optional[str] = None) -> int:
    stmt = select(func.count()).select_from(CountdownEvent).where(CountdownEvent.target_date > now)
    if exclude_id is not None:
        stmt = stmt.where(CountdownEvent.id != exclude_id)
    return db.execute(stmt).scalar_one()


def _get_event(db: Session, event_id: str) -> CountdownEvent:
    event = db.get(CountdownEvent, event_id)
    if event is None:
        raise NotFoundError("Countdown event not found")
    return event


def list_events(db: Session, clock: Clock = utcnow) -> CountdownListResponse:
    now = clock()
    events = db.execute(
        select(CountdownEvent).order_by(CountdownEvent.target_date.asc(), CountdownEvent.id.asc())
    ).scalars()

    active: List[CountdownEventOut] = []
    expired: List[CountdownEventOut] = []
    for event in events:
        out = format_event(event, now)
        (expired if out.is_expired else active).append(out)

    return CountdownListResponse(
        active_events=active,
        expired_events=expired,
        total_events=len(active) + len(expired),
        has_active_events=bool(active),
    )


def create_event(
    db: Session,
    title: str,
    target_date: datetime,
    background_image_url: Optional[str] = None,
    clock: Clock = utcnow,
) -> CountdownEventOut:
    now = clock()
    title = _clean_title(title)
    if target_date <= now:
        raise ValidationError("The target date must be in the future")
    if _active_count(db, now) >= MAX_ACTIVE_EVENTS:
        raise ValidationError(f"You can have at most {MAX_ACTIVE_EVENTS} active countdowns")

    event = CountdownEvent(
        title=title,
        target_date=target_date,
        background_image_url=(background_image_url or "").strip() or None,
        created_at=now,
        updated_at=now,
    )
    db.add(event)
    commit_or_raise(db, "create countdown")
    db.refresh(event)
    logger.info("Countdown %s created for %s", event.id, event.target_date.isoformat())
    return format_event(event, now)


def get_event(db: Session, event_id: str, clock: Clock = utcnow) -> CountdownEventOut:
    return format_event(_get_event(db, event_id), clock())


def update_event(
    db: Session,
    event_id: str,
    title: Optional[str] = None,
    target_date: Optional[datetime] = None,
    background_image_url: Optional[str] = None,
    clock: Clock = utcnow,
) -> CountdownEventOut:
    now = clock()
    event = _get_event(db, event_id)

    if title is not None:
        event.title = _clean_title(title)
    if target_date is not None:
        if target_date <= now:
            raise ValidationError("The target date must be in the future")
        # reviving an expired event counts against the limit
        if event.target_date <= now and _active_count(db, now, exclude_id=event.id) >= MAX_ACTIVE_EVENTS:
            raise ValidationError(f"You can have at most {MAX_ACTIVE_EVENTS} active countdowns")
        event.target_date = target_date
    if background_image_url is not None:
        event.background_image_url = background_image_url.strip() or None

    event.updated_at = now
    commit_or_raise(db, "update countdown")
    db.refresh(event)
    return format_event(event, now)


def delete_event(db: Session, event_id: str) -> None:
    event = _get_event(db, event_id)
    db.delete(event)
    commit_or_raise(db, "delete countdown")


def delete_all_events(db: Session) -> CountdownDeleteResponse:
    result = db.execute(delete(CountdownEvent))
    commit_or_raise(db, "delete countdowns")
    logger.info("Cleared %d countdown events", result.rowcount)
    return CountdownDeleteResponse(deleted_count=result.rowcount or 0)
