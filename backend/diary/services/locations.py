"""Daily location check-ins and the distance between the two of us."""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from diary.core.clock import Clock, utcnow
from diary.core.errors import ConflictError, ValidationError
from diary.db.session import commit_or_raise
from diary.models.location import DailyLocation
from diary.models.participant import Participant
from diary.schemas.location import (
    DistanceRecord,
    DistanceStats,
    LocationHistoryResponse,
    LocationOut,
    LocationPoint,
    LocationStatusResponse,
    LocationSyncResponse,
)
from diary.services.geo import haversine_km

logger = logging.getLogger(__name__)


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def get_location_for_day(db: Session, participant: Participant, day: date) -> Optional[DailyLocation]:
    start, end = _day_bounds(day)
    stmt = (
        select(DailyLocation)
        .where(
            DailyLocation.user_id == participant,
            DailyLocation.created_at >= start,
            DailyLocation.created_at < end,
        )
        .order_by(DailyLocation.created_at.asc())
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none()


def _point(loc: Optional[DailyLocation]) -> Optional[LocationPoint]:
    if loc is None:
        return None
    return LocationPoint(
        latitude=loc.latitude,
        longitude=loc.longitude,
        mood_emoji=loc.mood_emoji,
        created_at=loc.created_at,
    )


def _distance_message(distance: float) -> str:
    return f"Today, we are {round(distance)} km apart"


def sync_location(
    db: Session,
    participant: Participant,
    latitude: float,
    longitude: float,
    mood_emoji: Optional[str] = None,
    clock: Clock = utcnow,
) -> LocationSyncResponse:
    if not (-90 <= latitude <= 90) or not (-180 <= longitude <= 180):
        raise ValidationError("Invalid location coordinates")

    now = clock()
    today = now.date()

    if get_location_for_day(db, participant, today) is not None:
        raise ConflictError("You have already shared your location today")

    location = DailyLocation(
        user_id=participant,
        latitude=latitude,
        longitude=longitude,
        mood_emoji=(mood_emoji or "").strip() or None,
        created_at=now,
    )
    db.add(location)
    commit_or_raise(db, "save location")
    db.refresh(location)

    other = get_location_for_day(db, participant.other, today)
    distance = None
    if other is not None:
        distance = haversine_km(latitude, longitude, other.latitude, other.longitude)
        logger.info("Both check-ins in for %s: %.2f km", today, distance)

    return LocationSyncResponse(
        location=LocationOut.model_validate(location),
        both_synced=other is not None,
        distance=round(distance) if distance is not None else None,
        message=_distance_message(distance) if distance is not None else "Location shared, waiting for a reply...",
    )


def location_status(db: Session, viewer: Participant, clock: Clock = utcnow) -> LocationStatusResponse:
    today = clock().date()
    him = get_location_for_day(db, Participant.HIM, today)
    her = get_location_for_day(db, Participant.HER, today)

    current_synced = (him if viewer is Participant.HIM else her) is not None
    distance = None
    if him is not None and her is not None:
        distance = haversine_km(him.latitude, him.longitude, her.latitude, her.longitude)
        message = _distance_message(distance)
    elif current_synced:
        message = f"Waiting for {viewer.other.display_name} to reply..."
    else:
        message = "Where are you today?"

    return LocationStatusResponse(
        him_synced=him is not None,
        her_synced=her is not None,
        both_synced=him is not None and her is not None,
        current_user_synced=current_synced,
        distance=round(distance) if distance is not None else None,
        distance_message=message,
        him_location=_point(him),
        her_location=_point(her),
    )


def location_history(db: Session, limit: int = 30, offset: int = 0) -> LocationHistoryResponse:
    """Days on which both of us checked in, newest first."""
    stmt = select(DailyLocation).order_by(DailyLocation.created_at.asc())
    by_day: Dict[date, Dict[Participant, DailyLocation]] = {}
    for loc in db.execute(stmt).scalars():
        # first check-in of the day wins
        by_day.setdefault(loc.created_at.date(), {}).setdefault(Participant(loc.user_id), loc)

    paired_days = sorted(
        (day for day, locs in by_day.items() if len(locs) == 2),
        reverse=True,
    )
    page = paired_days[offset:offset + limit]

    history = []
    for day in page:
        him = by_day[day][Participant.HIM]
        her = by_day[day][Participant.HER]
        history.append(DistanceRecord(
            date=day,
            distance=haversine_km(him.latitude, him.longitude, her.latitude, her.longitude),
            him_location=_point(him),
            her_location=_point(her),
        ))

    distances = [h.distance for h in history]
    if distances:
        stats = DistanceStats(
            average_distance=round(sum(distances) / len(distances)),
            min_distance=round(min(distances)),
            max_distance=round(max(distances)),
            total_records=len(distances),
        )
    else:
        stats = DistanceStats(average_distance=0, min_distance=0, max_distance=0, total_records=0)

    return LocationHistoryResponse(
        history=history,
        stats=stats,
        has_more=offset + len(page) < len(paired_days),
    )
