# backend/diary/db/seed.py
"""Sample rows for demo mode, so a fresh in-memory diary is not empty."""
from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from diary.core.clock import Clock, utcnow
from diary.models import DailyLocation, Letter, Memory, Participant

logger = logging.getLogger(__name__)


def seed_demo_data(db: Session, clock: Clock = utcnow) -> bool:
    """Insert the demo rows into an empty database. Returns False if data already exists."""
    if db.execute(select(func.count()).select_from(Letter)).scalar_one():
        return False

    now = clock()

    db.add_all([
        # Tiananmen Square and Times Square, both checked in today
        DailyLocation(user_id=Participant.HIM, latitude=39.9042, longitude=116.4074, mood_emoji="😊", created_at=now),
        DailyLocation(user_id=Participant.HER, latitude=40.7589, longitude=-73.9851, mood_emoji="😍", created_at=now),
    ])

    db.add_all([
        Memory(
            user_id=Participant.HIM,
            image_url="https://picsum.photos/400/600?random=1",
            description="Walked past the coffee shop where we had our first date today",
            created_at=now - timedelta(days=2),
        ),
        Memory(
            user_id=Participant.HER,
            image_url="https://picsum.photos/300/400?random=2",
            description="Sunset outside the office window. Beautiful, wish you were here to see it",
            created_at=now - timedelta(hours=12),
        ),
        Memory(
            user_id=Participant.HIM,
            image_url="https://picsum.photos/500/300?random=3",
            description="Made this for dinner tonight. Shall we cook it together next time?",
            created_at=now - timedelta(hours=3),
        ),
    ])

    db.add_all([
        Letter(
            sender_id=Participant.HER,
            title="Missing you",
            content=(
                "It rained today, and I remembered how you always texted to ask whether "
                "I had an umbrella. We are far apart now, but I know you still care. "
                "I miss you, and all the good times we had together."
            ),
            delivered_at=now - timedelta(hours=6),
            created_at=now - timedelta(hours=6),
        ),
        Letter(
            sender_id=Participant.HIM,
            title=None,
            content=(
                "Just saw a trailer for a great movie. Let's go see it when you're free! "
                "I'm already picturing us sharing the popcorn, haha."
            ),
            delivered_at=now - timedelta(minutes=30),
            read_at=now - timedelta(minutes=20),
            created_at=now - timedelta(minutes=30),
        ),
    ])

    db.commit()
    logger.info("Demo data seeded")
    return True
