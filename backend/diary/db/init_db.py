# backend/diary/db/init_db.py
from diary.db.base import Base
from diary.db.session import engine

# import models so SQLAlchemy sees every table
from diary import models  # noqa: F401


def init_db(bind=None) -> None:
    Base.metadata.create_all(bind=bind or engine)
