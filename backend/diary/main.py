import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from diary.db.init_db import init_db
from diary.db.seed import seed_demo_data
from diary.db.session import SessionLocal
from diary.api.routes.auth import router as auth_router
from diary.api.routes.letters import router as letters_router
from diary.api.routes.location import router as location_router
from diary.api.routes.memories import router as memories_router, comments_router
from diary.api.routes.countdown import router as countdown_router
from diary.api.routes.voice_messages import router as voice_router
from diary.api.routes.media import router as media_router
from diary.core.config import settings
from diary.core.errors import DiaryError, StoreError
from diary.core.logging import setup_logger

logger = setup_logger()

app = FastAPI(title="Couple Diary", version="0.1.0")

app.include_router(auth_router)
app.include_router(letters_router)
app.include_router(location_router)
app.include_router(memories_router)
app.include_router(comments_router)
app.include_router(countdown_router)
app.include_router(voice_router)
app.include_router(media_router)


@app.exception_handler(DiaryError)
async def diary_error_handler(request: Request, exc: DiaryError) -> JSONResponse:
    if isinstance(exc, StoreError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        detail = "Something went wrong, please try again later"
    else:
        detail = exc.message
    return JSONResponse(status_code=exc.status_code, content={"detail": detail})


@app.on_event("startup")
def _startup() -> None:
    init_db()
    if settings.demo_mode:
        with SessionLocal() as db:
            seed_demo_data(db)
        logging.getLogger("diary").warning("Running in demo mode: data lives in memory only")


@app.get("/health")
def health():
    return {"status": "ok", "demo_mode": settings.demo_mode}
