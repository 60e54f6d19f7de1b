# main.py
import logging
from contextlib import asynccontextmanager
from datetime import timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from goal_coach import database
from goal_coach.config import Settings, get_settings
from goal_coach.exceptions import GoalCoachError
from goal_coach.features.reminders import MemoryStorage, Notifier, ReminderScheduler, ReminderStore, SqlStorage
from goal_coach.logging import RequestLoggingMiddleware, init_logging
from goal_coach.routes import router

init_logging()
logger = logging.getLogger("goal_coach")


def build_store(settings: Settings) -> ReminderStore:
    if settings.storage_backend == "memory":
        logger.info("Using in-memory reminder storage")
        return ReminderStore(MemoryStorage(), key=settings.storage_key, default_interval=settings.default_interval_minutes)
    database.init_db()
    logger.info("Using SQL reminder storage: %s", database.get_database_dsn())
    return ReminderStore(
        SqlStorage(database.SessionLocal),
        key=settings.storage_key,
        default_interval=settings.default_interval_minutes,
    )


# ---------------------------------------------------------------------------
# App lifespan (startup/shutdown)
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire storage, timer and notifier, then resume any running cadence."""
    settings = get_settings()
    try:
        store = build_store(settings)
    except Exception as e:
        logger.critical("Storage initialization failed: %s", e)
        raise  # fail fast: reminders cannot be persisted

    timer = AsyncIOScheduler(timezone=timezone.utc)
    timer.start()

    notifier = Notifier(
        permission=settings.notification_permission,
        push_url=settings.notification_push_url,
        timeout=settings.notification_timeout_seconds,
        history_size=settings.nudge_history_size,
    )
    reminders = ReminderScheduler(store, notifier, timer)
    state = reminders.restore()
    logger.info("Reminders %s", "resumed" if state.running else "paused")

    app.state.notifier = notifier
    app.state.reminders = reminders

    yield  # app runs during this block

    logger.info("Shutdown: stopping reminder timer...")
    try:
        reminders.shutdown()
        timer.shutdown(wait=False)
    except Exception as e:
        logger.error("Error stopping reminder timer: %s", e)


# ---------------------------------------------------------------------------
# FastAPI Application
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Goal Coach",
    version="1.0.0",
    description=(
        "Gentle nudges to move your goal forward.\n\n"
        "- Recurring reminders every N minutes while running\n"
        "- Calendar (.ics) export of the same cadence\n"
        "- Shareable setup links"
    ),
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Health"])
async def root():
    """Basic health check to verify the service is running."""
    return {"status": "ok", "message": "Goal Coach is running."}


app.include_router(router)


# -------------------------------
# Unified error response handlers
# -------------------------------
@app.exception_handler(GoalCoachError)
async def goal_coach_exception_handler(request: Request, exc: GoalCoachError):
    logger.warning(
        "%s: %s %s -> %s | %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc.status_code,
        exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message or "Error"})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.error(
        "HTTPException: %s %s -> %s | detail=%s",
        request.method,
        request.url.path,
        exc.status_code,
        exc.detail,
    )
    body = {"error": exc.detail if isinstance(exc.detail, str) else "Error"}
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(
        "ValidationError: %s %s | errors=%s",
        request.method,
        request.url.path,
        exc.errors(),
    )
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})
