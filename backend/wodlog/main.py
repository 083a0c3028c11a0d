"""
WODlog Backend - FastAPI Application

Serves workout intake (preview, whiteboard extraction, CRUD, legacy
migration) and per-user movement analytics.
"""
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wodlog.core.config import settings
from wodlog.core.logging import setup_logging, get_logger
from wodlog.core.database import engine, init_db
from wodlog.api import analytics, workouts
from wodlog.services.workouts.movements import all_standard_movements

logger = get_logger(__name__)

VERSION = "1.0.0"


def extraction_status() -> str:
    return "configured" if settings.EXTRACTION_SERVICE_URL else "disabled"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, load the movement alias table, dispose the pool on exit."""
    setup_logging()
    logger.info(
        "Starting WODlog Backend",
        version=VERSION,
        database=engine.url.get_backend_name(),
        extraction=extraction_status(),
        fuzzy_movements=settings.MOVEMENT_FUZZY_MATCH,
    )
    await init_db()

    # Fail at startup, not on the first request, if the alias file is broken
    movements = all_standard_movements()
    logger.info("Movement alias table loaded", standard_movements=len(movements))

    yield

    await engine.dispose()
    logger.info("Shutting down WODlog Backend")


app = FastAPI(
    title="WODlog API",
    description="Workout normalization and movement analytics backend",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(workouts.router, prefix="/api/workouts", tags=["workouts"])
app.include_router(analytics.router, prefix="/api/analytics", tags=["analytics"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "wodlog-backend",
        "version": VERSION,
        "extraction": extraction_status(),
    }
