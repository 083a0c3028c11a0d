"""
Workouts API endpoints.
"""
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from wodlog.core.database import get_db
from wodlog.core.logging import get_logger
from wodlog.services.external import (
    ExtractionServiceError,
    ExtractionServiceInterface,
    ExtractionServiceUnavailable,
    get_extraction_service,
)
from wodlog.services.workouts import (
    WorkoutExistsError,
    WorkoutNotFoundError,
    WorkoutRepository,
    WorkoutStoreError,
    normalize_edit,
    normalize_extraction,
)

logger = get_logger(__name__)
router = APIRouter()


# ========================================
# Request/Response Schemas
# ========================================

class WorkoutPayloadRequest(BaseModel):
    """Extraction payload (structured or legacy flat) to normalize."""
    data: dict[str, Any] = Field(..., description="Workout extraction payload")
    userId: str | None = Field(None, description="Owner of the workout")


class ExtractRequest(BaseModel):
    """Whiteboard photo to extract a workout from."""
    image: str = Field(..., min_length=1, description="Base64-encoded image")
    mimeType: str | None = Field(None, description="Image MIME type")
    userId: str | None = Field(None, description="Owner of the workout")


class MigrateRequest(BaseModel):
    """Bulk legacy migration options."""
    dryRun: bool = Field(False, description="Convert without writing")
    limit: int | None = Field(None, ge=1, description="Maximum workouts to look at")


class DeleteWorkoutResponse(BaseModel):
    """Deleted workout and the image the caller should clean up."""
    id: str
    imageUrl: str | None
    deleted: bool = True


# ========================================
# Dependencies / helpers
# ========================================

def extraction_service() -> ExtractionServiceInterface:
    try:
        return get_extraction_service()
    except ExtractionServiceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))


def _store_http_error(e: WorkoutStoreError) -> HTTPException:
    if isinstance(e, WorkoutNotFoundError):
        return HTTPException(status_code=404, detail="Workout not found")
    if isinstance(e, WorkoutExistsError):
        return HTTPException(status_code=409, detail="Workout already exists")
    return HTTPException(status_code=503, detail="Workout store unavailable")


# ========================================
# API Endpoints
# ========================================

@router.post("/preview")
async def preview_workout(request: WorkoutPayloadRequest) -> dict[str, Any]:
    """
    Normalize a payload without saving it.
    """
    workout = normalize_extraction(request.data, user_id=request.userId)
    return workout.to_dict()


@router.post("/extract")
async def extract_workout(
    request: ExtractRequest,
    service: ExtractionServiceInterface = Depends(extraction_service),
) -> dict[str, Any]:
    """
    Extract a workout from a whiteboard photo and return the normalized preview.
    """
    try:
        payload = await service.extract(request.image, request.mimeType)
    except ExtractionServiceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    except ExtractionServiceError as e:
        logger.warning("Extraction failed", error=str(e), status_code=e.status_code)
        raise HTTPException(status_code=502, detail=str(e))

    workout = normalize_extraction(payload, user_id=request.userId)
    return workout.to_dict()


@router.post("")
async def create_workout(
    request: WorkoutPayloadRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Normalize and save a new workout. An id that is already taken is a 409.
    """
    workout = normalize_extraction(request.data, user_id=request.userId)

    try:
        await WorkoutRepository(db).create(workout)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except WorkoutStoreError as e:
        raise _store_http_error(e)

    logger.info("Workout created", workout_id=workout.id, schema=workout.schema.value)
    return workout.to_dict()


@router.get("")
async def list_workouts(
    userId: Optional[str] = Query(None, description="Only this user's workouts"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """
    Get workouts, newest first.
    """
    try:
        workouts = await WorkoutRepository(db).list(user_id=userId, limit=limit)
    except WorkoutStoreError as e:
        raise _store_http_error(e)
    return [workout.to_dict() for workout in workouts]


@router.post("/migrate")
async def migrate_legacy_workouts(
    request: MigrateRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Convert legacy workouts to the structured schema.
    """
    try:
        stats = await WorkoutRepository(db).migrate_legacy(dry_run=request.dryRun, limit=request.limit)
    except WorkoutStoreError as e:
        raise _store_http_error(e)
    return stats.to_dict()


@router.get("/{workout_id}")
async def get_workout(
    workout_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Get a specific workout by ID.
    """
    try:
        workout = await WorkoutRepository(db).get(str(workout_id))
    except WorkoutStoreError as e:
        raise _store_http_error(e)
    return workout.to_dict()


@router.put("/{workout_id}")
async def update_workout(
    workout_id: UUID,
    request: WorkoutPayloadRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Replace a workout with a newly normalized payload.

    Keeps id, owner and image; date, privacy and confidence too unless
    the payload sets them.
    """
    repository = WorkoutRepository(db)

    try:
        existing = await repository.get(str(workout_id))
        workout = normalize_edit(request.data, existing, user_id=request.userId)
        await repository.save(workout)
    except WorkoutStoreError as e:
        raise _store_http_error(e)

    logger.info("Workout updated", workout_id=workout.id, schema=workout.schema.value)
    return workout.to_dict()


@router.delete("/{workout_id}", response_model=DeleteWorkoutResponse)
async def delete_workout(
    workout_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """
    Delete a workout and its elements. Returns the stored image URL.
    """
    try:
        image_url = await WorkoutRepository(db).delete(str(workout_id))
    except WorkoutStoreError as e:
        raise _store_http_error(e)

    return DeleteWorkoutResponse(id=str(workout_id), imageUrl=image_url)


@router.post("/{workout_id}/migrate")
async def migrate_workout(
    workout_id: UUID,
    dryRun: bool = Query(False, description="Convert without writing"),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """
    Convert a legacy workout to the structured schema.
    """
    try:
        workout = await WorkoutRepository(db).migrate(str(workout_id), dry_run=dryRun)
    except WorkoutStoreError as e:
        raise _store_http_error(e)
    return workout.to_dict()
