"""
Workout Repository - database operations for workouts and their element rows.
"""
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wodlog.core.logging import get_logger
from wodlog.models import ScoreElementRecord, WorkoutElementRecord, WorkoutRecord
from wodlog.services.workouts.adapter import denormalize, normalize
from wodlog.services.workouts.intake import convert_legacy_to_structured
from wodlog.services.workouts.types import Workout

logger = get_logger(__name__)


class WorkoutStoreError(Exception):
    """Base exception for workout store failures."""

    pass


class WorkoutNotFoundError(WorkoutStoreError):
    """Raised when no workout has the requested id."""

    def __init__(self, workout_id: str):
        super().__init__(f"Workout not found: {workout_id}")
        self.workout_id = workout_id


class WorkoutExistsError(WorkoutStoreError):
    """Raised when creating a workout whose id is already taken."""

    def __init__(self, workout_id: str):
        super().__init__(f"Workout already exists: {workout_id}")
        self.workout_id = workout_id


@dataclass
class MigrationStats:
    """Report of a legacy -> structured migration run."""
    total: int = 0
    migrated: int = 0
    skipped: int = 0
    errors: int = 0
    dry_run: bool = False
    error_details: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "migrated": self.migrated,
            "skipped": self.skipped,
            "errors": self.errors,
            "dryRun": self.dry_run,
            "errorDetails": list(self.error_details),
        }


def _parse_uuid(workout_id: Any) -> Optional[uuid.UUID]:
    if isinstance(workout_id, uuid.UUID):
        return workout_id
    try:
        return uuid.UUID(str(workout_id))
    except ValueError:
        return None


def _score_record(row: Dict[str, Any]) -> ScoreElementRecord:
    values = dict(row)
    values["score_metadata"] = values.pop("metadata", None)
    return ScoreElementRecord(**values)


class WorkoutRepository:
    """
    Database store for canonical workouts.

    A workout is one root row plus two ordered child collections.
    Structured saves replace both collections wholesale; legacy saves
    only touch the root row.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, workout_id: str) -> WorkoutRecord:
        record_uuid = _parse_uuid(workout_id)
        if record_uuid is None:
            logger.warning("Invalid workout_id format", workout_id=workout_id)
            raise WorkoutNotFoundError(str(workout_id))

        try:
            result = await self.db.execute(
                select(WorkoutRecord).where(WorkoutRecord.id == record_uuid)
            )
            record = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to load workout", workout_id=workout_id, error=str(e))
            raise WorkoutStoreError(f"Failed to load workout {workout_id}") from e

        if record is None:
            raise WorkoutNotFoundError(str(workout_id))
        return record

    async def get(self, workout_id: str) -> Workout:
        """
        Get a workout by id.

        Raises:
            WorkoutNotFoundError: If no workout has this id
            WorkoutStoreError: If the database call fails
        """
        record = await self._load(workout_id)
        return normalize(record.to_dict())

    async def exists(self, workout_id: str) -> bool:
        try:
            await self._load(workout_id)
        except WorkoutNotFoundError:
            return False
        return True

    async def list(self, user_id: Optional[str] = None, limit: Optional[int] = None) -> List[Workout]:
        """
        List workouts, newest first.

        Args:
            user_id: Only this user's workouts
            limit: Maximum number of workouts
        """
        query = select(WorkoutRecord).order_by(
            WorkoutRecord.date.desc(),
            WorkoutRecord.created_at.desc(),
        )
        if user_id is not None:
            query = query.where(WorkoutRecord.user_id == user_id)
        if limit is not None:
            query = query.limit(limit)

        try:
            result = await self.db.execute(query)
            records = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to list workouts", user_id=user_id, error=str(e))
            raise WorkoutStoreError("Failed to list workouts") from e

        return [normalize(record.to_dict()) for record in records]

    async def save(self, workout: Workout) -> Workout:
        """
        Insert or replace a workout.

        Args:
            workout: Canonical workout (its id is the row id)

        Returns:
            The saved workout

        Raises:
            ValueError: If the workout id is not a UUID
            WorkoutStoreError: If the database call fails
        """
        record_uuid = _parse_uuid(workout.id)
        if record_uuid is None:
            raise ValueError(f"Invalid workout id format: {workout.id}")

        persistable = denormalize(workout)

        try:
            result = await self.db.execute(
                select(WorkoutRecord).where(WorkoutRecord.id == record_uuid)
            )
            record = result.scalar_one_or_none()
            created = record is None
            if created:
                # Loaded empty collections; async sessions cannot lazy load them later
                record = WorkoutRecord(id=record_uuid, workout_elements=[], score_elements=[])
                self.db.add(record)

            for column, value in persistable.root.items():
                if column != "id":
                    setattr(record, column, value)

            # Old child rows are deleted as orphans
            if persistable.workout_elements is not None:
                record.workout_elements = [
                    WorkoutElementRecord(**row) for row in persistable.workout_elements
                ]
            if persistable.score_elements is not None:
                record.score_elements = [
                    _score_record(row) for row in persistable.score_elements
                ]

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to save workout", workout_id=workout.id, error=str(e))
            raise WorkoutStoreError(f"Failed to save workout {workout.id}") from e

        logger.debug(
            "Created workout" if created else "Updated workout",
            workout_id=workout.id,
            schema=workout.schema.value,
            elements=len(persistable.workout_elements or []),
            scores=len(persistable.score_elements or []),
        )

        return workout

    async def create(self, workout: Workout) -> Workout:
        """
        Insert a new workout; never replaces a stored one.

        Raises:
            WorkoutExistsError: If the id is already taken
            ValueError: If the workout id is not a UUID
        """
        if await self.exists(workout.id):
            logger.warning("Refusing to overwrite existing workout", workout_id=workout.id)
            raise WorkoutExistsError(workout.id)
        return await self.save(workout)

    async def delete(self, workout_id: str) -> Optional[str]:
        """
        Delete a workout together with its element rows.

        Returns:
            The stored image URL, for the caller to clean up

        Raises:
            WorkoutNotFoundError: If no workout has this id
        """
        record = await self._load(workout_id)
        image_url = record.image_url

        try:
            await self.db.delete(record)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to delete workout", workout_id=workout_id, error=str(e))
            raise WorkoutStoreError(f"Failed to delete workout {workout_id}") from e

        logger.info("Deleted workout", workout_id=workout_id, had_image=bool(image_url))
        return image_url

    async def migrate(self, workout_id: str, dry_run: bool = False) -> Workout:
        """
        Convert one legacy workout to the structured schema.

        Structured workouts are returned unchanged.
        """
        workout = await self.get(workout_id)
        if workout.is_structured:
            return workout

        converted = convert_legacy_to_structured(workout)
        if not dry_run:
            await self.save(converted)
        return converted

    async def migrate_legacy(self, dry_run: bool = False, limit: Optional[int] = None) -> MigrationStats:
        """
        Convert legacy workouts to the structured schema, oldest first.

        Failures of single workouts are collected in the report and do not
        stop the run.

        Args:
            dry_run: Convert without writing
            limit: Maximum number of workouts to look at
        """
        query = select(WorkoutRecord).order_by(WorkoutRecord.created_at.asc())
        if limit is not None:
            query = query.limit(limit)

        try:
            result = await self.db.execute(query)
            # Detach from the session before any write can expire them
            rows = [record.to_dict() for record in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error("Failed to load workouts for migration", error=str(e))
            raise WorkoutStoreError("Failed to load workouts for migration") from e

        stats = MigrationStats(total=len(rows), dry_run=dry_run)
        logger.info("Starting legacy migration", total=stats.total, dry_run=dry_run)

        for row in rows:
            workout = normalize(row)
            if workout.is_structured:
                stats.skipped += 1
                continue

            try:
                converted = convert_legacy_to_structured(workout)
                if not dry_run:
                    await self.save(converted)
            except (WorkoutStoreError, ValueError) as e:
                stats.errors += 1
                stats.error_details.append({"workoutId": workout.id, "error": str(e)})
                logger.warning("Legacy migration failed", workout_id=workout.id, error=str(e))
                continue

            stats.migrated += 1

        logger.info(
            "Legacy migration finished",
            total=stats.total,
            migrated=stats.migrated,
            skipped=stats.skipped,
            errors=stats.errors,
            dry_run=dry_run,
        )
        return stats
