"""
Workout root record database model.

One row per workout. A row carries either the structured root fields
(title/description, with ordered child collections in `workout_elements`
and `score_elements`) or the legacy flat columns (movements/times/reps).
"""
import uuid
from datetime import datetime
from typing import List

from sqlalchemy import JSON, DateTime, Float, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wodlog.core.database import Base

# SQL NULL (not JSON null) for absent legacy columns; schema detection relies on it
JSONColumn = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")


class WorkoutRecord(Base):
    """Workout root row stored in database."""

    __tablename__ = "workouts"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow
    )
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    privacy: Mapped[str] = mapped_column(String(10), nullable=False, default="public")
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Display / search projection
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw_text: Mapped[list | None] = mapped_column(JSONColumn, nullable=True)

    # Structured schema root fields
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Legacy flat columns
    workout_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    rounds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    movements: Mapped[list | None] = mapped_column(JSONColumn, nullable=True)
    times: Mapped[list | None] = mapped_column(JSONColumn, nullable=True)
    reps: Mapped[list | None] = mapped_column(JSONColumn, nullable=True)

    workout_elements: Mapped[List["WorkoutElementRecord"]] = relationship(
        back_populates="workout",
        order_by="WorkoutElementRecord.element_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    score_elements: Mapped[List["ScoreElementRecord"]] = relationship(
        back_populates="workout",
        order_by="ScoreElementRecord.score_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def to_dict(self) -> dict:
        """Convert to the row mapping understood by the schema normalizer."""
        return {
            "id": str(self.id),
            "user_id": self.user_id,
            "date": self.date,
            "privacy": self.privacy,
            "confidence": self.confidence,
            "image_url": self.image_url,
            "name": self.name,
            "raw_text": self.raw_text,
            "title": self.title,
            "description": self.description,
            "workout_type": self.workout_type,
            "rounds": self.rounds,
            "movements": self.movements,
            "times": self.times,
            "reps": self.reps,
            "workout_elements": [el.to_dict() for el in self.workout_elements],
            "score_elements": [el.to_dict() for el in self.score_elements],
        }
