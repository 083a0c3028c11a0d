"""
Ordered child collections of a structured workout.
"""
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wodlog.core.database import Base
from wodlog.models.workout import JSONColumn

if TYPE_CHECKING:
    from wodlog.models.workout import WorkoutRecord


class WorkoutElementRecord(Base):
    """One movement or descriptive line of a workout prescription."""

    __tablename__ = "workout_elements"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    workout_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("workouts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    element_order: Mapped[int] = mapped_column(Integer, nullable=False)
    element_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Movement columns
    # JSON keeps a literal 21 apart from a written scheme "21-15-9"
    amount: Mapped[object] = mapped_column(JSONColumn, nullable=True)
    exercise: Mapped[str | None] = mapped_column(Text, nullable=True)
    unit: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Descriptive columns
    descriptive_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    descriptive_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    descriptive_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)

    workout: Mapped["WorkoutRecord"] = relationship(back_populates="workout_elements")

    def to_dict(self) -> dict:
        """Convert to row mapping."""
        return {
            "element_order": self.element_order,
            "element_type": self.element_type,
            "amount": self.amount,
            "exercise": self.exercise,
            "unit": self.unit,
            "descriptive_text": self.descriptive_text,
            "descriptive_type": self.descriptive_type,
            "descriptive_duration": self.descriptive_duration,
        }


class ScoreElementRecord(Base):
    """One score/result line of a workout."""

    __tablename__ = "score_elements"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    workout_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("workouts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    score_order: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(20), nullable=False)
    score_type: Mapped[str] = mapped_column(String(20), nullable=False)
    # JSON keeps numbers and strings apart ("315" vs 315)
    value: Mapped[object] = mapped_column(JSONColumn, nullable=True)
    score_metadata: Mapped[dict | None] = mapped_column("metadata", JSONColumn, nullable=True)

    workout: Mapped["WorkoutRecord"] = relationship(back_populates="score_elements")

    def to_dict(self) -> dict:
        """Convert to row mapping."""
        return {
            "score_order": self.score_order,
            "name": self.name,
            "score_type": self.score_type,
            "value": self.value,
            "metadata": self.score_metadata,
        }
