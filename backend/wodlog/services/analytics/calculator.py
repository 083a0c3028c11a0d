"""
Movement Stats Calculator - per-movement frequency and volume.

Orchestrates:
- Period filtering of canonical workouts
- Movement canonicalization (grouping only)
- Frequency/volume accumulation and ranking
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from wodlog.core.config import settings
from wodlog.core.logging import get_logger
from wodlog.services.workouts.movements import canonicalize, split_movement_line
from wodlog.services.workouts.parsing import Number, is_number, parse_amount
from wodlog.services.workouts.repository import WorkoutRepository
from wodlog.services.workouts.types import Workout

logger = get_logger(__name__)


class Period(str, Enum):
    """Analytics time window."""
    SEVEN_DAYS = "7days"
    THIRTY_DAYS = "30days"
    ALL_TIME = "alltime"

    @property
    def days(self) -> Optional[int]:
        return {"7days": 7, "30days": 30}.get(self.value)


@dataclass
class MovementStat:
    """Aggregated stats of one canonical movement."""
    name: str
    frequency: int = 0
    volume: Number = 0
    # Share of the top volume, set on highest-volume entries only
    percentage: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"name": self.name, "frequency": self.frequency, "volume": self.volume}
        if self.percentage is not None:
            data["percentage"] = self.percentage
        return data


@dataclass
class MovementAnalytics:
    """Ranked movement stats for a period."""
    period: Period = Period.ALL_TIME
    workout_count: int = 0
    top_movements: List[MovementStat] = field(default_factory=list)
    highest_volume: List[MovementStat] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.top_movements

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "period": self.period.value,
            "workoutCount": self.workout_count,
            "topMovements": [stat.to_dict() for stat in self.top_movements],
            "highestVolume": [stat.to_dict() for stat in self.highest_volume],
        }


def filter_by_period(
    workouts: Iterable[Workout],
    period: Period,
    now: Optional[datetime] = None,
) -> List[Workout]:
    """Workouts dated within the period (lower bound inclusive)."""
    workouts = list(workouts)
    if period.days is None:
        return workouts

    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    cutoff = now - timedelta(days=period.days)

    return [workout for workout in workouts if workout.date >= cutoff]


def movement_occurrences(workout: Workout) -> Iterator[Tuple[str, Number]]:
    """
    (exercise, rep count) for each movement of a workout.

    Legacy workouts use the stored reps[index] when there is one,
    otherwise the amount written in front of the movement. Blank lines
    are skipped without shifting the reps alignment.
    """
    if workout.is_structured:
        for movement in workout.movements():
            yield movement.exercise, movement.amount.total
        return

    reps = workout.extracted_data.reps or []
    for index, line in enumerate(workout.extracted_data.movements):
        if not line or not line.strip():
            continue
        amount_text, exercise = split_movement_line(line)
        if index < len(reps) and is_number(reps[index]):
            rep_count = reps[index]
        else:
            rep_count = parse_amount(amount_text)
        yield exercise or line, rep_count


def total_rounds(workout: Workout) -> int:
    """Rounds a workout's movements were repeated for (default 1)."""
    if workout.is_structured:
        rounds = workout.max_rounds()
    else:
        rounds = workout.extracted_data.rounds
    return rounds if rounds and rounds > 0 else 1


def compute_analytics(
    workouts: Iterable[Workout],
    period: Period = Period.ALL_TIME,
    now: Optional[datetime] = None,
) -> MovementAnalytics:
    """
    Rank movements by how often and how much they were done.

    Args:
        workouts: Canonical workouts
        period: Time window
        now: Reference time for the window

    Returns:
        MovementAnalytics; empty when no workout falls in the period
    """
    period = Period(period)
    in_period = filter_by_period(workouts, period, now)

    stats: Dict[str, MovementStat] = {}
    for workout in in_period:
        rounds = total_rounds(workout)
        for exercise, rep_count in movement_occurrences(workout):
            name = canonicalize(exercise).normalized
            if not name:
                continue
            stat = stats.setdefault(name, MovementStat(name=name))
            stat.frequency += 1
            stat.volume += rep_count * rounds

    # Frequency first, volume breaks ties
    ranked = sorted(stats.values(), key=lambda s: (-s.frequency, -s.volume))
    top_movements = ranked[:settings.ANALYTICS_TOP_MOVEMENTS]

    with_volume = [stat for stat in top_movements if stat.volume > 0]
    max_volume = max((stat.volume for stat in with_volume), default=0)
    highest_volume = [
        MovementStat(
            name=stat.name,
            frequency=stat.frequency,
            volume=stat.volume,
            percentage=round(stat.volume / max_volume * 100, 1),
        )
        for stat in sorted(with_volume, key=lambda s: -s.volume)[:settings.ANALYTICS_TOP_VOLUME]
    ]

    return MovementAnalytics(
        period=period,
        workout_count=len(in_period),
        top_movements=top_movements,
        highest_volume=highest_volume,
    )


class MovementStatsCalculator:
    """
    Loads a user's workouts and computes their movement analytics.

    Usage:
        calculator = MovementStatsCalculator(db)
        analytics = await calculator.compute(Period.THIRTY_DAYS, user_id="xxx")
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = WorkoutRepository(db)

    async def compute(
        self,
        period: Period = Period.ALL_TIME,
        user_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> MovementAnalytics:
        workouts = await self.repository.list(user_id=user_id)
        analytics = compute_analytics(workouts, period, now)

        logger.info(
            "Computed movement analytics",
            user_id=user_id,
            period=analytics.period.value,
            workouts=analytics.workout_count,
            movements=len(analytics.top_movements),
        )
        return analytics
