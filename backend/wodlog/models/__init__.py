from wodlog.models.workout import WorkoutRecord
from wodlog.models.elements import WorkoutElementRecord, ScoreElementRecord

__all__ = [
    "WorkoutRecord",
    "WorkoutElementRecord",
    "ScoreElementRecord",
]
