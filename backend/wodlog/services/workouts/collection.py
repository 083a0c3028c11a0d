"""
In-memory workout collection held by a single owner (a client session,
a batch job).
"""
from typing import Iterable, Iterator, List, Optional

from wodlog.services.workouts.types import Workout


class WorkoutCollection:
    """
    Ordered workouts, newest first, updated by id.

    Not synchronized. Updates are applied in call order and the last write
    to an id wins: a `replace_all` from a background refresh overwrites a
    local edit that has not been saved yet. Callers sharing one collection
    must serialize access themselves.
    """

    def __init__(self, workouts: Optional[Iterable[Workout]] = None):
        self._workouts: List[Workout] = list(workouts or [])

    def __len__(self) -> int:
        return len(self._workouts)

    def __iter__(self) -> Iterator[Workout]:
        return iter(list(self._workouts))

    def __contains__(self, workout_id: object) -> bool:
        return self._index(workout_id) is not None

    def _index(self, workout_id: object) -> Optional[int]:
        for index, workout in enumerate(self._workouts):
            if workout.id == workout_id:
                return index
        return None

    def all(self) -> List[Workout]:
        """Snapshot of the collection."""
        return list(self._workouts)

    def get(self, workout_id: str) -> Optional[Workout]:
        index = self._index(workout_id)
        return self._workouts[index] if index is not None else None

    def replace_all(self, workouts: Iterable[Workout]) -> None:
        """Swap in a freshly loaded list."""
        self._workouts = list(workouts)

    def add(self, workout: Workout) -> None:
        """Prepend a new workout; an existing entry with the same id is dropped."""
        self.remove(workout.id)
        self._workouts.insert(0, workout)

    def replace(self, workout: Workout) -> bool:
        """
        Replace the workout with the same id in place.

        Returns:
            False if no workout has that id (nothing is added)
        """
        index = self._index(workout.id)
        if index is None:
            return False
        self._workouts[index] = workout
        return True

    def remove(self, workout_id: str) -> Optional[Workout]:
        """Remove and return the workout with this id, if present."""
        index = self._index(workout_id)
        if index is None:
            return None
        return self._workouts.pop(index)
