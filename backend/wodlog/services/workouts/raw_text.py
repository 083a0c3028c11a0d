"""
Raw-Text Generator - renders a structured workout as legacy flat text.

The output doubles as the search index and as an equality signal for
legacy consumers, so it must be deterministic.
"""
from typing import List, Optional

from wodlog.services.workouts.types import ScoreElement, Workout, WorkoutElement


def generate_raw_text(workout: Workout) -> List[str]:
    """
    Render a workout as text lines.

    Layout:
        title (default "Workout")
        description (if present)
        <blank>
        one line per workout element
        <blank>
        "name: value" per score

    Legacy workouts have no elements; their stored text is returned as is.
    """
    if not workout.is_structured:
        if workout.raw_text:
            return list(workout.raw_text)
        return [workout.name, ""] + [line for line in workout.extracted_data.movements if line.strip()]

    return render_lines(
        workout.title,
        workout.description,
        workout.workout_elements,
        workout.score_elements,
    )


def render_lines(
    title: Optional[str],
    description: Optional[str],
    workout_elements: List[WorkoutElement],
    score_elements: List[ScoreElement],
) -> List[str]:
    """Render the structured parts of a workout (see generate_raw_text)."""
    lines = [title or "Workout"]
    if description:
        lines.append(description)
    lines.append("")

    for element in workout_elements:
        line = element.line()
        # A movement with no amount, exercise or unit renders nothing
        if line or element.kind == "descriptive":
            lines.append(line)

    lines.append("")
    lines.extend(score.line() for score in score_elements)

    return lines


def workout_summary(workout_elements: List[WorkoutElement]) -> str:
    """One-line summary of the movements: "21-15-9 Thruster • 21-15-9 Pull-up"."""
    return " • ".join(
        element.line()
        for element in workout_elements
        if element.kind == "movement"
    )


def score_summary(score_elements: List[ScoreElement]) -> str:
    """Short score text for cards and notifications."""
    if not score_elements:
        return "No score"

    if len(score_elements) == 1:
        return str(score_elements[0].value)

    parts = [score.line() for score in score_elements[:3]]
    if len(score_elements) > 3:
        parts.append(f"+{len(score_elements) - 3} more")
    return ", ".join(parts)
