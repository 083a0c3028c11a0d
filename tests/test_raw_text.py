"""Unit tests for raw text rendering and summaries."""
from wodlog.services.workouts.adapter import from_legacy
from wodlog.services.workouts.intake import normalize_extraction
from wodlog.services.workouts.raw_text import (
    generate_raw_text,
    render_lines,
    score_summary,
    workout_summary,
)
from wodlog.services.workouts.types import (
    Amount,
    DescriptiveElement,
    MovementElement,
    ScoreElement,
    ScoreName,
    ScoreType,
)


def _round_scores(count):
    return [
        ScoreElement(ScoreName.round(i + 1), ScoreType.TIME, f"1:{10 + i:02d}")
        for i in range(count)
    ]


class TestRenderLines:
    """Layout of generated raw text."""

    def test_layout(self):
        lines = render_lines(
            "Helen",
            None,
            [MovementElement(Amount.parse(400), "Run", "m"), DescriptiveElement("Rest 1:00", "rest", 60)],
            [ScoreElement(ScoreName.FINISH_TIME, ScoreType.TIME, "11:45")],
        )

        assert lines == ["Helen", "", "400 Run m", "Rest 1:00", "", "Finish Time: 11:45"]

    def test_missing_title(self):
        assert render_lines(None, None, [], []) == ["Workout", "", ""]

    def test_empty_movement_is_skipped(self):
        lines = render_lines("X", None, [MovementElement(Amount.parse(None), "")], [])

        assert lines == ["X", "", ""]

    def test_empty_descriptive_is_kept(self):
        lines = render_lines("X", None, [DescriptiveElement("")], [])

        assert lines == ["X", "", "", ""]

    def test_generation_is_stable(self, fran_payload):
        workout = normalize_extraction(fran_payload)

        assert generate_raw_text(workout) == generate_raw_text(workout)
        assert generate_raw_text(workout) == workout.raw_text


class TestLegacyRawText:
    """Legacy workouts keep their stored text."""

    def test_stored_text(self, legacy_payload):
        workout = normalize_extraction(legacy_payload)

        assert generate_raw_text(workout) == legacy_payload["rawText"]

    def test_fallback_text(self, legacy_row):
        workout = from_legacy(legacy_row)

        assert generate_raw_text(workout) == ["5-Reps Workout", "", "21 Thrusters", "15 Pull-ups", "Rope Climb"]


class TestSummaries:
    """One-line summaries."""

    def test_workout_summary(self, fran_payload):
        workout = normalize_extraction(fran_payload)

        assert workout_summary(workout.workout_elements) == "21-15-9 Thrusters 95 • 21-15-9 Pull-ups"

    def test_workout_summary_skips_descriptive(self, intervals_payload):
        workout = normalize_extraction(intervals_payload)

        assert workout_summary(workout.workout_elements) == "400 Run m • 21 KB Swings 53"

    def test_no_score(self):
        assert score_summary([]) == "No score"

    def test_single_score_is_its_value(self):
        assert score_summary([ScoreElement(ScoreName.FINISH_TIME, ScoreType.TIME, "4:06")]) == "4:06"

    def test_three_scores(self):
        assert score_summary(_round_scores(3)) == "Round 1: 1:10, Round 2: 1:11, Round 3: 1:12"

    def test_more_than_three_scores(self):
        assert score_summary(_round_scores(5)) == "Round 1: 1:10, Round 2: 1:11, Round 3: 1:12, +2 more"
