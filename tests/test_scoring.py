import pytest

from packages.schemas import Activity
from services.scoring.activities import (
    calculate_composite_score,
    calculate_weighted_score,
    is_swimming,
    is_swimming_activity,
    score_activity,
    weighted_score,
)


def _activity(**overrides) -> Activity:
    data = {"id": 1, "athlete_id": 7, "start_date": "2026-02-04T09:00:00Z"}
    data.update(overrides)
    return Activity.model_validate(data)


def test_swim_hour_with_two_km_scores_62():
    activity = _activity(type="Swim", moving_time=3600, distance=2000)
    scored = score_activity(activity)
    assert scored.weighted_score == pytest.approx(62.0)
    assert scored.is_swimming is True


def test_swimming_does_not_change_score():
    swim = _activity(type="Swim", moving_time=1800, distance=1500)
    run = _activity(type="Run", moving_time=1800, distance=1500)
    assert calculate_weighted_score(swim) == calculate_weighted_score(run)


def test_zero_inputs_score_zero():
    assert weighted_score(0, 0) == 0
    assert weighted_score(None, None) == 0


def test_negative_inputs_are_clamped():
    assert weighted_score(-600, 1000) == pytest.approx(1.0)
    assert weighted_score(600, -1000) == pytest.approx(10.0)


def test_composite_worked_example():
    assert calculate_composite_score(10, 850) == pytest.approx(940.0)


def test_composite_is_monotonic():
    assert calculate_composite_score(3, 50) > calculate_composite_score(2, 50)
    assert calculate_composite_score(2, 51) > calculate_composite_score(2, 50)
    assert calculate_composite_score(0, 0) == 0


@pytest.mark.parametrize(
    "activity_type,sport_type,name",
    [
        ("Swim", None, ""),
        ("Workout", "Pool Swim", ""),
        ("Workout", "Open Water Swim", ""),
        ("IceSwim", None, None),
        ("Workout", None, "Evening Laps"),
        ("Workout", None, "UWH training"),
        ("Workout", None, "Underwater Hockey scrimmage"),
        ("Workout", None, "Aquatic fitness"),
        ("Workout", None, "POOL session"),
    ],
)
def test_swimming_classification(activity_type, sport_type, name):
    assert is_swimming(activity_type, sport_type, name)


def test_non_swimming_activities():
    assert not is_swimming("Run", "TrailRun", "Hill repeats")
    assert not is_swimming(None, None, None)
    assert not is_swimming("", "", "")


def test_sport_type_defaults_to_type_for_classification():
    activity = _activity(type="Swim", sport_type=None, name="Morning")
    assert activity.sport_type == "Swim"
    assert is_swimming_activity(activity)
