"""Activity scoring.

weighted_score  = moving minutes + distance km (no swim multiplier)
composite_score = activity_count * 100 * 0.6 + total_weighted_score * 0.4

Swimming is tracked per activity but does not change its score. HR zones are
computed separately and never feed the ranking.
"""
from __future__ import annotations

from typing import Iterable, List, Optional

from packages.schemas import Activity, ScoredActivity


SWIMMING_ACTIVITY_TYPES = frozenset({"Swim", "Pool Swim", "Open Water Swim", "IceSwim"})
SWIMMING_KEYWORDS = ("swim", "pool", "laps", "uwh", "underwater hockey", "aquatic")

COUNT_WEIGHT = 0.6
SCORE_WEIGHT = 0.4
COUNT_POINTS = 100


def is_swimming(activity_type: Optional[str], sport_type: Optional[str], name: Optional[str]) -> bool:
    if activity_type in SWIMMING_ACTIVITY_TYPES or sport_type in SWIMMING_ACTIVITY_TYPES:
        return True
    name_lower = (name or "").lower()
    return any(keyword in name_lower for keyword in SWIMMING_KEYWORDS)


def is_swimming_activity(activity: Activity) -> bool:
    return is_swimming(activity.type, activity.sport_type, activity.name)


def weighted_score(moving_time_s: Optional[float], distance_m: Optional[float]) -> float:
    minutes = max(moving_time_s or 0.0, 0.0) / 60
    km = max(distance_m or 0.0, 0.0) / 1000
    return minutes + km


def calculate_weighted_score(activity: Activity) -> float:
    return weighted_score(activity.moving_time, activity.distance)


def calculate_composite_score(activity_count: int, total_weighted_score: float) -> float:
    return activity_count * COUNT_POINTS * COUNT_WEIGHT + total_weighted_score * SCORE_WEIGHT


def score_activity(activity: Activity) -> ScoredActivity:
    return ScoredActivity(
        **activity.model_dump(),
        weighted_score=calculate_weighted_score(activity),
        is_swimming=is_swimming_activity(activity),
    )


def score_activities(activities: Iterable[Activity]) -> List[ScoredActivity]:
    return [score_activity(activity) for activity in activities]
