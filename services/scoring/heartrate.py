"""Heart-rate zone estimation (informational only, never used for ranking).

Zones are percentages of max HR: Z1 <60%, Z2 60-70%, Z3 70-80%, Z4 80-90%,
Z5 >=90%. Each activity's whole moving time goes to the zone of its average
HR; there is no per-sample stream analysis.
"""
from __future__ import annotations

from typing import Iterable, Optional

import packages.config as config
from packages.schemas import Activity, HRZoneData, HRZoneDistribution, HRZoneStats


DEFAULT_MAX_HR = 190

ZONE_NAMES = {
    1: "Recovery",
    2: "Endurance",
    3: "Tempo",
    4: "Threshold",
    5: "VO2 Max",
}

def resolve_max_hr(max_hr: Optional[float]) -> float:
    return max_hr if max_hr and max_hr > 0 else config.HR_MAX_DEFAULT


def get_hr_zone(heart_rate: float, max_hr: float) -> int:
    if max_hr <= 0:
        raise ValueError("max_hr must be positive")
    ratio = heart_rate / max_hr
    if ratio >= 0.9:
        return 5
    if ratio >= 0.8:
        return 4
    if ratio >= 0.7:
        return 3
    if ratio >= 0.6:
        return 2
    return 1


def has_hr(activity: Activity) -> bool:
    return bool(activity.has_heartrate and activity.average_heartrate)


def calculate_activity_hr_zones(activity: Activity, max_hr: float = DEFAULT_MAX_HR) -> HRZoneDistribution:
    zones = HRZoneDistribution()
    if not has_hr(activity):
        return zones
    zone = get_hr_zone(activity.average_heartrate, max_hr)
    setattr(zones, f"z{zone}", max(activity.moving_time, 0.0) / 60)
    return zones


def calculate_hr_zone_stats(activities: Iterable[Activity], max_hr: float = DEFAULT_MAX_HR) -> HRZoneStats:
    totals = HRZoneDistribution()
    total_activities = 0
    with_hr = 0
    for activity in activities:
        total_activities += 1
        if not has_hr(activity):
            continue
        with_hr += 1
        zones = calculate_activity_hr_zones(activity, max_hr)
        totals.z1 += zones.z1
        totals.z2 += zones.z2
        totals.z3 += zones.z3
        totals.z4 += zones.z4
        totals.z5 += zones.z5
    return HRZoneStats(
        zone_minutes=totals,
        total_hr_minutes=totals.total(),
        total_activities=total_activities,
        activities_with_hr=with_hr,
        activities_without_hr=total_activities - with_hr,
        has_hr_data=with_hr > 0,
    )


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def to_zone_data(stats: HRZoneStats) -> Optional[HRZoneData]:
    """Rounded minutes for display; None when no activity carried HR."""
    if not stats.has_hr_data:
        return None
    zones = stats.zone_minutes
    return HRZoneData(
        zone1_minutes=_round_half_up(zones.z1),
        zone2_minutes=_round_half_up(zones.z2),
        zone3_minutes=_round_half_up(zones.z3),
        zone4_minutes=_round_half_up(zones.z4),
        zone5_minutes=_round_half_up(zones.z5),
        total_minutes=_round_half_up(stats.total_hr_minutes),
        activities_with_hr=stats.activities_with_hr,
    )


def format_zone_minutes(minutes: float) -> str:
    hours = int(minutes // 60)
    mins = _round_half_up(minutes % 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def zone_name(zone: int) -> str:
    return ZONE_NAMES.get(zone, "Unknown")
