from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import packages.config as config
from packages.db import DBConnection
from packages.schemas import AthleteHRZoneData, HRZoneMetadata, HRZoneResponse
from services.scoring.heartrate import calculate_hr_zone_stats, resolve_max_hr, to_zone_data
from services.storage.activity_store import get_athlete_activities, get_athletes


def get_hr_zones(conn: DBConnection, now: Optional[datetime] = None) -> HRZoneResponse:
    """Per-athlete HR zone minutes over the trailing week; athletes without HR data get ``None``."""
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=config.LEADERBOARD_WINDOW_DAYS)

    athletes = []
    for athlete in get_athletes(conn):
        max_hr = int(resolve_max_hr(athlete.max_heartrate))
        stats = calculate_hr_zone_stats(get_athlete_activities(conn, athlete.id, since), max_hr)
        athletes.append(
            AthleteHRZoneData(
                athlete_id=athlete.id,
                firstname=athlete.firstname,
                lastname=athlete.lastname,
                profile_picture_url=athlete.profile_picture_url,
                max_heartrate=max_hr,
                hr_zone_data=to_zone_data(stats),
            )
        )
    return HRZoneResponse(
        athletes=athletes,
        metadata=HRZoneMetadata(week_start_date=since.date().isoformat(), last_updated=now),
    )
