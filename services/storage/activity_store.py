"""Athlete and activity persistence (upsert by Strava id)."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from packages.db import DBConnection
from packages.schemas import Athlete, ScoredActivity


logger = logging.getLogger("leaderboard.store")

ACTIVITY_COLUMNS = (
    "id, athlete_id, type, sport_type, name, distance, moving_time, elapsed_time, "
    "total_elevation_gain, start_date, average_heartrate, max_heartrate, has_heartrate, "
    "weighted_score, is_swimming"
)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat()


def dict_rows(cursor) -> Iterable[Dict[str, Any]]:
    cols = [c[0] for c in cursor.description]
    for row in cursor.fetchall():
        yield {cols[i]: row[i] for i in range(len(cols))}


def upsert_athlete(conn: DBConnection, athlete: Athlete) -> None:
    conn.execute(
        """
        INSERT INTO athletes(id, username, firstname, lastname, profile_picture_url, max_heartrate, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
          username=excluded.username,
          firstname=excluded.firstname,
          lastname=excluded.lastname,
          profile_picture_url=excluded.profile_picture_url,
          max_heartrate=COALESCE(excluded.max_heartrate, athletes.max_heartrate),
          updated_at=excluded.updated_at
        """,
        (
            athlete.id,
            athlete.username,
            athlete.firstname,
            athlete.lastname,
            athlete.profile_picture_url,
            athlete.max_heartrate,
            _utc_now(),
        ),
    )


def upsert_athletes(conn: DBConnection, athletes: Iterable[Athlete]) -> None:
    for athlete in athletes:
        upsert_athlete(conn, athlete)


def ensure_athlete(conn: DBConnection, athlete_id: int) -> None:
    """Insert a bare athlete row unless one already exists."""
    conn.execute(
        "INSERT INTO athletes(id, updated_at) VALUES (?, ?) ON CONFLICT(id) DO NOTHING",
        (athlete_id, _utc_now()),
    )


def upsert_activity(conn: DBConnection, activity: ScoredActivity) -> None:
    if activity.start_date is None:
        raise ValueError(f"activity {activity.id} has no start_date")
    conn.execute(
        f"""
        INSERT INTO activities({ACTIVITY_COLUMNS}, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
          athlete_id=excluded.athlete_id,
          type=excluded.type,
          sport_type=excluded.sport_type,
          name=excluded.name,
          distance=excluded.distance,
          moving_time=excluded.moving_time,
          elapsed_time=excluded.elapsed_time,
          total_elevation_gain=excluded.total_elevation_gain,
          start_date=excluded.start_date,
          average_heartrate=excluded.average_heartrate,
          max_heartrate=excluded.max_heartrate,
          has_heartrate=excluded.has_heartrate,
          weighted_score=excluded.weighted_score,
          is_swimming=excluded.is_swimming,
          updated_at=excluded.updated_at
        """,
        (
            activity.id,
            activity.athlete_id,
            activity.type,
            activity.sport_type,
            activity.name,
            activity.distance,
            activity.moving_time,
            activity.elapsed_time,
            activity.total_elevation_gain,
            _iso(activity.start_date),
            activity.average_heartrate,
            activity.max_heartrate,
            bool(activity.has_heartrate),
            activity.weighted_score,
            activity.is_swimming,
            _utc_now(),
        ),
    )


def upsert_activities(conn: DBConnection, activities: Iterable[ScoredActivity]) -> int:
    count = 0
    for activity in activities:
        upsert_activity(conn, activity)
        count += 1
    return count


def delete_activity(conn: DBConnection, activity_id: int) -> bool:
    cur = conn.execute("DELETE FROM activities WHERE id=?", (activity_id,))
    return cur.rowcount > 0


def _to_activities(cur) -> List[ScoredActivity]:
    return [ScoredActivity.model_validate(row) for row in dict_rows(cur)]


def get_athletes(conn: DBConnection) -> List[Athlete]:
    cur = conn.execute(
        """
        SELECT id, username, firstname, lastname, profile_picture_url, max_heartrate
        FROM athletes
        ORDER BY firstname, lastname
        """
    )
    return [Athlete.model_validate(row) for row in dict_rows(cur)]


def get_athlete_activities(
    conn: DBConnection,
    athlete_id: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[ScoredActivity]:
    clause, params = _date_filter(start, end)
    cur = conn.execute(
        f"SELECT {ACTIVITY_COLUMNS} FROM activities WHERE athlete_id=?{clause} ORDER BY start_date DESC",
        [athlete_id, *params],
    )
    return _to_activities(cur)


def get_activities(
    conn: DBConnection,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[ScoredActivity]:
    clause, params = _date_filter(start, end)
    cur = conn.execute(
        f"SELECT {ACTIVITY_COLUMNS} FROM activities WHERE 1=1{clause} ORDER BY start_date DESC",
        params,
    )
    return _to_activities(cur)


def get_recent_activities(conn: DBConnection, limit: int = 20) -> List[ScoredActivity]:
    cur = conn.execute(
        f"SELECT {ACTIVITY_COLUMNS} FROM activities ORDER BY start_date DESC LIMIT ?",
        (limit,),
    )
    return _to_activities(cur)


def _date_filter(start: Optional[datetime], end: Optional[datetime]) -> tuple[str, list]:
    clause = ""
    params: list = []
    if start:
        clause += " AND start_date >= ?"
        params.append(_iso(start))
    if end:
        clause += " AND start_date <= ?"
        params.append(_iso(end))
    return clause, params
