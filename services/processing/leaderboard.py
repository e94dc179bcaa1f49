"""Weekly leaderboard view: ranked entries, streaks and the recent-activity feed."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import ValidationError

import packages.config as config
from packages.cache import LEADERBOARD_KEY, KVCache
from packages.db import DBConnection
from packages.metrics import inc
from packages.schemas import LeaderboardMetadata, LeaderboardResponse
from services.scoring.leaderboard import (
    aggregate_entries,
    build_activity_feed,
    enrich_entries,
    monday_start,
    rank_entries,
)
from services.scoring.streaks import StreakCalculator
from services.storage.activity_store import (
    get_activities,
    get_athlete_activities,
    get_athletes,
    get_recent_activities,
)


logger = logging.getLogger("leaderboard.view")


def build_leaderboard(
    conn: DBConnection,
    streaks: StreakCalculator,
    now: Optional[datetime] = None,
) -> LeaderboardResponse:
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=config.LEADERBOARD_WINDOW_DAYS)

    athletes = get_athletes(conn)
    entries = aggregate_entries(athletes, get_activities(conn, since), since)
    ranked = rank_entries(entries)

    def streak_for(athlete_id: int) -> int:
        return streaks.get_streak(
            athlete_id,
            lambda start: get_athlete_activities(conn, athlete_id, start),
            now,
        )

    leaderboard = enrich_entries(ranked, streak_for, now, config.RECENT_ACTIVITY_HOURS)
    feed = build_activity_feed(get_recent_activities(conn, config.FEED_LIMIT), athletes, now)
    return LeaderboardResponse(
        leaderboard=leaderboard,
        activity_feed=feed,
        metadata=LeaderboardMetadata(
            week_start_date=monday_start(now),
            last_updated=now,
            total_athletes=len(leaderboard),
        ),
    )


def get_leaderboard(
    conn: DBConnection,
    cache: KVCache,
    streaks: Optional[StreakCalculator] = None,
    now: Optional[datetime] = None,
) -> LeaderboardResponse:
    """Return the cached leaderboard, rebuilding it when the entry is missing or unreadable."""
    cached = cache.get(LEADERBOARD_KEY)
    if cached is not None:
        try:
            response = LeaderboardResponse.model_validate(cached)
        except ValidationError:
            logger.warning("discarding malformed cached leaderboard")
        else:
            inc("leaderboard_cache_hits_total")
            return response

    inc("leaderboard_builds_total")
    response = build_leaderboard(conn, streaks or StreakCalculator(cache), now)
    cache.set(LEADERBOARD_KEY, response.model_dump(mode="json"), config.LEADERBOARD_CACHE_TTL_SEC)
    return response
