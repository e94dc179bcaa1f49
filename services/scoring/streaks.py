"""Smart streak: consecutive Monday-aligned weeks with enough training days.

A week counts when it has at least ``min_days`` distinct UTC training dates
(5 by default, i.e. two rest days allowed). The week in progress never breaks
the streak; any earlier week with activity below the threshold ends it.
Weeks without any activity are skipped. Only the 90-day lookback is
considered, so the streak tops out around 12-13 weeks.
"""
from __future__ import annotations

import logging
import time
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from pydantic import ValidationError

import packages.config as config
from packages.cache import KVCache, streak_key
from packages.schemas import Activity, StreakCacheEntry


logger = logging.getLogger("leaderboard.streaks")


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def training_days_by_week(activities: Iterable[Activity], since: datetime) -> Counter:
    dates = {
        activity.start_date.astimezone(timezone.utc).date()
        for activity in activities
        if activity.start_date is not None and activity.start_date >= since
    }
    return Counter(week_start(d) for d in dates)


def calculate_streak(
    activities: Iterable[Activity],
    now: Optional[datetime] = None,
    lookback_days: int = 90,
    min_days: int = 5,
) -> int:
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    weeks = training_days_by_week(activities, now - timedelta(days=lookback_days))
    if not weeks:
        return 0

    current = week_start(now.date())
    streak = 0
    # Only weeks with activity are walked; empty weeks are skipped.
    for week in sorted(weeks, reverse=True):
        if weeks[week] >= min_days:
            streak += 1
        elif week != current:
            break
    return streak


class StreakCalculator:
    """Streak lookup backed by a short-TTL cache entry per athlete."""

    def __init__(
        self,
        cache: KVCache,
        ttl_seconds: Optional[int] = None,
        lookback_days: Optional[int] = None,
        min_days: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.cache = cache
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.STREAK_CACHE_TTL_SEC
        self.lookback_days = lookback_days if lookback_days is not None else config.STREAK_LOOKBACK_DAYS
        self.min_days = min_days if min_days is not None else config.STREAK_MIN_DAYS
        self._clock = clock

    def cached(self, athlete_id: int) -> Optional[int]:
        raw = self.cache.get(streak_key(athlete_id))
        if raw is None:
            return None
        try:
            entry = StreakCacheEntry.model_validate(raw)
        except ValidationError:
            logger.warning("discarding malformed streak cache entry for athlete %s", athlete_id)
            return None
        if self._clock() - entry.computed_at > self.ttl_seconds:
            return None
        return entry.streak

    def store(self, athlete_id: int, streak: int) -> None:
        entry = StreakCacheEntry(athlete_id=athlete_id, streak=streak, computed_at=self._clock())
        self.cache.set(streak_key(athlete_id), entry.model_dump(), self.ttl_seconds)

    def get_streak(
        self,
        athlete_id: int,
        load_activities: Callable[[datetime], Iterable[Activity]],
        now: Optional[datetime] = None,
    ) -> int:
        """Return the cached streak or compute it from ``load_activities(since)``."""
        hit = self.cached(athlete_id)
        if hit is not None:
            return hit
        now = now or datetime.now(timezone.utc)
        activities = load_activities(now - timedelta(days=self.lookback_days))
        streak = calculate_streak(activities, now, self.lookback_days, self.min_days)
        self.store(athlete_id, streak)
        return streak

    def invalidate(self, athlete_id: int) -> None:
        self.cache.delete(streak_key(athlete_id))

    def invalidate_many(self, athlete_ids: Iterable[int]) -> None:
        keys = [streak_key(athlete_id) for athlete_id in athlete_ids]
        if keys:
            self.cache.delete(*keys)
