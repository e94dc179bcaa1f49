"""Sync the last week of team activities from Strava into the store."""
from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

import packages.config as config
from packages.cache import LAST_SYNC_KEY, KVCache
from packages.db import DBConnection
from packages.metrics import inc, observe
from packages.request_context import sync_run_context
from packages.schemas import Activity, ScoredActivity, SyncResult, SyncStats
from services.scoring.activities import score_activities
from services.storage.activity_store import ensure_athlete, upsert_activities
from .records import invalidate_caches, parse_activities


logger = logging.getLogger("leaderboard.sync")


def summarize(scored: List[ScoredActivity], team_members: Optional[int] = None) -> SyncStats:
    return SyncStats(
        team_members=team_members,
        total_activities=len(scored),
        swimming_activities=sum(1 for a in scored if a.is_swimming),
        total_weighted_score=int(sum(a.weighted_score for a in scored) + 0.5),
    )


def last_sync_at(cache: KVCache) -> Optional[float]:
    value = cache.get(LAST_SYNC_KEY)
    if isinstance(value, (int, float)):
        return float(value)
    return None


def sync_team_activities(
    conn: DBConnection,
    client,
    cache: KVCache,
    athlete_ids: Optional[Iterable[int]] = None,
    force: bool = False,
    now: Optional[datetime] = None,
) -> SyncResult:
    now = now or datetime.now(timezone.utc)
    if force:
        cache.delete(LAST_SYNC_KEY)
    else:
        last = last_sync_at(cache)
        if last is not None and now.timestamp() - last < config.SYNC_COOLDOWN_SEC:
            inc("sync_skipped_total")
            return SyncResult(
                cached=True,
                message="Data recently synced, using cache",
                last_sync=datetime.fromtimestamp(last, timezone.utc),
            )

    ids = list(config.TEAM_MEMBER_IDS if athlete_ids is None else athlete_ids)
    after = int((now - timedelta(days=config.LEADERBOARD_WINDOW_DAYS)).timestamp())
    run_id = uuid.uuid4().hex[:12]
    start = time.perf_counter()

    with sync_run_context(run_id):
        logger.info("fetching activities for %s team members", len(ids))
        by_athlete, failed = client.fetch_team_activities(ids, after=after, per_page=30)

        activities: List[Activity] = []
        active_ids: List[int] = []
        for athlete_id in ids:
            parsed = parse_activities(by_athlete.get(athlete_id) or [], athlete_id=athlete_id)
            if parsed:
                active_ids.append(athlete_id)
            activities.extend(parsed)

        scored = score_activities(activities)
        # Activities only carry the athlete id; keep any names already stored.
        for athlete_id in {a.athlete_id for a in scored} | set(active_ids):
            ensure_athlete(conn, athlete_id)
        upsert_activities(conn, scored)
        conn.commit()

        invalidate_caches(cache, active_ids)
        cache.set(LAST_SYNC_KEY, now.timestamp(), config.SYNC_COOLDOWN_SEC)

        stats = summarize(scored, team_members=len(ids))
        logger.info(
            "sync complete: %s activities (%s swims), %s failed athletes",
            stats.total_activities,
            stats.swimming_activities,
            len(failed),
        )

    inc("sync_runs_total")
    observe("sync_duration_seconds", time.perf_counter() - start)
    return SyncResult(synced_at=now, failed_athletes=failed, stats=stats)
