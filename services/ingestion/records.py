from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from pydantic import ValidationError

from packages.cache import LEADERBOARD_KEY, KVCache, streak_key
from packages.schemas import Activity


logger = logging.getLogger("leaderboard.ingestion")


def parse_activities(payloads: Iterable[dict], athlete_id: Optional[int] = None) -> List[Activity]:
    """Validate raw activity payloads, skipping records that lack an identity or a start date."""
    out: List[Activity] = []
    for payload in payloads:
        data = dict(payload)
        if athlete_id is not None and data.get("athlete_id") is None and not (data.get("athlete") or {}).get("id"):
            data["athlete_id"] = athlete_id
        try:
            activity = Activity.model_validate(data)
        except ValidationError as exc:
            logger.warning("skipping malformed activity %s: %s", data.get("id"), exc.errors()[:1])
            continue
        if activity.start_date is None:
            logger.warning("skipping activity %s without start_date", activity.id)
            continue
        out.append(activity)
    return out


def invalidate_caches(cache: KVCache, athlete_ids: Iterable[int]) -> None:
    """Drop the enriched leaderboard and the streaks of the given athletes."""
    keys = [LEADERBOARD_KEY, *(streak_key(athlete_id) for athlete_id in set(athlete_ids))]
    cache.delete(*keys)
