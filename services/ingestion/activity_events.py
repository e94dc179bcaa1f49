"""Apply Strava push-subscription events to the local store."""
from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict

from packages.cache import KVCache
from packages.db import DBConnection
from packages.metrics import inc
from packages.request_context import athlete_context
from services.scoring.activities import score_activity
from services.storage.activity_store import delete_activity, ensure_athlete, upsert_activity
from .records import invalidate_caches, parse_activities


logger = logging.getLogger("leaderboard.events")


class ActivityEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object_type: str
    aspect_type: str
    object_id: int
    owner_id: int
    event_time: Optional[int] = None


def handle_event(conn: DBConnection, client, cache: KVCache, payload: dict) -> Optional[str]:
    """Returns the action taken ("upserted", "deleted") or None when ignored."""
    event = ActivityEvent.model_validate(payload)
    if event.object_type != "activity":
        inc("activity_events_ignored_total")
        return None

    with athlete_context(event.owner_id):
        if event.aspect_type == "delete":
            removed = delete_activity(conn, event.object_id)
            conn.commit()
            invalidate_caches(cache, [event.owner_id])
            logger.info("activity %s deleted (existed=%s)", event.object_id, removed)
            inc("activity_events_total{aspect=\"delete\"}")
            return "deleted"

        if event.aspect_type not in ("create", "update"):
            logger.info("ignoring %s event for activity %s", event.aspect_type, event.object_id)
            inc("activity_events_ignored_total")
            return None

        fetched = client.fetch_activity(event.object_id)
        parsed = parse_activities([fetched], athlete_id=event.owner_id)
        if not parsed:
            return None
        ensure_athlete(conn, parsed[0].athlete_id)
        upsert_activity(conn, score_activity(parsed[0]))
        conn.commit()
        invalidate_caches(cache, [event.owner_id])
        logger.info("activity %s %sd", event.object_id, event.aspect_type)
        inc(f"activity_events_total{{aspect=\"{event.aspect_type}\"}}")
        return "upserted"
