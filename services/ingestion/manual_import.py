"""Admin import of activities exported by hand (JSON submissions)."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Union

from packages.cache import KVCache
from packages.db import DBConnection
from packages.metrics import inc
from packages.schemas import Activity, ManualSubmission, SyncResult
from services.scoring.activities import score_activities
from services.storage.activity_store import upsert_activities, upsert_athlete
from .records import invalidate_caches
from .team_sync import summarize


logger = logging.getLogger("leaderboard.import")


def load_submission(source: Union[str, Path, dict]) -> ManualSubmission:
    """Parse a submission from a dict, a JSON string or a path to a JSON file."""
    if isinstance(source, dict):
        return ManualSubmission.model_validate(source)
    if isinstance(source, Path) or (isinstance(source, str) and not source.lstrip().startswith("{")):
        return ManualSubmission.model_validate_json(Path(source).read_text())
    return ManualSubmission.model_validate_json(source)


def _to_activity(athlete_id: int, manual: Any) -> Activity:
    data = manual.model_dump()
    data["athlete_id"] = athlete_id
    data["has_heartrate"] = data.get("average_heartrate") is not None
    return Activity.model_validate(data)


def import_submission(conn: DBConnection, cache: KVCache, submission: ManualSubmission) -> SyncResult:
    athlete = submission.athlete
    activities = [_to_activity(athlete.id, manual) for manual in submission.activities]
    scored = score_activities(activities)

    upsert_athlete(conn, athlete)
    upsert_activities(conn, scored)
    conn.commit()
    invalidate_caches(cache, [athlete.id])

    inc("manual_imports_total")
    inc("manual_import_activities_total", len(scored))
    logger.info("imported %s activities for athlete %s", len(scored), athlete.id)
    return SyncResult(
        message=f"Imported {len(scored)} activities for athlete {athlete.id}",
        stats=summarize(scored),
    )


def import_json(conn: DBConnection, cache: KVCache, source: Union[str, Path, dict]) -> SyncResult:
    return import_submission(conn, cache, load_submission(source))


def dump_result(result: SyncResult) -> str:
    return json.dumps(result.model_dump(mode="json"), indent=2)
