"""Pull the last week of team activities from Strava and refresh the caches."""
import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from packages import db
from packages.cache import build_cache
from packages.error_reporting import init_error_reporting
from packages.logging_utils import setup_logging
from packages.metrics import render_text
from services.ingestion.strava_api import StravaClient, StravaError
from services.ingestion.team_sync import sync_team_activities


logger = logging.getLogger("leaderboard.sync")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Sync team activities from Strava.")
    parser.add_argument("--force", action="store_true", help="Ignore the sync cooldown.")
    parser.add_argument(
        "--athlete",
        type=int,
        action="append",
        dest="athletes",
        help="Athlete id to sync (repeatable). Defaults to LEADERBOARD_TEAM_MEMBER_IDS.",
    )
    parser.add_argument("--metrics", action="store_true", help="Print counters after the run.")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()
    init_error_reporting("leaderboard-sync")

    cache = build_cache()
    client = StravaClient(cache)
    if not db.db_exists():
        raise SystemExit("Database not found. Run scripts/init_db.py first.")
    try:
        with db.connect() as conn:
            db.configure_connection(conn)
            result = sync_team_activities(conn, client, cache, athlete_ids=args.athletes, force=args.force)
    except StravaError as exc:
        logger.error("sync failed: %s", exc)
        return 1

    if result.cached:
        print(f"{result.message} (last sync {result.last_sync:%Y-%m-%d %H:%M:%S} UTC)")
    else:
        stats = result.stats
        print(
            f"Synced {stats.total_activities} activities ({stats.swimming_activities} swims) "
            f"for {stats.team_members} team members, total score {stats.total_weighted_score}"
        )
        if result.failed_athletes:
            print(f"Failed athletes: {', '.join(str(a) for a in result.failed_athletes)}")
    if args.metrics:
        print(render_text(), end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())
