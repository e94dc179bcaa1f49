import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from packages import db
from packages.cache import build_cache
from packages.logging_utils import setup_logging
from services.processing.hr_zones import get_hr_zones
from services.processing.leaderboard import get_leaderboard
from services.scoring.heartrate import format_zone_minutes, zone_name


def print_leaderboard(response) -> None:
    meta = response.metadata
    print(f"Week of {meta.week_start_date:%Y-%m-%d} ({meta.total_athletes} athletes)")
    for entry in response.leaderboard:
        name = f"{entry.firstname} {entry.lastname}".strip() or str(entry.athlete_id)
        flags = []
        if entry.is_swimming_dominant:
            flags.append("swim")
        if entry.streak:
            flags.append(f"streak {entry.streak}w")
        if entry.has_recent_activity:
            flags.append("active")
        print(
            f"{entry.rank:>3}. {name:<24} {entry.composite_score:>8.1f}  "
            f"{entry.total_activities:>2} acts  -{entry.gap_behind_leader:.1f}  {' '.join(flags)}"
        )
    if response.activity_feed:
        print("\nRecent activity")
        for item in response.activity_feed:
            print(f"  {item.time_ago:>9}  {item.athlete_firstname} {item.athlete_lastname}: {item.name} ({item.type})")


def print_hr_zones(response) -> None:
    print(f"HR zones since {response.metadata.week_start_date}")
    print("  " + ", ".join(f"Z{zone} {zone_name(zone)}" for zone in range(1, 6)))
    for athlete in response.athletes:
        name = f"{athlete.firstname} {athlete.lastname}".strip() or str(athlete.athlete_id)
        data = athlete.hr_zone_data
        if data is None:
            print(f"  {name:<24} no HR data")
            continue
        zones = [data.zone1_minutes, data.zone2_minutes, data.zone3_minutes, data.zone4_minutes, data.zone5_minutes]
        cells = "  ".join(f"Z{i + 1} {format_zone_minutes(m):>6}" for i, m in enumerate(zones))
        print(f"  {name:<24} {cells}  total {format_zone_minutes(data.total_minutes)}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Print the weekly leaderboard.")
    parser.add_argument("--json", action="store_true", help="Print the raw JSON payload.")
    parser.add_argument("--hr-zones", action="store_true", help="Show heart-rate zones instead.")
    args = parser.parse_args()

    setup_logging()
    if not db.db_exists():
        raise SystemExit("Database not found. Run scripts/init_db.py first.")
    with db.connect() as conn:
        db.configure_connection(conn)
        if args.hr_zones:
            response = get_hr_zones(conn)
        else:
            response = get_leaderboard(conn, build_cache())

    if args.json:
        print(json.dumps(response.model_dump(mode="json"), indent=2))
    elif args.hr_zones:
        print_hr_zones(response)
    else:
        print_leaderboard(response)


if __name__ == "__main__":
    main()
