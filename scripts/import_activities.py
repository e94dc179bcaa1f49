import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pydantic import ValidationError

from packages import db
from packages.cache import build_cache
from packages.logging_utils import setup_logging
from services.ingestion.manual_import import dump_result, import_json


def main() -> None:
    parser = argparse.ArgumentParser(description="Import an athlete's activities from a JSON submission.")
    parser.add_argument("path", type=Path, help='JSON file: {"athlete": {...}, "activities": [...]}')
    args = parser.parse_args()

    setup_logging()
    if not args.path.exists():
        raise SystemExit(f"File not found: {args.path}")
    with db.connect() as conn:
        db.configure_connection(conn)
        try:
            result = import_json(conn, build_cache(), args.path)
        except ValidationError as exc:
            raise SystemExit(f"Invalid submission: {exc}")
    print(dump_result(result))


if __name__ == "__main__":
    main()
