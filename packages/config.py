from pathlib import Path
import os

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]

load_dotenv(ROOT / ".env")


def _int_list(raw: str) -> list[int]:
    out = []
    for part in raw.split(","):
        part = part.strip()
        if part:
            out.append(int(part))
    return out


DB_URL = os.getenv("LEADERBOARD_DB_URL")
DB_PATH = Path(os.getenv("LEADERBOARD_DB_PATH", ROOT / "data" / "leaderboard.db"))
REDIS_URL = os.getenv("REDIS_URL") or os.getenv("LEADERBOARD_REDIS_URL")

STRAVA_CLIENT_ID = os.getenv("STRAVA_CLIENT_ID")
STRAVA_CLIENT_SECRET = os.getenv("STRAVA_CLIENT_SECRET")
STRAVA_REFRESH_TOKEN = os.getenv("STRAVA_REFRESH_TOKEN")
STRAVA_API_BASE = os.getenv("STRAVA_API_BASE", "https://www.strava.com/api/v3")
STRAVA_TOKEN_URL = os.getenv("STRAVA_TOKEN_URL", "https://www.strava.com/oauth/token")
STRAVA_CLUB_ID = int(os.getenv("STRAVA_CLUB_ID", "1853738"))
STRAVA_HTTP_TIMEOUT_SEC = float(os.getenv("STRAVA_HTTP_TIMEOUT_SEC", "30"))

# Strava allows 100 requests / 15 min and 1000 / day per app.
STRAVA_RATE_LIMIT = int(os.getenv("STRAVA_RATE_LIMIT", "100"))
STRAVA_RATE_WINDOW_SEC = int(os.getenv("STRAVA_RATE_WINDOW_SEC", str(15 * 60)))
STRAVA_RATE_HEADROOM = int(os.getenv("STRAVA_RATE_HEADROOM", "5"))
STRAVA_FETCH_WORKERS = int(os.getenv("STRAVA_FETCH_WORKERS", "4"))

TEAM_MEMBER_IDS = _int_list(os.getenv("LEADERBOARD_TEAM_MEMBER_IDS", ""))

# Cache TTLs (seconds)
ACCESS_TOKEN_TTL_SEC = int(os.getenv("LEADERBOARD_ACCESS_TOKEN_TTL_SEC", str(6 * 60 * 60)))
SYNC_COOLDOWN_SEC = int(os.getenv("LEADERBOARD_SYNC_COOLDOWN_SEC", str(5 * 60)))
LEADERBOARD_CACHE_TTL_SEC = int(os.getenv("LEADERBOARD_CACHE_TTL_SEC", "30"))
STREAK_CACHE_TTL_SEC = int(os.getenv("LEADERBOARD_STREAK_CACHE_TTL_SEC", str(5 * 60)))

# Scoring windows
LEADERBOARD_WINDOW_DAYS = int(os.getenv("LEADERBOARD_WINDOW_DAYS", "7"))
STREAK_LOOKBACK_DAYS = int(os.getenv("LEADERBOARD_STREAK_LOOKBACK_DAYS", "90"))
STREAK_MIN_DAYS = int(os.getenv("LEADERBOARD_STREAK_MIN_DAYS", "5"))
RECENT_ACTIVITY_HOURS = float(os.getenv("LEADERBOARD_RECENT_ACTIVITY_HOURS", "6"))
FEED_LIMIT = int(os.getenv("LEADERBOARD_FEED_LIMIT", "20"))

# HR zones (percent of max HR)
HR_MAX_DEFAULT = int(os.getenv("LEADERBOARD_HR_MAX_DEFAULT", "190"))
