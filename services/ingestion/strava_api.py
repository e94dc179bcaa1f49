"""Strava REST client: token refresh, quota-limited requests, team fetches."""
from __future__ import annotations

import contextvars
import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional
from urllib import error, parse, request

import packages.config as config
from packages.cache import ACCESS_TOKEN_KEY, KVCache, get_or_set
from packages.metrics import inc, observe
from packages.rate_limiter import QuotaLimiter
from packages.request_context import athlete_context


logger = logging.getLogger("leaderboard.strava")

CLUB_PAGE_SIZE = 200
CLUB_MAX_PAGES = 5


class StravaError(RuntimeError):
    pass


class StravaAuthError(StravaError):
    pass


class StravaRateLimitError(StravaError):
    pass


class StravaAPIError(StravaError):
    def __init__(self, status: int, body: str):
        super().__init__(f"Strava API error: {status} {body}")
        self.status = status
        self.body = body


def _http_json(url: str, headers: dict[str, str], params: dict | None = None) -> object:
    if params:
        url = f"{url}?{parse.urlencode(params)}"
    req = request.Request(url, headers=headers)
    with request.urlopen(req, timeout=config.STRAVA_HTTP_TIMEOUT_SEC) as resp:
        payload = resp.read().decode("utf-8")
    return json.loads(payload)


def _post_form(url: str, data: dict) -> dict:
    body = parse.urlencode(data).encode("utf-8")
    req = request.Request(url, data=body, method="POST")
    with request.urlopen(req, timeout=config.STRAVA_HTTP_TIMEOUT_SEC) as resp:
        payload = resp.read().decode("utf-8")
    return json.loads(payload)


def build_limiter() -> QuotaLimiter:
    return QuotaLimiter(
        limit=config.STRAVA_RATE_LIMIT,
        window_sec=config.STRAVA_RATE_WINDOW_SEC,
        headroom=config.STRAVA_RATE_HEADROOM,
    )


class StravaClient:
    def __init__(self, cache: KVCache, limiter: Optional[QuotaLimiter] = None):
        self.cache = cache
        self.limiter = limiter or build_limiter()

    # -- auth -------------------------------------------------------------

    def _refresh_access_token(self) -> dict:
        if not (config.STRAVA_CLIENT_ID and config.STRAVA_CLIENT_SECRET and config.STRAVA_REFRESH_TOKEN):
            raise StravaAuthError("Strava API not configured. Set STRAVA_CLIENT_ID/SECRET/REFRESH_TOKEN.")
        try:
            return _post_form(
                config.STRAVA_TOKEN_URL,
                {
                    "client_id": config.STRAVA_CLIENT_ID,
                    "client_secret": config.STRAVA_CLIENT_SECRET,
                    "refresh_token": config.STRAVA_REFRESH_TOKEN,
                    "grant_type": "refresh_token",
                },
            )
        except error.HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")
            raise StravaAuthError(f"Failed to refresh token: {exc.code} {body}") from exc

    def _new_access_token(self) -> str:
        payload = self._refresh_access_token()
        if payload.get("refresh_token") and payload["refresh_token"] != config.STRAVA_REFRESH_TOKEN:
            logger.warning("Strava issued a new refresh token; update STRAVA_REFRESH_TOKEN")
        inc("strava_token_refresh_total")
        return payload["access_token"]

    def access_token(self) -> str:
        return get_or_set(self.cache, ACCESS_TOKEN_KEY, config.ACCESS_TOKEN_TTL_SEC, self._new_access_token)

    def invalidate_access_token(self) -> None:
        self.cache.delete(ACCESS_TOKEN_KEY)

    # -- transport --------------------------------------------------------

    def _get(self, endpoint: str, params: dict | None = None):
        token = self.access_token()
        start = time.perf_counter()
        try:
            return _http_json(
                f"{config.STRAVA_API_BASE}{endpoint}",
                headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
                params=params,
            )
        except error.HTTPError as exc:
            inc(f"strava_request_failures_total{{status=\"{exc.code}\"}}")
            if exc.code == 401:
                self.invalidate_access_token()
                raise StravaAuthError("Access token expired, please retry") from exc
            if exc.code == 429:
                raise StravaRateLimitError("Rate limit exceeded") from exc
            body = exc.read().decode("utf-8", errors="replace")
            raise StravaAPIError(exc.code, body) from exc
        finally:
            observe("strava_request_duration_seconds", time.perf_counter() - start)

    def request(self, endpoint: str, params: dict | None = None):
        return self.limiter.execute(self._get, endpoint, params)

    # -- endpoints --------------------------------------------------------

    def fetch_authenticated_athlete(self) -> dict:
        return self.request("/athlete")

    def fetch_activity(self, activity_id: int) -> dict:
        return self.request(f"/activities/{activity_id}")

    def fetch_athlete_activities(
        self,
        athlete_id: int,
        after: Optional[int] = None,
        before: Optional[int] = None,
        per_page: int = 30,
    ) -> List[dict]:
        params: Dict[str, int] = {"per_page": per_page}
        if after:
            params["after"] = after
        if before:
            params["before"] = before
        return self.request(f"/athletes/{athlete_id}/activities", params)

    def fetch_authenticated_activities(
        self,
        after: Optional[int] = None,
        before: Optional[int] = None,
        per_page: int = 30,
    ) -> List[dict]:
        params: Dict[str, int] = {"per_page": per_page}
        if after:
            params["after"] = after
        if before:
            params["before"] = before
        return self.request("/athlete/activities", params)

    def fetch_club_members(self, club_id: Optional[int] = None) -> List[dict]:
        club_id = club_id or config.STRAVA_CLUB_ID
        return self.request(f"/clubs/{club_id}/members", {"per_page": CLUB_PAGE_SIZE})

    def fetch_club_activities(self, club_id: Optional[int] = None, page: int = 1, per_page: int = CLUB_PAGE_SIZE) -> List[dict]:
        club_id = club_id or config.STRAVA_CLUB_ID
        return self.request(f"/clubs/{club_id}/activities", {"page": page, "per_page": per_page})

    def fetch_all_recent_club_activities(
        self,
        club_id: Optional[int] = None,
        days: int = 7,
        now: Optional[datetime] = None,
    ) -> List[dict]:
        """Page through club activities until a page is short or older than ``days``."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(days=days)
        out: List[dict] = []
        for page in range(1, CLUB_MAX_PAGES + 1):
            activities = self.fetch_club_activities(club_id, page, CLUB_PAGE_SIZE)
            if not activities:
                break
            recent = [a for a in activities if _started_after(a, cutoff)]
            out.extend(recent)
            if len(activities) < CLUB_PAGE_SIZE or len(recent) < len(activities):
                break
        return out

    def fetch_team_activities(
        self,
        athlete_ids: Iterable[int],
        after: Optional[int] = None,
        before: Optional[int] = None,
        per_page: int = 30,
    ) -> tuple[Dict[int, List[dict]], List[int]]:
        """Fetch activities per athlete.

        Returns activities keyed by athlete id plus the ids whose fetch failed.
        A failed athlete maps to an empty list so the batch carries on.
        """
        athlete_ids = list(athlete_ids)

        def fetch_one(athlete_id: int) -> tuple[List[dict], bool]:
            with athlete_context(athlete_id):
                try:
                    activities = self.fetch_athlete_activities(athlete_id, after, before, per_page)
                except Exception as exc:
                    inc("strava_athlete_fetch_failures_total")
                    logger.error("failed to fetch activities for athlete %s: %s", athlete_id, exc)
                    return [], False
                logger.info("fetched %s activities", len(activities))
                return activities, True

        workers = max(1, min(config.STRAVA_FETCH_WORKERS, len(athlete_ids) or 1))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            # Each task gets its own copy of the caller's context (sync_run_id for logs).
            futures = [pool.submit(contextvars.copy_context().run, fetch_one, aid) for aid in athlete_ids]
            results = [future.result() for future in futures]
        by_athlete = {aid: result[0] for aid, result in zip(athlete_ids, results)}
        failed = [aid for aid, result in zip(athlete_ids, results) if not result[1]]
        return by_athlete, failed


def _started_after(activity: dict, cutoff: datetime) -> bool:
    raw = activity.get("start_date")
    if not raw:
        return False
    try:
        started = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return False
    if started.tzinfo is None:
        started = started.replace(tzinfo=timezone.utc)
    return started >= cutoff
