from datetime import timedelta
from pathlib import Path

import pytest

from packages.cache import LAST_SYNC_KEY, LEADERBOARD_KEY, MemoryCache, streak_key
from packages.schemas import Athlete
from services.ingestion.team_sync import sync_team_activities
from services.storage.activity_store import get_activities, get_athletes, upsert_athlete
from tests.fixtures.build_fixture_db import NOW, open_db


class FakeStrava:
    def __init__(self, by_athlete, failed=()):
        self.by_athlete = by_athlete
        self.failed = list(failed)
        self.calls = []

    def fetch_team_activities(self, athlete_ids, after=None, before=None, per_page=30):
        ids = list(athlete_ids)
        self.calls.append({"ids": ids, "after": after, "per_page": per_page})
        return {aid: self.by_athlete.get(aid, []) for aid in ids}, [a for a in self.failed if a in ids]


def _payload(activity_id, athlete_id, **extra):
    data = {
        "id": activity_id,
        "athlete": {"id": athlete_id},
        "name": "Session",
        "type": "Run",
        "start_date": "2026-02-03T07:00:00Z",
        "distance": 1000.0,
        "moving_time": 600,
    }
    data.update(extra)
    return data


def test_sync_stores_scored_activities(tmp_path: Path):
    conn = open_db(tmp_path / "sync.db")
    cache = MemoryCache()
    cache.set(LEADERBOARD_KEY, {"stale": True}, 30)
    cache.set(streak_key(1), {"athlete_id": 1, "streak": 9, "computed_at": 0}, 300)
    client = FakeStrava(
        {
            1: [_payload(11, 1, type="Swim", moving_time=3600, distance=2000)],
            2: [_payload(21, 2), {"name": "no id"}],
        },
        failed=[3],
    )

    result = sync_team_activities(conn, client, cache, athlete_ids=[1, 2, 3], now=NOW)

    assert result.success is True
    assert result.cached is False
    assert result.failed_athletes == [3]
    assert result.stats.team_members == 3
    assert result.stats.total_activities == 2
    assert result.stats.swimming_activities == 1
    assert result.stats.total_weighted_score == 73
    assert client.calls[0]["after"] == int((NOW - timedelta(days=7)).timestamp())

    stored = {a.id: a for a in get_activities(conn)}
    assert stored[11].weighted_score == pytest.approx(62.0)
    assert stored[11].is_swimming is True
    assert {a.id for a in get_athletes(conn)} == {1, 2}

    assert cache.get(LEADERBOARD_KEY) is None
    assert cache.get(streak_key(1)) is None
    assert cache.get(LAST_SYNC_KEY) == NOW.timestamp()
    conn.close()


def test_sync_cooldown_skips_second_run(tmp_path: Path):
    conn = open_db(tmp_path / "sync.db")
    cache = MemoryCache()
    client = FakeStrava({1: [_payload(11, 1)]})

    sync_team_activities(conn, client, cache, athlete_ids=[1], now=NOW)
    again = sync_team_activities(conn, client, cache, athlete_ids=[1], now=NOW + timedelta(minutes=2))

    assert again.cached is True
    assert again.last_sync == NOW
    assert again.stats is None
    assert len(client.calls) == 1
    conn.close()


def test_forced_sync_ignores_cooldown(tmp_path: Path):
    conn = open_db(tmp_path / "sync.db")
    cache = MemoryCache()
    client = FakeStrava({1: [_payload(11, 1)]})

    sync_team_activities(conn, client, cache, athlete_ids=[1], now=NOW)
    forced = sync_team_activities(conn, client, cache, athlete_ids=[1], force=True, now=NOW + timedelta(minutes=1))

    assert forced.cached is False
    assert len(client.calls) == 2
    assert len(get_activities(conn)) == 1
    conn.close()


def test_sync_keeps_stored_athlete_names(tmp_path: Path):
    conn = open_db(tmp_path / "sync.db")
    upsert_athlete(conn, Athlete(id=1, firstname="Ada", lastname="Swimmer"))
    conn.commit()

    sync_team_activities(conn, FakeStrava({1: [_payload(11, 1)]}), MemoryCache(), athlete_ids=[1], now=NOW)
    assert get_athletes(conn)[0].firstname == "Ada"
    conn.close()


def test_activity_without_start_date_is_skipped(tmp_path: Path):
    conn = open_db(tmp_path / "sync.db")
    undated = _payload(21, 2)
    del undated["start_date"]
    client = FakeStrava({1: [_payload(11, 1)], 2: [undated]})

    result = sync_team_activities(conn, client, MemoryCache(), athlete_ids=[1, 2], now=NOW)

    assert result.success is True
    assert result.stats.total_activities == 1
    assert [a.id for a in get_activities(conn)] == [11]
    conn.close()
