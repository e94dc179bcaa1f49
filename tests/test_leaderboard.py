from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from packages.cache import LEADERBOARD_KEY, MemoryCache
from packages.schemas import Athlete, LeaderboardEntry, ScoredActivity
from services.processing.hr_zones import get_hr_zones
from services.processing.leaderboard import get_leaderboard
from services.scoring.leaderboard import (
    aggregate_entries,
    build_activity_feed,
    enrich_entries,
    format_time_ago,
    monday_start,
    rank_entries,
)
from services.scoring.streaks import StreakCalculator
from tests.fixtures.build_fixture_db import NOW, build_fixture_db


def _entry(athlete_id: int, composite: float, last=None, count=1, swims=0) -> LeaderboardEntry:
    return LeaderboardEntry(
        athlete_id=athlete_id,
        composite_score=composite,
        total_activities=count,
        swimming_activities=swims,
        last_activity_at=last,
    )


def test_monday_start():
    assert monday_start(NOW) == datetime(2026, 2, 2, tzinfo=timezone.utc)


def test_rank_by_composite_then_recency():
    early = NOW - timedelta(days=2)
    late = NOW - timedelta(hours=1)
    ranked = rank_entries(
        [
            _entry(1, 100.0, early),
            _entry(2, 200.0, early),
            _entry(3, 100.0, late),
            _entry(4, 100.0, None),
        ]
    )
    assert [e.athlete_id for e in ranked] == [2, 3, 1, 4]


def test_aggregate_includes_idle_athletes():
    athletes = [Athlete(id=1, firstname="Ada"), Athlete(id=2, firstname="Ben")]
    activities = [
        ScoredActivity(id=10, athlete_id=1, start_date=NOW - timedelta(days=1), weighted_score=50.0, is_swimming=True),
        ScoredActivity(id=11, athlete_id=1, start_date=NOW - timedelta(days=10), weighted_score=99.0, is_swimming=False),
        ScoredActivity(id=12, athlete_id=9, start_date=NOW - timedelta(hours=2), weighted_score=10.0, is_swimming=False),
    ]
    entries = {e.athlete_id: e for e in aggregate_entries(athletes, activities, NOW - timedelta(days=7))}

    assert entries[1].total_activities == 1
    assert entries[1].swimming_activities == 1
    assert entries[1].composite_score == pytest.approx(60 + 20)
    assert entries[2].total_activities == 0
    assert entries[2].composite_score == 0
    assert entries[2].last_activity_at is None
    assert entries[9].total_activities == 1


def test_enrich_gaps_and_flags():
    ranked = [
        _entry(1, 300.0, NOW - timedelta(hours=1), count=2, swims=1),
        _entry(2, 250.0, NOW - timedelta(hours=7), count=3, swims=0),
        _entry(3, 0.0, None, count=0),
    ]
    enriched = enrich_entries(ranked, lambda athlete_id: athlete_id * 2, NOW)

    assert [e.rank for e in enriched] == [1, 2, 3]
    assert enriched[0].gap_behind_leader == 0
    assert enriched[0].gap_behind_next == 0
    assert enriched[1].gap_behind_leader == pytest.approx(50.0)
    assert enriched[1].gap_behind_next == pytest.approx(50.0)
    assert enriched[2].gap_behind_leader == pytest.approx(300.0)
    assert enriched[2].gap_behind_next == pytest.approx(250.0)
    assert enriched[0].is_swimming_dominant is True
    assert enriched[0].swimming_percentage == pytest.approx(50.0)
    assert enriched[2].swimming_percentage == 0
    assert enriched[0].has_recent_activity is True
    assert enriched[1].has_recent_activity is False
    assert [e.streak for e in enriched] == [2, 4, 6]


def test_time_ago_labels():
    assert format_time_ago(NOW - timedelta(seconds=30), NOW) == "just now"
    assert format_time_ago(NOW - timedelta(minutes=5), NOW) == "5m ago"
    assert format_time_ago(NOW - timedelta(hours=3), NOW) == "3h ago"
    assert format_time_ago(NOW - timedelta(days=2), NOW) == "2d ago"
    assert format_time_ago(datetime(2026, 1, 15, tzinfo=timezone.utc), NOW) == "Jan 15"


def test_feed_falls_back_to_unknown():
    activity = ScoredActivity(
        id=5, athlete_id=42, type="Swim", name="Laps", start_date=NOW - timedelta(minutes=10),
        weighted_score=12.0, is_swimming=True,
    )
    feed = build_activity_feed([activity], [], NOW)
    assert feed[0].athlete_firstname == "Unknown"
    assert feed[0].athlete_lastname == ""
    assert feed[0].time_ago == "10m ago"


def test_leaderboard_view_from_store(tmp_path: Path):
    conn = build_fixture_db(tmp_path / "fixture.db")
    cache = MemoryCache()
    response = get_leaderboard(conn, cache, StreakCalculator(cache), now=NOW)

    board = response.leaderboard
    assert [e.athlete_id for e in board] == [1, 2, 3]
    assert board[0].composite_score == pytest.approx(2 * 60 + 97 * 0.4)
    assert board[1].composite_score == pytest.approx(60 + 130 * 0.4)
    assert board[0].is_swimming_dominant is True
    assert board[0].has_recent_activity is True
    assert board[1].has_recent_activity is False
    assert board[2].total_activities == 0
    assert all(e.gap_behind_leader >= 0 for e in board)

    assert response.metadata.week_start_date == datetime(2026, 2, 2, tzinfo=timezone.utc)
    assert response.metadata.total_athletes == 3
    assert [item.id for item in response.activity_feed] == [101, 201, 102, 202]
    assert response.activity_feed[0].time_ago == "3h ago"
    assert response.activity_feed[-1].time_ago == "Jan 20"
    assert cache.get(LEADERBOARD_KEY) is not None
    conn.close()


def test_leaderboard_view_uses_cache(tmp_path: Path):
    conn = build_fixture_db(tmp_path / "fixture.db")
    cache = MemoryCache()
    first = get_leaderboard(conn, cache, now=NOW)
    conn.execute("DELETE FROM activities")
    conn.commit()
    second = get_leaderboard(conn, cache, now=NOW)
    assert second.leaderboard[0].composite_score == pytest.approx(first.leaderboard[0].composite_score)

    cache.delete(LEADERBOARD_KEY)
    rebuilt = get_leaderboard(conn, cache, now=NOW)
    assert rebuilt.leaderboard[0].composite_score == 0
    conn.close()


def test_hr_zone_view(tmp_path: Path):
    conn = build_fixture_db(tmp_path / "fixture.db")
    response = get_hr_zones(conn, now=NOW)
    by_id = {a.athlete_id: a for a in response.athletes}

    assert response.metadata.week_start_date == "2026-01-28"
    assert by_id[1].max_heartrate == 200
    assert by_id[1].hr_zone_data.zone3_minutes == 60
    assert by_id[1].hr_zone_data.activities_with_hr == 1
    assert by_id[2].max_heartrate == 190
    assert by_id[2].hr_zone_data.zone5_minutes == 90
    assert by_id[3].hr_zone_data is None
    conn.close()
