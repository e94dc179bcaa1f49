from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

from packages.schemas import (
    ActivityFeedItem,
    Athlete,
    EnrichedLeaderboardEntry,
    LeaderboardEntry,
    ScoredActivity,
)
from .activities import calculate_composite_score


SWIMMING_DOMINANT_PERCENT = 50.0


def monday_start(now: datetime) -> datetime:
    now = now.astimezone(timezone.utc)
    monday = now - timedelta(days=now.weekday())
    return datetime(monday.year, monday.month, monday.day, tzinfo=timezone.utc)


def aggregate_entries(
    athletes: Iterable[Athlete],
    activities: Iterable[ScoredActivity],
    since: datetime,
) -> List[LeaderboardEntry]:
    """Per-athlete totals over activities started at or after ``since``.

    Every athlete gets an entry; activities of unknown athletes get a bare entry.
    """
    entries: Dict[int, LeaderboardEntry] = {}
    for athlete in athletes:
        entries[athlete.id] = LeaderboardEntry(
            athlete_id=athlete.id,
            username=athlete.username,
            firstname=athlete.firstname,
            lastname=athlete.lastname,
            profile_picture_url=athlete.profile_picture_url,
        )
    for activity in activities:
        if activity.start_date is None or activity.start_date < since:
            continue
        entry = entries.get(activity.athlete_id)
        if entry is None:
            entry = entries[activity.athlete_id] = LeaderboardEntry(athlete_id=activity.athlete_id)
        entry.total_activities += 1
        if activity.is_swimming:
            entry.swimming_activities += 1
        entry.total_weighted_score += activity.weighted_score
        if entry.last_activity_at is None or activity.start_date > entry.last_activity_at:
            entry.last_activity_at = activity.start_date
    for entry in entries.values():
        entry.composite_score = calculate_composite_score(entry.total_activities, entry.total_weighted_score)
    return list(entries.values())


def rank_entries(entries: Iterable[LeaderboardEntry]) -> List[LeaderboardEntry]:
    """Composite score desc, then most recent activity desc; no activity sorts last."""

    def sort_key(entry: LeaderboardEntry):
        if entry.last_activity_at is None:
            return (-entry.composite_score, 1, 0.0)
        return (-entry.composite_score, 0, -entry.last_activity_at.timestamp())

    return sorted(entries, key=sort_key)


def is_within_hours(value: Optional[datetime], hours: float, now: datetime) -> bool:
    if value is None:
        return False
    diff_hours = (now - value).total_seconds() / 3600
    return 0 <= diff_hours <= hours


def format_time_ago(value: datetime, now: datetime) -> str:
    diff_sec = (now - value).total_seconds()
    if diff_sec < 0:
        return "just now"
    minutes = int(diff_sec // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    days = hours // 24
    if days < 7:
        return f"{days}d ago"
    return f"{value:%b} {value.day}"


def enrich_entries(
    ranked: List[LeaderboardEntry],
    streak_for: Callable[[int], int],
    now: datetime,
    recent_hours: float = 6,
) -> List[EnrichedLeaderboardEntry]:
    leader_score = ranked[0].composite_score if ranked else 0.0
    out: List[EnrichedLeaderboardEntry] = []
    for index, entry in enumerate(ranked):
        previous_score = ranked[index - 1].composite_score if index > 0 else entry.composite_score
        swimming_pct = (
            entry.swimming_activities / entry.total_activities * 100 if entry.total_activities > 0 else 0.0
        )
        out.append(
            EnrichedLeaderboardEntry(
                **entry.model_dump(),
                rank=index + 1,
                gap_behind_leader=max(0.0, leader_score - entry.composite_score),
                gap_behind_next=max(0.0, previous_score - entry.composite_score),
                swimming_percentage=swimming_pct,
                is_swimming_dominant=swimming_pct >= SWIMMING_DOMINANT_PERCENT,
                streak=streak_for(entry.athlete_id),
                has_recent_activity=is_within_hours(entry.last_activity_at, recent_hours, now),
            )
        )
    return out


def build_activity_feed(
    activities: Iterable[ScoredActivity],
    athletes: Iterable[Athlete],
    now: datetime,
) -> List[ActivityFeedItem]:
    by_id = {athlete.id: athlete for athlete in athletes}
    feed: List[ActivityFeedItem] = []
    for activity in activities:
        athlete = by_id.get(activity.athlete_id)
        feed.append(
            ActivityFeedItem(
                id=activity.id,
                athlete_id=activity.athlete_id,
                athlete_firstname=(athlete.firstname if athlete else "") or "Unknown",
                athlete_lastname=athlete.lastname if athlete else "",
                type=activity.type,
                name=activity.name,
                is_swimming=activity.is_swimming,
                weighted_score=activity.weighted_score,
                start_date=activity.start_date,
                time_ago=format_time_ago(activity.start_date, now) if activity.start_date else "",
            )
        )
    return feed
