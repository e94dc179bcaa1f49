from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Athlete(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int
    username: str = ""
    firstname: str = ""
    lastname: str = ""
    profile_picture_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("profile_picture_url", "profile"),
    )
    max_heartrate: Optional[int] = None

    @field_validator("username", "firstname", "lastname", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class Activity(BaseModel):
    """A Strava activity (API payload, manual submission or stored row).

    Missing fields are substituted: name/type -> "", distance/moving time -> 0,
    elapsed time -> moving time, sport type -> type, heart-rate flag -> whether
    an average heart rate is present.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    athlete_id: int
    name: str = ""
    type: str = ""
    sport_type: Optional[str] = None
    start_date: Optional[datetime] = None
    distance: float = 0.0
    moving_time: float = 0.0
    elapsed_time: Optional[float] = None
    total_elevation_gain: float = 0.0
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None
    has_heartrate: Optional[bool] = None

    @model_validator(mode="before")
    @classmethod
    def _athlete_ref(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("athlete_id") is None:
            athlete = data.get("athlete")
            if isinstance(athlete, dict) and athlete.get("id") is not None:
                data = {**data, "athlete_id": athlete["id"]}
        return data

    @field_validator("name", "type", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("distance", "moving_time", "total_elevation_gain", mode="before")
    @classmethod
    def _none_to_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator("start_date")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @model_validator(mode="after")
    def _defaults(self) -> "Activity":
        if self.elapsed_time is None:
            self.elapsed_time = self.moving_time
        if not self.sport_type:
            self.sport_type = self.type
        if self.has_heartrate is None:
            self.has_heartrate = self.average_heartrate is not None
        return self


class ScoredActivity(Activity):
    weighted_score: float
    is_swimming: bool


class LeaderboardEntry(BaseModel):
    athlete_id: int
    username: str = ""
    firstname: str = ""
    lastname: str = ""
    profile_picture_url: Optional[str] = None
    total_activities: int = 0
    swimming_activities: int = 0
    total_weighted_score: float = 0.0
    composite_score: float = 0.0
    last_activity_at: Optional[datetime] = None


class EnrichedLeaderboardEntry(LeaderboardEntry):
    rank: int
    gap_behind_leader: float = 0.0
    gap_behind_next: float = 0.0
    swimming_percentage: float = 0.0
    is_swimming_dominant: bool = False
    streak: int = 0
    has_recent_activity: bool = False


class ActivityFeedItem(BaseModel):
    id: int
    athlete_id: int
    athlete_firstname: str
    athlete_lastname: str
    type: str
    name: str
    is_swimming: bool
    weighted_score: float
    start_date: Optional[datetime] = None
    time_ago: str = ""


class LeaderboardMetadata(BaseModel):
    week_start_date: datetime
    last_updated: datetime
    total_athletes: int


class LeaderboardResponse(BaseModel):
    leaderboard: List[EnrichedLeaderboardEntry] = Field(default_factory=list)
    activity_feed: List[ActivityFeedItem] = Field(default_factory=list)
    metadata: LeaderboardMetadata


class StreakCacheEntry(BaseModel):
    athlete_id: int
    streak: int
    computed_at: float


class HRZoneDistribution(BaseModel):
    z1: float = 0.0
    z2: float = 0.0
    z3: float = 0.0
    z4: float = 0.0
    z5: float = 0.0

    def total(self) -> float:
        return self.z1 + self.z2 + self.z3 + self.z4 + self.z5


class HRZoneStats(BaseModel):
    zone_minutes: HRZoneDistribution = Field(default_factory=HRZoneDistribution)
    total_hr_minutes: float = 0.0
    total_activities: int = 0
    activities_with_hr: int = 0
    activities_without_hr: int = 0
    has_hr_data: bool = False


class HRZoneData(BaseModel):
    zone1_minutes: int = 0
    zone2_minutes: int = 0
    zone3_minutes: int = 0
    zone4_minutes: int = 0
    zone5_minutes: int = 0
    total_minutes: int = 0
    activities_with_hr: int = 0


class AthleteHRZoneData(BaseModel):
    athlete_id: int
    firstname: str = ""
    lastname: str = ""
    profile_picture_url: Optional[str] = None
    max_heartrate: int
    hr_zone_data: Optional[HRZoneData] = None


class HRZoneMetadata(BaseModel):
    week_start_date: str
    last_updated: datetime


class HRZoneResponse(BaseModel):
    athletes: List[AthleteHRZoneData] = Field(default_factory=list)
    metadata: HRZoneMetadata


class ManualActivity(BaseModel):
    id: int
    name: str
    type: str
    sport_type: Optional[str] = None
    start_date: datetime
    distance: float
    moving_time: float
    elapsed_time: Optional[float] = None
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None


class ManualSubmission(BaseModel):
    athlete: Athlete
    activities: List[ManualActivity]


class SyncStats(BaseModel):
    team_members: Optional[int] = None
    total_activities: int = 0
    swimming_activities: int = 0
    total_weighted_score: int = 0


class SyncResult(BaseModel):
    success: bool = True
    cached: bool = False
    message: Optional[str] = None
    synced_at: Optional[datetime] = None
    last_sync: Optional[datetime] = None
    failed_athletes: List[int] = Field(default_factory=list)
    stats: Optional[SyncStats] = None
