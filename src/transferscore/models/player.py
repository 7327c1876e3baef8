"""Canonical player records shared across ingestion, scoring and storage layers."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, Field
from pydantic.config import ConfigDict


def _none_to_zero(value: Any) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    return value


# Absent counters are treated as zero rather than rejected.
Count = Annotated[int, BeforeValidator(_none_to_zero)]
Amount = Annotated[float, BeforeValidator(_none_to_zero)]


class PlayerProfile(BaseModel):
    """Identity, contract and playing-time aggregates for a player."""

    player_id: str = Field(..., min_length=1)
    first_name: str = ""
    last_name: str = ""
    nationality: str = ""
    position: str = ""
    current_club_name: Optional[str] = None
    market_value: Amount = Field(default=0.0, ge=0.0)
    agent_name: Optional[str] = None
    contract_end_date: Optional[str] = None
    continental_games: Count = Field(default=0, ge=0)
    national_team_caps: Count = Field(default=0, ge=0)
    club_minutes_current_season: Count = Field(default=0, ge=0)
    club_minutes_last_12_months: Count = Field(default=0, ge=0)
    international_minutes_current_season: Count = Field(default=0, ge=0)
    international_minutes_last_12_months: Count = Field(default=0, ge=0)
    total_career_minutes: Count = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class PlayerMetrics(BaseModel):
    """Per-season performance snapshot; one row per season recalculation."""

    season: str = ""
    current_season_minutes: Count = Field(default=0, ge=0)
    games_played: Count = Field(default=0, ge=0)
    goals: Count = Field(default=0, ge=0)
    assists: Count = Field(default=0, ge=0)
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


class Video(BaseModel):
    video_id: str = Field(..., min_length=1)
    title: str = ""
    minutes_played: Count = Field(default=0, ge=0)
    match_date: Optional[str] = None
    competition: Optional[str] = None
    opponent: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class VideoInsight(BaseModel):
    """Analysis of a player's appearance in a single video."""

    video_id: str = Field(..., min_length=1)
    minutes_played: Count = Field(default=0, ge=0)
    ai_analysis: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class InternationalRecord(BaseModel):
    national_team: str = ""
    team_level: str = "senior"
    caps: Count = Field(default=0, ge=0)
    goals: Count = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def is_senior(self) -> bool:
        return self.team_level.strip().lower() == "senior"


class InvitationLetter(BaseModel):
    letter_id: str = Field(..., min_length=1)
    target_club_name: str = ""
    target_club_address: Optional[str] = None
    target_league: str = ""
    target_league_band: int = Field(..., ge=1, le=5)
    target_country: str = ""
    status: str = "pending"
    embassy_notification_status: str = "not_notified"
    consular_report_generated: bool = False
    consular_report_id: Optional[str] = None
    uploaded_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)
