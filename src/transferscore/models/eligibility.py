"""Scoring input and result models for the transfer eligibility engine."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from .player import (
    InternationalRecord,
    InvitationLetter,
    PlayerMetrics,
    PlayerProfile,
    Video,
    VideoInsight,
)


class AmberStatus(str, Enum):
    """Traffic-light status for a visa category or the overall assessment."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


class VisaCategory(str, Enum):
    SCHENGEN = "schengen"
    O1 = "o1"
    P1 = "p1"
    UK_GBE = "ukGbe"
    ESC = "esc"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ScoringInput(BaseModel):
    """Everything the engine reads for one player at calculation time."""

    player: PlayerProfile
    metrics: List[PlayerMetrics] = Field(default_factory=list)
    videos: List[Video] = Field(default_factory=list)
    video_insights: List[VideoInsight] = Field(default_factory=list)
    international_records: List[InternationalRecord] = Field(default_factory=list)
    invitation_letters: List[InvitationLetter] = Field(default_factory=list)
    league_band: int = Field(..., ge=1, le=5)

    model_config = ConfigDict(frozen=True)


class ScoreBreakdown(_CamelModel):
    minutes_score: float = 0.0
    international_score: float = 0.0
    league_score: float = 0.0
    performance_score: float = 0.0


class VisaScoreResult(_CamelModel):
    score: int = Field(..., ge=0, le=100)
    status: AmberStatus
    breakdown: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    recommendations: List[str] = Field(default_factory=list)


class TransferEligibilityResult(_CamelModel):
    total_minutes_verified: int
    club_minutes: int
    international_minutes: int
    video_minutes: int
    total_caps: int
    senior_caps: int
    continental_appearances: int
    overall_status: AmberStatus
    schengen: VisaScoreResult
    o1: VisaScoreResult
    p1: VisaScoreResult
    uk_gbe: VisaScoreResult
    esc: VisaScoreResult
    esc_eligible: bool
    minutes_needed: int
    caps_needed: int
    recommendations: List[str] = Field(default_factory=list)

    def category(self, category: VisaCategory) -> VisaScoreResult:
        return {
            VisaCategory.SCHENGEN: self.schengen,
            VisaCategory.O1: self.o1,
            VisaCategory.P1: self.p1,
            VisaCategory.UK_GBE: self.uk_gbe,
            VisaCategory.ESC: self.esc,
        }[category]


class TransferEligibilityAssessment(_CamelModel):
    """Persisted scoring output; one current row per player."""

    assessment_id: str
    player_id: str
    league_band_applied: int
    result: TransferEligibilityResult
    calculated_at: datetime
    valid_until: datetime
