from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from transferscore.models import (
    InternationalRecord,
    InvitationLetter,
    PlayerMetrics,
    PlayerProfile,
    TransferEligibilityResult,
    Video,
    VideoInsight,
)


class ScoreRequest(BaseModel):
    """Stateless scoring payload; the band falls back to the latest invitation letter."""

    player: PlayerProfile
    metrics: List[PlayerMetrics] = Field(default_factory=list)
    videos: List[Video] = Field(default_factory=list)
    video_insights: List[VideoInsight] = Field(default_factory=list)
    international_records: List[InternationalRecord] = Field(default_factory=list)
    invitation_letters: List[InvitationLetter] = Field(default_factory=list)
    league_band: Optional[int] = Field(default=None, ge=1, le=5)


class RecalculateRequest(BaseModel):
    league_band: Optional[int] = Field(default=None, ge=1, le=5)


class PlayerDetailResponse(BaseModel):
    player: PlayerProfile
    metrics: List[PlayerMetrics]
    videos: List[Video]
    international_records: List[InternationalRecord]
    invitation_letters: List[InvitationLetter]


class EligibilityResponse(BaseModel):
    player_id: str
    league_band_applied: int
    calculated_at: datetime
    valid_until: datetime
    result: TransferEligibilityResult


class LetterReviewRequest(BaseModel):
    reviewer_id: Optional[str] = None
    reason: Optional[str] = None


class EmbassyNotificationRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    role: str = "team"


class EmbassyNotificationResponse(BaseModel):
    letter: InvitationLetter
    tokens_spent: int
    balance_after: int
