"""Shared pydantic records for players, scoring inputs and results."""

from .eligibility import (
    AmberStatus,
    ScoreBreakdown,
    ScoringInput,
    TransferEligibilityAssessment,
    TransferEligibilityResult,
    VisaCategory,
    VisaScoreResult,
)
from .player import (
    InternationalRecord,
    InvitationLetter,
    PlayerMetrics,
    PlayerProfile,
    Video,
    VideoInsight,
)

__all__ = [
    "AmberStatus",
    "InternationalRecord",
    "InvitationLetter",
    "PlayerMetrics",
    "PlayerProfile",
    "ScoreBreakdown",
    "ScoringInput",
    "TransferEligibilityAssessment",
    "TransferEligibilityResult",
    "Video",
    "VideoInsight",
    "VisaCategory",
    "VisaScoreResult",
]
