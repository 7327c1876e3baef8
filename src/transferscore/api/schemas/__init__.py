"""Pydantic models for API I/O."""

from .players import (
    EligibilityResponse,
    EmbassyNotificationRequest,
    EmbassyNotificationResponse,
    LetterReviewRequest,
    PlayerDetailResponse,
    RecalculateRequest,
    ScoreRequest,
)
from .reports import ConsularReportVerification, VideoVerification
from .requests import (
    FederationRequestCreate,
    FederationRequestResponse,
    FederationRequestSummary,
    PaymentConfirmation,
    RejectionRequest,
    RequestActivityResponse,
    TransitionRequest,
)
from .tokens import (
    TokenBalanceResponse,
    TokenCostResponse,
    TokenCreditRequest,
    TokenSpendRequest,
    TokenTransactionResponse,
)

__all__ = [
    "ConsularReportVerification",
    "EligibilityResponse",
    "EmbassyNotificationRequest",
    "EmbassyNotificationResponse",
    "FederationRequestCreate",
    "FederationRequestResponse",
    "FederationRequestSummary",
    "LetterReviewRequest",
    "PaymentConfirmation",
    "PlayerDetailResponse",
    "RecalculateRequest",
    "RejectionRequest",
    "RequestActivityResponse",
    "ScoreRequest",
    "TokenBalanceResponse",
    "TokenCostResponse",
    "TokenCreditRequest",
    "TokenSpendRequest",
    "TokenTransactionResponse",
    "VideoVerification",
]
