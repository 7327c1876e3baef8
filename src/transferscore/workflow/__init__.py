"""Request-state workflows for federation letters and invitation letters."""

from .requests import (
    FEDERATION_FEE,
    FEDERATION_SERVICE_CHARGE,
    EmbassyNotificationStatus,
    InvalidTransition,
    LetterStatus,
    PaymentStatus,
    RequestStatus,
    advance_federation_request,
    advance_invitation_letter,
    confirm_payment,
    ensure_deletable,
    is_terminal,
    mark_embassy_notified,
    new_request_number,
)

__all__ = [
    "FEDERATION_FEE",
    "FEDERATION_SERVICE_CHARGE",
    "EmbassyNotificationStatus",
    "InvalidTransition",
    "LetterStatus",
    "PaymentStatus",
    "RequestStatus",
    "advance_federation_request",
    "advance_invitation_letter",
    "confirm_payment",
    "ensure_deletable",
    "is_terminal",
    "mark_embassy_notified",
    "new_request_number",
]
