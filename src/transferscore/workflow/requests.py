"""Status transition tables for federation letter requests and invitation letters."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Mapping, Optional, Set


logger = logging.getLogger(__name__)

FEDERATION_FEE = 150.0
FEDERATION_SERVICE_CHARGE = 25.0


class InvalidTransition(ValueError):
    def __init__(self, entity: str, current: str, target: str, reason: str | None = None):
        message = f"Cannot move {entity} from {current!r} to {target!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.entity = entity
        self.current = current
        self.target = target


class RequestStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    PROCESSING = "processing"
    ISSUED = "issued"
    REJECTED = "rejected"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class LetterStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    EXPIRED = "expired"


class EmbassyNotificationStatus(str, Enum):
    NOT_NOTIFIED = "not_notified"
    NOTIFIED = "notified"


FEDERATION_TRANSITIONS: Mapping[RequestStatus, Set[RequestStatus]] = {
    RequestStatus.PENDING: {RequestStatus.SUBMITTED, RequestStatus.REJECTED},
    RequestStatus.SUBMITTED: {RequestStatus.PROCESSING, RequestStatus.REJECTED},
    RequestStatus.PROCESSING: {RequestStatus.ISSUED, RequestStatus.REJECTED},
    RequestStatus.ISSUED: set(),
    RequestStatus.REJECTED: set(),
}

PAYMENT_TRANSITIONS: Mapping[PaymentStatus, Set[PaymentStatus]] = {
    PaymentStatus.UNPAID: {PaymentStatus.PAID},
    PaymentStatus.PAID: set(),
}

LETTER_TRANSITIONS: Mapping[LetterStatus, Set[LetterStatus]] = {
    LetterStatus.PENDING: {LetterStatus.VERIFIED, LetterStatus.REJECTED},
    LetterStatus.VERIFIED: {LetterStatus.EXPIRED},
    LetterStatus.REJECTED: set(),
    LetterStatus.EXPIRED: set(),
}

EMBASSY_NOTIFICATION_TRANSITIONS: Mapping[EmbassyNotificationStatus, Set[EmbassyNotificationStatus]] = {
    EmbassyNotificationStatus.NOT_NOTIFIED: {EmbassyNotificationStatus.NOTIFIED},
    EmbassyNotificationStatus.NOTIFIED: set(),
}


def is_terminal(status: RequestStatus) -> bool:
    return not FEDERATION_TRANSITIONS[status]


def _check(entity: str, table: Mapping, current: Enum, target: Enum) -> None:
    if target not in table[current]:
        raise InvalidTransition(entity, current.value, target.value)


def advance_federation_request(
    current: RequestStatus | str,
    target: RequestStatus | str,
    *,
    payment_status: PaymentStatus | str = PaymentStatus.UNPAID,
) -> RequestStatus:
    """Validate a federation letter request transition and return the new status."""

    current = RequestStatus(current)
    target = RequestStatus(target)
    payment_status = PaymentStatus(payment_status)
    _check("federation letter request", FEDERATION_TRANSITIONS, current, target)
    if target is RequestStatus.SUBMITTED and payment_status is not PaymentStatus.PAID:
        raise InvalidTransition(
            "federation letter request",
            current.value,
            target.value,
            "payment required before submission",
        )
    logger.info("Federation letter request %s -> %s", current.value, target.value)
    return target


def confirm_payment(current: PaymentStatus | str) -> PaymentStatus:
    current = PaymentStatus(current)
    _check("payment", PAYMENT_TRANSITIONS, current, PaymentStatus.PAID)
    return PaymentStatus.PAID


def ensure_deletable(status: RequestStatus | str) -> None:
    status = RequestStatus(status)
    if status is not RequestStatus.PENDING:
        raise InvalidTransition(
            "federation letter request", status.value, "deleted", "only pending requests can be deleted"
        )


def advance_invitation_letter(current: LetterStatus | str, target: LetterStatus | str) -> LetterStatus:
    current = LetterStatus(current)
    target = LetterStatus(target)
    _check("invitation letter", LETTER_TRANSITIONS, current, target)
    logger.info("Invitation letter %s -> %s", current.value, target.value)
    return target


def mark_embassy_notified(current: EmbassyNotificationStatus | str) -> EmbassyNotificationStatus:
    current = EmbassyNotificationStatus(current)
    if EmbassyNotificationStatus.NOTIFIED not in EMBASSY_NOTIFICATION_TRANSITIONS[current]:
        raise InvalidTransition(
            "embassy notification",
            current.value,
            EmbassyNotificationStatus.NOTIFIED.value,
            "embassy has already been notified for this invitation",
        )
    return EmbassyNotificationStatus.NOTIFIED


def base36(value: int) -> str:
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    if value == 0:
        return "0"
    out = []
    while value:
        value, remainder = divmod(value, 36)
        out.append(digits[remainder])
    return "".join(reversed(out))


def new_request_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    return f"FLR-{now.year}-{base36(millis)}"
