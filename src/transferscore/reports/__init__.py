"""Document summaries built from scored player data."""

from .consular import (
    ConsularReport,
    VideoVerificationLink,
    VisaScoreSummary,
    build_consular_report,
    is_expired,
)

__all__ = [
    "ConsularReport",
    "VideoVerificationLink",
    "VisaScoreSummary",
    "build_consular_report",
    "is_expired",
]
