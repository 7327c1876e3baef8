"""Transfer eligibility scoring engine and its input assembly."""

from .engine import (
    PlayerTotals,
    calculate_esc_score,
    calculate_o1_score,
    calculate_p1_score,
    calculate_schengen_score,
    calculate_transfer_eligibility,
    calculate_uk_gbe_score,
    compute_totals,
    overall_status,
)
from .sources import collect_scoring_input, latest_invitation, resolve_league_band

__all__ = [
    "PlayerTotals",
    "calculate_esc_score",
    "calculate_o1_score",
    "calculate_p1_score",
    "calculate_schengen_score",
    "calculate_transfer_eligibility",
    "calculate_uk_gbe_score",
    "collect_scoring_input",
    "compute_totals",
    "latest_invitation",
    "overall_status",
    "resolve_league_band",
]
