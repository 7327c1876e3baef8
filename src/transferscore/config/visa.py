"""Threshold tables for the supported visa categories and league bands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Tuple


MINIMUM_MINUTES_REQUIRED = 800
GREEN_MINUTES_THRESHOLD = 800
YELLOW_MINUTES_THRESHOLD = 600

GREEN_SCORE_THRESHOLD = 60
YELLOW_SCORE_THRESHOLD = 35

GBE_GREEN_POINTS = 15
GBE_YELLOW_POINTS = 10
GBE_MAX_POINTS = 50

MINUTES_PER_CAP_ESTIMATE = 45


@dataclass(frozen=True)
class LeagueBand:
    band: int
    multiplier: float
    gbe_points: int


@dataclass(frozen=True)
class PointsLadder:
    """Step function: the highest rung whose minimum is met awards its points."""

    rungs: Tuple[Tuple[int, int], ...]

    def points(self, value: int) -> int:
        for minimum, awarded in self.rungs:
            if value >= minimum:
                return awarded
        return 0


_LEAGUE_BANDS: Dict[int, LeagueBand] = {
    1: LeagueBand(band=1, multiplier=1.0, gbe_points=15),
    2: LeagueBand(band=2, multiplier=0.9, gbe_points=12),
    3: LeagueBand(band=3, multiplier=0.75, gbe_points=8),
    4: LeagueBand(band=4, multiplier=0.5, gbe_points=4),
    5: LeagueBand(band=5, multiplier=0.25, gbe_points=2),
}

GBE_NATIONAL_TEAM_POINTS = PointsLadder(((75, 15), (50, 12), (30, 10), (15, 8), (5, 5), (1, 3)))
GBE_CONTINENTAL_POINTS = PointsLadder(((20, 10), (10, 7), (5, 4), (1, 2)))
GBE_DOMESTIC_MINUTES_POINTS = PointsLadder(((1800, 10), (1200, 7), (600, 4), (300, 2)))

ESC_CAPS_POINTS = PointsLadder(((3, 15), (1, 10)))
ESC_MINUTES_POINTS = PointsLadder(((MINIMUM_MINUTES_REQUIRED, 15), (500, 10)))
ESC_VIDEO_POINTS = PointsLadder(((10, 10), (5, 7), (3, 4)))
ESC_GOAL_CONTRIBUTION_POINTS = PointsLadder(((15, 10), (10, 7), (5, 4)))
ESC_BASE_SCORE = 50


def iter_league_bands() -> Iterable[LeagueBand]:
    """Return league bands from the highest tier to the lowest."""

    return (_LEAGUE_BANDS[band] for band in sorted(_LEAGUE_BANDS))


def get_league_band(band: int) -> LeagueBand:
    """Fetch the table row for a band, raising ValueError outside 1-5."""

    if isinstance(band, bool) or not isinstance(band, int):
        raise TypeError(f"league band must be an int, got {band!r}")
    if band not in _LEAGUE_BANDS:
        raise ValueError(f"league band must be between 1 and 5, got {band}")
    return _LEAGUE_BANDS[band]
