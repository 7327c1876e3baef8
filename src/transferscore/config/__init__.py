"""Configuration helpers for visa rule tables and runtime settings."""

from .settings import Settings, load_settings
from .visa import LeagueBand, PointsLadder, get_league_band, iter_league_bands

__all__ = [
    "LeagueBand",
    "PointsLadder",
    "Settings",
    "get_league_band",
    "iter_league_bands",
    "load_settings",
]
