"""Input adapters that normalize raw appearance data."""

from .appearances import (
    DEFAULT_APPEARANCE_MAPPING,
    AppearanceRow,
    load_appearance_csv,
    load_videos_from_csv,
    rows_to_videos,
)

__all__ = [
    "AppearanceRow",
    "DEFAULT_APPEARANCE_MAPPING",
    "load_appearance_csv",
    "load_videos_from_csv",
    "rows_to_videos",
]
