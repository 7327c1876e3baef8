"""Helpers to load match-appearance CSVs and emit canonical video records."""

from __future__ import annotations

import csv
import logging
import re
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from pydantic import BaseModel

from transferscore.models import Video


logger = logging.getLogger(__name__)


DEFAULT_APPEARANCE_MAPPING = {
    "video_id": "video_id",
    "title": "title",
    "minutes": "minutes_played",
    "match_date": "match_date",
    "competition": "competition",
    "opponent": "opponent",
}


def _columns(mapping: Mapping[str, str], field: str) -> Tuple[str, ...]:
    """Source columns for ``field``; ``"Home|Away"`` joins several columns."""

    spec = mapping.get(field)
    if not spec:
        return ()
    return tuple(part.strip() for part in spec.split("|") if part.strip())


def _cell(row: Mapping[str, str], columns: Tuple[str, ...]) -> Optional[str]:
    values = [(row.get(column) or "").strip() for column in columns]
    joined = " ".join(value for value in values if value)
    return joined or None


class AppearanceRow(BaseModel):
    raw_id: Optional[str] = None
    raw_title: str
    raw_minutes: str
    raw_match_date: Optional[str] = None
    raw_competition: Optional[str] = None
    raw_opponent: Optional[str] = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, str], mapping: Mapping[str, str]) -> "AppearanceRow":
        def pick(field: str) -> Optional[str]:
            return _cell(row, _columns(mapping, field))

        return cls(
            raw_id=pick("video_id"),
            raw_title=pick("title") or "",
            raw_minutes=pick("minutes") or "0",
            raw_match_date=pick("match_date"),
            raw_competition=pick("competition"),
            raw_opponent=pick("opponent"),
        )


def load_appearance_csv(path: Path, *, mapping: Mapping[str, str] | None = None) -> List[AppearanceRow]:
    """Read ``path`` with ``mapping`` layered over the default column names."""

    columns = {**DEFAULT_APPEARANCE_MAPPING, **(mapping or {})}
    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        rows = [AppearanceRow.from_mapping(row, columns) for row in reader]
    return rows


def _parse_minutes(raw_minutes: str) -> int:
    """Accept values like ``90``, ``"90'"`` or ``"45+3"``; stoppage time is added."""

    text = raw_minutes.strip()
    if not text:
        return 0
    parts = re.findall(r"\d+", text)
    if not parts:
        raise ValueError(f"minutes '{raw_minutes}' is not numeric")
    return sum(int(part) for part in parts)


def _fallback_id(row: AppearanceRow, index: int) -> str:
    # the row index keeps ids distinct when two rows describe the same fixture
    tokens = [row.raw_match_date or "", row.raw_opponent or "", row.raw_title]
    slug = re.sub(r"[^a-z0-9]+", "-", " ".join(tokens).lower()).strip("-")
    return f"{slug}-{index}" if slug else f"appearance-{index}"


def rows_to_videos(rows: List[AppearanceRow]) -> List[Video]:
    videos: List[Video] = []
    for index, row in enumerate(rows, start=1):
        try:
            minutes = _parse_minutes(row.raw_minutes)
        except ValueError:
            logger.warning("Skipping appearance row %d with unparseable minutes %r", index, row.raw_minutes)
            continue
        videos.append(
            Video(
                video_id=row.raw_id or _fallback_id(row, index),
                title=row.raw_title,
                minutes_played=minutes,
                match_date=row.raw_match_date or None,
                competition=row.raw_competition or None,
                opponent=row.raw_opponent or None,
            )
        )
    return videos


def load_videos_from_csv(path: Path, *, mapping: Mapping[str, str] | None = None) -> List[Video]:
    return rows_to_videos(load_appearance_csv(path, mapping=mapping))
