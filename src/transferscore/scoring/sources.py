"""Assemble a deduplicated scoring input from stored player records."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, TypeVar

from transferscore.models import (
    InternationalRecord,
    InvitationLetter,
    PlayerMetrics,
    PlayerProfile,
    ScoringInput,
    Video,
    VideoInsight,
)


logger = logging.getLogger(__name__)

DEFAULT_LEAGUE_BAND = 3

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

T = TypeVar("T", Video, VideoInsight)


def _sort_key(value: Optional[datetime]) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _dedupe_by_video(items: Iterable[T]) -> List[T]:
    """Keep one entry per video id; a later entry replaces an earlier one."""

    by_id: dict[str, T] = {}
    for item in items:
        by_id[item.video_id] = item
    return list(by_id.values())


def latest_invitation(letters: Sequence[InvitationLetter]) -> Optional[InvitationLetter]:
    if not letters:
        return None
    return max(letters, key=lambda letter: _sort_key(letter.uploaded_at))


def resolve_league_band(
    letters: Sequence[InvitationLetter],
    override: Optional[int] = None,
    *,
    default_band: int = DEFAULT_LEAGUE_BAND,
) -> int:
    """Pick the band to score against: override, latest invitation, then default."""

    if override is not None:
        return override
    letter = latest_invitation(letters)
    if letter is not None:
        return letter.target_league_band
    return default_band


def collect_scoring_input(
    player: PlayerProfile,
    *,
    metrics: Iterable[PlayerMetrics] = (),
    videos: Iterable[Video] = (),
    video_insights: Iterable[VideoInsight] = (),
    international_records: Iterable[InternationalRecord] = (),
    invitation_letters: Iterable[InvitationLetter] = (),
    league_band: Optional[int] = None,
    default_band: int = DEFAULT_LEAGUE_BAND,
) -> ScoringInput:
    letters = list(invitation_letters)
    raw_videos = list(videos)
    unique_videos = _dedupe_by_video(raw_videos)
    if len(unique_videos) != len(raw_videos):
        logger.info(
            "Dropped %d duplicate video rows for player %s",
            len(raw_videos) - len(unique_videos),
            player.player_id,
        )
    ordered_metrics = sorted(metrics, key=lambda m: _sort_key(m.updated_at), reverse=True)

    return ScoringInput(
        player=player,
        metrics=ordered_metrics,
        videos=unique_videos,
        video_insights=_dedupe_by_video(video_insights),
        international_records=list(international_records),
        invitation_letters=letters,
        league_band=resolve_league_band(letters, league_band, default_band=default_band),
    )
