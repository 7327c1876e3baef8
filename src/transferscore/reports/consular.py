"""Consular summary assembled for an invitation letter."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence
from uuid import uuid4

from pydantic import BaseModel, Field

from transferscore.models import (
    InvitationLetter,
    PlayerMetrics,
    PlayerProfile,
    TransferEligibilityResult,
    Video,
    VisaCategory,
)
from transferscore.workflow.requests import base36


REPORT_VALIDITY_DAYS = 90
MAX_VIDEO_LINKS = 5


class VideoVerificationLink(BaseModel):
    video_id: str
    title: str
    verify_url: str
    competition: Optional[str] = None
    match_date: Optional[str] = None


class VisaScoreSummary(BaseModel):
    visa_type: str
    score: int
    status: str
    league_band_applied: int


class ConsularReport(BaseModel):
    report_id: str = Field(default_factory=lambda: uuid4().hex)
    invitation_letter_id: str
    player_id: str
    player_profile: dict
    player_stats: Optional[dict] = None
    eligibility_scores: List[VisaScoreSummary] = Field(default_factory=list)
    overall_status: Optional[str] = None
    video_links: List[VideoVerificationLink] = Field(default_factory=list)
    proof_of_play_summary: str
    target_club: dict
    verification_code: str
    generated_at: datetime
    valid_until: datetime


def new_verification_code(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    suffix = "".join(secrets.choice("0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ") for _ in range(6))
    return f"VR-{base36(int(now.timestamp() * 1000))}-{suffix}"


def build_consular_report(
    player: PlayerProfile,
    letter: InvitationLetter,
    *,
    result: Optional[TransferEligibilityResult] = None,
    league_band_applied: Optional[int] = None,
    videos: Sequence[Video] = (),
    metrics: Sequence[PlayerMetrics] = (),
    now: Optional[datetime] = None,
) -> ConsularReport:
    now = now or datetime.now(timezone.utc)
    code = new_verification_code(now)
    band = league_band_applied or letter.target_league_band

    scores: List[VisaScoreSummary] = []
    if result is not None:
        for category in VisaCategory:
            visa = result.category(category)
            scores.append(
                VisaScoreSummary(
                    visa_type=category.value,
                    score=visa.score,
                    status=visa.status.value,
                    league_band_applied=band,
                )
            )

    latest = metrics[0] if metrics else None
    stats = None
    if latest is not None:
        stats = {
            "season": latest.season,
            "games_played": latest.games_played,
            "goals": latest.goals,
            "assists": latest.assists,
            "current_season_minutes": latest.current_season_minutes,
        }

    links = [
        VideoVerificationLink(
            video_id=video.video_id,
            title=video.title,
            verify_url=f"/verify/video/{video.video_id}?code={code}",
            competition=video.competition,
            match_date=video.match_date,
        )
        for video in list(videos)[:MAX_VIDEO_LINKS]
    ]

    return ConsularReport(
        invitation_letter_id=letter.letter_id,
        player_id=player.player_id,
        player_profile={
            "first_name": player.first_name,
            "last_name": player.last_name,
            "nationality": player.nationality,
            "position": player.position,
            "current_club": player.current_club_name,
            "national_team_caps": player.national_team_caps,
        },
        player_stats=stats,
        eligibility_scores=scores,
        overall_status=result.overall_status.value if result is not None else None,
        video_links=links,
        proof_of_play_summary=(
            f"{player.full_name} has {len(videos)} verified match videos "
            "demonstrating professional-level performance."
        ),
        target_club={
            "club_name": letter.target_club_name,
            "club_address": letter.target_club_address,
            "league": letter.target_league,
            "league_band": letter.target_league_band,
            "country": letter.target_country,
        },
        verification_code=code,
        generated_at=now,
        valid_until=now + timedelta(days=REPORT_VALIDITY_DAYS),
    )


def is_expired(report: ConsularReport, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return report.valid_until < now
