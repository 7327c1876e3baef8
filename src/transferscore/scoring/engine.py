"""Rule-based transfer eligibility scoring across visa categories.

The engine is a pure function of its input: it aggregates verified minutes,
caps and video evidence for a player, applies the per-category threshold
tables from :mod:`transferscore.config.visa` and returns a result object.
Persisting the result is the caller's job.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional

from transferscore.config import get_league_band
from transferscore.config.visa import (
    ESC_BASE_SCORE,
    ESC_CAPS_POINTS,
    ESC_GOAL_CONTRIBUTION_POINTS,
    ESC_MINUTES_POINTS,
    ESC_VIDEO_POINTS,
    GBE_CONTINENTAL_POINTS,
    GBE_DOMESTIC_MINUTES_POINTS,
    GBE_GREEN_POINTS,
    GBE_MAX_POINTS,
    GBE_NATIONAL_TEAM_POINTS,
    GBE_YELLOW_POINTS,
    GREEN_MINUTES_THRESHOLD,
    GREEN_SCORE_THRESHOLD,
    MINIMUM_MINUTES_REQUIRED,
    MINUTES_PER_CAP_ESTIMATE,
    YELLOW_MINUTES_THRESHOLD,
    YELLOW_SCORE_THRESHOLD,
)
from transferscore.models import (
    AmberStatus,
    ScoreBreakdown,
    ScoringInput,
    TransferEligibilityResult,
    VisaScoreResult,
)


logger = logging.getLogger(__name__)

MAX_RECOMMENDATIONS = 5
SCHENGEN_TARGET_CAPS = 5
O1_TARGET_SENIOR_CAPS = 10
O1_RECOGNITION_MARKET_VALUE = 1_000_000
P1_TARGET_VIDEOS = 5
GBE_TARGET_SENIOR_CAPS = 5
GBE_TARGET_DOMESTIC_MINUTES = 600
ESC_TARGET_SENIOR_CAPS = 3
ESC_TARGET_VIDEOS = 5


@dataclass(frozen=True)
class PlayerTotals:
    """Aggregated playing record that every category reads from."""

    club_minutes: int
    international_minutes: int
    video_minutes: int
    total_caps: int
    senior_caps: int
    continental_appearances: int
    video_count: int
    analysed_insights: int
    goal_contributions: Optional[int]
    league_multiplier: float
    league_points: int

    @property
    def total_minutes(self) -> int:
        return self.club_minutes + self.international_minutes + self.video_minutes

    @property
    def has_club_minutes(self) -> bool:
        return self.club_minutes > 0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _status_for_score(score: int) -> AmberStatus:
    if score >= GREEN_SCORE_THRESHOLD:
        return AmberStatus.GREEN
    if score >= YELLOW_SCORE_THRESHOLD:
        return AmberStatus.YELLOW
    return AmberStatus.RED


def _minutes_share(total_minutes: int, weight: float) -> float:
    return min(weight, (total_minutes / MINIMUM_MINUTES_REQUIRED) * weight)


def compute_totals(data: ScoringInput, *, estimate_international_minutes: bool = False) -> PlayerTotals:
    """Aggregate minutes and caps across club, international and video sources."""

    player = data.player
    band = get_league_band(data.league_band)

    profile_club = player.club_minutes_current_season + player.club_minutes_last_12_months
    metrics_club = sum(m.current_season_minutes for m in data.metrics)
    club_minutes = max(profile_club, metrics_club)

    total_caps = sum(record.caps for record in data.international_records)
    senior_caps = sum(record.caps for record in data.international_records if record.is_senior)

    international_minutes = (
        player.international_minutes_current_season + player.international_minutes_last_12_months
    )
    if estimate_international_minutes:
        international_minutes = max(international_minutes, total_caps * MINUTES_PER_CAP_ESTIMATE)

    video_minutes = max(
        sum(video.minutes_played for video in data.videos),
        sum(insight.minutes_played for insight in data.video_insights),
    )

    latest_metrics = data.metrics[0] if data.metrics else None
    goal_contributions = (
        latest_metrics.goals + latest_metrics.assists if latest_metrics is not None else None
    )

    return PlayerTotals(
        club_minutes=club_minutes,
        international_minutes=international_minutes,
        video_minutes=video_minutes,
        total_caps=total_caps,
        senior_caps=senior_caps,
        continental_appearances=player.continental_games,
        video_count=len(data.videos),
        analysed_insights=sum(1 for insight in data.video_insights if insight.ai_analysis),
        goal_contributions=goal_contributions,
        league_multiplier=band.multiplier,
        league_points=band.gbe_points,
    )


def calculate_schengen_score(data: ScoringInput, totals: PlayerTotals | None = None) -> VisaScoreResult:
    totals = totals or compute_totals(data)
    total_minutes = totals.total_minutes

    minutes_score = _minutes_share(total_minutes, 40)
    international_score = min(30, totals.total_caps * 3)
    league_score = 20 * totals.league_multiplier if totals.has_club_minutes else 0.0
    performance_score = (
        min(10, totals.goal_contributions * 0.5) if totals.goal_contributions is not None else 0.0
    )
    score = min(100, _round_half_up(minutes_score + international_score + league_score + performance_score))

    recommendations: List[str] = []
    if total_minutes < MINIMUM_MINUTES_REQUIRED:
        recommendations.append(
            f"Play {MINIMUM_MINUTES_REQUIRED - total_minutes} more minutes to reach minimum threshold"
        )
    if totals.total_caps < SCHENGEN_TARGET_CAPS:
        recommendations.append(
            f"Earn {SCHENGEN_TARGET_CAPS - totals.total_caps} more international caps to strengthen application"
        )

    return VisaScoreResult(
        score=score,
        status=_status_for_score(score),
        breakdown=ScoreBreakdown(
            minutes_score=minutes_score,
            international_score=international_score,
            league_score=league_score,
            performance_score=performance_score,
        ),
        recommendations=recommendations,
    )


def calculate_o1_score(data: ScoringInput, totals: PlayerTotals | None = None) -> VisaScoreResult:
    totals = totals or compute_totals(data)
    total_minutes = totals.total_minutes
    market_value = data.player.market_value

    has_recognition = market_value > O1_RECOGNITION_MARKET_VALUE
    recognition_score = 35.0 if has_recognition else min(35.0, market_value / 50_000)
    international_score = min(30, totals.senior_caps * 2 + totals.continental_appearances * 3)
    market_score = min(20.0, (market_value / 5_000_000) * 20)
    minutes_bonus = 5 if total_minutes >= MINIMUM_MINUTES_REQUIRED else 0
    performance_score = min(15, totals.analysed_insights * 2 + minutes_bonus)

    score = min(100, _round_half_up(recognition_score + international_score + market_score + performance_score))

    recommendations: List[str] = []
    if not has_recognition:
        recommendations.append(
            "Increase market value or obtain recognition/awards for extraordinary ability"
        )
    if totals.senior_caps < O1_TARGET_SENIOR_CAPS:
        recommendations.append(
            f"Earn {O1_TARGET_SENIOR_CAPS - totals.senior_caps} more senior international caps"
        )
    if total_minutes < MINIMUM_MINUTES_REQUIRED:
        recommendations.append(f"Record {MINIMUM_MINUTES_REQUIRED - total_minutes} more verified minutes")

    return VisaScoreResult(
        score=score,
        status=_status_for_score(score),
        breakdown=ScoreBreakdown(
            minutes_score=performance_score,
            international_score=international_score,
            league_score=market_score,
            performance_score=recognition_score,
        ),
        recommendations=recommendations,
    )


def calculate_p1_score(data: ScoringInput, totals: PlayerTotals | None = None) -> VisaScoreResult:
    totals = totals or compute_totals(data)
    total_minutes = totals.total_minutes
    player = data.player

    minutes_score = _minutes_share(total_minutes, 40)
    league_score = 25 * totals.league_multiplier if totals.has_club_minutes else 0.0
    video_score = min(20, totals.video_count * 4)
    has_agent = bool(player.agent_name)
    has_contract = bool(player.contract_end_date)
    validation_score = (7.5 if has_agent else 0.0) + (7.5 if has_contract else 0.0)

    score = min(100, _round_half_up(minutes_score + league_score + video_score + validation_score))

    recommendations: List[str] = []
    if total_minutes < MINIMUM_MINUTES_REQUIRED:
        recommendations.append(
            f"Record {MINIMUM_MINUTES_REQUIRED - total_minutes} more professional minutes"
        )
    if not has_agent:
        recommendations.append("Register an agent contact for validation")
    if totals.video_count < P1_TARGET_VIDEOS:
        recommendations.append(f"Upload {P1_TARGET_VIDEOS - totals.video_count} more performance videos")

    return VisaScoreResult(
        score=score,
        status=_status_for_score(score),
        breakdown=ScoreBreakdown(
            minutes_score=minutes_score,
            international_score=0.0,
            league_score=league_score,
            performance_score=video_score + validation_score,
        ),
        recommendations=recommendations,
    )


def gbe_points(totals: PlayerTotals) -> tuple[int, int, int, int]:
    """Return (national team, club league, continental, domestic minutes) points."""

    national_team = GBE_NATIONAL_TEAM_POINTS.points(totals.senior_caps)
    # Club-league credit is earned by playing in that league.
    club_league = totals.league_points if totals.has_club_minutes else 0
    continental = GBE_CONTINENTAL_POINTS.points(totals.continental_appearances)
    domestic = GBE_DOMESTIC_MINUTES_POINTS.points(totals.club_minutes)
    return national_team, club_league, continental, domestic


def calculate_uk_gbe_score(data: ScoringInput, totals: PlayerTotals | None = None) -> VisaScoreResult:
    totals = totals or compute_totals(data)
    national_team, club_league, continental, domestic = gbe_points(totals)
    points = national_team + club_league + continental + domestic

    if points >= GBE_GREEN_POINTS:
        status = AmberStatus.GREEN
    elif points >= GBE_YELLOW_POINTS:
        status = AmberStatus.YELLOW
    else:
        status = AmberStatus.RED

    recommendations: List[str] = []
    if points < GBE_GREEN_POINTS:
        recommendations.append(f"Need {GBE_GREEN_POINTS - points} more GBE points to qualify automatically")
        if totals.senior_caps < GBE_TARGET_SENIOR_CAPS:
            gain = GBE_NATIONAL_TEAM_POINTS.points(GBE_TARGET_SENIOR_CAPS) - national_team
            recommendations.append(
                f"Earn {GBE_TARGET_SENIOR_CAPS - totals.senior_caps} senior international caps (+{gain} points)"
            )
        if totals.club_minutes < GBE_TARGET_DOMESTIC_MINUTES:
            gain = GBE_DOMESTIC_MINUTES_POINTS.points(GBE_TARGET_DOMESTIC_MINUTES) - domestic
            recommendations.append(
                f"Play {GBE_TARGET_DOMESTIC_MINUTES - totals.club_minutes} more domestic league minutes "
                f"(+{gain} points at {GBE_TARGET_DOMESTIC_MINUTES} mins)"
            )
        if totals.total_minutes < MINIMUM_MINUTES_REQUIRED:
            recommendations.append(
                f"Record {MINIMUM_MINUTES_REQUIRED - totals.total_minutes} more verified minutes"
            )

    return VisaScoreResult(
        score=min(100, _round_half_up(points / GBE_MAX_POINTS * 100)),
        status=status,
        breakdown=ScoreBreakdown(
            minutes_score=domestic * 2.5,
            international_score=national_team * 2.0,
            league_score=club_league * 2.5,
            performance_score=continental * 2.5,
        ),
        recommendations=recommendations,
    )


def calculate_esc_score(
    data: ScoringInput,
    gbe_result: VisaScoreResult,
    totals: PlayerTotals | None = None,
) -> VisaScoreResult:
    """Score the Elite Significant Contribution route, open only to GBE yellow players."""

    totals = totals or compute_totals(data)

    if gbe_result.status is AmberStatus.GREEN:
        return VisaScoreResult(
            score=100,
            status=AmberStatus.GREEN,
            breakdown=gbe_result.breakdown,
            recommendations=["Player qualifies via standard GBE route"],
        )
    if gbe_result.status is AmberStatus.RED:
        return VisaScoreResult(
            score=0,
            status=AmberStatus.RED,
            breakdown=gbe_result.breakdown,
            recommendations=[
                f"Player must first reach GBE yellow zone ({GBE_YELLOW_POINTS}+ points) for ESC consideration"
            ],
        )

    score = ESC_BASE_SCORE
    score += ESC_CAPS_POINTS.points(totals.senior_caps)
    score += ESC_MINUTES_POINTS.points(totals.total_minutes)
    score += ESC_VIDEO_POINTS.points(totals.video_count)
    if totals.goal_contributions is not None:
        score += ESC_GOAL_CONTRIBUTION_POINTS.points(totals.goal_contributions)
    score = min(100, score)

    recommendations: List[str] = []
    if totals.senior_caps < ESC_TARGET_SENIOR_CAPS:
        recommendations.append(
            f"Earn {ESC_TARGET_SENIOR_CAPS - totals.senior_caps} more senior caps to strengthen ESC case"
        )
    if totals.total_minutes < MINIMUM_MINUTES_REQUIRED:
        recommendations.append(
            f"Record {MINIMUM_MINUTES_REQUIRED - totals.total_minutes} more verified minutes"
        )
    if totals.video_count < ESC_TARGET_VIDEOS:
        recommendations.append(
            f"Upload {ESC_TARGET_VIDEOS - totals.video_count} more video evidence clips"
        )

    return VisaScoreResult(
        score=score,
        status=_status_for_score(score),
        breakdown=gbe_result.breakdown,
        recommendations=recommendations,
    )


def overall_status(total_minutes: int, category_scores: Iterable[int]) -> AmberStatus:
    """Combine the minutes floor with the best category score.

    Green needs both the minutes floor and one green-level category; either a
    yellow-level minutes total or one yellow-level category is enough for
    yellow.
    """

    best = max(category_scores, default=0)
    if total_minutes >= GREEN_MINUTES_THRESHOLD and best >= GREEN_SCORE_THRESHOLD:
        return AmberStatus.GREEN
    if total_minutes >= YELLOW_MINUTES_THRESHOLD or best >= YELLOW_SCORE_THRESHOLD:
        return AmberStatus.YELLOW
    return AmberStatus.RED


def _merge_recommendations(*groups: Iterable[str]) -> List[str]:
    merged: List[str] = []
    for group in groups:
        for item in group:
            if item not in merged:
                merged.append(item)
    return merged[:MAX_RECOMMENDATIONS]


def calculate_transfer_eligibility(
    data: ScoringInput,
    *,
    estimate_international_minutes: bool = False,
) -> TransferEligibilityResult:
    """Score a player across every visa category and summarise the gaps."""

    totals = compute_totals(data, estimate_international_minutes=estimate_international_minutes)

    schengen = calculate_schengen_score(data, totals)
    o1 = calculate_o1_score(data, totals)
    p1 = calculate_p1_score(data, totals)
    uk_gbe = calculate_uk_gbe_score(data, totals)
    esc = calculate_esc_score(data, uk_gbe, totals)

    total_minutes = totals.total_minutes
    status = overall_status(total_minutes, (r.score for r in (schengen, o1, p1, uk_gbe, esc)))

    minutes_needed = max(0, MINIMUM_MINUTES_REQUIRED - total_minutes)
    caps_needed = 0
    if uk_gbe.status is not AmberStatus.GREEN and totals.senior_caps < GBE_TARGET_SENIOR_CAPS:
        caps_needed = GBE_TARGET_SENIOR_CAPS - totals.senior_caps

    summary: List[str] = []
    if minutes_needed > 0:
        summary.append(
            f"Play {minutes_needed} more minutes to reach minimum {MINIMUM_MINUTES_REQUIRED} minutes"
        )
    if caps_needed > 0:
        summary.append(f"Earn {caps_needed} more senior international caps for UK GBE eligibility")

    result = TransferEligibilityResult(
        total_minutes_verified=total_minutes,
        club_minutes=totals.club_minutes,
        international_minutes=totals.international_minutes,
        video_minutes=totals.video_minutes,
        total_caps=totals.total_caps,
        senior_caps=totals.senior_caps,
        continental_appearances=totals.continental_appearances,
        overall_status=status,
        schengen=schengen,
        o1=o1,
        p1=p1,
        uk_gbe=uk_gbe,
        esc=esc,
        esc_eligible=uk_gbe.status is AmberStatus.YELLOW,
        minutes_needed=minutes_needed,
        caps_needed=caps_needed,
        recommendations=_merge_recommendations(
            summary,
            schengen.recommendations,
            o1.recommendations,
            p1.recommendations,
            uk_gbe.recommendations,
            esc.recommendations,
        ),
    )
    logger.debug(
        "Scored player %s at band %d: overall=%s minutes=%d caps=%d",
        data.player.player_id,
        data.league_band,
        status.value,
        total_minutes,
        totals.total_caps,
    )
    return result
