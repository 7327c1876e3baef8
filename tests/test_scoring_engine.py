import pytest
from pydantic import ValidationError

from transferscore.models import (
    AmberStatus,
    InternationalRecord,
    PlayerMetrics,
    PlayerProfile,
    ScoringInput,
    Video,
    VideoInsight,
    VisaCategory,
)
from transferscore.scoring import (
    calculate_esc_score,
    calculate_o1_score,
    calculate_p1_score,
    calculate_transfer_eligibility,
    calculate_uk_gbe_score,
    compute_totals,
    overall_status,
)


def _data(
    *,
    club_minutes: int = 0,
    senior_caps: int = 0,
    youth_caps: int = 0,
    band: int = 3,
    metrics: list[PlayerMetrics] | None = None,
    videos: list[Video] | None = None,
    video_insights: list[VideoInsight] | None = None,
    **player_fields,
) -> ScoringInput:
    records = []
    if senior_caps:
        records.append(InternationalRecord(national_team="Ghana", caps=senior_caps))
    if youth_caps:
        records.append(InternationalRecord(national_team="Ghana U21", team_level="u21", caps=youth_caps))
    player = PlayerProfile(player_id="p1", club_minutes_current_season=club_minutes, **player_fields)
    return ScoringInput(
        player=player,
        metrics=metrics or [],
        videos=videos or [],
        video_insights=video_insights or [],
        international_records=records,
        league_band=band,
    )


def _scores(data: ScoringInput) -> dict[VisaCategory, int]:
    result = calculate_transfer_eligibility(data)
    return {category: result.category(category).score for category in VisaCategory}


def test_reference_player_is_eligible():
    result = calculate_transfer_eligibility(_data(club_minutes=900, senior_caps=5, band=2))

    assert result.total_minutes_verified == 900
    assert result.senior_caps == 5
    assert result.schengen.score == 73
    assert result.schengen.status is AmberStatus.GREEN
    assert result.p1.score == 63
    assert result.uk_gbe.status is AmberStatus.GREEN
    assert result.uk_gbe.score == 42
    assert result.esc.score == 100
    assert result.esc_eligible is False
    assert result.overall_status is AmberStatus.GREEN
    assert result.minutes_needed == 0
    assert result.caps_needed == 0


def test_minutes_boundary_799_versus_800():
    below = calculate_transfer_eligibility(_data(club_minutes=799))
    at = calculate_transfer_eligibility(_data(club_minutes=800))

    assert below.minutes_needed == 1
    assert below.overall_status is AmberStatus.YELLOW
    assert below.recommendations[0] == "Play 1 more minutes to reach minimum 800 minutes"
    assert at.minutes_needed == 0
    assert at.overall_status is AmberStatus.GREEN
    assert all("more minutes to reach minimum 800" not in item for item in at.recommendations)


def test_zero_player_is_red_everywhere():
    result = calculate_transfer_eligibility(_data(band=1))

    for category in VisaCategory:
        visa = result.category(category)
        assert visa.score == 0
        assert visa.status is AmberStatus.RED
    assert result.overall_status is AmberStatus.RED
    assert result.minutes_needed == 800
    assert result.caps_needed == 5
    assert result.recommendations[:2] == [
        "Play 800 more minutes to reach minimum 800 minutes",
        "Earn 5 more senior international caps for UK GBE eligibility",
    ]


def test_recommendations_are_capped_and_unique():
    for data in (_data(), _data(club_minutes=300, band=5), _data(club_minutes=650, senior_caps=1)):
        result = calculate_transfer_eligibility(data)
        assert len(result.recommendations) <= 5
        assert len(set(result.recommendations)) == len(result.recommendations)


def test_scoring_is_deterministic():
    data = _data(club_minutes=640, senior_caps=2, band=4, market_value=250_000)
    assert calculate_transfer_eligibility(data) == calculate_transfer_eligibility(data)


def test_scores_never_decrease_with_more_minutes():
    previous = None
    for minutes in range(0, 2001, 100):
        current = _scores(_data(club_minutes=minutes, senior_caps=2))
        if previous is not None:
            for category in VisaCategory:
                assert current[category] >= previous[category], (category, minutes)
        previous = current


def test_scores_never_decrease_with_more_caps():
    previous = None
    for caps in range(0, 81, 5):
        current = _scores(_data(club_minutes=400, senior_caps=caps))
        if previous is not None:
            for category in VisaCategory:
                assert current[category] >= previous[category], (category, caps)
        previous = current


def _assert_non_decreasing(values, build) -> None:
    previous = None
    for value in values:
        current = _scores(build(value))
        if previous is not None:
            for category in VisaCategory:
                assert current[category] >= previous[category], (category, value)
        previous = current


def test_scores_never_decrease_with_more_video_minutes():
    def build(minutes: int) -> ScoringInput:
        videos = [Video(video_id=f"v{i}", minutes_played=minutes) for i in range(3)]
        return _data(club_minutes=400, senior_caps=2, videos=videos)

    _assert_non_decreasing(range(0, 181, 15), build)


def test_scores_never_decrease_with_more_international_minutes():
    _assert_non_decreasing(
        range(0, 1201, 100),
        lambda minutes: _data(club_minutes=400, senior_caps=2, international_minutes_current_season=minutes),
    )


def test_scores_never_decrease_with_more_youth_caps():
    _assert_non_decreasing(
        range(0, 41, 4),
        lambda caps: _data(club_minutes=400, senior_caps=2, youth_caps=caps),
    )


def test_scores_never_decrease_with_more_continental_games():
    _assert_non_decreasing(
        range(0, 31, 2),
        lambda games: _data(club_minutes=400, senior_caps=2, continental_games=games),
    )


@pytest.mark.parametrize(
    "fields",
    [
        {},
        {"club_minutes": 300},
        {"club_minutes": 799, "senior_caps": 1},
        {"club_minutes": 1500, "senior_caps": 12},
    ],
)
def test_lowest_band_never_outscores_top_band(fields):
    top = _scores(_data(band=1, **fields))
    bottom = _scores(_data(band=5, **fields))
    for category in VisaCategory:
        assert bottom[category] <= top[category], category


def test_invalid_band_is_rejected():
    player = PlayerProfile(player_id="p1")
    with pytest.raises(ValidationError):
        ScoringInput(player=player, league_band=0)


def test_o1_rewards_recognition_and_senior_caps():
    data = _data(club_minutes=900, senior_caps=10, market_value=2_500_000)
    result = calculate_o1_score(data)

    assert result.score == 70
    assert result.status is AmberStatus.GREEN
    assert result.breakdown.performance_score == pytest.approx(35.0)
    assert not any("market value" in item for item in result.recommendations)


def test_p1_caps_at_one_hundred_with_full_validation():
    videos = [Video(video_id=f"v{i}", title=f"Match {i}") for i in range(5)]
    data = _data(
        club_minutes=800,
        band=1,
        agent_name="Prime Sports",
        contract_end_date="2026-06-30",
        videos=videos,
    )
    result = calculate_p1_score(data)

    assert result.score == 100
    assert result.recommendations == []


def test_gbe_yellow_opens_esc_route():
    data = _data(
        club_minutes=600,
        metrics=[PlayerMetrics(season="2024/25", goals=8, assists=2)],
    )
    result = calculate_transfer_eligibility(data)

    assert result.uk_gbe.status is AmberStatus.YELLOW
    assert result.esc_eligible is True
    assert result.esc.score == 67
    assert result.esc.status is AmberStatus.GREEN
    assert result.caps_needed == 5
    assert result.overall_status is AmberStatus.YELLOW


def test_gbe_red_closes_esc_route():
    data = _data(club_minutes=100, band=5)
    gbe = calculate_uk_gbe_score(data)
    esc = calculate_esc_score(data, gbe)

    assert gbe.status is AmberStatus.RED
    assert esc.score == 0
    assert esc.recommendations == [
        "Player must first reach GBE yellow zone (10+ points) for ESC consideration"
    ]


def test_youth_caps_count_for_schengen_but_not_gbe():
    youth = calculate_transfer_eligibility(_data(club_minutes=400, youth_caps=10))
    none = calculate_transfer_eligibility(_data(club_minutes=400))

    assert youth.total_caps == 10
    assert youth.senior_caps == 0
    assert youth.schengen.score > none.schengen.score
    assert youth.uk_gbe.score == none.uk_gbe.score


def test_video_minutes_take_larger_of_videos_and_insights():
    videos = [Video(video_id="v1", minutes_played=30), Video(video_id="v2", minutes_played=30)]
    insights = [VideoInsight(video_id="v1", minutes_played=90, ai_analysis="Strong pressing")]
    totals = compute_totals(_data(videos=videos, video_insights=insights))

    assert totals.video_minutes == 90
    assert totals.video_count == 2
    assert totals.analysed_insights == 1


def test_club_minutes_take_larger_of_profile_and_metrics():
    metrics = [PlayerMetrics(season="2024/25", current_season_minutes=1100)]
    totals = compute_totals(_data(club_minutes=900, metrics=metrics))
    assert totals.club_minutes == 1100


def test_international_minutes_estimated_from_caps_when_enabled():
    data = _data(senior_caps=5)
    assert compute_totals(data).international_minutes == 0
    assert compute_totals(data, estimate_international_minutes=True).international_minutes == 225


def test_overall_status_rules():
    assert overall_status(800, [60, 10]) is AmberStatus.GREEN
    assert overall_status(799, [90]) is AmberStatus.YELLOW
    assert overall_status(900, [20]) is AmberStatus.YELLOW
    assert overall_status(100, [35]) is AmberStatus.YELLOW
    assert overall_status(599, [34]) is AmberStatus.RED
    assert overall_status(0, []) is AmberStatus.RED


def test_result_serialises_with_camel_case_keys():
    result = calculate_transfer_eligibility(_data(club_minutes=900, senior_caps=5, band=2))
    payload = result.model_dump(by_alias=True, mode="json")

    assert payload["totalMinutesVerified"] == 900
    assert payload["overallStatus"] == "green"
    assert payload["ukGbe"]["status"] == "green"
    assert "escEligible" in payload
    assert "minutesScore" in payload["schengen"]["breakdown"]
