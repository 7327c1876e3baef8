import pytest
from pydantic import ValidationError

from transferscore.models import (
    InternationalRecord,
    InvitationLetter,
    PlayerMetrics,
    PlayerProfile,
    ScoringInput,
)


def test_player_profile_is_frozen():
    profile = PlayerProfile(player_id="p1", first_name="Ada", last_name="Striker")

    assert profile.full_name == "Ada Striker"

    with pytest.raises((TypeError, ValidationError)):
        profile.player_id = "p2"  # type: ignore[attr-defined]


def test_missing_counters_default_to_zero():
    profile = PlayerProfile(
        player_id="p1",
        club_minutes_current_season=None,
        national_team_caps="",
        market_value=None,
    )
    metrics = PlayerMetrics(goals=None, assists=None)

    assert profile.club_minutes_current_season == 0
    assert profile.national_team_caps == 0
    assert profile.market_value == 0.0
    assert metrics.goals == 0
    assert metrics.assists == 0


def test_negative_minutes_rejected():
    with pytest.raises(ValidationError):
        PlayerProfile(player_id="p1", club_minutes_current_season=-5)


def test_international_record_senior_flag():
    assert InternationalRecord(caps=3).is_senior
    assert InternationalRecord(caps=3, team_level="Senior ").is_senior
    assert not InternationalRecord(caps=3, team_level="u21").is_senior


@pytest.mark.parametrize("band", [0, 6])
def test_invitation_letter_band_out_of_range(band: int):
    with pytest.raises(ValidationError):
        InvitationLetter(letter_id="l1", target_league_band=band)


def test_scoring_input_requires_valid_band():
    player = PlayerProfile(player_id="p1")
    with pytest.raises(ValidationError):
        ScoringInput(player=player, league_band=7)
    assert ScoringInput(player=player, league_band=5).league_band == 5
