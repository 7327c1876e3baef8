import re
from datetime import datetime, timedelta, timezone

from transferscore.models import (
    InternationalRecord,
    InvitationLetter,
    PlayerMetrics,
    PlayerProfile,
    ScoringInput,
    Video,
)
from transferscore.reports import build_consular_report
from transferscore.scoring import calculate_transfer_eligibility


NOW = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)


def _fixtures():
    player = PlayerProfile(
        player_id="p1",
        first_name="Kofi",
        last_name="Mensah",
        nationality="Ghana",
        position="Forward",
        current_club_name="Accra Lions",
        club_minutes_current_season=900,
        national_team_caps=5,
    )
    letter = InvitationLetter(
        letter_id="l1",
        target_club_name="FC Example",
        target_league="Eerste Divisie",
        target_league_band=2,
        target_country="Netherlands",
    )
    result = calculate_transfer_eligibility(
        ScoringInput(
            player=player,
            international_records=[InternationalRecord(caps=5)],
            league_band=2,
        )
    )
    return player, letter, result


def test_consular_report_contents():
    player, letter, result = _fixtures()
    videos = [Video(video_id=f"v{i}", title=f"Match {i}", competition="League") for i in range(7)]
    metrics = [PlayerMetrics(season="2024/25", games_played=12, goals=6, assists=3)]

    report = build_consular_report(
        player,
        letter,
        result=result,
        league_band_applied=2,
        videos=videos,
        metrics=metrics,
        now=NOW,
    )

    assert report.player_profile["current_club"] == "Accra Lions"
    assert report.player_stats["goals"] == 6
    assert [score.visa_type for score in report.eligibility_scores] == ["schengen", "o1", "p1", "ukGbe", "esc"]
    assert all(score.league_band_applied == 2 for score in report.eligibility_scores)
    assert report.overall_status == "green"
    assert len(report.video_links) == 5
    assert report.video_links[0].verify_url.endswith(f"code={report.verification_code}")
    assert "7 verified match videos" in report.proof_of_play_summary
    assert report.target_club["league_band"] == 2
    assert re.fullmatch(r"VR-[0-9A-Z]+-[0-9A-Z]{6}", report.verification_code)
    assert report.valid_until == NOW + timedelta(days=90)


def test_consular_report_without_assessment():
    player, letter, _ = _fixtures()

    report = build_consular_report(player, letter, now=NOW)

    assert report.eligibility_scores == []
    assert report.overall_status is None
    assert report.player_stats is None
    assert report.video_links == []
