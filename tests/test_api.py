from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from transferscore.api import create_app
from transferscore.config import Settings
from transferscore.reports import build_consular_report


@pytest.fixture
async def client(tmp_path):
    app = create_app(tmp_path / "api.sqlite", settings=Settings())
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        async_client.app = app
        yield async_client


def _player(player_id: str = "p1", **fields) -> dict:
    return {
        "player_id": player_id,
        "first_name": "Kofi",
        "last_name": "Mensah",
        "nationality": "Ghana",
        "position": "Forward",
        **fields,
    }


def _score_payload(**overrides) -> dict:
    payload = {
        "player": _player(club_minutes_current_season=900),
        "international_records": [{"national_team": "Ghana", "caps": 5}],
        "league_band": 2,
    }
    payload.update(overrides)
    return payload


async def _create_player_with_letter(client: AsyncClient, *, band: int = 4) -> None:
    resp = await client.post("/players", json=_player(club_minutes_current_season=900))
    assert resp.status_code == 201
    resp = await client.post(
        "/players/p1/international-records",
        json={"national_team": "Ghana", "caps": 5},
    )
    assert resp.status_code == 201
    resp = await client.post(
        "/players/p1/invitation-letters",
        json={
            "letter_id": "letter-1",
            "target_club_name": "FC Example",
            "target_league": "Eerste Divisie",
            "target_league_band": band,
            "target_country": "Netherlands",
        },
    )
    assert resp.status_code == 201


@pytest.mark.anyio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.anyio
async def test_stateless_score(client: AsyncClient):
    resp = await client.post("/eligibility/score", json=_score_payload())
    assert resp.status_code == 200
    body = resp.json()
    assert body["overallStatus"] == "green"
    assert body["totalMinutesVerified"] == 900
    assert body["schengen"]["score"] == 73
    assert body["ukGbe"]["status"] == "green"
    assert body["minutesNeeded"] == 0


@pytest.mark.anyio
async def test_stateless_score_rejects_bad_band(client: AsyncClient):
    resp = await client.post("/eligibility/score", json=_score_payload(league_band=6))
    assert resp.status_code == 422


@pytest.mark.anyio
async def test_stateless_score_zero_player_is_valid(client: AsyncClient):
    resp = await client.post("/eligibility/score", json={"player": _player(), "league_band": 1})
    assert resp.status_code == 200
    assert resp.json()["overallStatus"] == "red"


@pytest.mark.anyio
async def test_transfer_eligibility_uses_letter_band_and_persists(client: AsyncClient):
    await _create_player_with_letter(client, band=4)

    resp = await client.get("/players/p1/transfer-eligibility")
    assert resp.status_code == 200
    body = resp.json()
    assert body["league_band_applied"] == 4
    assert body["result"]["seniorCaps"] == 5

    stored = await client.get("/players/p1/transfer-eligibility/assessment")
    assert stored.status_code == 200
    assert stored.json()["league_band_applied"] == 4

    resp = await client.post("/players/p1/transfer-eligibility/recalculate", json={"league_band": 1})
    assert resp.status_code == 200
    assert resp.json()["league_band_applied"] == 1

    stored = await client.get("/players/p1/transfer-eligibility/assessment")
    assert stored.json()["league_band_applied"] == 1

    resp = await client.post("/players/p1/transfer-eligibility/recalculate")
    assert resp.status_code == 200
    assert resp.json()["league_band_applied"] == 4


@pytest.mark.anyio
async def test_recalculate_rejects_bad_band(client: AsyncClient):
    await _create_player_with_letter(client)
    resp = await client.post("/players/p1/transfer-eligibility/recalculate", json={"league_band": 0})
    assert resp.status_code == 422


@pytest.mark.anyio
async def test_missing_player_and_assessment(client: AsyncClient):
    assert (await client.get("/players/ghost")).status_code == 404
    assert (await client.get("/players/ghost/transfer-eligibility")).status_code == 404
    assert (await client.post("/players/ghost/videos", json={"video_id": "v1"})).status_code == 404

    await client.post("/players", json=_player())
    assert (await client.get("/players/p1/transfer-eligibility/assessment")).status_code == 404


@pytest.mark.anyio
async def test_player_detail_lists_records(client: AsyncClient):
    await _create_player_with_letter(client)
    await client.post("/players/p1/metrics", json={"season": "2024/25", "goals": 4, "assists": 2})
    await client.post("/players/p1/videos", json={"video_id": "v1", "minutes_played": 90})
    await client.post("/players/p1/video-insights", json={"video_id": "v1", "minutes_played": 90})

    resp = await client.get("/players/p1")
    assert resp.status_code == 200
    body = resp.json()
    assert body["player"]["first_name"] == "Kofi"
    assert body["metrics"][0]["goals"] == 4
    assert body["videos"][0]["video_id"] == "v1"
    assert body["invitation_letters"][0]["status"] == "pending"


@pytest.mark.anyio
async def test_federation_request_lifecycle(client: AsyncClient):
    await client.post("/players", json=_player())

    resp = await client.post(
        "/federation-letter-requests",
        json={"player_id": "p1", "team_id": "team-1", "purpose": "transfer", "destination_country": "NL"},
    )
    assert resp.status_code == 201
    request = resp.json()
    request_id = request["request_id"]
    assert request["status"] == "pending"
    assert request["payment_status"] == "unpaid"
    assert request["total_amount"] == pytest.approx(175.0)
    assert request["request_number"].startswith("FLR-")

    resp = await client.post(f"/federation-letter-requests/{request_id}/submit")
    assert resp.status_code == 400

    resp = await client.post(f"/federation-letter-requests/{request_id}/confirm-payment", json={"payment_id": "pay-1"})
    assert resp.status_code == 200
    assert resp.json()["payment_status"] == "paid"

    resp = await client.post(f"/federation-letter-requests/{request_id}/confirm-payment", json={"payment_id": "pay-2"})
    assert resp.status_code == 400

    for action, status in (("submit", "submitted"), ("accept", "processing"), ("issue", "issued")):
        resp = await client.post(f"/federation-letter-requests/{request_id}/{action}")
        assert resp.status_code == 200, action
        assert resp.json()["status"] == status

    resp = await client.post(
        f"/federation-letter-requests/{request_id}/reject",
        json={"rejection_reason": "too late"},
    )
    assert resp.status_code == 400
    assert (await client.delete(f"/federation-letter-requests/{request_id}")).status_code == 400

    resp = await client.get(f"/federation-letter-requests/{request_id}")
    assert [a["new_status"] for a in resp.json()["activities"]] == ["pending", "submitted", "processing", "issued"]

    resp = await client.get("/federation-letter-requests", params={"status": "issued"})
    assert [item["request_id"] for item in resp.json()] == [request_id]

    summary = (await client.get("/federation-letter-requests/summary")).json()
    assert summary["total"] == 1
    assert summary["issued"] == 1


@pytest.mark.anyio
async def test_federation_request_reject_and_delete(client: AsyncClient):
    await client.post("/players", json=_player())
    first = (await client.post("/federation-letter-requests", json={"player_id": "p1"})).json()
    second = (await client.post("/federation-letter-requests", json={"player_id": "p1"})).json()

    resp = await client.post(
        f"/federation-letter-requests/{first['request_id']}/reject",
        json={"rejection_reason": "missing documents"},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "rejected"
    assert resp.json()["rejection_reason"] == "missing documents"

    resp = await client.delete(f"/federation-letter-requests/{second['request_id']}")
    assert resp.status_code == 200
    assert (await client.get(f"/federation-letter-requests/{second['request_id']}")).status_code == 404


@pytest.mark.anyio
async def test_federation_request_validation(client: AsyncClient):
    resp = await client.post("/federation-letter-requests", json={"player_id": "ghost"})
    assert resp.status_code == 404
    resp = await client.get("/federation-letter-requests", params={"status": "archived"})
    assert resp.status_code == 400


@pytest.mark.anyio
async def test_invitation_letter_review_and_embassy_notification(client: AsyncClient):
    await _create_player_with_letter(client)

    resp = await client.post("/invitation-letters/letter-1/verify", json={"reviewer_id": "embassy-1"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "verified"
    assert (await client.post("/invitation-letters/letter-1/reject")).status_code == 400

    resp = await client.post("/invitation-letters/letter-1/notify-embassy", json={"user_id": "broke"})
    assert resp.status_code == 402
    assert resp.json()["detail"]["available"] == 0

    await client.get("/tokens/team-1/balance")
    resp = await client.post("/invitation-letters/letter-1/notify-embassy", json={"user_id": "team-1"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["tokens_spent"] == 4
    assert body["balance_after"] == 46
    assert body["letter"]["embassy_notification_status"] == "notified"

    resp = await client.post("/invitation-letters/letter-1/notify-embassy", json={"user_id": "team-1"})
    assert resp.status_code == 400
    assert (await client.get("/tokens/team-1/balance")).json()["balance"] == 46


@pytest.mark.anyio
async def test_consular_report(client: AsyncClient):
    await _create_player_with_letter(client, band=2)
    await client.post("/players/p1/videos", json={"video_id": "v1", "title": "Derby", "minutes_played": 90})

    resp = await client.post("/invitation-letters/letter-1/consular-report")
    assert resp.status_code == 201
    body = resp.json()
    assert body["verification_code"].startswith("VR-")
    assert body["target_club"]["league_band"] == 2
    assert body["video_links"][0]["video_id"] == "v1"
    assert {score["visa_type"] for score in body["eligibility_scores"]} == {"schengen", "o1", "p1", "ukGbe", "esc"}

    stored = await client.get(f"/consular-reports/{body['report_id']}")
    assert stored.status_code == 200
    assert stored.json()["verification_code"] == body["verification_code"]

    letter = (await client.get("/players/p1")).json()["invitation_letters"][0]
    assert letter["consular_report_generated"] is True
    assert letter["consular_report_id"] == body["report_id"]

    assert (await client.post("/invitation-letters/unknown/consular-report")).status_code == 404
    assert (await client.get("/consular-reports/unknown")).status_code == 404


@pytest.mark.anyio
async def test_each_consular_report_gets_its_own_code(client: AsyncClient):
    await _create_player_with_letter(client)
    first = (await client.post("/invitation-letters/letter-1/consular-report")).json()
    second = (await client.post("/invitation-letters/letter-1/consular-report")).json()
    assert first["verification_code"] != second["verification_code"]

    resp = await client.get("/players/p1/consular-reports")
    assert resp.status_code == 200
    assert {report["report_id"] for report in resp.json()} == {first["report_id"], second["report_id"]}
    assert (await client.get("/players/ghost/consular-reports")).status_code == 404

    for report in (first, second):
        resp = await client.get(f"/verify/consular-report/{report['verification_code']}")
        assert resp.status_code == 200
        assert resp.json()["valid"] is True
        assert resp.json()["report"]["report_id"] == report["report_id"]


@pytest.mark.anyio
async def test_verify_consular_report(client: AsyncClient):
    await _create_player_with_letter(client)
    await client.post("/players/p1/videos", json={"video_id": "v1", "title": "Derby", "minutes_played": 90})
    report = (await client.post("/invitation-letters/letter-1/consular-report")).json()
    code = report["verification_code"]

    resp = await client.get(f"/verify/consular-report/{code}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["valid"] is True
    assert body["report"]["player_profile"]["first_name"] == "Kofi"
    assert len(client.app.state.store.list_report_access(report["report_id"])) == 1

    resp = await client.get("/verify/video/v1", params={"code": code})
    assert resp.status_code == 200
    assert resp.json()["valid"] is True
    assert resp.json()["title"] == "Derby"
    assert (await client.get("/verify/video/v9", params={"code": code})).status_code == 404

    assert (await client.get("/verify/consular-report/VR-UNKNOWN-000000")).status_code == 404


@pytest.mark.anyio
async def test_verify_expired_consular_report(client: AsyncClient):
    await _create_player_with_letter(client)
    store = client.app.state.store
    player = store.get_player("p1")
    _, letter = store.get_invitation_letter("letter-1")
    expired = build_consular_report(player, letter, now=datetime.now(timezone.utc) - timedelta(days=91))
    store.save_consular_report(expired)

    resp = await client.get(f"/verify/consular-report/{expired.verification_code}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["valid"] is False
    assert body["message"] == "Report has expired"
    assert body["report"] is None
    assert store.list_report_access(expired.report_id) == []


@pytest.mark.anyio
async def test_token_endpoints(client: AsyncClient):
    resp = await client.get("/tokens/scout-1/balance")
    assert resp.status_code == 200
    assert resp.json()["balance"] == 50

    resp = await client.post("/tokens/scout-1/spend", json={"role": "scout", "action": "view_profile", "player_id": "p1"})
    assert resp.status_code == 200
    assert resp.json()["balance_after"] == 48

    resp = await client.post("/tokens/scout-1/spend", json={"role": "scout", "action": "transfer_report"})
    assert resp.status_code == 400

    resp = await client.post("/tokens/scout-1/credit", json={"amount": 20})
    assert resp.status_code == 200
    assert resp.json()["balance_after"] == 68

    resp = await client.get("/tokens/scout-1/transactions")
    assert [tx["action"] for tx in resp.json()] == ["purchase", "view_profile", "welcome_bonus"]

    resp = await client.post("/tokens/scout-1/credit", json={"amount": 0})
    assert resp.status_code == 422

    costs = (await client.get("/tokens/costs/scout")).json()
    assert {"action": "view_profile", "cost": 2, "description": "Viewed player profile"} in costs


@pytest.mark.anyio
async def test_spend_insufficient_tokens(client: AsyncClient):
    await client.get("/tokens/team-9/balance")
    for _ in range(6):
        resp = await client.post("/tokens/team-9/spend", json={"action": "video_analysis"})
        assert resp.status_code == 200

    resp = await client.post("/tokens/team-9/spend", json={"action": "video_analysis"})
    assert resp.status_code == 402
    detail = resp.json()["detail"]
    assert detail["required"] == 8
    assert detail["available"] == 2
