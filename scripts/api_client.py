"""Lightweight REST client for the transferscore API."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import httpx


def load_payload(path: Path) -> dict:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SystemExit(f"Invalid input JSON: {exc}") from exc


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the transferscore REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000")
    parser.add_argument("input", type=Path, nargs="?", help="Scoring input JSON (player plus records)")
    parser.add_argument("--league-band", type=int, default=None, help="Target league band 1-5")
    parser.add_argument("--store", action="store_true", help="Upload the player and score via the stored records")
    parser.add_argument("--get-assessment", metavar="PLAYER_ID", help="Fetch the stored assessment and exit")
    parser.add_argument("--balance", metavar="USER_ID", help="Show a user's token balance and exit")
    args = parser.parse_args()

    if args.get_assessment or args.balance:
        with httpx.Client(base_url=args.base_url) as client:
            if args.get_assessment:
                resp = client.get(f"/players/{args.get_assessment}/transfer-eligibility/assessment")
                if resp.status_code == 404:
                    raise SystemExit(f"no assessment for player {args.get_assessment}")
                resp.raise_for_status()
                print(json.dumps(resp.json(), indent=2))
            if args.balance:
                resp = client.get(f"/tokens/{args.balance}/balance")
                resp.raise_for_status()
                print(json.dumps(resp.json(), indent=2))
        return

    if args.input is None:
        raise SystemExit("input JSON is required unless using --get-assessment/--balance")

    payload = load_payload(args.input)
    if args.league_band is not None:
        payload["league_band"] = args.league_band

    with httpx.Client(base_url=args.base_url) as client:
        if not args.store:
            resp = client.post("/eligibility/score", json=payload)
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
            return

        player = payload["player"]
        player_id = player["player_id"]
        client.post("/players", json=player).raise_for_status()
        routes = {
            "metrics": "metrics",
            "videos": "videos",
            "video_insights": "video-insights",
            "international_records": "international-records",
            "invitation_letters": "invitation-letters",
        }
        for key, route in routes.items():
            for item in payload.get(key, []):
                resp = client.post(f"/players/{player_id}/{route}", json=item)
                resp.raise_for_status()
        body = {"league_band": args.league_band} if args.league_band is not None else None
        resp = client.post(f"/players/{player_id}/transfer-eligibility/recalculate", json=body)
        resp.raise_for_status()
        result = resp.json()
        print(f"Overall status: {result['result']['overallStatus']} at band {result['league_band_applied']}")
        print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
