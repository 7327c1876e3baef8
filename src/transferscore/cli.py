"""Command-line interface for scoring a player's transfer eligibility."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from transferscore.api.schemas import ScoreRequest
from transferscore.config import load_settings
from transferscore.ingest import load_videos_from_csv
from transferscore.models import VisaCategory
from transferscore.scoring import calculate_transfer_eligibility, collect_scoring_input


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="transferscore", description="Score football transfer eligibility")
    subparsers = parser.add_subparsers(dest="command", required=True)

    score = subparsers.add_parser("score", help="Score a player from a JSON input file")
    score.add_argument("input", type=Path, help="Path to the player JSON input")
    score.add_argument(
        "--league-band",
        type=int,
        default=None,
        help="Target league band 1-5 (default: latest invitation letter, then configured default)",
    )
    score.add_argument("--appearances", type=Path, default=None, help="Optional match appearances CSV")
    score.add_argument(
        "--appearance-column",
        action="append",
        default=[],
        help="Mapping for appearance CSV columns (e.g., minutes=Mins)",
    )
    score.add_argument("--output", type=Path, default=None, help="Write result JSON here instead of stdout")
    score.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _parse_mapping(entries: list[str]) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for entry in entries:
        if "=" not in entry:
            raise ValueError(f"Invalid mapping entry '{entry}', expected key=value")
        key, value = entry.split("=", 1)
        mapping[key.strip()] = value.strip()
    return mapping


def _run_score(args: argparse.Namespace) -> None:
    settings = load_settings()
    try:
        payload = ScoreRequest.model_validate_json(args.input.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        raise SystemExit(f"error: cannot read {args.input}: {exc}") from exc

    videos = list(payload.videos)
    if args.appearances:
        try:
            mapping = _parse_mapping(args.appearance_column)
            appended = load_videos_from_csv(args.appearances, mapping=mapping or None)
        except (OSError, ValueError) as exc:
            raise SystemExit(f"error: cannot load appearances: {exc}") from exc
        print(f"Loaded {len(appended)} appearances from {args.appearances}")
        videos.extend(appended)

    league_band = args.league_band if args.league_band is not None else payload.league_band
    try:
        data = collect_scoring_input(
            payload.player,
            metrics=payload.metrics,
            videos=videos,
            video_insights=payload.video_insights,
            international_records=payload.international_records,
            invitation_letters=payload.invitation_letters,
            league_band=league_band,
            default_band=settings.default_league_band,
        )
    except ValidationError as exc:
        raise SystemExit(f"error: invalid scoring input: {exc}") from exc

    result = calculate_transfer_eligibility(
        data,
        estimate_international_minutes=settings.estimate_international_minutes,
    )
    body = json.dumps(
        {
            "playerId": payload.player.player_id,
            "leagueBandApplied": data.league_band,
            "result": result.model_dump(mode="json", by_alias=True),
        },
        indent=2,
    )

    if args.output:
        args.output.write_text(body, encoding="utf-8")
        scores = ", ".join(
            f"{category.value}={result.category(category).score}" for category in VisaCategory
        )
        print(f"Overall {result.overall_status.value} at band {data.league_band} ({scores})")
        print(f"Wrote eligibility result to {args.output}")
    else:
        print(body)


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    if args.command == "score":
        _run_score(args)


if __name__ == "__main__":
    main()
