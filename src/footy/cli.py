"""Command-line interface for generating teams from a roster CSV."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Sequence

from footy.allocator import AllocationError, AllocationResult, InsufficientCandidates, allocate
from footy.config import default_rules, get_rules, iter_rules
from footy.config_loader import MappingProfile
from footy.ingest import load_beef_csv, load_roster_csv, rows_to_candidates


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Split a confirmed roster into Red and Blue teams")
    parser.add_argument("roster", type=Path, help="Path to roster CSV (one row per confirmed player)")
    parser.add_argument("--beef", type=Path, default=None, help="Optional beef CSV (player_id,target_player_id,rating)")
    parser.add_argument(
        "--policy",
        default=None,
        choices=[rules.name for rules in iter_rules()],
        help="Overall-balance policy (default: FOOTY_BALANCE_POLICY or always_balance)",
    )
    parser.add_argument(
        "--roster-column",
        action="append",
        default=[],
        help="Mapping for roster CSV columns (e.g., overall_rating=OVR)",
    )
    parser.add_argument(
        "--beef-column",
        action="append",
        default=[],
        help="Mapping for beef CSV columns (e.g., rating=level)",
    )
    parser.add_argument("--load-profile", type=Path, help="Load column mappings and policy from JSON", default=None)
    parser.add_argument(
        "--save-profile",
        type=Path,
        default=None,
        help="Save the effective column mappings and policy as JSON",
    )
    parser.add_argument("--output", type=Path, default=None, help="Write the team sheet JSON here instead of stdout")
    parser.add_argument("--verbose", action="store_true", help="Log every allocation decision")
    return parser.parse_args(argv)


def _parse_mapping(pairs: Sequence[str]) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise SystemExit(f"Invalid mapping '{pair}', expected key=column")
        key, value = pair.split("=", 1)
        mapping[key.strip()] = value.strip()
    return mapping


def result_to_dict(result: AllocationResult) -> dict:
    def _team(players) -> list[dict]:
        return [
            {
                "player_id": player.player_id,
                "name": player.display_name,
                "squad_number": player.squad_number,
                "overall": player.overall_rating,
                "is_goalkeeper": player.is_goalkeeper,
            }
            for player in players
        ]

    return {
        "policy": result.policy,
        "red_team": _team(result.red_team),
        "blue_team": _team(result.blue_team),
        "red_stats": asdict(result.red_stats),
        "blue_stats": asdict(result.blue_stats),
        "steps": [asdict(step) for step in result.steps],
    }


def main(argv: Sequence[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    if args.verbose:
        logging.getLogger("uvicorn.error").setLevel(logging.DEBUG)

    try:
        profile = MappingProfile(
            roster_mapping=_parse_mapping(args.roster_column),
            beef_mapping=_parse_mapping(args.beef_column),
            policy=args.policy,
        )
        if args.load_profile:
            profile = MappingProfile.load(args.load_profile).merged(profile)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Invalid profile: {exc}") from exc
    if args.save_profile:
        profile.save(args.save_profile)
        print(f"Saved mapping profile to {args.save_profile}", file=sys.stderr)

    rules = get_rules(profile.policy) if profile.policy else default_rules()
    try:
        rows = load_roster_csv(args.roster, mapping=profile.roster_mapping)
        beef = load_beef_csv(args.beef, mapping=profile.beef_mapping) if args.beef else []
    except ValueError as exc:
        raise SystemExit(f"Invalid input: {exc}") from exc

    candidates, report = rows_to_candidates(rows)
    if report.duplicate_player_ids:
        print(f"Ignored duplicate rows for: {', '.join(report.duplicate_player_ids)}", file=sys.stderr)

    try:
        result = allocate(candidates, beef, rules)
    except InsufficientCandidates as exc:
        raise SystemExit(str(exc)) from exc
    except AllocationError as exc:
        raise SystemExit(f"Team generation failed: {exc}") from exc

    payload = json.dumps(result_to_dict(result), indent=2)
    if args.output:
        args.output.write_text(payload + "\n", encoding="utf-8")
        print(
            f"Red {len(result.red_team)} (overall {result.red_stats.overall}) vs "
            f"Blue {len(result.blue_team)} (overall {result.blue_stats.overall}) -> {args.output}",
            file=sys.stderr,
        )
    else:
        print(payload)


if __name__ == "__main__":
    main()
