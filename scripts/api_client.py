"""Lightweight REST client for the footy bookings API."""

from __future__ import annotations

import argparse
import json

import httpx


def _print_sheet(payload: dict) -> None:
    for side in ("red", "blue"):
        stats = payload[f"{side}_stats"]
        print(
            f"{side.upper()} overall={stats['overall']} defense={stats['defense']} fitness={stats['fitness']}"
        )
        for player in payload[f"{side}_team"]:
            marker = " (GK)" if player["is_goalkeeper"] else ""
            print(f"  {player['name']}{marker} [{player['overall']}]")


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the footy REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000")
    parser.add_argument("game_id", nargs="?", help="Game to act on")
    parser.add_argument("--role", default="admin", help="Value sent in the X-Role header")
    parser.add_argument("--policy", default=None, help="Allocation policy for --generate")
    parser.add_argument("--generate", action="store_true", help="Generate teams for the game")
    parser.add_argument("--show-steps", action="store_true", help="Print the rule that placed each player")
    parser.add_argument("--list-games", action="store_true", help="List visible games and exit")
    parser.add_argument("--player-id", default=None, help="Player whose tier filters --list-games")
    args = parser.parse_args()

    headers = {"X-Role": args.role}
    with httpx.Client(base_url=args.base_url, headers=headers) as client:
        if args.list_games:
            params = {"player_id": args.player_id} if args.player_id else None
            resp = client.get("/games", params=params)
            resp.raise_for_status()
            print(json.dumps(resp.json(), indent=2))
            return

        if args.game_id is None:
            raise SystemExit("game_id is required unless using --list-games")

        if args.generate:
            params = {"policy": args.policy} if args.policy else None
            resp = client.post(f"/admin/games/{args.game_id}/generate-teams", params=params)
            if resp.status_code == 400:
                raise SystemExit(resp.json().get("detail", "team generation failed"))
        else:
            resp = client.get(f"/games/{args.game_id}/teams")
            if resp.status_code == 404:
                raise SystemExit(f"no teams for game {args.game_id}")
        resp.raise_for_status()
        payload = resp.json()
        _print_sheet(payload)
        if args.show_steps and payload.get("steps"):
            for step in payload["steps"]:
                print(f"{step['player_id']}: {step['side']} ({step['rule']})")


if __name__ == "__main__":
    main()
