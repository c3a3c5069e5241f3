from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from footy.api import create_app


ADMIN = {"X-Role": "admin"}


@pytest.fixture
async def client(tmp_path, monkeypatch):
    monkeypatch.setenv("FOOTY_DB_PATH", str(tmp_path / "api.sqlite"))
    monkeypatch.delenv("FOOTY_BALANCE_POLICY", raising=False)
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        async_client.app = app
        yield async_client


def _game_payload(**overrides) -> dict:
    payload = {
        "game_date": (datetime.now(timezone.utc) + timedelta(hours=20)).isoformat(),
        "venue": "Goals Wembley",
        "max_players": 10,
        "cost_per_player": 6.5,
    }
    payload.update(overrides)
    return payload


async def _create_game(client: AsyncClient, **overrides) -> str:
    resp = await client.post("/admin/games", json=_game_payload(**overrides), headers=ADMIN)
    assert resp.status_code == 200
    return resp.json()["games"][0]["game_id"]


async def _create_player(client: AsyncClient, player_id: str, overall: int, **stats) -> None:
    resp = await client.post("/players", json={"full_name": f"Player {player_id}", "player_id": player_id})
    assert resp.status_code == 201
    resp = await client.put(
        f"/admin/players/{player_id}/stats",
        json={"overall_rating": overall, **stats},
        headers=ADMIN,
    )
    assert resp.status_code == 200


async def _register_all(client: AsyncClient, game_id: str, player_ids, **prefs) -> None:
    for player_id in player_ids:
        resp = await client.post(f"/games/{game_id}/register", json={"player_id": player_id, **prefs})
        assert resp.status_code == 200


@pytest.mark.anyio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.anyio
async def test_player_lifecycle(client: AsyncClient):
    resp = await client.post("/players", json={"full_name": "Peter Crouch", "squad_number": 21})
    assert resp.status_code == 201
    body = resp.json()
    assert body["alias"] == "Peter"
    assert body["tier"] == "gold"

    resp = await client.get(f"/players/{body['player_id']}")
    assert resp.status_code == 200
    assert resp.json()["squad_number"] == 21

    resp = await client.get("/players/missing")
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_admin_routes_need_admin_role(client: AsyncClient):
    resp = await client.post("/admin/games", json=_game_payload())
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Admin access required"

    resp = await client.post("/admin/games", json=_game_payload(), headers={"X-Role": "player"})
    assert resp.status_code == 403

    resp = await client.post("/admin/games", json=_game_payload(), headers={"X-Role": "superadmin"})
    assert resp.status_code == 200


@pytest.mark.anyio
async def test_weekly_game_creation(client: AsyncClient):
    resp = await client.post("/admin/games", json=_game_payload(regularity="weekly"), headers=ADMIN)
    assert resp.status_code == 200
    body = resp.json()
    assert body["series_id"] == "TF0001"
    assert len(body["games"]) == 26
    assert body["games"][0]["series_id"] == "TF0001-01"


@pytest.mark.anyio
async def test_generate_and_fetch_teams(client: AsyncClient):
    game_id = await _create_game(client)
    for player_id, overall in (("a", 80), ("b", 70), ("c", 60), ("d", 50)):
        await _create_player(client, player_id, overall)
    await _register_all(client, game_id, ["d", "c", "b", "a"])

    resp = await client.get(f"/games/{game_id}/teams")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Teams not generated"

    resp = await client.post(f"/admin/games/{game_id}/generate-teams", headers=ADMIN)
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Teams generated successfully"
    assert body["policy"] == "always_balance"
    assert [player["player_id"] for player in body["red_team"]] == ["a", "d"]
    assert [player["player_id"] for player in body["blue_team"]] == ["b", "c"]
    assert body["red_stats"]["overall"] == body["blue_stats"]["overall"] == 130
    assert [step["rule"] for step in body["steps"]] == [
        "overall_balance",
        "size_balance",
        "overall_balance",
        "size_balance",
    ]

    resp = await client.get(f"/games/{game_id}/teams")
    assert resp.status_code == 200
    stored = resp.json()
    assert stored["steps"] is None
    assert stored["red_team"] == body["red_team"]

    resp = await client.get(f"/games/{game_id}")
    assert resp.json()["teams_generated"] is True


@pytest.mark.anyio
async def test_generate_teams_splits_goalkeepers_and_respects_beef(client: AsyncClient):
    game_id = await _create_game(client)
    for player_id, overall in (("k1", 40), ("k2", 30), ("a", 90), ("x", 85), ("b", 60), ("y", 50)):
        await _create_player(client, player_id, overall)
    await _register_all(client, game_id, ["k1", "k2"], position="GK")
    await _register_all(client, game_id, ["a", "x", "b", "y"])

    earlier = await _create_game(client)
    await _register_all(client, earlier, ["a", "b"])
    resp = await client.post(
        f"/admin/games/{earlier}/complete",
        json={"winning_team": "draw", "beef_entries": [{"player_id": "b", "target_player_id": "a", "rating": 5}]},
        headers=ADMIN,
    )
    assert resp.status_code == 200
    assert resp.json()["beef_rows_written"] == 2

    resp = await client.post(f"/admin/games/{game_id}/generate-teams", headers=ADMIN)
    assert resp.status_code == 200
    body = resp.json()
    red = {player["player_id"] for player in body["red_team"]}
    blue = {player["player_id"] for player in body["blue_team"]}
    assert "k1" in red and "k2" in blue
    assert ("a" in red) != ("b" in red)
    assert len(red) == len(blue) == 3


@pytest.mark.anyio
async def test_generate_teams_with_named_policy(client: AsyncClient):
    game_id = await _create_game(client)
    for player_id, overall in (("a", 60), ("b", 55), ("c", 50), ("d", 45)):
        await _create_player(client, player_id, overall)
    await _register_all(client, game_id, ["a", "b", "d"])
    await _register_all(client, game_id, ["c"], pairs=["a"])

    resp = await client.post(f"/admin/games/{game_id}/generate-teams", params={"policy": "threshold"}, headers=ADMIN)
    assert resp.status_code == 200
    body = resp.json()
    assert body["policy"] == "threshold"
    assert {player["player_id"] for player in body["red_team"]} >= {"a", "c"}

    resp = await client.post(f"/admin/games/{game_id}/generate-teams", params={"policy": "random"}, headers=ADMIN)
    assert resp.status_code == 400


@pytest.mark.anyio
async def test_generate_teams_needs_two_players(client: AsyncClient):
    game_id = await _create_game(client)
    await _create_player(client, "solo", 70)
    await _register_all(client, game_id, ["solo"])

    resp = await client.post(f"/admin/games/{game_id}/generate-teams", headers=ADMIN)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Need at least 2 players to generate teams"

    resp = await client.post("/admin/games/missing/generate-teams", headers=ADMIN)
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_registration_backup_and_drop_out(client: AsyncClient):
    game_id = await _create_game(client, max_players=2)
    for player_id in ("p1", "p2", "p3"):
        await _create_player(client, player_id, 50)

    statuses = []
    for player_id in ("p1", "p2", "p3"):
        resp = await client.post(f"/games/{game_id}/register", json={"player_id": player_id})
        statuses.append(resp.json()["status"])
    assert statuses == ["confirmed", "confirmed", "backup"]

    resp = await client.post(f"/games/{game_id}/register", json={"player_id": "p1"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Already registered"

    resp = await client.put(
        f"/games/{game_id}/preferences",
        json={"player_id": "p1", "position": "GK", "avoids": ["p2"]},
    )
    assert resp.status_code == 200
    assert resp.json()["avoids"] == ["p2"]

    resp = await client.post(f"/games/{game_id}/drop-out", json={"player_id": "p3"})
    assert resp.status_code == 200

    resp = await client.post(f"/admin/games/{game_id}/generate-teams", headers=ADMIN)
    assert resp.status_code == 200

    resp = await client.post(f"/games/{game_id}/drop-out", json={"player_id": "p2"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot drop out - teams already generated"


@pytest.mark.anyio
async def test_complete_game_seeds_nominees_and_discipline(client: AsyncClient):
    game_id = await _create_game(client)
    for player_id, overall in (("a", 80), ("b", 70), ("c", 60), ("d", 50)):
        await _create_player(client, player_id, overall)
    await _register_all(client, game_id, ["a", "b", "c", "d"])
    resp = await client.post(f"/admin/games/{game_id}/generate-teams", headers=ADMIN)
    assert resp.status_code == 200

    resp = await client.post(
        f"/admin/games/{game_id}/complete",
        json={
            "winning_team": "blue",
            "discipline_records": [
                {"player_id": "a", "offence": "no_show"},
                {"player_id": "b", "offence": "on_time"},
            ],
        },
        headers=ADMIN,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["motm_nominees"] == ["b", "c"]
    assert body["discipline_points_recorded"] == 7

    resp = await client.get("/players/a/discipline")
    history = resp.json()
    assert history["total_points"] == 7
    assert history["current_tier"] == "white"
    assert history["next_tier_at"] == {"points": 6, "tier": "bronze", "direction": "up"}

    resp = await client.get("/games/" + game_id)
    assert resp.json()["status"] == "completed"
    assert resp.json()["winning_team"] == "blue"


@pytest.mark.anyio
async def test_complete_game_rejects_bad_input(client: AsyncClient):
    game_id = await _create_game(client)

    resp = await client.post(
        f"/admin/games/{game_id}/complete",
        json={"beef_entries": [{"player_id": "a", "target_player_id": "a", "rating": 3}]},
        headers=ADMIN,
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot create beef between same player"

    resp = await client.post(
        f"/admin/games/{game_id}/complete",
        json={"discipline_records": [{"player_id": "a", "offence": "rained_off"}]},
        headers=ADMIN,
    )
    assert resp.status_code == 400

    resp = await client.post(
        f"/admin/games/{game_id}/complete",
        json={"beef_entries": [{"player_id": "a", "target_player_id": "b", "rating": 6}]},
        headers=ADMIN,
    )
    assert resp.status_code == 422


@pytest.mark.anyio
async def test_game_listing_follows_discipline_tier(client: AsyncClient):
    soon = await _create_game(client, game_date=(datetime.now(timezone.utc) + timedelta(hours=20)).isoformat())
    later = await _create_game(client, game_date=(datetime.now(timezone.utc) + timedelta(days=5)).isoformat())
    await _create_player(client, "clean", 50)
    await _create_player(client, "late", 50)
    resp = await client.post(
        "/admin/discipline",
        json={"player_id": "late", "points": 5, "reason": "10+ Min Late"},
        headers=ADMIN,
    )
    assert resp.json()["tier"] == "bronze"

    def ids(resp):
        return [game["game_id"] for game in resp.json()]

    assert ids(await client.get("/games", params={"player_id": "clean"})) == [soon, later]
    assert ids(await client.get("/games", params={"player_id": "late"})) == [soon]
    assert ids(await client.get("/games")) == [soon]
    assert ids(await client.get("/games", headers=ADMIN)) == [soon, later]

    resp = await client.get("/games", params={"player_id": "ghost"})
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_admin_roster_management(client: AsyncClient):
    game_id = await _create_game(client, max_players=2)
    for player_id, overall in (("a", 80), ("b", 70), ("c", 60)):
        await _create_player(client, player_id, overall)
    await _register_all(client, game_id, ["a", "b"])

    resp = await client.post(f"/admin/games/{game_id}/add-player", json={"player_id": "c"})
    assert resp.status_code == 403

    resp = await client.post(f"/admin/games/{game_id}/add-player", json={"player_id": "c"}, headers=ADMIN)
    assert resp.status_code == 200
    assert resp.json()["status"] == "confirmed"

    resp = await client.get(f"/games/{game_id}/players")
    assert resp.status_code == 200
    assert {player["player_id"] for player in resp.json()} == {"a", "b", "c"}

    resp = await client.post(f"/admin/games/{game_id}/generate-teams", headers=ADMIN)
    assert resp.status_code == 200
    assert len(resp.json()["red_team"]) + len(resp.json()["blue_team"]) == 3

    resp = await client.delete(f"/admin/games/{game_id}/remove-player/a", headers=ADMIN)
    assert resp.status_code == 200
    resp = await client.delete(f"/admin/games/{game_id}/remove-player/a", headers=ADMIN)
    assert resp.status_code == 404

    resp = await client.get(f"/games/{game_id}/players")
    assert [player["player_id"] for player in resp.json()] == ["b", "c"]


@pytest.mark.anyio
async def test_delete_game_and_series(client: AsyncClient):
    game_id = await _create_game(client)
    resp = await client.delete(f"/admin/games/{game_id}")
    assert resp.status_code == 403

    resp = await client.delete(f"/admin/games/{game_id}", headers=ADMIN)
    assert resp.status_code == 200
    assert (await client.get(f"/games/{game_id}")).status_code == 404
    assert (await client.delete(f"/admin/games/{game_id}", headers=ADMIN)).status_code == 404

    resp = await client.post("/admin/games", json=_game_payload(regularity="weekly"), headers=ADMIN)
    games = resp.json()["games"]

    resp = await client.delete(f"/admin/games/{games[3]['game_id']}/delete-series", headers=ADMIN)
    assert resp.status_code == 200
    body = resp.json()
    assert body["series_id"] == "TF0001"
    assert len(body["deleted_game_ids"]) == 26
    assert (await client.get(f"/games/{games[0]['game_id']}")).status_code == 404

    one_off = await _create_game(client)
    resp = await client.delete(f"/admin/games/{one_off}/delete-series", headers=ADMIN)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "This is not part of a weekly series"
