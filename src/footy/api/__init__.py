"""REST API for bookings and team generation."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from fastapi import FastAPI, HTTPException, Query, Request

from footy.allocator import AllocationStep, InsufficientCandidates, allocate
from footy.api.schemas import (
    AddPlayerRequest,
    AllocationStepResponse,
    CompleteGameRequest,
    CompleteGameResponse,
    DeleteSeriesResponse,
    DisciplineHistoryResponse,
    DisciplineRecordResponse,
    DisciplineRequest,
    DropOutRequest,
    GameCreateRequest,
    GameCreateResponse,
    GamePlayerResponse,
    GameResponse,
    NextTierResponse,
    PlayerCreateRequest,
    PlayerResponse,
    PlayerStatsRequest,
    PreferencesRequest,
    RegistrationRequest,
    RegistrationResponse,
    TeamPlayerResponse,
    TeamSheetResponse,
    TeamStatsResponse,
)
from footy.config import ADMIN_ROLES, DEFAULT_TIER, default_rules, get_rules
from footy.ingest import rows_to_candidates
from footy.matchday import (
    MAX_NOMINEES,
    mirror_beef,
    next_tier_threshold,
    offence_for,
    seed_motm_nominees,
    tier_for_points,
    total_points,
)
from footy.models import BeefRelation
from footy.persistence import (
    GameRecord,
    GameStore,
    NotFound,
    PlayerProfile,
    Registration,
    StoreError,
    TeamSheet,
)


def _require_admin(request: Request) -> str:
    role = (request.headers.get("x-role") or "").strip().lower()
    if role not in ADMIN_ROLES:
        raise HTTPException(status_code=403, detail="Admin access required")
    return role


def _role(request: Request) -> str:
    return (request.headers.get("x-role") or "player").strip().lower()


def _store_error(exc: StoreError) -> HTTPException:
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def game_to_response(game: GameRecord) -> GameResponse:
    return GameResponse(
        game_id=game.game_id,
        series_id=game.series_id,
        game_date=game.game_date,
        venue=game.venue,
        max_players=game.max_players,
        cost_per_player=game.cost_per_player,
        format=game.format,
        status=game.status,
        teams_generated=game.teams_generated,
        winning_team=game.winning_team,
        confirmed_players=game.confirmed_players,
    )


def player_to_response(player: PlayerProfile, tier: str) -> PlayerResponse:
    return PlayerResponse(
        player_id=player.player_id,
        full_name=player.full_name,
        alias=player.alias,
        squad_number=player.squad_number,
        overall_rating=player.overall_rating,
        defending_rating=player.defending_rating,
        fitness_rating=player.fitness_rating,
        goalkeeper_rating=player.goalkeeper_rating,
        tier=tier,
    )


def registration_to_response(registration: Registration) -> RegistrationResponse:
    return RegistrationResponse(
        game_id=registration.game_id,
        player_id=registration.player_id,
        status=registration.status,
        position_preference=registration.position_preference,
        pairs=registration.pairs,
        avoids=registration.avoids,
    )


def sheet_to_response(
    sheet: TeamSheet,
    *,
    steps: Sequence[AllocationStep] | None = None,
    message: str | None = None,
) -> TeamSheetResponse:
    return TeamSheetResponse(
        game_id=sheet.game_id,
        policy=sheet.policy,
        generated_at=sheet.generated_at,
        red_team=[TeamPlayerResponse.model_validate(player) for player in sheet.red],
        blue_team=[TeamPlayerResponse.model_validate(player) for player in sheet.blue],
        red_stats=TeamStatsResponse.model_validate(sheet.red_stats),
        blue_stats=TeamStatsResponse.model_validate(sheet.blue_stats),
        steps=[
            AllocationStepResponse(player_id=step.player_id, side=step.side, rule=step.rule)
            for step in steps
        ] if steps is not None else None,
        message=message,
    )


def create_app() -> FastAPI:
    app = FastAPI(title="footy bookings")
    store = GameStore(Path(__file__).resolve().parent.parent / "footy.sqlite")
    app.state.store = store

    def _fetch_game_or_404(game_id: str) -> GameRecord:
        game = store.get_game(game_id)
        if game is None:
            raise HTTPException(status_code=404, detail="Game not found")
        return game

    def _fetch_player_or_404(player_id: str) -> PlayerProfile:
        player = store.get_player(player_id)
        if player is None:
            raise HTTPException(status_code=404, detail="Player not found")
        return player

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    # Players ----------------------------------------------------------------

    @app.post("/players", response_model=PlayerResponse, status_code=201)
    async def create_player(payload: PlayerCreateRequest) -> PlayerResponse:
        try:
            player = store.add_player(
                full_name=payload.full_name,
                alias=payload.alias,
                squad_number=payload.squad_number,
                player_id=payload.player_id,
            )
        except StoreError as exc:
            raise _store_error(exc) from exc
        return player_to_response(player, store.player_tier(player.player_id))

    @app.get("/players/{player_id}", response_model=PlayerResponse)
    async def get_player(player_id: str) -> PlayerResponse:
        player = _fetch_player_or_404(player_id)
        return player_to_response(player, store.player_tier(player_id))

    @app.put("/admin/players/{player_id}/stats", response_model=PlayerResponse)
    async def update_stats(player_id: str, payload: PlayerStatsRequest, request: Request) -> PlayerResponse:
        _require_admin(request)
        try:
            player = store.update_ratings(player_id, payload.model_dump(exclude_none=True))
        except StoreError as exc:
            raise _store_error(exc) from exc
        return player_to_response(player, store.player_tier(player_id))

    # Discipline -------------------------------------------------------------

    @app.post("/admin/discipline")
    async def add_discipline(payload: DisciplineRequest, request: Request) -> dict[str, str]:
        _require_admin(request)
        _fetch_player_or_404(payload.player_id)
        store.add_discipline(
            payload.player_id,
            points=payload.points,
            reason=payload.reason,
            game_id=payload.game_id,
        )
        return {
            "message": "Discipline points added",
            "tier": store.player_tier(payload.player_id),
        }

    @app.get("/players/{player_id}/discipline", response_model=DisciplineHistoryResponse)
    async def discipline_history(player_id: str) -> DisciplineHistoryResponse:
        _fetch_player_or_404(player_id)
        records = store.discipline_history(player_id)
        points = total_points(record.points for record in records)
        next_tier = next_tier_threshold(points)
        return DisciplineHistoryResponse(
            records=[
                DisciplineRecordResponse(
                    points=record.points,
                    reason=record.reason,
                    game_id=record.game_id,
                    recorded_at=record.recorded_at,
                )
                for record in records
            ],
            total_points=points,
            current_tier=tier_for_points(points),
            next_tier_at=NextTierResponse(
                points=next_tier.points,
                tier=next_tier.tier,
                direction=next_tier.direction,
            ),
        )

    # Games ------------------------------------------------------------------

    @app.post("/admin/games", response_model=GameCreateResponse)
    async def create_game(payload: GameCreateRequest, request: Request) -> GameCreateResponse:
        _require_admin(request)
        games = store.create_game(
            game_date=payload.game_date,
            venue=payload.venue,
            max_players=payload.max_players,
            cost_per_player=payload.cost_per_player,
            format=payload.format,
            weekly=payload.regularity == "weekly",
        )
        series_id = games[0].series_id.split("-")[0] if games and games[0].series_id else None
        return GameCreateResponse(games=[game_to_response(game) for game in games], series_id=series_id)

    @app.get("/games", response_model=list[GameResponse])
    async def list_games(
        request: Request,
        player_id: str | None = Query(None),
        limit: int = Query(100, ge=1, le=500),
    ) -> list[GameResponse]:
        role = _role(request)
        tier = DEFAULT_TIER
        if player_id:
            _fetch_player_or_404(player_id)
            tier = store.player_tier(player_id)
        games = store.list_games(tier=tier, role=role, limit=limit)
        return [game_to_response(game) for game in games]

    @app.get("/games/{game_id}", response_model=GameResponse)
    async def get_game(game_id: str) -> GameResponse:
        return game_to_response(_fetch_game_or_404(game_id))

    @app.post("/games/{game_id}/register", response_model=RegistrationResponse)
    async def register(game_id: str, payload: RegistrationRequest) -> RegistrationResponse:
        try:
            registration = store.register(
                game_id,
                payload.player_id,
                position_preference=payload.position,
                pairs=payload.pairs,
                avoids=payload.avoids,
            )
        except StoreError as exc:
            raise _store_error(exc) from exc
        return registration_to_response(registration)

    @app.put("/games/{game_id}/preferences", response_model=RegistrationResponse)
    async def update_preferences(game_id: str, payload: PreferencesRequest) -> RegistrationResponse:
        try:
            registration = store.update_preferences(
                game_id,
                payload.player_id,
                position_preference=payload.position,
                pairs=payload.pairs,
                avoids=payload.avoids,
            )
        except StoreError as exc:
            raise _store_error(exc) from exc
        return registration_to_response(registration)

    @app.post("/games/{game_id}/drop-out")
    async def drop_out(game_id: str, payload: DropOutRequest) -> dict[str, str]:
        try:
            store.drop_out(game_id, payload.player_id)
        except StoreError as exc:
            raise _store_error(exc) from exc
        return {"message": "Successfully dropped out"}

    @app.get("/games/{game_id}/players", response_model=list[GamePlayerResponse])
    async def game_players(game_id: str) -> list[GamePlayerResponse]:
        _fetch_game_or_404(game_id)
        return [
            GamePlayerResponse(
                player_id=row.player_id,
                full_name=row.full_name,
                alias=row.alias,
                squad_number=row.squad_number,
                position=row.position_preference,
                pairs=[target for target in row.pairs or [] if target],
                avoids=[target for target in row.avoids or [] if target],
            )
            for row in store.game_players(game_id)
        ]

    @app.post("/admin/games/{game_id}/add-player", response_model=RegistrationResponse)
    async def add_player_to_game(game_id: str, payload: AddPlayerRequest, request: Request) -> RegistrationResponse:
        _require_admin(request)
        try:
            registration = store.add_to_game(game_id, payload.player_id)
        except StoreError as exc:
            raise _store_error(exc) from exc
        return registration_to_response(registration)

    @app.delete("/admin/games/{game_id}/remove-player/{player_id}")
    async def remove_player_from_game(game_id: str, player_id: str, request: Request) -> dict[str, str]:
        _require_admin(request)
        _fetch_game_or_404(game_id)
        try:
            store.remove_from_game(game_id, player_id)
        except StoreError as exc:
            raise _store_error(exc) from exc
        return {"message": "Player removed"}

    @app.delete("/admin/games/{game_id}")
    async def delete_game(game_id: str, request: Request) -> dict[str, str]:
        _require_admin(request)
        try:
            confirmed = store.delete_game(game_id)
        except StoreError as exc:
            raise _store_error(exc) from exc
        return {"message": f"Game deleted. {confirmed} confirmed players removed."}

    @app.delete("/admin/games/{game_id}/delete-series", response_model=DeleteSeriesResponse)
    async def delete_series(game_id: str, request: Request) -> DeleteSeriesResponse:
        _require_admin(request)
        try:
            series_id, deleted = store.delete_series(game_id)
        except StoreError as exc:
            raise _store_error(exc) from exc
        if deleted:
            message = f"Deleted {len(deleted)} future games from series {series_id}. Past games preserved."
        else:
            message = "No future games to delete in this series"
        return DeleteSeriesResponse(series_id=series_id, deleted_game_ids=deleted, message=message)

    # Teams ------------------------------------------------------------------

    @app.post("/admin/games/{game_id}/generate-teams", response_model=TeamSheetResponse)
    async def generate_teams(
        game_id: str,
        request: Request,
        policy: str | None = Query(None),
    ) -> TeamSheetResponse:
        _require_admin(request)
        _fetch_game_or_404(game_id)
        try:
            rules = get_rules(policy) if policy else default_rules()
        except KeyError as exc:
            raise HTTPException(status_code=400, detail=exc.args[0]) from exc

        candidates, _ = rows_to_candidates(store.confirmed_rows(game_id))
        beef = store.list_beef([candidate.player_id for candidate in candidates])
        try:
            result = allocate(candidates, beef, rules)
        except InsufficientCandidates as exc:
            raise HTTPException(status_code=400, detail="Need at least 2 players to generate teams") from exc

        sheet = store.save_teams(game_id, result)
        return sheet_to_response(sheet, steps=result.steps, message="Teams generated successfully")

    @app.get("/games/{game_id}/teams", response_model=TeamSheetResponse)
    async def get_teams(game_id: str) -> TeamSheetResponse:
        _fetch_game_or_404(game_id)
        sheet = store.get_teams(game_id)
        if sheet is None:
            raise HTTPException(status_code=404, detail="Teams not generated")
        return sheet_to_response(sheet)

    @app.post("/admin/games/{game_id}/complete", response_model=CompleteGameResponse)
    async def complete_game(game_id: str, payload: CompleteGameRequest, request: Request) -> CompleteGameResponse:
        _require_admin(request)
        _fetch_game_or_404(game_id)

        beef: list[BeefRelation] = []
        for entry in payload.beef_entries:
            if entry.player_id == entry.target_player_id:
                raise HTTPException(status_code=400, detail="Cannot create beef between same player")
            beef.append(
                BeefRelation(
                    from_player=entry.player_id,
                    to_player=entry.target_player_id,
                    rating=entry.rating,
                )
            )

        discipline: list[tuple[str, int, str]] = []
        for record in payload.discipline_records:
            try:
                offence = offence_for(record.offence)
            except KeyError as exc:
                raise HTTPException(status_code=400, detail=exc.args[0]) from exc
            discipline.append((record.player_id, offence.points, offence.label))

        if payload.motm_nominees is not None:
            nominees = payload.motm_nominees[:MAX_NOMINEES]
        else:
            sheet = store.get_teams(game_id)
            nominees = seed_motm_nominees(sheet.red_ids, sheet.blue_ids, payload.winning_team) if sheet else []

        try:
            stored_nominees = store.complete_game(
                game_id,
                winning_team=payload.winning_team,
                beef=beef,
                discipline=discipline,
                nominees=nominees,
            )
        except StoreError as exc:
            raise _store_error(exc) from exc
        return CompleteGameResponse(
            game_id=game_id,
            winning_team=payload.winning_team,
            motm_nominees=stored_nominees,
            beef_rows_written=len(mirror_beef(beef)),
            discipline_points_recorded=sum(points for _, points, _ in discipline),
        )

    return app
