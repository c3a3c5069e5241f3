from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, Field


class GameCreateRequest(BaseModel):
    game_date: datetime
    venue: str = Field(..., min_length=1)
    max_players: int = Field(default=10, ge=2)
    cost_per_player: float = Field(default=0.0, ge=0.0)
    format: str = "5v5"
    regularity: Literal["one-off", "weekly"] = "one-off"


class GameResponse(BaseModel):
    game_id: str
    series_id: str | None
    game_date: datetime
    venue: str
    max_players: int
    cost_per_player: float
    format: str
    status: str
    teams_generated: bool
    winning_team: str | None
    confirmed_players: int


class GameCreateResponse(BaseModel):
    games: List[GameResponse]
    series_id: str | None = None


class RegistrationRequest(BaseModel):
    player_id: str
    position: str = "outfield"
    pairs: List[str] = Field(default_factory=list)
    avoids: List[str] = Field(default_factory=list)


class PreferencesRequest(BaseModel):
    player_id: str
    position: str | None = None
    pairs: List[str] = Field(default_factory=list)
    avoids: List[str] = Field(default_factory=list)


class DropOutRequest(BaseModel):
    player_id: str


class RegistrationResponse(BaseModel):
    game_id: str
    player_id: str
    status: str
    position_preference: str
    pairs: List[str]
    avoids: List[str]


class GamePlayerResponse(BaseModel):
    player_id: str
    full_name: str
    alias: str | None
    squad_number: int | None
    position: str | None
    pairs: List[str]
    avoids: List[str]


class AddPlayerRequest(BaseModel):
    player_id: str


class DeleteSeriesResponse(BaseModel):
    series_id: str
    deleted_game_ids: List[str]
    message: str
