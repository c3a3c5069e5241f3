from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, Field


class TeamPlayerResponse(BaseModel):
    player_id: str
    name: str
    squad_number: int | None
    overall: int
    is_goalkeeper: bool


class TeamStatsResponse(BaseModel):
    overall: int
    defense: int
    fitness: int


class AllocationStepResponse(BaseModel):
    player_id: str
    side: Literal["red", "blue"]
    rule: str


class TeamSheetResponse(BaseModel):
    game_id: str
    policy: str
    generated_at: datetime
    red_team: List[TeamPlayerResponse]
    blue_team: List[TeamPlayerResponse]
    red_stats: TeamStatsResponse
    blue_stats: TeamStatsResponse
    steps: List[AllocationStepResponse] | None = None
    message: str | None = None


class BeefEntry(BaseModel):
    player_id: str
    target_player_id: str
    rating: int = Field(..., ge=1, le=5)


class DisciplineEntry(BaseModel):
    player_id: str
    offence: str = "on_time"


class CompleteGameRequest(BaseModel):
    winning_team: Literal["red", "blue", "draw"] | None = None
    beef_entries: List[BeefEntry] = Field(default_factory=list)
    discipline_records: List[DisciplineEntry] = Field(default_factory=list)
    motm_nominees: List[str] | None = None


class CompleteGameResponse(BaseModel):
    game_id: str
    winning_team: str | None
    motm_nominees: List[str]
    beef_rows_written: int
    discipline_points_recorded: int
