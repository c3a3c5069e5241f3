from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class PlayerCreateRequest(BaseModel):
    full_name: str = Field(..., min_length=1)
    alias: str | None = None
    squad_number: int | None = Field(default=None, ge=0)
    player_id: str | None = None


class PlayerStatsRequest(BaseModel):
    overall_rating: int | None = Field(default=None, ge=0)
    defending_rating: int | None = Field(default=None, ge=0)
    fitness_rating: int | None = Field(default=None, ge=0)
    goalkeeper_rating: int | None = Field(default=None, ge=0)
    squad_number: int | None = Field(default=None, ge=0)


class PlayerResponse(BaseModel):
    player_id: str
    full_name: str
    alias: str | None
    squad_number: int | None
    overall_rating: int
    defending_rating: int
    fitness_rating: int
    goalkeeper_rating: int
    tier: str


class DisciplineRequest(BaseModel):
    player_id: str
    game_id: str | None = None
    points: int = Field(..., ge=0)
    reason: str = ""


class DisciplineRecordResponse(BaseModel):
    points: int
    reason: str
    game_id: str | None
    recorded_at: datetime


class NextTierResponse(BaseModel):
    points: int
    tier: str
    direction: str


class DisciplineHistoryResponse(BaseModel):
    records: List[DisciplineRecordResponse]
    total_points: int
    current_tier: str
    next_tier_at: NextTierResponse
