"""Canonical player models shared across ingestion and allocator layers."""

from __future__ import annotations

from typing import FrozenSet, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.config import ConfigDict


Position = Literal["goalkeeper", "outfield"]

GOALKEEPER: Position = "goalkeeper"
OUTFIELD: Position = "outfield"


def position_from_text(text: Optional[str]) -> Position:
    """Map a free-text position preference onto goalkeeper/outfield."""

    if text and "gk" in text.lower():
        return GOALKEEPER
    return OUTFIELD


class PlayerCandidate(BaseModel):
    """Snapshot of one confirmed player for a single allocation run."""

    player_id: str = Field(..., min_length=1)
    display_name: str
    overall_rating: int = Field(default=0, ge=0)
    defending_rating: int = Field(default=0, ge=0)
    fitness_rating: int = Field(default=0, ge=0)
    goalkeeper_rating: int = Field(default=0, ge=0)
    position_preference: Position = OUTFIELD
    pairs: FrozenSet[str] = Field(default_factory=frozenset)
    avoids: FrozenSet[str] = Field(default_factory=frozenset)
    squad_number: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    @field_validator(
        "overall_rating",
        "defending_rating",
        "fitness_rating",
        "goalkeeper_rating",
        mode="before",
    )
    @classmethod
    def _missing_rating_is_zero(cls, value):
        return 0 if value is None else value

    @field_validator("position_preference", mode="before")
    @classmethod
    def _normalize_position(cls, value):
        if value in (GOALKEEPER, OUTFIELD):
            return value
        return position_from_text(value)

    @field_validator("pairs", "avoids", mode="before")
    @classmethod
    def _drop_empty_targets(cls, value):
        if value is None:
            return frozenset()
        return frozenset(str(item) for item in value if item not in (None, ""))

    @model_validator(mode="before")
    @classmethod
    def _drop_self_targets(cls, data):
        if not isinstance(data, dict):
            return data
        own_id = str(data.get("player_id"))
        cleaned = dict(data)
        for key in ("pairs", "avoids"):
            targets = cleaned.get(key)
            if targets:
                cleaned[key] = [target for target in targets if str(target) != own_id]
        return cleaned

    @property
    def is_goalkeeper(self) -> bool:
        return self.position_preference == GOALKEEPER


class BeefRelation(BaseModel):
    """Directed antagonism score recorded between two players."""

    from_player: str = Field(..., min_length=1)
    to_player: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)

    model_config = ConfigDict(frozen=True)

    @property
    def is_high(self) -> bool:
        return self.rating >= 3

    @property
    def is_low(self) -> bool:
        return self.rating == 2
