"""Pydantic models for API I/O."""

from .games import (
    AddPlayerRequest,
    DeleteSeriesResponse,
    DropOutRequest,
    GameCreateRequest,
    GameCreateResponse,
    GamePlayerResponse,
    GameResponse,
    PreferencesRequest,
    RegistrationRequest,
    RegistrationResponse,
)
from .players import (
    DisciplineHistoryResponse,
    DisciplineRecordResponse,
    DisciplineRequest,
    NextTierResponse,
    PlayerCreateRequest,
    PlayerResponse,
    PlayerStatsRequest,
)
from .teams import (
    AllocationStepResponse,
    BeefEntry,
    CompleteGameRequest,
    CompleteGameResponse,
    DisciplineEntry,
    TeamPlayerResponse,
    TeamSheetResponse,
    TeamStatsResponse,
)

__all__ = [
    "AddPlayerRequest",
    "AllocationStepResponse",
    "BeefEntry",
    "CompleteGameRequest",
    "CompleteGameResponse",
    "DeleteSeriesResponse",
    "DisciplineEntry",
    "DisciplineHistoryResponse",
    "DisciplineRecordResponse",
    "DisciplineRequest",
    "DropOutRequest",
    "GameCreateRequest",
    "GameCreateResponse",
    "GamePlayerResponse",
    "GameResponse",
    "NextTierResponse",
    "PlayerCreateRequest",
    "PlayerResponse",
    "PlayerStatsRequest",
    "PreferencesRequest",
    "RegistrationRequest",
    "RegistrationResponse",
    "TeamPlayerResponse",
    "TeamSheetResponse",
    "TeamStatsResponse",
]
