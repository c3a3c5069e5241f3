"""Team generation for a single game's confirmed roster."""

from .service import (
    BLUE,
    RED,
    AllocationError,
    AllocationResult,
    AllocationStep,
    InsufficientCandidates,
    TeamStats,
    allocate,
)

__all__ = [
    "BLUE",
    "RED",
    "AllocationError",
    "AllocationResult",
    "AllocationStep",
    "InsufficientCandidates",
    "TeamStats",
    "allocate",
]
