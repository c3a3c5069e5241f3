"""Post-game bookkeeping: discipline tiers, MOTM nominees and beef."""

from .discipline import (
    NextTier,
    is_game_visible,
    next_tier_threshold,
    offence_for,
    tier_for_points,
    total_points,
    visibility_hours,
)
from .motm import MAX_NOMINEES, mirror_beef, seed_motm_nominees

__all__ = [
    "MAX_NOMINEES",
    "NextTier",
    "is_game_visible",
    "mirror_beef",
    "next_tier_threshold",
    "offence_for",
    "seed_motm_nominees",
    "tier_for_points",
    "total_points",
    "visibility_hours",
]
