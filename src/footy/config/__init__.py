"""Configuration helpers for allocation policies and discipline tiers."""

from .rules import AllocationRules, default_rules, get_rules, iter_rules
from .tiers import ADMIN_ROLES, DEFAULT_TIER, DISCIPLINE_WINDOW_GAMES, OFFENCES, TIER_BANDS, Offence, TierBand, get_band

__all__ = [
    "ADMIN_ROLES",
    "AllocationRules",
    "DEFAULT_TIER",
    "DISCIPLINE_WINDOW_GAMES",
    "OFFENCES",
    "Offence",
    "TIER_BANDS",
    "TierBand",
    "default_rules",
    "get_band",
    "get_rules",
    "iter_rules",
]
