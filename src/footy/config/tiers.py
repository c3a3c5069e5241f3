"""Discipline tier, visibility and offence tables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Tuple


@dataclass(frozen=True)
class TierBand:
    tier: str
    max_points: int | None
    visibility_hours: int


# Ordered best to worst; max_points is inclusive, None is open-ended.
TIER_BANDS: Tuple[TierBand, ...] = (
    TierBand(tier="gold", max_points=0, visibility_hours=28 * 24),
    TierBand(tier="silver", max_points=3, visibility_hours=72),
    TierBand(tier="bronze", max_points=6, visibility_hours=24),
    TierBand(tier="white", max_points=11, visibility_hours=0),
    TierBand(tier="black", max_points=None, visibility_hours=0),
)

DEFAULT_TIER = "silver"
ADMIN_ROLES = frozenset({"admin", "superadmin"})
DISCIPLINE_WINDOW_GAMES = 10


@dataclass(frozen=True)
class Offence:
    code: str
    label: str
    points: int
    warnings: int


OFFENCES: Mapping[str, Offence] = {
    "on_time": Offence(code="on_time", label="On Time", points=0, warnings=0),
    "late_drop": Offence(code="late_drop", label="Late Drop Out", points=2, warnings=0),
    "5_10_late": Offence(code="5_10_late", label="5-10 Min Late", points=3, warnings=1),
    "10_late": Offence(code="10_late", label="10+ Min Late", points=5, warnings=2),
    "no_show": Offence(code="no_show", label="No Show", points=7, warnings=3),
}


def get_band(tier: str) -> TierBand:
    """Fetch the band for a tier name, raising KeyError if missing."""

    key = tier.strip().lower()
    for band in TIER_BANDS:
        if band.tier == key:
            return band
    raise KeyError(f"Unknown tier {tier!r}")
