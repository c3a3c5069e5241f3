"""Discipline points, reliability tiers and game visibility."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from footy.config import ADMIN_ROLES, OFFENCES, TIER_BANDS, Offence, get_band


@dataclass(frozen=True)
class NextTier:
    points: int
    tier: str
    direction: str


def offence_for(code: str) -> Offence:
    if code not in OFFENCES:
        raise KeyError(f"Unknown offence {code!r}")
    return OFFENCES[code]


def total_points(points: Iterable[Optional[int]]) -> int:
    return sum(value or 0 for value in points)


def tier_for_points(points: int) -> str:
    for band in TIER_BANDS:
        if band.max_points is None or points <= band.max_points:
            return band.tier
    return TIER_BANDS[-1].tier


def next_tier_threshold(points: int) -> NextTier:
    """Where the player's tier changes next.

    A clean record can only get worse, so gold reports the point at which it
    drops. Everyone else reports the total they need to get back down to for
    the tier above.
    """

    if points <= 0:
        return NextTier(points=1, tier=TIER_BANDS[1].tier, direction="down")
    for index, band in enumerate(TIER_BANDS):
        if band.max_points is None or points <= band.max_points:
            above = TIER_BANDS[index - 1]
            return NextTier(points=above.max_points or 0, tier=above.tier, direction="up")
    raise AssertionError("last tier band is open-ended")


def visibility_hours(tier: str) -> int:
    return get_band(tier).visibility_hours


def is_game_visible(
    game_date: datetime,
    *,
    now: datetime,
    tier: str,
    role: str = "player",
) -> bool:
    """Whether a player of ``tier`` can see a game starting at ``game_date``."""

    if game_date < now:
        return False
    if role in ADMIN_ROLES:
        return True
    hours = visibility_hours(tier)
    if hours <= 0:
        return False
    return game_date <= now + timedelta(hours=hours)
