"""Allocation policy presets for team generation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, Iterable, Optional


logger = logging.getLogger(__name__)

_POLICY_ENV = "FOOTY_BALANCE_POLICY"
_DEFAULT_POLICY = "always_balance"


@dataclass(frozen=True)
class AllocationRules:
    name: str
    # None balances overall ratings on every equal-size pick; an int only
    # balances once the totals differ by more than the threshold.
    balance_threshold: Optional[int]
    high_beef_min: int = 3
    low_beef_rating: int = 2


_ALLOCATION_RULES: Dict[str, AllocationRules] = {
    "always_balance": AllocationRules(
        name="always_balance",
        balance_threshold=None,
    ),
    "threshold": AllocationRules(
        name="threshold",
        balance_threshold=10,
    ),
}


def iter_rules() -> Iterable[AllocationRules]:
    """Return an iterator of all configured policies."""

    return _ALLOCATION_RULES.values()


def get_rules(name: str) -> AllocationRules:
    """Fetch a policy by name, raising KeyError if missing."""

    key = name.strip().lower().replace("-", "_")
    if key not in _ALLOCATION_RULES:
        raise KeyError(f"No allocation policy configured for name={name!r}")
    return _ALLOCATION_RULES[key]


def default_rules() -> AllocationRules:
    """Resolve the policy named by ``FOOTY_BALANCE_POLICY`` or the default."""

    raw = os.getenv(_POLICY_ENV)
    if not raw:
        return _ALLOCATION_RULES[_DEFAULT_POLICY]
    try:
        return get_rules(raw)
    except KeyError:
        logger.warning("Invalid policy for %s: %s; using default %s", _POLICY_ENV, raw, _DEFAULT_POLICY)
        return _ALLOCATION_RULES[_DEFAULT_POLICY]
