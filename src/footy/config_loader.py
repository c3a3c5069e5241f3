"""Saved CLI settings: CSV column mappings plus a preferred allocation policy."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

from footy.config import get_rules
from footy.ingest.roster import DEFAULT_BEEF_MAPPING, DEFAULT_ROSTER_MAPPING


def _check_keys(kind: str, mapping: Mapping[str, str], known: Mapping[str, str]) -> None:
    unknown = sorted(set(mapping) - set(known))
    if unknown:
        raise ValueError(
            f"Unknown {kind} mapping keys: {', '.join(unknown)} (expected one of {', '.join(sorted(known))})"
        )


@dataclass
class MappingProfile:
    roster_mapping: Dict[str, str] = field(default_factory=dict)
    beef_mapping: Dict[str, str] = field(default_factory=dict)
    policy: Optional[str] = None

    def __post_init__(self) -> None:
        _check_keys("roster", self.roster_mapping, DEFAULT_ROSTER_MAPPING)
        _check_keys("beef", self.beef_mapping, DEFAULT_BEEF_MAPPING)
        if self.policy:
            try:
                self.policy = get_rules(self.policy).name
            except KeyError:
                raise ValueError(f"Unknown allocation policy {self.policy!r}") from None

    def merged(self, overrides: "MappingProfile") -> "MappingProfile":
        """Layer ``overrides`` on top of this profile; explicit values win."""

        return MappingProfile(
            roster_mapping={**self.roster_mapping, **overrides.roster_mapping},
            beef_mapping={**self.beef_mapping, **overrides.beef_mapping},
            policy=overrides.policy or self.policy,
        )

    @classmethod
    def load(cls, path: Path) -> "MappingProfile":
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"{path}: profile must be a JSON object")
        return cls(
            roster_mapping=dict(data.get("roster_mapping") or {}),
            beef_mapping=dict(data.get("beef_mapping") or {}),
            policy=data.get("policy"),
        )

    def save(self, path: Path) -> None:
        payload = {
            "policy": self.policy,
            "roster_mapping": self.roster_mapping,
            "beef_mapping": self.beef_mapping,
        }
        path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
