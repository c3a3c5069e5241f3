"""Helpers to turn registration data into allocation candidates."""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from footy.models import BeefRelation, PlayerCandidate, position_from_text


logger = logging.getLogger(__name__)

DEFAULT_ROSTER_MAPPING = {
    "player_id": "player_id",
    "full_name": "full_name",
    "alias": "alias",
    "squad_number": "squad_number",
    "overall_rating": "overall",
    "defending_rating": "defending",
    "fitness_rating": "fitness",
    "goalkeeper_rating": "goalkeeper",
    "position_preference": "position",
    "pairs": "pairs",
    "avoids": "avoids",
}

DEFAULT_BEEF_MAPPING = {
    "from_player": "player_id",
    "to_player": "target_player_id",
    "rating": "rating",
}

_ID_LIST_SPLIT = re.compile(r"[\s;,|]+")


class RegistrationRow(BaseModel):
    """One confirmed registration joined with its player's ratings."""

    player_id: str = Field(..., min_length=1)
    full_name: str = ""
    alias: Optional[str] = None
    squad_number: Optional[int] = None
    overall_rating: Optional[int] = None
    defending_rating: Optional[int] = None
    fitness_rating: Optional[int] = None
    goalkeeper_rating: Optional[int] = None
    position_preference: Optional[str] = None
    pairs: List[Optional[str]] | None = None
    avoids: List[Optional[str]] | None = None

    @property
    def display_name(self) -> str:
        alias = (self.alias or "").strip()
        return alias or self.full_name.strip() or self.player_id

    def to_candidate(self) -> PlayerCandidate:
        return PlayerCandidate(
            player_id=self.player_id,
            display_name=self.display_name,
            overall_rating=self.overall_rating,
            defending_rating=self.defending_rating,
            fitness_rating=self.fitness_rating,
            goalkeeper_rating=self.goalkeeper_rating,
            position_preference=position_from_text(self.position_preference),
            pairs=self.pairs,
            avoids=self.avoids,
            squad_number=self.squad_number,
        )


@dataclass(frozen=True)
class RosterReport:
    total_rows: int
    candidates: int
    duplicate_player_ids: List[str]


def rows_to_candidates(rows: Iterable[RegistrationRow]) -> tuple[List[PlayerCandidate], RosterReport]:
    """Project rows onto candidates, highest overall rating first.

    Rows keep their relative order on rating ties, so callers should pass them
    in registration order. A player registered twice keeps the first row.
    """

    candidates: List[PlayerCandidate] = []
    seen: set[str] = set()
    duplicates: List[str] = []
    total = 0
    for row in rows:
        total += 1
        if row.player_id in seen:
            duplicates.append(row.player_id)
            continue
        seen.add(row.player_id)
        candidates.append(row.to_candidate())
    if duplicates:
        logger.warning("Ignoring duplicate registrations for players: %s", ", ".join(duplicates))
    candidates.sort(key=lambda candidate: -candidate.overall_rating)
    report = RosterReport(total_rows=total, candidates=len(candidates), duplicate_player_ids=duplicates)
    return candidates, report


def _parse_rating(raw: Optional[str], *, row_number: int, column: str) -> Optional[int]:
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    try:
        return int(float(text))
    except ValueError:
        raise ValueError(f"row {row_number}: {column} '{raw}' is not numeric") from None


def _parse_id_list(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [token for token in _ID_LIST_SPLIT.split(raw.strip()) if token]


def _column(row: Mapping[str, str], mapping: Mapping[str, str], key: str) -> Optional[str]:
    column = mapping.get(key)
    if column is None:
        return None
    value = row.get(column)
    return value.strip() if value is not None else None


def load_roster_csv(path: Path, *, mapping: Mapping[str, str] | None = None) -> List[RegistrationRow]:
    mapping = {**DEFAULT_ROSTER_MAPPING, **(mapping or {})}
    rows: List[RegistrationRow] = []
    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        # Header is row 1.
        for row_number, raw in enumerate(reader, start=2):
            player_id = _column(raw, mapping, "player_id")
            if not player_id:
                logger.warning("Skipping row %d of %s: missing player id", row_number, path)
                continue
            ratings = {
                key: _parse_rating(_column(raw, mapping, key), row_number=row_number, column=key)
                for key in ("overall_rating", "defending_rating", "fitness_rating", "goalkeeper_rating")
            }
            rows.append(
                RegistrationRow(
                    player_id=player_id,
                    full_name=_column(raw, mapping, "full_name") or "",
                    alias=_column(raw, mapping, "alias"),
                    squad_number=_parse_rating(
                        _column(raw, mapping, "squad_number"), row_number=row_number, column="squad_number"
                    ),
                    position_preference=_column(raw, mapping, "position_preference"),
                    pairs=_parse_id_list(_column(raw, mapping, "pairs")),
                    avoids=_parse_id_list(_column(raw, mapping, "avoids")),
                    **ratings,
                )
            )
    return rows


def load_candidates_csv(path: Path, *, mapping: Mapping[str, str] | None = None) -> List[PlayerCandidate]:
    candidates, _ = rows_to_candidates(load_roster_csv(path, mapping=mapping))
    return candidates


def load_beef_csv(path: Path, *, mapping: Mapping[str, str] | None = None) -> List[BeefRelation]:
    mapping = {**DEFAULT_BEEF_MAPPING, **(mapping or {})}
    relations: List[BeefRelation] = []
    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for row_number, raw in enumerate(reader, start=2):
            from_player = _column(raw, mapping, "from_player")
            to_player = _column(raw, mapping, "to_player")
            rating = _parse_rating(_column(raw, mapping, "rating"), row_number=row_number, column="rating")
            if not from_player or not to_player or rating is None:
                raise ValueError(f"row {row_number}: beef rows need both players and a rating")
            if not 1 <= rating <= 5:
                raise ValueError(f"row {row_number}: beef rating {rating} outside 1-5")
            relations.append(BeefRelation(from_player=from_player, to_player=to_player, rating=rating))
    return relations


def beef_rows_to_relations(rows: Sequence[Mapping[str, object]]) -> List[BeefRelation]:
    """Convert stored ``(player_id, target_player_id, rating)`` rows."""

    return [
        BeefRelation(
            from_player=str(row["player_id"]),
            to_player=str(row["target_player_id"]),
            rating=int(row["rating"]),
        )
        for row in rows
    ]
