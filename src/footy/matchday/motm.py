"""Man-of-the-match nominee seeding and post-game beef handling."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from footy.allocator import BLUE, RED
from footy.models import BeefRelation


MAX_NOMINEES = 99


def seed_motm_nominees(
    red_ids: Sequence[str],
    blue_ids: Sequence[str],
    winning_team: Optional[str],
) -> List[str]:
    """Nominees default to the winners; a draw or unknown result opens it to everyone."""

    winner = (winning_team or "").strip().lower()
    if winner == RED:
        nominees = list(red_ids)
    elif winner == BLUE:
        nominees = list(blue_ids)
    else:
        nominees = list(red_ids) + list(blue_ids)
    return nominees[:MAX_NOMINEES]


def mirror_beef(entries: Iterable[BeefRelation]) -> List[BeefRelation]:
    """Write every beef both ways so a one-sided lookup sees it from either player."""

    strongest: Dict[Tuple[str, str], int] = {}
    for entry in entries:
        if entry.from_player == entry.to_player:
            continue
        for key in ((entry.from_player, entry.to_player), (entry.to_player, entry.from_player)):
            strongest[key] = max(strongest.get(key, 0), entry.rating)
    return [
        BeefRelation(from_player=from_player, to_player=to_player, rating=rating)
        for (from_player, to_player), rating in strongest.items()
    ]
