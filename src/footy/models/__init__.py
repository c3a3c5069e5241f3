"""Player and relationship models."""

from .player import GOALKEEPER, OUTFIELD, BeefRelation, PlayerCandidate, Position, position_from_text

__all__ = [
    "GOALKEEPER",
    "OUTFIELD",
    "BeefRelation",
    "PlayerCandidate",
    "Position",
    "position_from_text",
]
