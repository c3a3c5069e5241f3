"""Split a confirmed roster into balanced Red and Blue teams."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import reduce
import logging
from typing import Callable, Dict, FrozenSet, Iterable, Literal, Optional, Sequence, Tuple

from footy.config import AllocationRules, default_rules
from footy.models import BeefRelation, PlayerCandidate


logger = logging.getLogger("uvicorn.error")
logger.setLevel(logging.INFO)

Side = Literal["red", "blue"]

RED: Side = "red"
BLUE: Side = "blue"

GOALKEEPER_SEED = "goalkeeper_seed"


class AllocationError(ValueError):
    """Raised when a roster cannot be split into teams."""


class InsufficientCandidates(AllocationError):
    def __init__(self, count: int):
        super().__init__(f"Need at least 2 players to generate teams (got {count})")
        self.count = count


@dataclass(frozen=True)
class TeamStats:
    overall: int = 0
    defense: int = 0
    fitness: int = 0

    @classmethod
    def from_players(cls, players: Iterable[PlayerCandidate]) -> "TeamStats":
        overall = defense = fitness = 0
        for player in players:
            overall += player.overall_rating
            defense += player.defending_rating
            fitness += player.fitness_rating
        return cls(overall=overall, defense=defense, fitness=fitness)

    def add(self, player: PlayerCandidate) -> "TeamStats":
        return TeamStats(
            overall=self.overall + player.overall_rating,
            defense=self.defense + player.defending_rating,
            fitness=self.fitness + player.fitness_rating,
        )


@dataclass(frozen=True)
class TeamState:
    """Teams built so far; every pick returns a new state."""

    red: Tuple[PlayerCandidate, ...] = ()
    blue: Tuple[PlayerCandidate, ...] = ()
    red_stats: TeamStats = field(default_factory=TeamStats)
    blue_stats: TeamStats = field(default_factory=TeamStats)

    def members(self, side: Side) -> Tuple[PlayerCandidate, ...]:
        return self.red if side == RED else self.blue

    def member_ids(self, side: Side) -> FrozenSet[str]:
        return frozenset(player.player_id for player in self.members(side))

    def add(self, side: Side, player: PlayerCandidate) -> "TeamState":
        if side == RED:
            return TeamState(
                red=self.red + (player,),
                blue=self.blue,
                red_stats=self.red_stats.add(player),
                blue_stats=self.blue_stats,
            )
        return TeamState(
            red=self.red,
            blue=self.blue + (player,),
            red_stats=self.red_stats,
            blue_stats=self.blue_stats.add(player),
        )


@dataclass(frozen=True)
class BeefIndex:
    """Undirected beef lookup restricted to the current candidates."""

    ratings: Dict[FrozenSet[str], int] = field(default_factory=dict)

    @classmethod
    def build(cls, relations: Iterable[BeefRelation], candidate_ids: Iterable[str]) -> "BeefIndex":
        known = set(candidate_ids)
        ratings: Dict[FrozenSet[str], int] = {}
        for relation in relations:
            if relation.from_player == relation.to_player:
                continue
            if relation.from_player not in known or relation.to_player not in known:
                continue
            key = frozenset((relation.from_player, relation.to_player))
            ratings[key] = max(ratings.get(key, 0), relation.rating)
        return cls(ratings=ratings)

    def rating(self, player_id: str, other_id: str) -> int:
        return self.ratings.get(frozenset((player_id, other_id)), 0)

    def touches(
        self,
        player: PlayerCandidate,
        team: Sequence[PlayerCandidate],
        predicate: Callable[[int], bool],
    ) -> bool:
        return any(predicate(self.rating(player.player_id, member.player_id)) for member in team)


@dataclass(frozen=True)
class Decision:
    side: Side
    rule: str


@dataclass(frozen=True)
class AllocationStep:
    player_id: str
    side: Side
    rule: str


@dataclass(frozen=True)
class AllocationResult:
    red_team: Tuple[PlayerCandidate, ...]
    blue_team: Tuple[PlayerCandidate, ...]
    red_stats: TeamStats
    blue_stats: TeamStats
    policy: str
    steps: Tuple[AllocationStep, ...] = ()

    @property
    def red_ids(self) -> list[str]:
        return [player.player_id for player in self.red_team]

    @property
    def blue_ids(self) -> list[str]:
        return [player.player_id for player in self.blue_team]

    def team_of(self, player_id: str) -> Optional[Side]:
        if player_id in self.red_ids:
            return RED
        if player_id in self.blue_ids:
            return BLUE
        return None


_Rule = Callable[[TeamState, PlayerCandidate, BeefIndex, AllocationRules], Optional[Side]]


def _prefer(red_hit: bool, blue_hit: bool, *, towards: bool) -> Optional[Side]:
    """Pick a side when exactly one team matches; ``towards`` joins it, else avoids it."""

    if red_hit == blue_hit:
        return None
    if towards:
        return RED if red_hit else BLUE
    return BLUE if red_hit else RED


def _size_balance(state: TeamState, player: PlayerCandidate, beef: BeefIndex, rules: AllocationRules) -> Optional[Side]:
    if len(state.red) > len(state.blue):
        return BLUE
    if len(state.blue) > len(state.red):
        return RED
    return None


def _high_beef(state: TeamState, player: PlayerCandidate, beef: BeefIndex, rules: AllocationRules) -> Optional[Side]:
    is_high = lambda rating: rating >= rules.high_beef_min
    return _prefer(
        beef.touches(player, state.red, is_high),
        beef.touches(player, state.blue, is_high),
        towards=False,
    )


def _overall_balance(state: TeamState, player: PlayerCandidate, beef: BeefIndex, rules: AllocationRules) -> Optional[Side]:
    red_total = state.red_stats.overall
    blue_total = state.blue_stats.overall
    if rules.balance_threshold is None:
        return RED if red_total <= blue_total else BLUE
    if abs(red_total - blue_total) > rules.balance_threshold:
        return RED if red_total < blue_total else BLUE
    return None


def _pair_preference(state: TeamState, player: PlayerCandidate, beef: BeefIndex, rules: AllocationRules) -> Optional[Side]:
    red_ids = state.member_ids(RED)
    blue_ids = state.member_ids(BLUE)
    red_pair = bool(player.pairs & red_ids)
    blue_pair = bool(player.pairs & blue_ids)
    if red_pair and not blue_pair and not player.avoids & red_ids:
        return RED
    if blue_pair and not red_pair and not player.avoids & blue_ids:
        return BLUE
    return None


def _avoid_preference(state: TeamState, player: PlayerCandidate, beef: BeefIndex, rules: AllocationRules) -> Optional[Side]:
    return _prefer(
        bool(player.avoids & state.member_ids(RED)),
        bool(player.avoids & state.member_ids(BLUE)),
        towards=False,
    )


def _defense_fitness(state: TeamState, player: PlayerCandidate, beef: BeefIndex, rules: AllocationRules) -> Optional[Side]:
    red, blue = state.red_stats, state.blue_stats
    if red.defense < blue.defense or red.fitness < blue.fitness:
        return RED
    if blue.defense < red.defense or blue.fitness < red.fitness:
        return BLUE
    return None


def _low_beef(state: TeamState, player: PlayerCandidate, beef: BeefIndex, rules: AllocationRules) -> Optional[Side]:
    is_low = lambda rating: rating == rules.low_beef_rating
    return _prefer(
        beef.touches(player, state.red, is_low),
        beef.touches(player, state.blue, is_low),
        towards=False,
    )


def _snake_draft(state: TeamState, player: PlayerCandidate, beef: BeefIndex, rules: AllocationRules) -> Optional[Side]:
    return RED if len(state.red) <= len(state.blue) else BLUE


RULE_CHAIN: Tuple[Tuple[str, _Rule], ...] = (
    ("size_balance", _size_balance),
    ("high_beef", _high_beef),
    ("overall_balance", _overall_balance),
    ("pair_preference", _pair_preference),
    ("avoid_preference", _avoid_preference),
    ("defense_fitness", _defense_fitness),
    ("low_beef", _low_beef),
    ("snake_draft", _snake_draft),
)


def choose_side(
    state: TeamState,
    player: PlayerCandidate,
    beef: BeefIndex,
    rules: AllocationRules,
) -> Decision:
    """Evaluate the rule chain for one player; the first definite answer wins."""

    for name, rule in RULE_CHAIN:
        side = rule(state, player, beef, rules)
        if side is not None:
            return Decision(side=side, rule=name)
    raise AssertionError("snake draft always decides")


def sort_candidates(candidates: Iterable[PlayerCandidate]) -> list[PlayerCandidate]:
    """Order by overall rating, highest first; ties keep their input order."""

    return sorted(candidates, key=lambda player: -player.overall_rating)


def allocate(
    candidates: Iterable[PlayerCandidate],
    beef: Iterable[BeefRelation] = (),
    rules: Optional[AllocationRules] = None,
) -> AllocationResult:
    roster = list(candidates)
    if len(roster) < 2:
        raise InsufficientCandidates(len(roster))

    seen: set[str] = set()
    for player in roster:
        if player.player_id in seen:
            raise AllocationError(f"Duplicate player id {player.player_id!r} in roster")
        seen.add(player.player_id)

    rules = rules or default_rules()
    ordered = sort_candidates(roster)
    goalkeepers = [player for player in ordered if player.is_goalkeeper]
    outfield = [player for player in ordered if not player.is_goalkeeper]
    beef_index = BeefIndex.build(beef, seen)

    state = TeamState()
    steps: Tuple[AllocationStep, ...] = ()
    for side, keeper in zip((RED, BLUE), goalkeepers):
        state = state.add(side, keeper)
        steps += (AllocationStep(player_id=keeper.player_id, side=side, rule=GOALKEEPER_SEED),)

    # Surplus keepers play outfield and are picked last.
    queue = outfield + goalkeepers[2:]
    logger.info(
        "Allocating %d players (%d seeded keepers) with %s policy",
        len(roster),
        min(len(goalkeepers), 2),
        rules.name,
    )

    def _pick(
        acc: Tuple[TeamState, Tuple[AllocationStep, ...]],
        player: PlayerCandidate,
    ) -> Tuple[TeamState, Tuple[AllocationStep, ...]]:
        current, trail = acc
        decision = choose_side(current, player, beef_index, rules)
        logger.debug(
            "%s -> %s by %s (red %d / blue %d)",
            player.display_name,
            decision.side,
            decision.rule,
            len(current.red),
            len(current.blue),
        )
        step = AllocationStep(player_id=player.player_id, side=decision.side, rule=decision.rule)
        return current.add(decision.side, player), trail + (step,)

    state, steps = reduce(_pick, queue, (state, steps))

    logger.info(
        "Teams generated: red=%d (overall %d) blue=%d (overall %d)",
        len(state.red),
        state.red_stats.overall,
        len(state.blue),
        state.blue_stats.overall,
    )
    return AllocationResult(
        red_team=state.red,
        blue_team=state.blue,
        red_stats=state.red_stats,
        blue_stats=state.blue_stats,
        policy=rules.name,
        steps=steps,
    )
