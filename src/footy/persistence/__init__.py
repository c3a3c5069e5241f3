"""Persistence layer for players, games, registrations and team sheets."""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import tempfile
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple
from uuid import uuid4

from footy.allocator import AllocationResult
from footy.config import DEFAULT_TIER, DISCIPLINE_WINDOW_GAMES
from footy.ingest import RegistrationRow, beef_rows_to_relations
from footy.matchday import is_game_visible, mirror_beef, tier_for_points, total_points
from footy.models import BeefRelation


logger = logging.getLogger(__name__)

SERIES_WEEKS = 26


class StoreError(RuntimeError):
    """Raised when a write would break a booking rule."""


class NotFound(StoreError):
    """Raised when a write targets a missing game, player or registration."""


@dataclass
class PlayerProfile:
    player_id: str
    full_name: str
    alias: Optional[str]
    squad_number: Optional[int]
    overall_rating: int
    defending_rating: int
    fitness_rating: int
    goalkeeper_rating: int
    created_at: datetime

    @property
    def display_name(self) -> str:
        return self.alias or self.full_name


@dataclass
class GameRecord:
    game_id: str
    series_id: Optional[str]
    game_date: datetime
    venue: str
    max_players: int
    cost_per_player: float
    format: str
    status: str
    teams_generated: bool
    winning_team: Optional[str]
    confirmed_players: int
    created_at: datetime


@dataclass
class Registration:
    registration_id: int
    game_id: str
    player_id: str
    status: str
    position_preference: str
    pairs: List[str]
    avoids: List[str]
    registered_at: datetime


@dataclass
class TeamSheet:
    game_id: str
    policy: str
    generated_at: datetime
    red: List[dict]
    blue: List[dict]
    red_stats: dict
    blue_stats: dict

    @property
    def red_ids(self) -> List[str]:
        return [player["player_id"] for player in self.red]

    @property
    def blue_ids(self) -> List[str]:
        return [player["player_id"] for player in self.blue]


@dataclass
class DisciplineRecord:
    record_id: int
    player_id: str
    game_id: Optional[str]
    points: int
    reason: str
    recorded_at: datetime


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class GameStore:
    """Simple SQLite-backed store for the booking side of the league."""

    def __init__(self, db_path: Path | str):
        self._use_uri = False
        env_db = os.getenv('FOOTY_DB_PATH')
        if env_db:
            if env_db.startswith('file:'):
                self.db_path = env_db
                self._use_uri = True
            else:
                self.db_path = Path(env_db)
        else:
            self.db_path = Path(db_path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        try:
            if isinstance(self.db_path, Path):
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(self.db_path)
            else:
                conn = sqlite3.connect(self.db_path, uri=self._use_uri)
        except sqlite3.OperationalError:
            fallback_dir = Path(tempfile.gettempdir()) / 'footy-runtime'
            fallback_dir.mkdir(parents=True, exist_ok=True)
            fallback = fallback_dir / 'footy.sqlite'
            logger.warning("Unable to open %s; falling back to %s", self.db_path, fallback)
            conn = sqlite3.connect(fallback)
            self.db_path = fallback
            self._use_uri = False
            self._create_schema(conn)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            self._create_schema(conn)

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS players (
                id TEXT PRIMARY KEY,
                full_name TEXT NOT NULL,
                alias TEXT,
                squad_number INTEGER,
                overall_rating INTEGER NOT NULL DEFAULT 0,
                defending_rating INTEGER NOT NULL DEFAULT 0,
                fitness_rating INTEGER NOT NULL DEFAULT 0,
                goalkeeper_rating INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS games (
                id TEXT PRIMARY KEY,
                series_id TEXT,
                game_date TEXT NOT NULL,
                venue TEXT NOT NULL,
                max_players INTEGER NOT NULL,
                cost_per_player REAL NOT NULL DEFAULT 0,
                format TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'open',
                teams_generated INTEGER NOT NULL DEFAULT 0,
                winning_team TEXT,
                completed_at TEXT,
                created_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS registrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                game_id TEXT NOT NULL REFERENCES games(id) ON DELETE CASCADE,
                player_id TEXT NOT NULL REFERENCES players(id),
                status TEXT NOT NULL,
                position_preference TEXT NOT NULL DEFAULT 'outfield',
                registered_at TEXT NOT NULL,
                UNIQUE (game_id, player_id)
            );
            CREATE TABLE IF NOT EXISTS registration_preferences (
                registration_id INTEGER NOT NULL REFERENCES registrations(id) ON DELETE CASCADE,
                target_player_id TEXT NOT NULL,
                preference_type TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS beef (
                player_id TEXT NOT NULL,
                target_player_id TEXT NOT NULL,
                rating INTEGER NOT NULL,
                updated_at TEXT NOT NULL,
                PRIMARY KEY (player_id, target_player_id)
            );
            CREATE TABLE IF NOT EXISTS team_sheets (
                game_id TEXT PRIMARY KEY REFERENCES games(id) ON DELETE CASCADE,
                policy TEXT NOT NULL,
                red_json TEXT NOT NULL,
                blue_json TEXT NOT NULL,
                stats_json TEXT NOT NULL,
                generated_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS discipline_records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                player_id TEXT NOT NULL,
                game_id TEXT,
                points INTEGER NOT NULL,
                reason TEXT NOT NULL,
                recorded_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS motm_nominees (
                game_id TEXT NOT NULL REFERENCES games(id) ON DELETE CASCADE,
                player_id TEXT NOT NULL,
                PRIMARY KEY (game_id, player_id)
            );
            """
        )
        conn.commit()

    # Players -----------------------------------------------------------------

    def add_player(
        self,
        *,
        full_name: str,
        alias: Optional[str] = None,
        squad_number: Optional[int] = None,
        player_id: Optional[str] = None,
        ratings: Mapping[str, int] | None = None,
    ) -> PlayerProfile:
        player_id = player_id or uuid4().hex
        full_name = full_name.strip()
        alias = (alias or "").strip() or (full_name.split() or [""])[0] or None
        ratings = dict(ratings or {})
        now = datetime.now(timezone.utc)
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO players (
                        id, full_name, alias, squad_number, overall_rating,
                        defending_rating, fitness_rating, goalkeeper_rating, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        player_id,
                        full_name,
                        alias,
                        squad_number,
                        int(ratings.get("overall_rating", 0)),
                        int(ratings.get("defending_rating", 0)),
                        int(ratings.get("fitness_rating", 0)),
                        int(ratings.get("goalkeeper_rating", 0)),
                        now.isoformat(),
                    ),
                )
                conn.commit()
        except sqlite3.IntegrityError as exc:
            raise StoreError(f"Player {player_id} already exists") from exc
        player = self.get_player(player_id)
        assert player is not None
        return player

    def get_player(self, player_id: str) -> Optional[PlayerProfile]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM players WHERE id = ?", (player_id,)).fetchone()
        if row is None:
            return None
        return self._player_row_to_record(row)

    def update_ratings(self, player_id: str, ratings: Mapping[str, Optional[int]]) -> PlayerProfile:
        allowed = ("overall_rating", "defending_rating", "fitness_rating", "goalkeeper_rating", "squad_number")
        updates = {key: value for key, value in ratings.items() if key in allowed and value is not None}
        if updates:
            assignments = ", ".join(f"{key} = ?" for key in updates)
            with self._connect() as conn:
                cursor = conn.execute(
                    f"UPDATE players SET {assignments} WHERE id = ?",
                    (*updates.values(), player_id),
                )
                conn.commit()
                if cursor.rowcount == 0:
                    raise NotFound(f"Player {player_id} not found")
        player = self.get_player(player_id)
        if player is None:
            raise NotFound(f"Player {player_id} not found")
        return player

    # Games -------------------------------------------------------------------

    def create_game(
        self,
        *,
        game_date: datetime,
        venue: str,
        max_players: int,
        cost_per_player: float = 0.0,
        format: str = "5v5",
        weekly: bool = False,
    ) -> List[GameRecord]:
        """Create a one-off game, or a weekly series of ``SERIES_WEEKS`` games."""

        game_date = _as_utc(game_date)
        now = datetime.now(timezone.utc).isoformat()
        created: List[str] = []
        with self._connect() as conn:
            if weekly:
                # Continue from the highest series number on record.
                highest = conn.execute(
                    "SELECT MAX(CAST(substr(series_id, 3, 4) AS INTEGER)) FROM games WHERE series_id IS NOT NULL"
                ).fetchone()[0]
                base_series = f"TF{(highest or 0) + 1:04d}"
                schedule = [
                    (game_date + timedelta(weeks=week), f"{base_series}-{week + 1:02d}")
                    for week in range(SERIES_WEEKS)
                ]
            else:
                schedule = [(game_date, None)]
            for when, series_id in schedule:
                game_id = uuid4().hex
                conn.execute(
                    """
                    INSERT INTO games (
                        id, series_id, game_date, venue, max_players,
                        cost_per_player, format, status, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, 'open', ?)
                    """,
                    (game_id, series_id, when.isoformat(), venue, max_players, cost_per_player, format, now),
                )
                created.append(game_id)
            conn.commit()
        if weekly:
            logger.info("Created weekly series %s with %d games", base_series, len(created))
        return [game for game in (self.get_game(game_id) for game_id in created) if game is not None]

    def get_game(self, game_id: str) -> Optional[GameRecord]:
        with self._connect() as conn:
            row = conn.execute(
                f"{self._GAME_SELECT} WHERE g.id = ?",
                (game_id,),
            ).fetchone()
        if row is None:
            return None
        return self._game_row_to_record(row)

    def list_games(
        self,
        *,
        now: Optional[datetime] = None,
        tier: str = DEFAULT_TIER,
        role: str = "player",
        limit: int = 100,
    ) -> List[GameRecord]:
        now = _as_utc(now or datetime.now(timezone.utc))
        with self._connect() as conn:
            rows = conn.execute(
                f"{self._GAME_SELECT} WHERE g.status != 'cancelled' ORDER BY g.game_date ASC",
            ).fetchall()
        games = [self._game_row_to_record(row) for row in rows]
        visible = [game for game in games if is_game_visible(game.game_date, now=now, tier=tier, role=role)]
        return visible[:limit]

    _GAME_SELECT = """
        SELECT g.*,
               (SELECT COUNT(*) FROM registrations r
                 WHERE r.game_id = g.id AND r.status = 'confirmed') AS confirmed_players
        FROM games g
    """

    # Registrations -----------------------------------------------------------

    def register(
        self,
        game_id: str,
        player_id: str,
        *,
        position_preference: str = "outfield",
        pairs: Iterable[str] = (),
        avoids: Iterable[str] = (),
    ) -> Registration:
        """Register a player; once the game is full the player goes on the backup list."""

        game = self.get_game(game_id)
        if game is None:
            raise NotFound(f"Game {game_id} not found")
        if self.get_player(player_id) is None:
            raise NotFound(f"Player {player_id} not found")
        status = "backup" if game.confirmed_players >= game.max_players else "confirmed"
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO registrations (game_id, player_id, status, position_preference, registered_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (game_id, player_id, status, position_preference or "outfield", now),
                )
                registration_id = cursor.lastrowid
                self._write_preferences(conn, registration_id, pairs, avoids)
                conn.commit()
        except sqlite3.IntegrityError as exc:
            raise StoreError("Already registered") from exc
        registration = self.get_registration(game_id, player_id)
        assert registration is not None
        return registration

    def get_registration(self, game_id: str, player_id: str) -> Optional[Registration]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM registrations WHERE game_id = ? AND player_id = ?",
                (game_id, player_id),
            ).fetchone()
            if row is None:
                return None
            prefs = conn.execute(
                "SELECT target_player_id, preference_type FROM registration_preferences WHERE registration_id = ?",
                (row["id"],),
            ).fetchall()
        return Registration(
            registration_id=row["id"],
            game_id=row["game_id"],
            player_id=row["player_id"],
            status=row["status"],
            position_preference=row["position_preference"],
            pairs=[pref["target_player_id"] for pref in prefs if pref["preference_type"] == "pair"],
            avoids=[pref["target_player_id"] for pref in prefs if pref["preference_type"] == "avoid"],
            registered_at=_parse_dt(row["registered_at"]),
        )

    def update_preferences(
        self,
        game_id: str,
        player_id: str,
        *,
        position_preference: Optional[str] = None,
        pairs: Iterable[str] = (),
        avoids: Iterable[str] = (),
    ) -> Registration:
        registration = self.get_registration(game_id, player_id)
        if registration is None:
            raise NotFound("Not registered for this game")
        with self._connect() as conn:
            if position_preference is not None:
                conn.execute(
                    "UPDATE registrations SET position_preference = ? WHERE id = ?",
                    (position_preference, registration.registration_id),
                )
            conn.execute(
                "DELETE FROM registration_preferences WHERE registration_id = ?",
                (registration.registration_id,),
            )
            self._write_preferences(conn, registration.registration_id, pairs, avoids)
            conn.commit()
        updated = self.get_registration(game_id, player_id)
        assert updated is not None
        return updated

    def drop_out(self, game_id: str, player_id: str) -> None:
        game = self.get_game(game_id)
        if game is None:
            raise NotFound(f"Game {game_id} not found")
        if game.teams_generated:
            raise StoreError("Cannot drop out - teams already generated")
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM registrations WHERE game_id = ? AND player_id = ?",
                (game_id, player_id),
            )
            conn.commit()
        if cursor.rowcount == 0:
            raise NotFound("Not registered for this game")

    def add_to_game(self, game_id: str, player_id: str) -> Registration:
        """Admin add: confirmed as an outfield player regardless of capacity."""

        if self.get_game(game_id) is None:
            raise NotFound(f"Game {game_id} not found")
        if self.get_player(player_id) is None:
            raise NotFound(f"Player {player_id} not found")
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO registrations (game_id, player_id, status, position_preference, registered_at)
                    VALUES (?, ?, 'confirmed', 'outfield', ?)
                    """,
                    (game_id, player_id, datetime.now(timezone.utc).isoformat()),
                )
                conn.commit()
        except sqlite3.IntegrityError as exc:
            raise StoreError("Already registered") from exc
        registration = self.get_registration(game_id, player_id)
        assert registration is not None
        return registration

    def remove_from_game(self, game_id: str, player_id: str) -> None:
        """Admin removal; unlike ``drop_out`` it is allowed after teams are generated."""

        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM registrations WHERE game_id = ? AND player_id = ?",
                (game_id, player_id),
            )
            conn.commit()
        if cursor.rowcount == 0:
            raise NotFound("Not registered for this game")

    def game_players(self, game_id: str) -> List[RegistrationRow]:
        """Confirmed players ordered by squad number (unnumbered last), then alias."""

        rows = self.confirmed_rows(game_id)
        return sorted(
            rows,
            key=lambda row: (row.squad_number is None, row.squad_number or 0, (row.alias or "").lower()),
        )

    def delete_game(self, game_id: str) -> int:
        """Delete a game with its registrations and team sheet; returns confirmed players affected."""

        with self._connect() as conn:
            confirmed = conn.execute(
                "SELECT COUNT(*) FROM registrations WHERE game_id = ? AND status = 'confirmed'",
                (game_id,),
            ).fetchone()[0]
            cursor = conn.execute("DELETE FROM games WHERE id = ?", (game_id,))
            if cursor.rowcount == 0:
                raise NotFound(f"Game {game_id} not found")
            conn.commit()
        logger.info("Deleted game %s (%d confirmed players)", game_id, confirmed)
        return confirmed

    def delete_series(self, game_id: str, *, now: Optional[datetime] = None) -> Tuple[str, List[str]]:
        """Delete the future games of ``game_id``'s weekly series; past games are kept.

        Returns the base series id (``TF0001``) and the deleted game ids.
        """

        game = self.get_game(game_id)
        if game is None:
            raise NotFound(f"Game {game_id} not found")
        if not game.series_id:
            raise StoreError("This is not part of a weekly series")
        base_series = game.series_id.split("-")[0]
        cutoff = _as_utc(now or datetime.now(timezone.utc))
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, game_date FROM games WHERE series_id LIKE ?",
                (f"{base_series}-%",),
            ).fetchall()
            doomed = [row["id"] for row in rows if _parse_dt(row["game_date"]) > cutoff]
            conn.executemany("DELETE FROM games WHERE id = ?", [(doomed_id,) for doomed_id in doomed])
            conn.commit()
        logger.info("Deleted %d future games from series %s", len(doomed), base_series)
        return base_series, doomed

    def confirmed_rows(self, game_id: str) -> List[RegistrationRow]:
        """Confirmed registrations joined with player ratings, in registration order."""

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT r.id AS registration_id, p.id AS player_id, p.full_name, p.alias,
                       p.squad_number, p.overall_rating, p.defending_rating,
                       p.fitness_rating, p.goalkeeper_rating, r.position_preference
                FROM registrations r
                JOIN players p ON p.id = r.player_id
                WHERE r.game_id = ? AND r.status = 'confirmed'
                ORDER BY r.id ASC
                """,
                (game_id,),
            ).fetchall()
            prefs = conn.execute(
                """
                SELECT rp.registration_id, rp.target_player_id, rp.preference_type
                FROM registration_preferences rp
                JOIN registrations r ON r.id = rp.registration_id
                WHERE r.game_id = ?
                """,
                (game_id,),
            ).fetchall()
        targets: dict[Tuple[int, str], List[str]] = {}
        for pref in prefs:
            targets.setdefault((pref["registration_id"], pref["preference_type"]), []).append(
                pref["target_player_id"]
            )
        return [
            RegistrationRow(
                player_id=row["player_id"],
                full_name=row["full_name"],
                alias=row["alias"],
                squad_number=row["squad_number"],
                overall_rating=row["overall_rating"],
                defending_rating=row["defending_rating"],
                fitness_rating=row["fitness_rating"],
                goalkeeper_rating=row["goalkeeper_rating"],
                position_preference=row["position_preference"],
                pairs=targets.get((row["registration_id"], "pair"), []),
                avoids=targets.get((row["registration_id"], "avoid"), []),
            )
            for row in rows
        ]

    # Beef --------------------------------------------------------------------

    def record_beef(self, entries: Iterable[BeefRelation], *, conn: sqlite3.Connection | None = None) -> int:
        """Upsert beef in both directions; returns the number of directed rows written."""

        mirrored = mirror_beef(entries)
        now = datetime.now(timezone.utc).isoformat()
        payload = [(entry.from_player, entry.to_player, entry.rating, now) for entry in mirrored]
        sql = """
            INSERT INTO beef (player_id, target_player_id, rating, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT (player_id, target_player_id)
            DO UPDATE SET rating = excluded.rating, updated_at = excluded.updated_at
        """
        if conn is not None:
            conn.executemany(sql, payload)
            return len(payload)
        with self._connect() as own_conn:
            own_conn.executemany(sql, payload)
            own_conn.commit()
        return len(payload)

    def list_beef(self, player_ids: Optional[Sequence[str]] = None, *, min_rating: int = 2) -> List[BeefRelation]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT player_id, target_player_id, rating FROM beef WHERE rating >= ?",
                (min_rating,),
            ).fetchall()
        wanted = set(player_ids) if player_ids is not None else None
        return beef_rows_to_relations(
            [
                row
                for row in rows
                if wanted is None or (row["player_id"] in wanted and row["target_player_id"] in wanted)
            ]
        )

    # Teams -------------------------------------------------------------------

    def save_teams(self, game_id: str, result: AllocationResult) -> TeamSheet:
        """Replace any previous team sheet for the game and flag teams as generated."""

        def _entries(players) -> List[dict]:
            return [
                {
                    "player_id": player.player_id,
                    "name": player.display_name,
                    "squad_number": player.squad_number,
                    "overall": player.overall_rating,
                    "is_goalkeeper": player.is_goalkeeper,
                }
                for player in players
            ]

        stats = {
            "red": asdict(result.red_stats),
            "blue": asdict(result.blue_stats),
        }
        now = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            cursor = conn.execute("UPDATE games SET teams_generated = 1 WHERE id = ?", (game_id,))
            if cursor.rowcount == 0:
                raise NotFound(f"Game {game_id} not found")
            conn.execute("DELETE FROM team_sheets WHERE game_id = ?", (game_id,))
            conn.execute(
                """
                INSERT INTO team_sheets (game_id, policy, red_json, blue_json, stats_json, generated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    game_id,
                    result.policy,
                    json.dumps(_entries(result.red_team)),
                    json.dumps(_entries(result.blue_team)),
                    json.dumps(stats),
                    now,
                ),
            )
            conn.commit()
        sheet = self.get_teams(game_id)
        assert sheet is not None
        return sheet

    def get_teams(self, game_id: str) -> Optional[TeamSheet]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM team_sheets WHERE game_id = ?", (game_id,)).fetchone()
        if row is None:
            return None
        stats = json.loads(row["stats_json"])
        return TeamSheet(
            game_id=row["game_id"],
            policy=row["policy"],
            generated_at=_parse_dt(row["generated_at"]),
            red=json.loads(row["red_json"]),
            blue=json.loads(row["blue_json"]),
            red_stats=stats["red"],
            blue_stats=stats["blue"],
        )

    # Discipline --------------------------------------------------------------

    def add_discipline(
        self,
        player_id: str,
        *,
        points: int,
        reason: str,
        game_id: Optional[str] = None,
        conn: sqlite3.Connection | None = None,
    ) -> None:
        sql = """
            INSERT INTO discipline_records (player_id, game_id, points, reason, recorded_at)
            VALUES (?, ?, ?, ?, ?)
        """
        params = (player_id, game_id, points, reason, datetime.now(timezone.utc).isoformat())
        if conn is not None:
            conn.execute(sql, params)
            return
        with self._connect() as own_conn:
            own_conn.execute(sql, params)
            own_conn.commit()

    def discipline_history(self, player_id: str, *, limit: int = DISCIPLINE_WINDOW_GAMES) -> List[DisciplineRecord]:
        """Latest ``limit`` records by game date; records without a game use their own timestamp."""

        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT dr.* FROM discipline_records dr
                LEFT JOIN games g ON g.id = dr.game_id
                WHERE dr.player_id = ?
                ORDER BY COALESCE(g.game_date, dr.recorded_at) DESC, dr.id DESC
                LIMIT ?
                """,
                (player_id, limit),
            ).fetchall()
        return [
            DisciplineRecord(
                record_id=row["id"],
                player_id=row["player_id"],
                game_id=row["game_id"],
                points=row["points"],
                reason=row["reason"],
                recorded_at=_parse_dt(row["recorded_at"]),
            )
            for row in rows
        ]

    def player_tier(self, player_id: str) -> str:
        points = total_points(record.points for record in self.discipline_history(player_id))
        return tier_for_points(points)

    # Completion --------------------------------------------------------------

    def complete_game(
        self,
        game_id: str,
        *,
        winning_team: Optional[str],
        beef: Iterable[BeefRelation] = (),
        discipline: Iterable[Tuple[str, int, str]] = (),
        nominees: Iterable[str] = (),
    ) -> List[str]:
        """Close a game: result, mirrored beef, discipline points and MOTM nominees."""

        nominee_ids = list(dict.fromkeys(nominees))
        now = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE games SET status = 'completed', winning_team = ?, completed_at = ? WHERE id = ?",
                (winning_team, now, game_id),
            )
            if cursor.rowcount == 0:
                raise NotFound(f"Game {game_id} not found")
            self.record_beef(beef, conn=conn)
            for player_id, points, reason in discipline:
                if points > 0:
                    self.add_discipline(player_id, points=points, reason=reason, game_id=game_id, conn=conn)
            conn.execute("DELETE FROM motm_nominees WHERE game_id = ?", (game_id,))
            conn.executemany(
                "INSERT INTO motm_nominees (game_id, player_id) VALUES (?, ?)",
                [(game_id, player_id) for player_id in nominee_ids],
            )
            conn.commit()
        logger.info("Completed game %s (winner=%s, %d nominees)", game_id, winning_team, len(nominee_ids))
        return nominee_ids

    def motm_nominees(self, game_id: str) -> List[str]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT player_id FROM motm_nominees WHERE game_id = ? ORDER BY rowid",
                (game_id,),
            ).fetchall()
        return [row["player_id"] for row in rows]

    # Row mapping -------------------------------------------------------------

    def _write_preferences(
        self,
        conn: sqlite3.Connection,
        registration_id: int,
        pairs: Iterable[str],
        avoids: Iterable[str],
    ) -> None:
        payload = [(registration_id, target, "pair") for target in dict.fromkeys(pairs) if target]
        payload += [(registration_id, target, "avoid") for target in dict.fromkeys(avoids) if target]
        conn.executemany(
            """
            INSERT INTO registration_preferences (registration_id, target_player_id, preference_type)
            VALUES (?, ?, ?)
            """,
            payload,
        )

    def _player_row_to_record(self, row: sqlite3.Row) -> PlayerProfile:
        return PlayerProfile(
            player_id=row["id"],
            full_name=row["full_name"],
            alias=row["alias"],
            squad_number=row["squad_number"],
            overall_rating=row["overall_rating"],
            defending_rating=row["defending_rating"],
            fitness_rating=row["fitness_rating"],
            goalkeeper_rating=row["goalkeeper_rating"],
            created_at=_parse_dt(row["created_at"]),
        )

    def _game_row_to_record(self, row: sqlite3.Row) -> GameRecord:
        return GameRecord(
            game_id=row["id"],
            series_id=row["series_id"],
            game_date=_parse_dt(row["game_date"]),
            venue=row["venue"],
            max_players=row["max_players"],
            cost_per_player=row["cost_per_player"],
            format=row["format"],
            status=row["status"],
            teams_generated=bool(row["teams_generated"]),
            winning_team=row["winning_team"],
            confirmed_players=row["confirmed_players"],
            created_at=_parse_dt(row["created_at"]),
        )
