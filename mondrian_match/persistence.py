from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
import sqlite3
import time

SCHEMA_VERSION = 1
LEADERBOARD_KEY = "mondrian_leaderboard"
LEADERBOARD_SIZE = 5
DB_PATH_ENV = "MONDRIAN_DB_PATH"

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    score: int
    date: str

    def to_dict(self) -> dict[str, object]:
        return {"score": int(self.score), "date": str(self.date)}


def default_db_path() -> Path:
    explicit = os.environ.get(DB_PATH_ENV)
    if explicit:
        return Path(explicit).expanduser()
    return Path.home() / ".mondrian_match.sqlite3"


def open_db(path: Path) -> sqlite3.Connection:
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time()))


def _local_date() -> str:
    return time.strftime("%Y-%m-%d", time.localtime(time.time()))


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


def _parse_entries(raw: str | None) -> list[LeaderboardEntry]:
    if raw is None:
        return []
    try:
        payload = json.loads(raw)
    except ValueError:
        logger.warning("leaderboard value is not valid JSON; treating as empty")
        return []
    if not isinstance(payload, list):
        return []

    entries: list[LeaderboardEntry] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        try:
            score = int(item.get("score"))
        except (TypeError, ValueError):
            continue
        entries.append(LeaderboardEntry(score=score, date=str(item.get("date", ""))))
    return entries


class LeaderboardStore:
    """Top-N leaderboard kept as one JSON list under a single named key.

    Every write rewrites the whole list: append, sort by score descending,
    truncate to ``size``.
    """

    def __init__(self, path: Path, *, key: str = LEADERBOARD_KEY, size: int = LEADERBOARD_SIZE) -> None:
        if size <= 0:
            raise ValueError("size must be > 0")
        self._path = path
        self._key = key
        self._size = int(size)

    @property
    def path(self) -> Path:
        return self._path

    def entries(self) -> list[LeaderboardEntry]:
        conn = open_db(self._path)
        try:
            row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (self._key,)).fetchone()
        finally:
            conn.close()
        return _parse_entries(None if row is None else str(row[0]))

    def record(self, score: int, *, date: str | None = None) -> list[LeaderboardEntry]:
        """Add a finished game's score and return the rewritten leaderboard."""

        entry = LeaderboardEntry(score=int(score), date=_local_date() if date is None else str(date))
        conn = open_db(self._path)
        try:
            with conn:
                row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (self._key,)).fetchone()
                board = _parse_entries(None if row is None else str(row[0]))
                board.append(entry)
                board.sort(key=lambda e: e.score, reverse=True)
                board = board[: self._size]
                conn.execute(
                    """
                    INSERT INTO kv_store(key, value, updated_at_utc) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                        updated_at_utc = excluded.updated_at_utc
                    """,
                    (self._key, json.dumps([e.to_dict() for e in board]), _utc_now_iso()),
                )
        finally:
            conn.close()

        logger.info("leaderboard updated with score %d (%d entries)", entry.score, len(board))
        return board
