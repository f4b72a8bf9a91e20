"""
Local session state: the owner's credentials and the set of walks already
reported, kept as two independent records in one SQLite file.

    settings        key/value rows (username, password, token)
    reported_walks  one row per reported walk id; rows are only ever added
"""

from __future__ import annotations

import logging
import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import FrozenSet, Iterable

from wagapi.models import WalkID

logger = logging.getLogger(__name__)

ReportedSet = FrozenSet[WalkID]

_CREDENTIAL_KEYS = ("username", "password", "token")


class PersistenceError(Exception):
    """The settings file could not be opened, read or written."""


@dataclass(frozen=True)
class Credentials:
    username: str = ""
    password: str = ""
    token: str = ""


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SessionStore:
    def __init__(self, path: str) -> None:
        self.path = path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        try:
            parent = os.path.dirname(self.path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            conn = sqlite3.connect(self.path)
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f"Cannot open settings file {self.path}: {e}") from e
        try:
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
        except sqlite3.Error as e:
            conn.close()
            raise PersistenceError(f"Cannot open settings file {self.path}: {e}") from e
        return conn

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS settings (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    );
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS reported_walks (
                        walk_id INTEGER PRIMARY KEY,
                        reported_at_utc TEXT NOT NULL
                    );
                    """
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot initialise settings file {self.path}: {e}") from e
        finally:
            conn.close()

    def load(self) -> ReportedSet:
        """Return every walk id reported by a previous successful run."""
        conn = self._connect()
        try:
            rows = conn.execute("SELECT walk_id FROM reported_walks;").fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot read reported walks from {self.path}: {e}") from e
        finally:
            conn.close()
        return frozenset(int(row[0]) for row in rows)

    def save(self, reported: Iterable[WalkID]) -> None:
        """
        Record walk ids as reported, in a single transaction.

        Ids already present keep their original timestamp. Nothing is ever
        deleted, so saving a smaller set than load() returned is harmless.

        Raises:
            PersistenceError: if the transaction cannot be committed; the
                file is left as it was
        """
        ts = utc_now_iso()
        rows = [(int(walk_id), ts) for walk_id in reported]
        conn = self._connect()
        try:
            with conn:
                conn.executemany(
                    """
                    INSERT OR IGNORE INTO reported_walks (walk_id, reported_at_utc)
                    VALUES (?, ?);
                    """,
                    rows,
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot save reported walks to {self.path}: {e}") from e
        finally:
            conn.close()
        logger.debug("Saved %d reported walk ids to %s", len(rows), self.path)

    def load_credentials(self) -> Credentials:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT key, value FROM settings WHERE key IN (?, ?, ?);",
                _CREDENTIAL_KEYS,
            ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot read credentials from {self.path}: {e}") from e
        finally:
            conn.close()
        return Credentials(**{key: value for key, value in rows})

    def save_credentials(self, credentials: Credentials) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.executemany(
                    """
                    INSERT INTO settings (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value;
                    """,
                    [
                        ("username", credentials.username),
                        ("password", credentials.password),
                        ("token", credentials.token),
                    ],
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot save credentials to {self.path}: {e}") from e
        finally:
            conn.close()
