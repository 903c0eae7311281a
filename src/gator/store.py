from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from .errors import (
    DuplicateFeedError,
    DuplicateFollowError,
    DuplicateUserError,
    NoFeedsError,
    StoreError,
    UnknownFeedError,
    UnknownUserError,
)

logger = logging.getLogger("gator.store")


# -----------------------------
# Utilities
# -----------------------------

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso_dt(dt: datetime) -> str:
    # Fixed-width microsecond ISO strings sort lexicographically in time order.
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def utc_now_iso() -> str:
    return to_iso_dt(utc_now())


# -----------------------------
# Data shapes
# -----------------------------

@dataclass(frozen=True)
class User:
    id: int
    name: str
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class Feed:
    id: int
    name: str
    url: str
    user_id: int
    last_fetched_at: Optional[str]  # ISO UTC, None = never fetched
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class FeedWithOwner:
    name: str
    url: str
    username: str


@dataclass(frozen=True)
class FeedFollow:
    id: int
    user_id: int
    feed_id: int
    created_at: str
    updated_at: str
    user_name: str
    feed_name: str


# -----------------------------
# SQLite schema
# -----------------------------

SCHEMA_SQL = """
PRAGMA journal_mode = WAL;
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS users (
  id          INTEGER PRIMARY KEY AUTOINCREMENT,
  name        TEXT NOT NULL UNIQUE,
  created_at  TEXT NOT NULL,
  updated_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS feeds (
  id              INTEGER PRIMARY KEY AUTOINCREMENT,
  name            TEXT NOT NULL,
  url             TEXT NOT NULL UNIQUE,
  user_id         INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
  last_fetched_at TEXT,
  created_at      TEXT NOT NULL,
  updated_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS feed_follows (
  id          INTEGER PRIMARY KEY AUTOINCREMENT,
  user_id     INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
  feed_id     INTEGER NOT NULL REFERENCES feeds(id) ON DELETE CASCADE,
  created_at  TEXT NOT NULL,
  updated_at  TEXT NOT NULL,

  UNIQUE(user_id, feed_id)
);

CREATE INDEX IF NOT EXISTS idx_feeds_last_fetched_at ON feeds(last_fetched_at);
CREATE INDEX IF NOT EXISTS idx_feed_follows_user_id  ON feed_follows(user_id);
"""

FEED_COLUMNS = "id, name, url, user_id, last_fetched_at, created_at, updated_at"


def _user_from_row(r: sqlite3.Row) -> User:
    return User(int(r["id"]), str(r["name"]), str(r["created_at"]), str(r["updated_at"]))


def _feed_from_row(r: sqlite3.Row) -> Feed:
    return Feed(
        id=int(r["id"]),
        name=str(r["name"]),
        url=str(r["url"]),
        user_id=int(r["user_id"]),
        last_fetched_at=r["last_fetched_at"],
        created_at=str(r["created_at"]),
        updated_at=str(r["updated_at"]),
    )


# -----------------------------
# SQLite store / API
# -----------------------------

class Store:
    def __init__(self, db_path: str):
        self.db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise StoreError(f"cannot open {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON;")
            yield conn
            conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        except sqlite3.Error as exc:
            conn.rollback()
            raise StoreError(str(exc)) from exc
        finally:
            conn.close()

    def _init_db(self) -> None:
        os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
        with self._conn() as conn:
            conn.executescript(SCHEMA_SQL)

    # ---- Users ----

    def create_user(self, name: str) -> User:
        name = name.strip()
        if not name:
            raise StoreError("User name is empty.")

        now = utc_now_iso()
        try:
            with self._conn() as conn:
                cur = conn.execute(
                    "INSERT INTO users(name, created_at, updated_at) VALUES(?,?,?)",
                    (name, now, now),
                )
                return User(int(cur.lastrowid), name, now, now)
        except sqlite3.IntegrityError as exc:
            raise DuplicateUserError(name) from exc

    def get_user(self, name: str) -> User:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT id, name, created_at, updated_at FROM users WHERE name = ?",
                (name,),
            ).fetchone()
        if row is None:
            raise UnknownUserError(name)
        return _user_from_row(row)

    def get_users(self) -> List[str]:
        with self._conn() as conn:
            rows = conn.execute("SELECT name FROM users ORDER BY name").fetchall()
            return [str(r["name"]) for r in rows]

    def reset_users(self) -> int:
        """Delete every user; feeds and follows go with them (ON DELETE CASCADE)."""
        with self._conn() as conn:
            cur = conn.execute("DELETE FROM users")
            deleted = int(cur.rowcount)
        logger.info("reset: deleted %d user(s)", deleted)
        return deleted

    # ---- Feeds ----

    def add_feed(self, name: str, url: str, user_id: int, follow: bool = False) -> Feed:
        """
        Insert a feed. With follow=True the owner's follow row is written
        in the same transaction, so either both land or neither does.
        """
        url = url.strip()
        if not url:
            raise StoreError("Feed URL is empty.")

        now = utc_now_iso()
        try:
            with self._conn() as conn:
                cur = conn.execute(
                    "INSERT INTO feeds(name, url, user_id, created_at, updated_at) VALUES(?,?,?,?,?)",
                    (name, url, user_id, now, now),
                )
                feed_id = int(cur.lastrowid)
                if follow:
                    conn.execute(
                        "INSERT INTO feed_follows(user_id, feed_id, created_at, updated_at) VALUES(?,?,?,?)",
                        (user_id, feed_id, now, now),
                    )
                return Feed(feed_id, name, url, user_id, None, now, now)
        except sqlite3.IntegrityError as exc:
            if "feeds.url" in str(exc):
                raise DuplicateFeedError(url) from exc
            raise StoreError(str(exc)) from exc

    def get_feeds(self) -> List[FeedWithOwner]:
        with self._conn() as conn:
            rows = conn.execute(
                """
                SELECT f.name, f.url, u.name AS username
                FROM feeds f
                JOIN users u ON u.id = f.user_id
                ORDER BY f.id
                """
            ).fetchall()
            return [FeedWithOwner(str(r["name"]), str(r["url"]), str(r["username"])) for r in rows]

    def get_feed_by_url(self, url: str) -> Feed:
        with self._conn() as conn:
            row = conn.execute(f"SELECT {FEED_COLUMNS} FROM feeds WHERE url = ?", (url.strip(),)).fetchone()
        if row is None:
            raise UnknownFeedError(url)
        return _feed_from_row(row)

    def feeds_to_fetch(self, limit: Optional[int] = None) -> List[Feed]:
        """
        Feeds in fetch-priority order: never-fetched first, then oldest
        last_fetched_at, ties broken by id.
        """
        sql = f"""
        SELECT {FEED_COLUMNS}
        FROM feeds
        ORDER BY last_fetched_at IS NOT NULL, last_fetched_at ASC, id ASC
        """
        params: List[int] = []
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        with self._conn() as conn:
            return [_feed_from_row(r) for r in conn.execute(sql, params).fetchall()]

    def next_feed_to_fetch(self) -> Feed:
        feeds = self.feeds_to_fetch(limit=1)
        if not feeds:
            raise NoFeedsError()
        return feeds[0]

    def mark_feed_fetched(self, feed_id: int, fetched_at: Optional[datetime] = None) -> None:
        """
        Record a fetch. last_fetched_at only ever moves forward: an older
        timestamp than the stored one leaves the row untouched.
        """
        ts = to_iso_dt(fetched_at or utc_now())
        with self._conn() as conn:
            cur = conn.execute(
                """
                UPDATE feeds SET last_fetched_at = ?, updated_at = ?
                WHERE id = ? AND (last_fetched_at IS NULL OR last_fetched_at < ?)
                """,
                (ts, ts, int(feed_id), ts),
            )
            if cur.rowcount == 0:
                exists = conn.execute("SELECT 1 FROM feeds WHERE id = ?", (int(feed_id),)).fetchone()
                if exists is None:
                    raise StoreError(f"feed id={feed_id} does not exist")
                logger.debug("feed id=%s already marked at or after %s", feed_id, ts)

    # ---- Follows ----

    def create_feed_follow(self, user_id: int, feed_id: int) -> FeedFollow:
        now = utc_now_iso()
        with self._conn() as conn:
            names = conn.execute(
                """
                SELECT u.name AS user_name, f.name AS feed_name
                FROM users u, feeds f
                WHERE u.id = ? AND f.id = ?
                """,
                (user_id, feed_id),
            ).fetchone()
            if names is None:
                raise StoreError(f"no user id={user_id} or feed id={feed_id}")

            cur = conn.execute(
                "INSERT OR IGNORE INTO feed_follows(user_id, feed_id, created_at, updated_at) VALUES(?,?,?,?)",
                (user_id, feed_id, now, now),
            )
            if cur.rowcount == 0:
                raise DuplicateFollowError(str(names["user_name"]), str(names["feed_name"]))

            return FeedFollow(
                id=int(cur.lastrowid),
                user_id=user_id,
                feed_id=feed_id,
                created_at=now,
                updated_at=now,
                user_name=str(names["user_name"]),
                feed_name=str(names["feed_name"]),
            )

    def remove_feed_follow(self, feed_id: int, user_id: int) -> int:
        with self._conn() as conn:
            cur = conn.execute(
                "DELETE FROM feed_follows WHERE feed_id = ? AND user_id = ?",
                (int(feed_id), int(user_id)),
            )
            return int(cur.rowcount)

    def get_feed_names_by_user(self, user_id: int) -> List[str]:
        with self._conn() as conn:
            rows = conn.execute(
                """
                SELECT f.name
                FROM feed_follows ff
                JOIN feeds f ON f.id = ff.feed_id
                WHERE ff.user_id = ?
                ORDER BY ff.id
                """,
                (int(user_id),),
            ).fetchall()
            return [str(r["name"]) for r in rows]
