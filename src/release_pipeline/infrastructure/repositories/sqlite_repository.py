"""
SQLite release repository.

Backs the CLI. The compare-and-swap in set_status is a single
conditional UPDATE, so two processes racing to submit the same release
cannot both win.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, List, Optional, Tuple

from ...domain.entities import Release, ReleaseStatus, Track, utcnow
from ...domain.repositories import ReleaseFilter, ReleaseRepository, normalize_order
from ...domain.result import StatusConflictError
from ...domain.state_machine import reason_for
from ...exceptions import StorageError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS releases (
    id TEXT PRIMARY KEY,
    artist_id TEXT NOT NULL,
    title TEXT NOT NULL,
    genre TEXT NOT NULL,
    cover_art_url TEXT,
    status TEXT NOT NULL DEFAULT 'DRAFT',
    processing_error_reason TEXT,
    is_featured INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tracks (
    id TEXT PRIMARY KEY,
    release_id TEXT NOT NULL REFERENCES releases(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    isrc TEXT,
    audio_url TEXT,
    duration REAL,
    track_number INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (release_id, track_number)
);

CREATE INDEX IF NOT EXISTS idx_releases_artist ON releases(artist_id);
CREATE INDEX IF NOT EXISTS idx_releases_status ON releases(status);
CREATE INDEX IF NOT EXISTS idx_tracks_release ON tracks(release_id);
"""

_RELEASE_COLUMNS = """
    r.id, r.artist_id, r.title, r.genre, r.cover_art_url, r.status,
    r.processing_error_reason, r.is_featured, r.created_at, r.updated_at,
    (SELECT COUNT(*) FROM tracks t WHERE t.release_id = r.id) AS track_count
"""


def _row_to_release(row: sqlite3.Row) -> Release:
    return Release(
        id=row["id"],
        artist_id=row["artist_id"],
        title=row["title"],
        genre=row["genre"],
        cover_art_url=row["cover_art_url"],
        status=ReleaseStatus(row["status"]),
        processing_error_reason=row["processing_error_reason"],
        is_featured=bool(row["is_featured"]),
        track_count=row["track_count"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _row_to_track(row: sqlite3.Row) -> Track:
    return Track(
        id=row["id"],
        release_id=row["release_id"],
        title=row["title"],
        isrc=row["isrc"],
        audio_url=row["audio_url"],
        duration=row["duration"],
        track_number=row["track_number"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _where(criteria: ReleaseFilter) -> Tuple[str, List[Any]]:
    clauses, params = [], []
    if criteria.artist_id is not None:
        clauses.append("r.artist_id = ?")
        params.append(criteria.artist_id)
    if criteria.status is not None:
        clauses.append("r.status = ?")
        params.append(criteria.status.value)
    if criteria.is_featured is not None:
        clauses.append("r.is_featured = ?")
        params.append(int(criteria.is_featured))
    if criteria.search:
        # search text is literal, so LIKE wildcards in it are escaped
        clauses.append("(r.title LIKE ? ESCAPE '\\' OR r.genre LIKE ? ESCAPE '\\')")
        params.extend([f"%{_escape_like(criteria.search)}%"] * 2)
    return (" WHERE " + " AND ".join(clauses)) if clauses else "", params


class SQLiteReleaseRepository(ReleaseRepository):
    """Release repository persisted in a SQLite database file."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(f"Release store error: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Initialize the SQLite database with required tables."""
        with self._connection() as conn:
            conn.executescript(SCHEMA)

    def _fetch_release(self, conn: sqlite3.Connection, release_id: str) -> Optional[Release]:
        row = conn.execute(
            f"SELECT {_RELEASE_COLUMNS} FROM releases r WHERE r.id = ?", (release_id,)
        ).fetchone()
        return _row_to_release(row) if row else None

    async def get(self, release_id: str) -> Optional[Release]:
        with self._connection() as conn:
            return self._fetch_release(conn, release_id)

    async def get_tracks(self, release_id: str) -> List[Track]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM tracks WHERE release_id = ? ORDER BY track_number ASC", (release_id,)
            ).fetchall()
        return [_row_to_track(row) for row in rows]

    async def set_status(
        self,
        release_id: str,
        status: ReleaseStatus,
        reason: Optional[str] = None,
        expected: Optional[ReleaseStatus] = None,
    ) -> Optional[Release]:
        sql = "UPDATE releases SET status = ?, processing_error_reason = ?, updated_at = ? WHERE id = ?"
        params: List[Any] = [status.value, reason_for(status, reason), utcnow().isoformat(), release_id]
        if expected is not None:
            sql += " AND status = ?"
            params.append(expected.value)

        with self._connection() as conn:
            cursor = conn.execute(sql, params)
            current = self._fetch_release(conn, release_id)
            if cursor.rowcount == 0 and current is not None:
                raise StatusConflictError(release_id, expected, current.status)
            return current

    async def create(self, release: Release) -> Release:
        with self._connection() as conn:
            conn.execute(
                """INSERT INTO releases
                   (id, artist_id, title, genre, cover_art_url, status,
                    processing_error_reason, is_featured, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    release.id,
                    release.artist_id,
                    release.title,
                    release.genre,
                    release.cover_art_url,
                    release.status.value,
                    reason_for(release.status, release.processing_error_reason),
                    int(release.is_featured),
                    release.created_at.isoformat(),
                    release.updated_at.isoformat(),
                ),
            )
            return self._fetch_release(conn, release.id)

    async def update(self, release: Release) -> Optional[Release]:
        # Status is owned by set_status; the reason only survives on a REJECTED row.
        with self._connection() as conn:
            conn.execute(
                """UPDATE releases
                   SET title = ?, genre = ?, cover_art_url = ?, is_featured = ?,
                       processing_error_reason = CASE WHEN status = 'REJECTED' THEN ? ELSE NULL END,
                       updated_at = ?
                   WHERE id = ?""",
                (
                    release.title,
                    release.genre,
                    release.cover_art_url,
                    int(release.is_featured),
                    release.processing_error_reason,
                    utcnow().isoformat(),
                    release.id,
                ),
            )
            return self._fetch_release(conn, release.id)

    async def delete(self, release_id: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM releases WHERE id = ?", (release_id,))
            return cursor.rowcount > 0

    async def add_track(self, track: Track) -> Track:
        with self._connection() as conn:
            conn.execute(
                """INSERT INTO tracks
                   (id, release_id, title, isrc, audio_url, duration, track_number, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    track.id,
                    track.release_id,
                    track.title,
                    track.isrc,
                    track.audio_url,
                    track.duration,
                    track.track_number,
                    track.created_at.isoformat(),
                    track.updated_at.isoformat(),
                ),
            )
        return track

    async def get_track(self, track_id: str) -> Optional[Track]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM tracks WHERE id = ?", (track_id,)).fetchone()
        return _row_to_track(row) if row else None

    async def delete_track(self, track_id: str) -> bool:
        with self._connection() as conn:
            cursor = conn.execute("DELETE FROM tracks WHERE id = ?", (track_id,))
            return cursor.rowcount > 0

    async def find(
        self,
        criteria: Optional[ReleaseFilter] = None,
        offset: int = 0,
        limit: Optional[int] = None,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> List[Release]:
        where, params = _where(criteria or ReleaseFilter())
        column = normalize_order(order_by)
        collate = " COLLATE NOCASE" if column in ("title", "genre") else ""
        direction = "DESC" if descending else "ASC"

        sql = f"SELECT {_RELEASE_COLUMNS} FROM releases r{where} ORDER BY r.{column}{collate} {direction}"
        sql += " LIMIT ? OFFSET ?"
        params.extend([limit if limit is not None else -1, offset])

        with self._connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_release(row) for row in rows]

    async def count(self, criteria: Optional[ReleaseFilter] = None) -> int:
        where, params = _where(criteria or ReleaseFilter())
        with self._connection() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM releases r{where}", params).fetchone()[0]
