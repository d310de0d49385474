import logging
import sqlite3
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from pathlib import Path

from mcp_clipboard.cache import file_preview, remove_cached_file
from mcp_clipboard.config import DEFAULT_LIST_LIMIT, MAX_ITEMS, PREVIEW_LENGTH, PRIVATE_MAX_AGE
from mcp_clipboard.errors import ValidationError
from mcp_clipboard.models import FILE_CONTENT_TYPES, TEXT_CONTENT_TYPES, ClipboardItem, ContentType, StorageStats
from mcp_clipboard.security import sanitize_search_query
from mcp_clipboard.utils import truncate_text

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS clipboard_items (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    content          TEXT NOT NULL,
    content_type     TEXT NOT NULL CHECK(content_type IN ('text', 'html', 'image_file', 'document_file', 'video_file')),
    preview          TEXT NOT NULL,
    is_pinned        INTEGER NOT NULL DEFAULT 0,
    is_private       INTEGER NOT NULL DEFAULT 0,
    created_at       TEXT NOT NULL,
    updated_at       TEXT NOT NULL,
    cached_file_path TEXT,
    original_path    TEXT,
    file_size        INTEGER,
    mime_type        TEXT
);

CREATE INDEX IF NOT EXISTS idx_clipboard_created_at ON clipboard_items(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_clipboard_pinned ON clipboard_items(is_pinned);
CREATE INDEX IF NOT EXISTS idx_clipboard_content_type ON clipboard_items(content_type);

CREATE VIRTUAL TABLE IF NOT EXISTS clipboard_fts USING fts5(content, preview);
"""

# Pinned first, newest first; id breaks created_at ties
ORDER_BY = "ORDER BY is_pinned DESC, created_at DESC, id DESC"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _format_ts(value: datetime) -> str:
    # Fixed width so string order matches time order
    return value.isoformat(timespec="microseconds")


class StorageManager:
    """SQLite-backed clipboard history with full-text search.

    The item table and its FTS5 index are written together inside a single
    transaction for every insert and delete. Non-pinned items are capped at
    ``max_items``; private items expire after ``private_max_age`` seconds.
    """

    def __init__(
        self,
        db_path: str | Path,
        max_items: int = MAX_ITEMS,
        private_max_age: int = PRIVATE_MAX_AGE,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._db_path = str(db_path)
        self._max_items = max_items
        self._private_max_age = private_max_age
        self._clock = clock
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self.init_db()

    def init_db(self) -> None:
        self._conn.executescript(SCHEMA)
        self._conn.commit()

    def insert_text(
        self,
        content: str,
        content_type: ContentType = ContentType.TEXT,
        is_private: bool = False,
    ) -> ClipboardItem:
        if not content or not content.strip():
            raise ValidationError("Content cannot be empty")
        content_type = ContentType(content_type)
        if content_type not in TEXT_CONTENT_TYPES:
            raise ValidationError(f"Unsupported content type for text: {content_type.value}")

        item_id = self._insert(
            content=content,
            content_type=content_type,
            preview=truncate_text(content, PREVIEW_LENGTH),
            is_private=is_private,
        )
        self.purge_old()
        return self.get_item(item_id)

    def insert_file(
        self,
        cached_path: str | Path,
        original_path: str | Path,
        content_type: ContentType,
        mime_type: str,
        file_size: int,
        is_private: bool = False,
    ) -> ClipboardItem:
        """Persist a file-backed item whose bytes are already in the cache.

        The caller is responsible for validating ``original_path`` and for
        copying the file; this only records it.
        """
        content_type = ContentType(content_type)
        if content_type not in FILE_CONTENT_TYPES:
            raise ValidationError(f"Unsupported content type for file: {content_type.value}")

        original = str(original_path)
        item_id = self._insert(
            content=original,
            content_type=content_type,
            preview=truncate_text(file_preview(Path(original).name, content_type, file_size), PREVIEW_LENGTH),
            is_private=is_private,
            cached_file_path=str(cached_path),
            original_path=original,
            file_size=file_size,
            mime_type=mime_type,
        )
        self.purge_old()
        return self.get_item(item_id)

    def _insert(
        self,
        content: str,
        content_type: ContentType,
        preview: str,
        is_private: bool,
        cached_file_path: str | None = None,
        original_path: str | None = None,
        file_size: int | None = None,
        mime_type: str | None = None,
    ) -> int:
        now = _format_ts(self._clock())
        with self._conn:
            cursor = self._conn.execute(
                """INSERT INTO clipboard_items
                   (content, content_type, preview, is_pinned, is_private, created_at, updated_at,
                    cached_file_path, original_path, file_size, mime_type)
                   VALUES (?, ?, ?, 0, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    content,
                    content_type.value,
                    preview,
                    int(is_private),
                    now,
                    now,
                    cached_file_path,
                    original_path,
                    file_size,
                    mime_type,
                ),
            )
            item_id = cursor.lastrowid
            self._conn.execute(
                "INSERT INTO clipboard_fts(rowid, content, preview) VALUES (?, ?, ?)",
                (item_id, content, preview),
            )
        return item_id

    def get_item(self, item_id: int) -> ClipboardItem | None:
        row = self._conn.execute(
            "SELECT * FROM clipboard_items WHERE id = ?", (item_id,)
        ).fetchone()
        return self._row_to_item(row) if row else None

    def list_items(self, limit: int = DEFAULT_LIST_LIMIT, include_private: bool = False) -> list[ClipboardItem]:
        where = "" if include_private else "WHERE is_private = 0"
        rows = self._conn.execute(
            f"SELECT * FROM clipboard_items {where} {ORDER_BY} LIMIT ?",
            (limit,),
        ).fetchall()
        return [self._row_to_item(r) for r in rows]

    def get_latest(self) -> ClipboardItem | None:
        """Most recently created non-private item; pin status is ignored."""
        row = self._conn.execute(
            """SELECT * FROM clipboard_items
               WHERE is_private = 0
               ORDER BY created_at DESC, id DESC
               LIMIT 1"""
        ).fetchone()
        return self._row_to_item(row) if row else None

    def search(self, query: str, limit: int = DEFAULT_LIST_LIMIT) -> list[ClipboardItem]:
        sanitized = sanitize_search_query(query)
        if not sanitized:
            return []
        rows = self._conn.execute(
            """SELECT i.* FROM clipboard_items i
               JOIN clipboard_fts f ON i.id = f.rowid
               WHERE clipboard_fts MATCH ? AND i.is_private = 0
               ORDER BY i.is_pinned DESC, i.created_at DESC, i.id DESC
               LIMIT ?""",
            (sanitized, limit),
        ).fetchall()
        return [self._row_to_item(r) for r in rows]

    def toggle_pin(self, item_id: int) -> bool:
        with self._conn:
            cursor = self._conn.execute(
                "UPDATE clipboard_items SET is_pinned = 1 - is_pinned, updated_at = ? WHERE id = ?",
                (_format_ts(self._clock()), item_id),
            )
        return cursor.rowcount > 0

    def delete_item(self, item_id: int) -> bool:
        row = self._conn.execute(
            "SELECT id, cached_file_path FROM clipboard_items WHERE id = ?", (item_id,)
        ).fetchone()
        if row is None:
            return False
        self._delete_rows([item_id])
        remove_cached_file(row["cached_file_path"])
        return True

    def clear(self, include_pinned: bool = False) -> int:
        """Delete non-pinned items, or everything when ``include_pinned``.

        A full wipe also restarts the id sequence at 1.
        """
        where = "" if include_pinned else "WHERE is_pinned = 0"
        rows = self._conn.execute(
            f"SELECT id, cached_file_path FROM clipboard_items {where}"
        ).fetchall()

        with self._conn:
            if include_pinned:
                self._conn.execute("DELETE FROM clipboard_items")
                self._conn.execute("DELETE FROM clipboard_fts")
                self._conn.execute("DELETE FROM sqlite_sequence WHERE name = 'clipboard_items'")
            else:
                self._delete_rows_in_tx(row["id"] for row in rows)

        for row in rows:
            remove_cached_file(row["cached_file_path"])
        return len(rows)

    def purge_old(self, keep_count: int | None = None) -> int:
        """Evict non-pinned items beyond the newest ``keep_count``."""
        keep = keep_count if keep_count is not None else self._max_items
        rows = self._conn.execute(
            """SELECT id, cached_file_path FROM clipboard_items
               WHERE is_pinned = 0
               ORDER BY created_at DESC, id DESC
               LIMIT -1 OFFSET ?""",
            (keep,),
        ).fetchall()
        if not rows:
            return 0

        for row in rows:
            remove_cached_file(row["cached_file_path"])
        self._delete_rows([row["id"] for row in rows])
        logger.info("Evicted %d items beyond the %d most recent", len(rows), keep)
        return len(rows)

    def expire_private(self, max_age: int | None = None, now: datetime | None = None) -> int:
        """Delete private items older than ``max_age`` seconds, pinned or not."""
        age = max_age if max_age is not None else self._private_max_age
        cutoff = (now or self._clock()) - timedelta(seconds=age)
        rows = self._conn.execute(
            "SELECT id, cached_file_path FROM clipboard_items WHERE is_private = 1 AND created_at < ?",
            (_format_ts(cutoff),),
        ).fetchall()
        if not rows:
            return 0

        for row in rows:
            remove_cached_file(row["cached_file_path"])
        self._delete_rows([row["id"] for row in rows])
        logger.info("Expired %d private items older than %ds", len(rows), age)
        return len(rows)

    def stats(self) -> StorageStats:
        row = self._conn.execute(
            """SELECT COUNT(*) AS total,
                      COALESCE(SUM(is_pinned), 0) AS pinned,
                      COALESCE(SUM(is_private), 0) AS private,
                      COUNT(cached_file_path) AS file_backed,
                      COALESCE(SUM(CASE WHEN cached_file_path IS NOT NULL THEN file_size END), 0) AS cache_size
               FROM clipboard_items"""
        ).fetchone()
        return StorageStats(
            total=row["total"],
            pinned=row["pinned"],
            private=row["private"],
            file_backed=row["file_backed"],
            cache_size_bytes=row["cache_size"],
        )

    def count(self) -> int:
        row = self._conn.execute("SELECT COUNT(*) as cnt FROM clipboard_items").fetchone()
        return row["cnt"]

    def close(self) -> None:
        self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _delete_rows(self, ids: Iterable[int]) -> None:
        with self._conn:
            self._delete_rows_in_tx(ids)

    def _delete_rows_in_tx(self, ids: Iterable[int]) -> None:
        params = [(item_id,) for item_id in ids]
        self._conn.executemany("DELETE FROM clipboard_items WHERE id = ?", params)
        self._conn.executemany("DELETE FROM clipboard_fts WHERE rowid = ?", params)

    def _row_to_item(self, row: sqlite3.Row) -> ClipboardItem:
        return ClipboardItem(
            id=row["id"],
            content=row["content"],
            content_type=ContentType(row["content_type"]),
            preview=row["preview"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            is_pinned=bool(row["is_pinned"]),
            is_private=bool(row["is_private"]),
            cached_file_path=row["cached_file_path"],
            original_path=row["original_path"],
            file_size=row["file_size"],
            mime_type=row["mime_type"],
        )
