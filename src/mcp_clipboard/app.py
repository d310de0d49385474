import logging
import time
from collections.abc import Callable
from pathlib import Path

from mcp_clipboard.cache import FileCache, classify, mime_type_of
from mcp_clipboard.config import CACHE_DIRNAME, DB_FILENAME, DEFAULT_LIST_LIMIT, MAINTENANCE_INTERVAL
from mcp_clipboard.errors import NotFoundError, RateLimitedError, ValidationError
from mcp_clipboard.models import TEXT_CONTENT_TYPES, ClipboardItem, ContentType, StorageStats
from mcp_clipboard.paths import PathResolver
from mcp_clipboard.security import RateLimiter, validate_path
from mcp_clipboard.storage import StorageManager
from mcp_clipboard.utils import ensure_dirs

logger = logging.getLogger(__name__)

DEFAULT_CLIENT_ID = "default"


class ClipboardApp:
    """Clipboard operations as seen by a tool-dispatch layer.

    Each call is rate limited, then validated, then handed to the storage
    engine. File operations additionally pass through the path resolver and
    the file cache.
    """

    def __init__(
        self,
        resolver: PathResolver,
        storage: StorageManager,
        cache: FileCache,
        rate_limiter: RateLimiter,
        maintenance_interval: float = MAINTENANCE_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._resolver = resolver
        self._storage = storage
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._maintenance_interval = maintenance_interval
        self._clock = clock
        self._last_maintenance: float | None = None

    @classmethod
    def from_resolver(cls, resolver: PathResolver, **kwargs) -> "ClipboardApp":
        """Build the app with storage under the resolver's data directory."""
        data_dir = resolver.data_dir()
        cache_dir = data_dir / CACHE_DIRNAME
        ensure_dirs(data_dir, cache_dir)
        storage = StorageManager(data_dir / DB_FILENAME)
        return cls(resolver, storage, FileCache(cache_dir), RateLimiter(), **kwargs)

    @property
    def storage(self) -> StorageManager:
        return self._storage

    def close(self) -> None:
        self._storage.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def check_rate(self, client_id: str = DEFAULT_CLIENT_ID, is_file_op: bool = False) -> None:
        if not self._rate_limiter.check_limit(client_id, is_file_op):
            logger.warning("Rate limit exceeded for %s (file_op=%s)", client_id, is_file_op)
            kind = "file operation" if is_file_op else "request"
            raise RateLimitedError(f"Rate limit exceeded ({kind}). Please try again later.")

    def run_maintenance(self) -> tuple[int, int]:
        """Expire old private items, then evict beyond the ceiling.

        Returns:
            ``(expired, evicted)`` counts.
        """
        expired = self._storage.expire_private()
        evicted = self._storage.purge_old()
        self._last_maintenance = self._clock()
        return expired, evicted

    def maybe_run_maintenance(self) -> bool:
        now = self._clock()
        if self._last_maintenance is not None and now - self._last_maintenance < self._maintenance_interval:
            return False
        self.run_maintenance()
        self._rate_limiter.cleanup()
        return True

    def _begin(self, client_id: str, is_file_op: bool = False) -> None:
        self.check_rate(client_id)
        if is_file_op:
            self.check_rate(client_id, is_file_op=True)
        self.maybe_run_maintenance()

    def copy_text(
        self,
        content: str,
        content_type: str = "text",
        private: bool = False,
        client_id: str = DEFAULT_CLIENT_ID,
    ) -> ClipboardItem:
        self._begin(client_id)
        if not content or not content.strip():
            raise ValidationError("Content cannot be empty")
        try:
            kind = ContentType(content_type)
        except ValueError:
            kind = None
        if kind not in TEXT_CONTENT_TYPES:
            raise ValidationError(f"Unsupported content type: {content_type!r} (expected 'text' or 'html')")
        return self._storage.insert_text(content, kind, private)

    def copy_file(self, file_path: str, private: bool = False, client_id: str = DEFAULT_CLIENT_ID) -> ClipboardItem:
        self._begin(client_id, is_file_op=True)
        if not file_path or not file_path.strip():
            raise ValidationError("File path cannot be empty")

        validated = validate_path(file_path, self._resolver.allowed_roots())
        resolved = self._resolver.resolve(str(validated))
        if not resolved.is_file():
            raise NotFoundError(f"File not found: {validated}")

        size = resolved.stat().st_size
        self._cache.check_size(size)

        cached = self._cache.store(resolved)
        try:
            item = self._storage.insert_file(
                cached_path=cached,
                original_path=validated,
                content_type=classify(validated),
                mime_type=mime_type_of(validated),
                file_size=size,
                is_private=private,
            )
        except Exception:
            self._cache.discard(cached)
            raise
        logger.info("Cached file %s as item %d", validated, item.id)
        return item

    def paste(self, item_id: int | None = None, client_id: str = DEFAULT_CLIENT_ID) -> ClipboardItem:
        self._begin(client_id)
        if item_id is None:
            item = self._storage.get_latest()
            if item is None:
                raise NotFoundError("Clipboard is empty")
            return item
        return self._require(item_id)

    def list_items(
        self,
        limit: int = DEFAULT_LIST_LIMIT,
        include_private: bool = False,
        client_id: str = DEFAULT_CLIENT_ID,
    ) -> list[ClipboardItem]:
        self._begin(client_id)
        return self._storage.list_items(_check_limit(limit), include_private)

    def search(self, query: str, limit: int = DEFAULT_LIST_LIMIT, client_id: str = DEFAULT_CLIENT_ID) -> list[ClipboardItem]:
        self._begin(client_id)
        if not query or not query.strip():
            raise ValidationError("Search query cannot be empty")
        return self._storage.search(query, _check_limit(limit))

    def toggle_pin(self, item_id: int, client_id: str = DEFAULT_CLIENT_ID) -> ClipboardItem:
        self._begin(client_id)
        if not self._storage.toggle_pin(item_id):
            raise NotFoundError(f"Clipboard item with ID {item_id} not found")
        return self._require(item_id)

    def delete(self, item_id: int, client_id: str = DEFAULT_CLIENT_ID) -> ClipboardItem:
        self._begin(client_id)
        item = self._require(item_id)
        self._storage.delete_item(item_id)
        return item

    def clear(self, clear_all: bool = False, client_id: str = DEFAULT_CLIENT_ID) -> int:
        self._begin(client_id)
        deleted = self._storage.clear(include_pinned=clear_all)
        logger.info("Cleared %d items (clear_all=%s)", deleted, clear_all)
        return deleted

    def stats(self, client_id: str = DEFAULT_CLIENT_ID) -> StorageStats:
        self._begin(client_id)
        return self._storage.stats()

    def look_at(self, item_id: int, client_id: str = DEFAULT_CLIENT_ID) -> ClipboardItem:
        """Return an item, checking that a file-backed item's copy still exists."""
        self._begin(client_id)
        item = self._require(item_id)
        if item.is_file and not Path(item.cached_file_path).is_file():
            raise NotFoundError(f"Cached file for clipboard item {item_id} not found")
        return item

    def _require(self, item_id: int) -> ClipboardItem:
        item = self._storage.get_item(item_id)
        if item is None:
            raise NotFoundError(f"Clipboard item with ID {item_id} not found")
        return item


def _check_limit(limit: int) -> int:
    if limit < 1:
        raise ValidationError("Limit must be a positive integer")
    return limit
