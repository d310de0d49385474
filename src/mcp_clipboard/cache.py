import itertools
import logging
import shutil
import time
from pathlib import Path

from mcp_clipboard.config import (
    DEFAULT_MIME_TYPE,
    IMAGE_EXTENSIONS,
    MAX_CACHE_NAME_BYTES,
    MAX_FILE_SIZE,
    MIME_TYPES,
    VIDEO_EXTENSIONS,
)
from mcp_clipboard.errors import CacheIOError, FileTooLargeError
from mcp_clipboard.models import ContentType

logger = logging.getLogger(__name__)

_PREVIEW_LABELS = {
    ContentType.IMAGE_FILE: "Image",
    ContentType.DOCUMENT_FILE: "Document",
    ContentType.VIDEO_FILE: "Video",
}


def classify(path: str | Path) -> ContentType:
    ext = Path(path).suffix.lower()
    if ext in IMAGE_EXTENSIONS:
        return ContentType.IMAGE_FILE
    if ext in VIDEO_EXTENSIONS:
        return ContentType.VIDEO_FILE
    return ContentType.DOCUMENT_FILE


def mime_type_of(path: str | Path) -> str:
    return MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


def format_size(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes}B"
    if num_bytes < 1024**2:
        return f"{num_bytes / 1024:.1f}KB"
    if num_bytes < 1024**3:
        return f"{num_bytes / 1024**2:.1f}MB"
    return f"{num_bytes / 1024**3:.1f}GB"


def file_preview(name: str, content_type: ContentType, size: int | None) -> str:
    label = _PREVIEW_LABELS.get(content_type, "File")
    if size:
        return f"[{label}: {name}, {format_size(size)}]"
    return f"[{label}: {name}]"


def fit_file_name(name: str, max_bytes: int) -> str:
    """Shorten ``name`` to at most ``max_bytes`` of UTF-8, keeping its suffix."""
    if len(name.encode()) <= max_bytes:
        return name
    suffix = Path(name).suffix
    if len(suffix.encode()) * 2 > max_bytes:
        suffix = ""
    stem = name[: len(name) - len(suffix)] if suffix else name
    budget = max_bytes - len(suffix.encode())
    return stem.encode()[:budget].decode(errors="ignore") + suffix


def remove_cached_file(path: str | Path | None) -> bool:
    """Delete a cached copy. Failures are logged, never raised."""
    if not path:
        return False
    p = Path(path)
    try:
        p.unlink()
    except FileNotFoundError:
        return False
    except OSError:
        logger.warning("Could not remove cached file %s", p, exc_info=True)
        return False
    return True


class FileCache:
    """Owns the directory holding copies of file-backed clipboard items."""

    def __init__(self, cache_dir: str | Path, max_file_size: int = MAX_FILE_SIZE):
        self._cache_dir = Path(cache_dir)
        self._max_file_size = max_file_size
        self._counter = itertools.count()

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    @property
    def max_file_size(self) -> int:
        return self._max_file_size

    def check_size(self, size: int) -> None:
        if size > self._max_file_size:
            raise FileTooLargeError(
                f"File too large: {format_size(size)} (max: {format_size(self._max_file_size)})"
            )

    def store(self, source: str | Path) -> Path:
        """Copy ``source`` into the cache under a name unique to this insertion."""
        source = Path(source)
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        # Millisecond timestamp plus a per-process counter keeps names unique
        prefix = f"item_{int(time.time() * 1000)}_{next(self._counter)}_"
        cache_name = prefix + fit_file_name(source.name, MAX_CACHE_NAME_BYTES - len(prefix))
        target = self._cache_dir / cache_name
        try:
            shutil.copyfile(source, target)
        except OSError as exc:
            remove_cached_file(target)
            raise CacheIOError(f"Failed to cache file {source}: {exc}") from exc
        logger.debug("Cached %s as %s", source, target)
        return target

    def discard(self, path: str | Path | None) -> bool:
        return remove_cached_file(path)

