"""Input validation and rate limiting for untrusted tool arguments."""

import logging
import os
import re
import threading
import time
from collections import deque
from collections.abc import Callable, Iterable
from pathlib import Path, PurePath

from mcp_clipboard.config import (
    FORBIDDEN_PATH_CHARS,
    FTS_SPECIAL_CHARS,
    MIN_QUERY_LENGTH,
    RATE_LIMIT_MAX_FILE_OPS,
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW,
)
from mcp_clipboard.errors import InvalidPathError

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_WORD = re.compile(r"\w")


def _expand_home(path: str) -> str:
    if path == "~":
        return str(Path.home())
    if path.startswith("~/"):
        return str(Path.home() / path[2:])
    return path


def _is_within(path: Path, root: Path) -> bool:
    return path == root or root in path.parents


def validate_path(file_path: str, allowed_roots: Iterable[str | Path] | None = None) -> Path:
    """Validate and normalize an untrusted file path.

    Args:
        file_path: Path as supplied by the caller. ``~`` is expanded and
            relative paths are taken from the working directory.
        allowed_roots: Directories the path must live under. Defaults to
            the home and working directories.

    Returns:
        The normalized absolute path, as written rather than its symlink
        target.

    Raises:
        InvalidPathError: If the path is empty, contains null bytes or
            forbidden characters, traverses parent directories, or resolves
            outside every allowed root either as written or after
            following symlinks.
    """
    if not file_path or not isinstance(file_path, str):
        raise InvalidPathError("Invalid file path: path must be a non-empty string")
    if "\0" in file_path:
        raise InvalidPathError("Invalid file path: contains null bytes")

    clean = file_path.strip()
    if not clean:
        raise InvalidPathError("Invalid file path: path must be a non-empty string")
    if any(ch in FORBIDDEN_PATH_CHARS for ch in clean):
        raise InvalidPathError("Invalid file path: contains forbidden characters")
    if ".." in PurePath(clean).parts:
        raise InvalidPathError("Invalid file path: contains parent directory traversal")

    absolute = Path(os.path.abspath(_expand_home(clean)))

    if allowed_roots is None:
        allowed_roots = (Path.home(), Path.cwd())
    roots = [Path(os.path.abspath(root)) for root in allowed_roots]
    # Symlinks are followed so a link inside a root cannot point outside it
    real = absolute.resolve()
    inside = any(_is_within(absolute, root) for root in roots)
    if not inside or not any(_is_within(real, root.resolve()) for root in roots):
        logger.warning("Rejected path outside allowed directories: %s", absolute)
        raise InvalidPathError("Access denied: file path is outside allowed directories")

    return absolute


def sanitize_search_query(query: str) -> str:
    """Make a free-text query safe for an FTS5 MATCH expression.

    Special characters are quoted individually, whitespace is collapsed and
    the whole query is wrapped as a phrase. Returns an empty string when
    fewer than two characters remain, meaning no search should run.
    """
    if not query or not isinstance(query, str):
        return ""

    cleaned = _WHITESPACE.sub(" ", query).strip()
    # A phrase without word characters tokenizes to nothing
    if len(cleaned) < MIN_QUERY_LENGTH or not _WORD.search(cleaned):
        return ""

    escaped = "".join(f'"{ch}"' if ch in FTS_SPECIAL_CHARS else ch for ch in cleaned)
    # Inner quotes are doubled so the phrase wrapper stays a single string token
    return '"' + escaped.replace('"', '""') + '"'


class RateLimiter:
    """Sliding-window request counter keyed by caller identifier.

    General operations and file operations are tracked separately, each with
    its own ceiling per ``window`` seconds.
    """

    def __init__(
        self,
        window: float = RATE_LIMIT_WINDOW,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        max_file_ops: int = RATE_LIMIT_MAX_FILE_OPS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._window = window
        self._max_requests = max_requests
        self._max_file_ops = max_file_ops
        self._clock = clock
        self._requests: dict[str, deque[float]] = {}
        self._file_ops: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def check_limit(self, identifier: str, is_file_op: bool = False) -> bool:
        """Record a request and return False if it exceeds the ceiling."""
        buckets = self._file_ops if is_file_op else self._requests
        limit = self._max_file_ops if is_file_op else self._max_requests
        now = self._clock()
        with self._lock:
            timestamps = buckets.setdefault(identifier, deque())
            self._drop_expired(timestamps, now)
            if len(timestamps) >= limit:
                return False
            timestamps.append(now)
            return True

    def cleanup(self) -> int:
        """Forget identifiers with no activity inside the window."""
        now = self._clock()
        removed = 0
        with self._lock:
            for buckets in (self._requests, self._file_ops):
                for identifier in list(buckets):
                    timestamps = buckets[identifier]
                    self._drop_expired(timestamps, now)
                    if not timestamps:
                        del buckets[identifier]
                        removed += 1
        return removed

    def tracked_identifiers(self) -> set[str]:
        with self._lock:
            return set(self._requests) | set(self._file_ops)

    def _drop_expired(self, timestamps: deque[float], now: float) -> None:
        while timestamps and now - timestamps[0] >= self._window:
            timestamps.popleft()
