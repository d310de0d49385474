"""Error kinds surfaced to callers of the clipboard engine.

Every error carries a human-readable message; the MCP layer forwards it
unchanged to the client.
"""


class ClipboardError(Exception):
    """Base class for all clipboard errors."""


class ValidationError(ClipboardError):
    """Caller input is malformed (empty content, empty query, bad arguments)."""


class InvalidPathError(ClipboardError):
    """A file path failed validation."""


class AccessDeniedError(InvalidPathError):
    """A file path is valid but not reachable from this environment."""


class NotFoundError(ClipboardError):
    """A record id is unknown or a file is missing."""


class FileTooLargeError(ClipboardError):
    """A file exceeds the cache size ceiling."""


class CacheIOError(ClipboardError):
    """Copying a file into the cache failed."""


class RateLimitedError(ClipboardError):
    """The caller exceeded a rate-limit ceiling."""
