import os
from pathlib import Path

DATA_DIR_ENV = "MCP_CLIPBOARD_DATA_DIR"
DB_FILENAME = "clipboard.db"
CACHE_DIRNAME = "cache"
LOG_FILENAME = "mcp-clipboard.log"

NATIVE_DATA_DIR = Path.home() / ".mcp-clipboard"
SANDBOX_DATA_DIR = Path("/app/data")
SANDBOX_HOME_MOUNT = Path("/host/home")
SANDBOX_CWD_MOUNT = Path("/host/pwd")
SANDBOX_MARKER_FILE = Path("/.dockerenv")

MAX_FILE_SIZE = 100 * 1024 * 1024  # 100MB
PREVIEW_LENGTH = 100  # characters kept in the preview column
MAX_CACHE_NAME_BYTES = 255  # common filesystem limit on one path component
DEFAULT_LIST_LIMIT = 30


def _parse_int_env(name: str, default: int, minimum: int, maximum: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, min(maximum, value))


def _parse_max_items() -> int:
    return _parse_int_env("MCP_CLIPBOARD_MAX_ITEMS", 50, 1, 10_000)


def _parse_private_max_age() -> int:
    return _parse_int_env("MCP_CLIPBOARD_PRIVATE_TTL", 3600, 60, 7 * 24 * 3600)


MAX_ITEMS = _parse_max_items()  # non-pinned ceiling
PRIVATE_MAX_AGE = _parse_private_max_age()  # seconds before a private item expires

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".bmp", ".webp", ".svg"})
VIDEO_EXTENSIONS = frozenset({".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm", ".mkv"})

MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".mp4": "video/mp4",
    ".avi": "video/x-msvideo",
    ".mov": "video/quicktime",
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".json": "application/json",
    ".xml": "application/xml",
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".ts": "application/typescript",
}
DEFAULT_MIME_TYPE = "application/octet-stream"

FORBIDDEN_PATH_CHARS = frozenset('<>:"|?*')
FTS_SPECIAL_CHARS = frozenset('*"()-')
MIN_QUERY_LENGTH = 2

RATE_LIMIT_WINDOW = 60.0  # seconds
RATE_LIMIT_MAX_REQUESTS = 100
RATE_LIMIT_MAX_FILE_OPS = 10

MAINTENANCE_INTERVAL = 60.0  # seconds between opportunistic sweeps
