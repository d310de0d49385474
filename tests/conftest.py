from datetime import datetime, timedelta
from pathlib import Path

import pytest

from mcp_clipboard.app import ClipboardApp
from mcp_clipboard.cache import FileCache
from mcp_clipboard.config import DATA_DIR_ENV
from mcp_clipboard.models import ContentType
from mcp_clipboard.paths import NativePathResolver
from mcp_clipboard.security import RateLimiter
from mcp_clipboard.storage import StorageManager


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    mgr = StorageManager(db_path=":memory:", max_items=50)
    yield mgr
    mgr.close()


@pytest.fixture
def clocked_storage(clock):
    mgr = StorageManager(db_path=":memory:", max_items=50, clock=clock)
    yield mgr
    mgr.close()


@pytest.fixture
def cache_dir(tmp_path):
    path = tmp_path / "cache"
    path.mkdir()
    return path


@pytest.fixture
def make_cached_file(cache_dir):
    """Factory fixture creating a file inside the cache directory."""

    def _make_cached_file(name: str = "item_1_test.txt", data: bytes = b"cached bytes") -> Path:
        path = cache_dir / name
        path.write_bytes(data)
        return path

    return _make_cached_file


@pytest.fixture
def add_file_item(storage, make_cached_file):
    """Insert a file-backed item whose cached copy really exists."""

    def _add_file_item(
        name: str = "report.pdf",
        content_type: ContentType = ContentType.DOCUMENT_FILE,
        is_private: bool = False,
        data: bytes = b"%PDF-1.4 test",
    ):
        cached = make_cached_file(f"item_0_{name}", data)
        return storage.insert_file(
            cached_path=cached,
            original_path=f"/home/user/{name}",
            content_type=content_type,
            mime_type="application/pdf",
            file_size=len(data),
            is_private=is_private,
        )

    return _add_file_item


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Isolated home, working and data directories for the app."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    data = tmp_path / "data"
    for directory in (home, work):
        directory.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    return {"home": home, "work": work, "data": data}


@pytest.fixture
def make_app(workspace, clock):
    apps = []

    def _make_app(
        max_requests: int = 10_000,
        max_file_ops: int = 1_000,
        max_file_size: int = 1024 * 1024,
        max_items: int = 50,
    ) -> ClipboardApp:
        data = workspace["data"]
        cache_dir = data / "cache"
        cache_dir.mkdir(parents=True, exist_ok=True)
        resolver = NativePathResolver(environ={DATA_DIR_ENV: str(data)})
        app = ClipboardApp(
            resolver,
            StorageManager(data / "clipboard.db", max_items=max_items, clock=clock),
            FileCache(cache_dir, max_file_size=max_file_size),
            RateLimiter(max_requests=max_requests, max_file_ops=max_file_ops),
        )
        apps.append(app)
        return app

    yield _make_app
    for app in apps:
        app.close()


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def monotonic():
    return FakeMonotonic()
