from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum


class ContentType(str, Enum):
    TEXT = "text"
    HTML = "html"
    IMAGE_FILE = "image_file"
    DOCUMENT_FILE = "document_file"
    VIDEO_FILE = "video_file"


TEXT_CONTENT_TYPES = frozenset({ContentType.TEXT, ContentType.HTML})
FILE_CONTENT_TYPES = frozenset({ContentType.IMAGE_FILE, ContentType.DOCUMENT_FILE, ContentType.VIDEO_FILE})


@dataclass
class ClipboardItem:
    id: int
    content: str
    content_type: ContentType
    preview: str
    created_at: datetime
    updated_at: datetime
    is_pinned: bool = False
    is_private: bool = False
    cached_file_path: str | None = None
    original_path: str | None = None
    file_size: int | None = None
    mime_type: str | None = None

    @property
    def is_file(self) -> bool:
        return self.cached_file_path is not None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["content_type"] = self.content_type.value
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        if not self.is_file:
            for key in ("cached_file_path", "original_path", "file_size", "mime_type"):
                data.pop(key)
        return data


@dataclass
class StorageStats:
    total: int
    pinned: int
    private: int
    file_backed: int
    cache_size_bytes: int

    def to_dict(self) -> dict:
        return asdict(self)
