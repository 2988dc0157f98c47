import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ContentType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"


def new_entry_id() -> str:
    return uuid.uuid4().hex


@dataclass
class ClipboardEntry:
    id: str
    content_type: ContentType
    text_content: str
    preview: str
    content_hash: str
    created_at: datetime
    last_accessed: datetime | None = None
    pinned: bool = False

    def __post_init__(self) -> None:
        # A fresh entry counts as accessed when it was copied.
        if self.last_accessed is None:
            self.last_accessed = self.created_at
