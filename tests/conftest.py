from datetime import datetime, timedelta

import pytest

from clipkeep.errors import ReadError, WriteError
from clipkeep.models import ClipboardEntry, ContentType, new_entry_id
from clipkeep.storage import StorageManager
from clipkeep.utils import compute_hash

NOW = datetime(2024, 6, 10, 12, 0, 0)


class FakeClipboard:
    """In-memory stand-in for the system clipboard."""

    def __init__(self, text: str | None = None):
        self.text = text
        self.fail_reads = False
        self.fail_writes = False
        self.reads = 0
        self.writes: list[str] = []

    def read_text(self) -> str:
        self.reads += 1
        if self.fail_reads or self.text is None:
            raise ReadError("clipboard holds no text")
        return self.text

    def write_text(self, text: str) -> None:
        if self.fail_writes:
            raise WriteError("clipboard is locked")
        self.writes.append(text)
        self.text = text


class FakeClock:
    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def storage():
    mgr = StorageManager(db_path=":memory:")
    yield mgr
    mgr.close()


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_entry():
    """Factory fixture to create ClipboardEntry instances for testing."""

    def _make_entry(
        text: str = "hello world",
        content_type: ContentType = ContentType.TEXT,
        content_hash: str | None = None,
        pinned: bool = False,
        created_at: datetime | None = None,
        last_accessed: datetime | None = None,
    ) -> ClipboardEntry:
        return ClipboardEntry(
            id=new_entry_id(),
            content_type=content_type,
            text_content=text,
            preview=text[:200],
            content_hash=content_hash or compute_hash(text),
            created_at=created_at or NOW,
            last_accessed=last_accessed,
            pinned=pinned,
        )

    return _make_entry
