from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from clipkeep.errors import ConfigError, StorageError
from clipkeep.retention import RetentionPolicy

NOW = datetime(2024, 6, 10, 12, 0, 0)


@pytest.fixture
def policy():
    return RetentionPolicy()


def _ids(storage):
    return {e.id for e in storage.list_by_recency(limit=100)}


class TestCountLimit:
    def test_keeps_newest_and_pinned(self, storage, make_entry, policy):
        pinned = make_entry("pinned", pinned=True, created_at=NOW - timedelta(days=1))
        old = make_entry("old", created_at=NOW - timedelta(hours=3))
        middle = make_entry("middle", created_at=NOW - timedelta(hours=2))
        new = make_entry("new", created_at=NOW - timedelta(hours=1))
        for entry in (pinned, old, middle, new):
            storage.add_entry(entry)

        result = policy.cleanup(storage, max_items=2, max_age_days=7, now=NOW)

        assert result.over_limit == 1
        assert result.aged_out == 0
        assert storage.count_non_pinned() == 2
        assert _ids(storage) == {pinned.id, middle.id, new.id}

    def test_pinned_not_counted(self, storage, make_entry, policy):
        for i in range(3):
            storage.add_entry(make_entry(f"pinned {i}", pinned=True, created_at=NOW - timedelta(minutes=i)))
        storage.add_entry(make_entry("loose", created_at=NOW))

        result = policy.cleanup(storage, max_items=1, max_age_days=7, now=NOW)

        assert result.total == 0
        assert storage.count() == 4

    def test_under_limit_untouched(self, storage, make_entry, policy):
        for i in range(3):
            storage.add_entry(make_entry(f"item {i}", created_at=NOW - timedelta(minutes=i)))

        result = policy.cleanup(storage, max_items=5, max_age_days=7, now=NOW)

        assert result.total == 0
        assert storage.count() == 3

    def test_equal_timestamps_evict_first_inserted(self, storage, make_entry, policy):
        first = make_entry("first", created_at=NOW)
        second = make_entry("second", created_at=NOW)
        storage.add_entry(first)
        storage.add_entry(second)

        policy.cleanup(storage, max_items=1, max_age_days=7, now=NOW)

        assert _ids(storage) == {second.id}

    def test_ranks_by_created_at_not_last_accessed(self, storage, make_entry, policy):
        older = make_entry("older", created_at=NOW - timedelta(hours=2), last_accessed=NOW)
        newer = make_entry("newer", created_at=NOW - timedelta(hours=1))
        storage.add_entry(older)
        storage.add_entry(newer)

        policy.cleanup(storage, max_items=1, max_age_days=7, now=NOW)

        assert _ids(storage) == {newer.id}


class TestAgeLimit:
    def test_old_entry_deleted_under_count_limit(self, storage, make_entry, policy):
        stale = make_entry("stale", created_at=NOW - timedelta(days=10))
        storage.add_entry(stale)

        result = policy.cleanup(storage, max_items=100, max_age_days=7, now=NOW)

        assert result.aged_out == 1
        assert storage.get_entry(stale.id) is None

    def test_old_pinned_entry_survives(self, storage, make_entry, policy):
        stale = make_entry("stale", pinned=True, created_at=NOW - timedelta(days=10))
        storage.add_entry(stale)

        policy.cleanup(storage, max_items=100, max_age_days=7, now=NOW)

        assert storage.get_entry(stale.id) is not None

    def test_recent_access_does_not_save_old_entry(self, storage, make_entry, policy):
        stale = make_entry("stale", created_at=NOW - timedelta(days=10), last_accessed=NOW)
        storage.add_entry(stale)

        policy.cleanup(storage, max_items=100, max_age_days=7, now=NOW)

        assert storage.get_entry(stale.id) is None

    def test_age_runs_before_count(self, storage, make_entry, policy):
        for i in range(2):
            storage.add_entry(make_entry(f"stale {i}", created_at=NOW - timedelta(days=8 + i)))
        fresh = [make_entry(f"fresh {i}", created_at=NOW - timedelta(hours=3 - i)) for i in range(3)]
        for entry in fresh:
            storage.add_entry(entry)

        result = policy.cleanup(storage, max_items=2, max_age_days=7, now=NOW)

        assert result.aged_out == 2
        assert result.over_limit == 1
        assert _ids(storage) == {fresh[1].id, fresh[2].id}


class TestValidation:
    @pytest.mark.parametrize("max_items,max_age_days", [(0, 7), (10, 0), (-1, 7)])
    def test_non_positive_limits(self, storage, policy, max_items, max_age_days):
        with pytest.raises(ConfigError):
            policy.cleanup(storage, max_items=max_items, max_age_days=max_age_days, now=NOW)


class TestAtomicity:
    def test_failure_rolls_back_age_pass(self, storage, make_entry, policy):
        stale = make_entry("stale", created_at=NOW - timedelta(days=10))
        storage.add_entry(stale)

        with patch.object(storage, "count_non_pinned", side_effect=StorageError("disk I/O error")):
            with pytest.raises(StorageError):
                policy.cleanup(storage, max_items=1, max_age_days=7, now=NOW)

        assert storage.get_entry(stale.id) is not None
