"""Age and count limits for the clipboard history."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from clipkeep.errors import ConfigError
from clipkeep.storage import StorageManager

logger = logging.getLogger(__name__)


@dataclass
class RetentionResult:
    aged_out: int = 0
    over_limit: int = 0

    @property
    def total(self) -> int:
        return self.aged_out + self.over_limit


class RetentionPolicy:
    """Evicts unpinned history entries by age, then by count.

    Age pruning runs first so the count pass only ranks what is left. Pinned
    entries are neither counted against ``max_items`` nor deleted.
    """

    def cleanup(
        self,
        store: StorageManager,
        max_items: int,
        max_age_days: int,
        now: datetime | None = None,
    ) -> RetentionResult:
        if max_items < 1:
            raise ConfigError(f"max_items must be positive, got {max_items}")
        if max_age_days < 1:
            raise ConfigError(f"max_age_days must be positive, got {max_age_days}")

        now = now or datetime.now()
        cutoff = now - timedelta(days=max_age_days)
        result = RetentionResult()

        with store.transaction():
            result.aged_out = store.delete_older_than(cutoff, exclude_pinned=True)
            remaining = store.count_non_pinned()
            if remaining > max_items:
                result.over_limit = store.delete_oldest_non_pinned(remaining - max_items)

        if result.total:
            logger.info(
                "Evicted %d entries (%d older than %d days, %d over the %d item limit)",
                result.total, result.aged_out, max_age_days, result.over_limit, max_items,
            )
        return result
