"""LogStore: deduplicated, newest-first collection of log records.

Merges historical pages and live records into one sequence ordered by
timestamp descending. Records with equal timestamps keep the order in
which they were first seen. Every record id appears at most once until
``clear()``.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Iterator

from ..types import LogRecord


def _sort_key(record: LogRecord) -> int:
    return -record.timestamp


class LogStore:
    """In-memory merge target owned by a single FeedController.

    All operations are synchronous and never raise; callers filter
    malformed input before it gets here.
    """

    def __init__(self) -> None:
        self._records: list[LogRecord] = []
        self._ids: set[int] = set()
        self.has_more: bool = True
        self.page: int = 0  # last historical page applied, 0 = none yet

    # -- read side --

    @property
    def records(self) -> tuple[LogRecord, ...]:
        return tuple(self._records)

    @property
    def next_page(self) -> int:
        return self.page + 1

    @property
    def initialized(self) -> bool:
        return self.page > 0

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[LogRecord]:
        return iter(list(self._records))

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._ids

    # -- mutations --

    def initialize(
        self,
        records: Iterable[LogRecord],
        page_size: int,
        fetched: int | None = None,
    ) -> int:
        """Seed from the first historical page. Returns records added.

        Live records that arrived before the first page are kept and
        merged, not replaced.
        """
        added = self._merge(records, page_size, fetched)
        self.page = 1
        return added

    def append_page(
        self,
        records: Iterable[LogRecord],
        page_size: int,
        fetched: int | None = None,
    ) -> int:
        """Merge an older historical page. Returns records added."""
        added = self._merge(records, page_size, fetched)
        self.page += 1
        return added

    def insert_live(self, record: LogRecord) -> bool:
        """Insert a pushed record in timestamp position. False if already known."""
        if record.id in self._ids:
            return False
        # First slot whose timestamp is strictly older; equal timestamps stay ahead.
        idx = bisect.bisect_right(self._records, _sort_key(record), key=_sort_key)
        self._records.insert(idx, record)
        self._ids.add(record.id)
        return True

    def clear(self) -> None:
        self._records = []
        self._ids = set()
        self.has_more = True
        self.page = 0

    # -- internals --

    def _merge(
        self,
        records: Iterable[LogRecord],
        page_size: int,
        fetched: int | None,
    ) -> int:
        batch = list(records)
        fresh: list[LogRecord] = []
        for record in batch:
            if record.id in self._ids:
                continue
            self._ids.add(record.id)
            fresh.append(record)

        count = len(batch) if fetched is None else fetched
        # only clear() turns has_more back on
        self.has_more = self.has_more and count >= page_size

        if fresh:
            # sorted() is stable with reverse=True, so ties keep arrival order
            self._records = sorted(
                self._records + fresh, key=lambda r: r.timestamp, reverse=True,
            )
        return len(fresh)
