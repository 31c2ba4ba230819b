"""Incremental blocking index.

The index keeps two maps consistent with each other:

* key → ids of the records that emitted the key (the buckets)
* id → keys the record emitted (for O(keys) removal and re-insertion)

Inserts are O(keys per record); candidate lookup is O(bucket size).
A monotonically increasing ``version`` lets callers detect inserts that
happened while they were scoring.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence

from hhdedupe.audit.logger import AuditLogger
from hhdedupe.candidates.blockers import Blocker
from hhdedupe.kinds import get_profile
from hhdedupe.models.records import EntityKind, Record

MAX_BLOCK_SIZE = 1000


class BlockingIndex:
    """Thread-safe key → record-id index over all kinds.

    Parameters
    ----------
    blockers : Mapping[EntityKind, Sequence[Blocker]]
        Blockers per entity kind.
    max_block_size : int
        Bucket size above which an ``oversized_block`` warning is logged.
    logger : AuditLogger | None
        Optional audit logger.
    """

    def __init__(
        self,
        blockers: Mapping[EntityKind, Sequence[Blocker]],
        max_block_size: int = MAX_BLOCK_SIZE,
        logger: AuditLogger | None = None,
    ) -> None:
        self.blockers = {EntityKind(kind): list(items) for kind, items in blockers.items()}
        self.max_block_size = max_block_size
        self.logger = logger
        self._lock = threading.RLock()
        self._buckets: dict[str, set[str]] = defaultdict(set)
        self._keys_by_id: dict[str, frozenset[str]] = {}
        self._warned: set[str] = set()
        self._version = 0

    @property
    def version(self) -> int:
        """Number of inserts and removals applied so far."""
        with self._lock:
            return self._version

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys_by_id)

    def __contains__(self, record_id: object) -> bool:
        with self._lock:
            return record_id in self._keys_by_id

    def keys_for(self, record: Record) -> frozenset[str]:
        """Compute the block keys of a record (pure, lock-free).

        Keys are namespaced by kind so different kinds never share a bucket.
        """
        blockers = self.blockers.get(record.kind, [])
        raw = get_profile(record.kind).blocking_keys(record, blockers)
        return frozenset(f"{record.kind.value}:{key}" for key in raw)

    def insert(self, record: Record, keys: Iterable[str] | None = None) -> None:
        """Insert or re-insert a record.

        Re-inserting a record first removes the keys it emitted before,
        so an attribute change never leaves stale bucket entries.

        Parameters
        ----------
        record : Record
            Record to index.
        keys : Iterable[str] | None, optional
            Precomputed ``keys_for(record)``.
        """
        new_keys = frozenset(keys) if keys is not None else self.keys_for(record)
        with self._lock:
            self._discard(record.record_id)
            for key in new_keys:
                bucket = self._buckets[key]
                bucket.add(record.record_id)
                if len(bucket) > self.max_block_size and key not in self._warned:
                    self._warned.add(key)
                    if self.logger:
                        self.logger.warn(
                            "oversized_block",
                            data={"key": key, "size": len(bucket), "limit": self.max_block_size},
                            stage="blocking",
                            rid=record.record_id,
                        )
            self._keys_by_id[record.record_id] = new_keys
            self._version += 1

    def remove(self, record_id: str) -> bool:
        """Remove a record from every bucket.

        Returns
        -------
        bool
            True if the record was indexed.
        """
        with self._lock:
            removed = self._discard(record_id)
            if removed:
                self._version += 1
            return removed

    def _discard(self, record_id: str) -> bool:
        old_keys = self._keys_by_id.pop(record_id, None)
        if old_keys is None:
            return False
        for key in old_keys:
            bucket = self._buckets.get(key)
            if bucket is None:
                continue
            bucket.discard(record_id)
            if not bucket:
                del self._buckets[key]
        return True

    def lookup(self, keys: Iterable[str], exclude: str | None = None) -> set[str]:
        """Union of the buckets of ``keys``, minus ``exclude``."""
        found: set[str] = set()
        with self._lock:
            for key in keys:
                found.update(self._buckets.get(key, ()))
        if exclude is not None:
            found.discard(exclude)
        return found

    def candidates(self, record: Record) -> set[str]:
        """Ids of indexed records sharing at least one key with ``record``.

        The record itself is never its own candidate, whether or not it is
        already indexed.
        """
        return self.lookup(self.keys_for(record), exclude=record.record_id)

    def keys_of(self, record_id: str) -> frozenset[str]:
        """Keys an indexed record emitted (empty if not indexed)."""
        with self._lock:
            return self._keys_by_id.get(record_id, frozenset())

    def bucket_sizes(self) -> dict[str, int]:
        """Current size of every non-empty bucket."""
        with self._lock:
            return {key: len(ids) for key, ids in self._buckets.items()}
