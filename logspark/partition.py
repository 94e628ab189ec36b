"""In-memory partition index keyed by HTTP status code."""

from typing import Iterable, Iterator, Optional

from logspark.records import LogRecord


class PartitionedStore:
    """
    Records bucketed by status code.

    Partition keys are discovered from the data as records arrive; no key
    set is declared up front. Each bucket keeps its records in insertion
    order, and the store remembers which bucket every input record went
    to so that scans can replay the original input order.

    Instances are built by partition() and not modified afterwards.
    """

    def __init__(self) -> None:
        self._buckets: dict[int, list[LogRecord]] = {}
        # Partition key of every inserted record, in insertion order
        self._order: list[int] = []

    def _add(self, record: LogRecord) -> None:
        self._buckets.setdefault(record.status, []).append(record)
        self._order.append(record.status)

    def __getitem__(self, status: int) -> tuple[LogRecord, ...]:
        return tuple(self._buckets[status])

    def __contains__(self, status: object) -> bool:
        return status in self._buckets

    def __len__(self) -> int:
        return len(self._buckets)

    def __iter__(self) -> Iterator[int]:
        return iter(self._buckets)

    def keys(self) -> list[int]:
        """Return partition keys in order of first appearance."""
        return list(self._buckets)

    def values(self) -> list[tuple[LogRecord, ...]]:
        return [tuple(bucket) for bucket in self._buckets.values()]

    def items(self) -> list[tuple[int, tuple[LogRecord, ...]]]:
        return [(status, tuple(bucket)) for status, bucket in self._buckets.items()]

    @property
    def record_count(self) -> int:
        """Total number of records across all partitions."""
        return len(self._order)

    def scan(self, statuses: Optional[Iterable[int]] = None) -> Iterator[LogRecord]:
        """
        Yield records of the selected partitions in original input order.

        Args:
            statuses: Partition keys to read. None reads every partition.
                Keys that were never observed are ignored.

        Yields:
            LogRecord objects, in the order they were inserted.
        """
        if statuses is None:
            wanted = set(self._buckets)
        else:
            wanted = {status for status in statuses if status in self._buckets}

        if not wanted:
            return

        cursors = {status: iter(self._buckets[status]) for status in wanted}
        for status in self._order:
            cursor = cursors.get(status)
            if cursor is not None:
                yield next(cursor)

    def __repr__(self) -> str:
        sizes = ", ".join(f"{k}: {len(v)}" for k, v in self._buckets.items())
        return f"PartitionedStore({{{sizes}}})"


def partition(records: Iterable[LogRecord]) -> PartitionedStore:
    """
    Bucket records by status code.

    Every record lands in exactly one bucket and relative order inside a
    bucket matches input order.

    Args:
        records: Parsed records, in input order.

    Returns:
        A new PartitionedStore.

    Example:
        >>> store = partition(records)
        >>> sum(len(bucket) for bucket in store.values()) == len(records)
        True
    """
    store = PartitionedStore()
    for record in records:
        store._add(record)
    return store
