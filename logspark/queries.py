"""The six access-log metrics.

Every query accepts either a flat sequence of LogRecord objects or a
PartitionedStore and never mutates its input. Empty input gives empty
results (or 0), never an error.

Ranking queries sort by count descending with a stable sort, so groups
with equal counts stay in the order their key was first seen in the
input.

Each metric also has a ``*_pipeline`` builder returning the unexecuted
Pipeline, which is what ``logspark explain`` prints.
"""

from typing import Iterable

from logspark.aggregations import count_
from logspark.executor import RecordSource
from logspark.pipeline import Pipeline

DEFAULT_FAILED_STATUSES = frozenset({404, 500})
DEFAULT_FAILED_MIN_COUNT = 3


def _pairs(rows: list[dict], key: str) -> list[tuple]:
    return [(row[key], row["count"]) for row in rows]


def total_requests_pipeline(records: RecordSource) -> Pipeline:
    return Pipeline(records)


def requests_by_status_pipeline(records: RecordSource) -> Pipeline:
    return Pipeline(records).group_by("status").agg(count=count_())


def top_urls_pipeline(records: RecordSource, n: int) -> Pipeline:
    return (
        Pipeline(records)
        .group_by("url")
        .agg(count=count_())
        .sort("count", desc=True)
        .limit(n)
    )


def top_user_agents_pipeline(records: RecordSource) -> Pipeline:
    return (
        Pipeline(records)
        .group_by("user_agent")
        .agg(count=count_())
        .sort("count", desc=True)
    )


def failed_ips_pipeline(
    records: RecordSource,
    statuses: Iterable[int] = DEFAULT_FAILED_STATUSES,
    min_count: int = DEFAULT_FAILED_MIN_COUNT,
) -> Pipeline:
    return (
        Pipeline(records)
        .filter(status__in=statuses)
        .group_by("ip")
        .agg(count=count_())
        .having(count__gt=min_count)
        .sort("count", desc=True)
    )


def requests_over_time_pipeline(records: RecordSource) -> Pipeline:
    return Pipeline(records).group_by("minute").agg(count=count_()).sort("minute")


def total_requests(records: RecordSource) -> int:
    """Return the number of records."""
    return total_requests_pipeline(records).count()


def requests_by_status(records: RecordSource) -> dict[int, int]:
    """
    Count records per status code.

    Only statuses present in the input appear in the result.
    """
    return dict(_pairs(requests_by_status_pipeline(records).run(), "status"))


def top_urls(records: RecordSource, n: int) -> list[tuple[str, int]]:
    """
    Return the ``n`` most requested URLs as ``(url, count)`` pairs.

    ``n == 0`` gives an empty list.

    Raises:
        ValueError: If n < 0.
    """
    return _pairs(top_urls_pipeline(records, n).run(), "url")


def top_user_agents(records: RecordSource) -> list[tuple[str, int]]:
    """Return every user agent ranked by request count (no limit)."""
    return _pairs(top_user_agents_pipeline(records).run(), "user_agent")


def failed_ips(
    records: RecordSource,
    statuses: Iterable[int] = DEFAULT_FAILED_STATUSES,
    min_count: int = DEFAULT_FAILED_MIN_COUNT,
) -> list[tuple[str, int]]:
    """
    Return client IPs with more than ``min_count`` failed requests.

    Args:
        records: Records or partitioned store.
        statuses: Status codes that count as failures.
        min_count: Groups need a count strictly greater than this.

    Returns:
        ``(ip, count)`` pairs ranked by count descending.
    """
    return _pairs(failed_ips_pipeline(records, statuses, min_count).run(), "ip")


def requests_over_time(records: RecordSource) -> list[tuple[str, int]]:
    """
    Count requests per minute.

    Returns:
        ``(minute_bucket, count)`` pairs in ascending bucket order.

    Raises:
        ShortTimestampError: If a record's timestamp cannot be bucketed.
    """
    return _pairs(requests_over_time_pipeline(records).run(), "minute")
