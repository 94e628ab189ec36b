"""Aggregation helpers for Pipeline.agg().

Each helper returns an Aggregation node; the keyword it is passed under
in agg() becomes the output column. Names carry a trailing underscore so
that min_ and max_ do not shadow the builtins.

    Pipeline(store).group_by("ip").agg(
        hits=count_(),
        first_seen=min_("timestamp"),
        distinct_urls=countdistinct_("url"),
    )
"""

from typing import Optional

from logspark.ast import AggFunc, Aggregation


def count_(column: Optional[str] = None) -> Aggregation:
    """
    Rows per group.

    Record fields are never missing, so ``count_()`` and ``count_("url")``
    always agree; the column form exists for readability only.
    """
    return Aggregation(func=AggFunc.COUNT, column=column)


def min_(column: str) -> Aggregation:
    """Smallest value of ``column`` in the group (earliest raw timestamp, lowest status)."""
    return Aggregation(func=AggFunc.MIN, column=column)


def max_(column: str) -> Aggregation:
    """Largest value of ``column`` in the group."""
    return Aggregation(func=AggFunc.MAX, column=column)


def first_(column: str) -> Aggregation:
    """Value of ``column`` on the group's first row in input order."""
    return Aggregation(func=AggFunc.FIRST, column=column)


def last_(column: str) -> Aggregation:
    """Value of ``column`` on the group's last row in input order."""
    return Aggregation(func=AggFunc.LAST, column=column)


def countdistinct_(column: str) -> Aggregation:
    """Number of different ``column`` values in the group."""
    return Aggregation(func=AggFunc.COUNTDISTINCT, column=column)
