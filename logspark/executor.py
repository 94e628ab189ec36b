"""In-memory evaluation of query plans."""

import logging
import operator
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence, Union

from logspark.ast import (
    AggFunc,
    Aggregation,
    Filter,
    FilterOp,
    GroupBy,
    Having,
    Limit,
    Node,
    Scan,
    Sort,
    SortOrder,
)
from logspark.partition import PartitionedStore
from logspark.records import LogRecord

logger = logging.getLogger(__name__)

# Anything a plan can read from
RecordSource = Union[Sequence[LogRecord], PartitionedStore]

Row = Union[LogRecord, dict]


def _regex_search(value: Any, pattern: str) -> bool:
    return re.search(pattern, str(value)) is not None


_FILTER_OPS: dict[FilterOp, Callable[[Any, Any], bool]] = {
    FilterOp.EQ: operator.eq,
    FilterOp.NE: operator.ne,
    FilterOp.LT: operator.lt,
    FilterOp.LE: operator.le,
    FilterOp.GT: operator.gt,
    FilterOp.GE: operator.ge,
    FilterOp.IN: lambda value, options: value in options,
    FilterOp.NOT_IN: lambda value, options: value not in options,
    FilterOp.CONTAINS: lambda value, needle: needle in str(value),
    FilterOp.STARTSWITH: lambda value, prefix: str(value).startswith(prefix),
    FilterOp.ENDSWITH: lambda value, suffix: str(value).endswith(suffix),
    FilterOp.REGEX: _regex_search,
}


@dataclass
class ExecutionResult:
    """Result of evaluating a query plan."""

    rows: list
    scanned: int
    plan: Node


def _value(row: Row, column: str) -> Any:
    try:
        if isinstance(row, LogRecord):
            return row.get(column)
        return row[column]
    except KeyError:
        raise ValueError(f"Unknown column '{column}'") from None


def _aggregate(agg: Aggregation, rows: list[Row]) -> Any:
    if agg.func == AggFunc.COUNT:
        return len(rows)
    values = [_value(row, agg.column) for row in rows]
    if agg.func == AggFunc.MIN:
        return min(values)
    if agg.func == AggFunc.MAX:
        return max(values)
    if agg.func == AggFunc.FIRST:
        return values[0]
    if agg.func == AggFunc.LAST:
        return values[-1]
    if agg.func == AggFunc.COUNTDISTINCT:
        return len(set(values))
    raise ValueError(f"Unsupported aggregation: {agg.func.name}")


def output_column(agg: Aggregation) -> str:
    """Name of the output column an aggregation produces."""
    return agg.alias or agg.column or "value"


class _Evaluator:
    """Walks a plan bottom-up, materializing each stage."""

    def __init__(self, source: RecordSource):
        self._source = source
        self.scanned = 0

    def evaluate(self, node: Node) -> list[Row]:
        if isinstance(node, Scan):
            return self._scan(node)
        if isinstance(node, (Filter, Having)):
            return self._filter(node, self.evaluate(node.child))
        if isinstance(node, GroupBy):
            return self._group(node, self.evaluate(node.child))
        if isinstance(node, Sort):
            return self._sort(node, self.evaluate(node.child))
        if isinstance(node, Limit):
            rows = self.evaluate(node.child)
            return rows[node.offset : node.offset + node.count]
        raise ValueError(f"Cannot evaluate node type: {type(node).__name__}")

    def _scan(self, node: Scan) -> list[Row]:
        if isinstance(self._source, PartitionedStore):
            rows: Iterable[LogRecord] = self._source.scan(node.statuses)
        elif node.statuses is None:
            rows = self._source
        else:
            rows = (r for r in self._source if r.status in node.statuses)

        result = list(rows)
        self.scanned += len(result)
        return result

    def _filter(self, node: Union[Filter, Having], rows: list[Row]) -> list[Row]:
        test = _FILTER_OPS[node.op]
        return [row for row in rows if test(_value(row, node.column), node.value)]

    def _group(self, node: GroupBy, rows: list[Row]) -> list[Row]:
        # dicts keep first-appearance order of keys
        groups: dict[tuple, list[Row]] = {}
        for row in rows:
            key = tuple(_value(row, k) for k in node.keys)
            groups.setdefault(key, []).append(row)

        result = []
        for key, members in groups.items():
            out = dict(zip(node.keys, key))
            for agg in node.aggregations:
                out[output_column(agg)] = _aggregate(agg, members)
            result.append(out)
        return result

    def _sort(self, node: Sort, rows: list[Row]) -> list[Row]:
        # Least significant column first; sorted() is stable, also with reverse
        for column, order in reversed(node.columns):
            rows = sorted(
                rows,
                key=lambda row: _value(row, column),
                reverse=order == SortOrder.DESC,
            )
        return rows


def execute(node: Node, source: RecordSource) -> ExecutionResult:
    """
    Evaluate a query plan against records or a partitioned store.

    Args:
        node: Root of the (already optimized) query plan.
        source: Flat record sequence or PartitionedStore to read from.

    Returns:
        ExecutionResult with output rows, the number of records scanned,
        and the evaluated plan.

    Raises:
        ValueError: If the plan references an unknown column or node type.
    """
    evaluator = _Evaluator(source)
    rows = evaluator.evaluate(node)
    logger.debug("Plan produced %d rows after scanning %d records", len(rows), evaluator.scanned)
    return ExecutionResult(rows=rows, scanned=evaluator.scanned, plan=node)

