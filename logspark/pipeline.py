"""Pipeline class for building queries over parsed log records."""

from typing import Any, Optional, Union

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
    format_plan,
)
from logspark.executor import ExecutionResult, RecordSource, execute
from logspark.optimizer import QueryOptimizer


_OP_MAPPING = {
    "eq": FilterOp.EQ,
    "ne": FilterOp.NE,
    "lt": FilterOp.LT,
    "le": FilterOp.LE,
    "lte": FilterOp.LE,  # alias
    "gt": FilterOp.GT,
    "ge": FilterOp.GE,
    "gte": FilterOp.GE,  # alias
    "in": FilterOp.IN,
    "not_in": FilterOp.NOT_IN,
    "contains": FilterOp.CONTAINS,
    "regex": FilterOp.REGEX,
    "startswith": FilterOp.STARTSWITH,
    "endswith": FilterOp.ENDSWITH,
}

_FUNC_MAPPING = {
    "count": AggFunc.COUNT,
    "min": AggFunc.MIN,
    "max": AggFunc.MAX,
    "first": AggFunc.FIRST,
    "last": AggFunc.LAST,
    "countdistinct": AggFunc.COUNTDISTINCT,
}


def _parse_condition(key: str, value: Any) -> tuple[str, FilterOp, Any]:
    """Split a ``column__op`` keyword into its column, operator, and value."""
    parts = key.split("__")
    if len(parts) != 2:
        raise ValueError(f"Invalid filter key '{key}'. Expected format: 'column__op'")

    column, op_name = parts
    if op_name not in _OP_MAPPING:
        raise ValueError(
            f"Unknown filter operation '{op_name}'. "
            f"Supported: {', '.join(_OP_MAPPING.keys())}"
        )

    op = _OP_MAPPING[op_name]
    if op in (FilterOp.IN, FilterOp.NOT_IN):
        if isinstance(value, (str, bytes)):
            raise TypeError(f"'{key}' expects a collection of values, not a string")
        value = frozenset(value)
    return column, op, value


class Pipeline:
    """
    Builder class for queries over log records.

    Operations are recorded as an AST, optimized, and evaluated in memory
    against either a flat record sequence or a PartitionedStore.

    Example:
        >>> (
        ...     Pipeline(store)
        ...     .filter(status__in={404, 500})
        ...     .group_by("ip")
        ...     .agg(count=count_())
        ...     .having(count__gt=3)
        ...     .run()
        ... )
        [{'ip': '1.1.1.2', 'count': 5}]
    """

    def __init__(self, source: RecordSource):
        """
        Create a new Pipeline reading from records.

        Args:
            source: Sequence of LogRecord objects or a PartitionedStore.
        """
        self._source = source
        self._root: Node = Scan()
        self._pending_group_keys: Optional[tuple[str, ...]] = None
        # (unoptimized AST, optimized plan) of the last plan() call
        self._plan: Optional[tuple[Node, Node]] = None

    def filter(self, **kwargs) -> "Pipeline":
        """
        Add a row filter to the pipeline.

        Supported kwargs take the form ``column__op=value``:
            status__eq=404          - Equality
            status__in={404, 500}   - Membership
            url__startswith="/api"  - String prefix
            user_agent__regex="bot" - Regex search
            (also ne, lt, le/lte, gt, ge/gte, not_in, contains, endswith)

        Filters on ``status`` with ``eq`` or ``in`` are answered by reading
        only the matching partitions when the source is a PartitionedStore.

        Returns:
            Self for method chaining.

        Example:
            >>> Pipeline(records).filter(url__startswith="/login")
        """
        for key, value in kwargs.items():
            column, op, value = _parse_condition(key, value)
            self._root = Filter(child=self._root, column=column, op=op, value=value)
        return self

    def group_by(self, *columns: str) -> "Pipeline":
        """
        Group rows by one or more columns.

        Must be followed by agg() to specify aggregations. Groups come out
        in order of first appearance.

        Example:
            >>> Pipeline(records).group_by("url").agg(count=count_())
        """
        if not columns:
            raise ValueError("group_by() requires at least one column")
        self._pending_group_keys = tuple(columns)
        return self

    def agg(self, **aggregations: Union[Aggregation, tuple]) -> "Pipeline":
        """
        Apply aggregations to grouped data.

        Must be called after group_by().

        Args:
            **aggregations: Named aggregations using helper functions or tuples.
                Keys become output column aliases.
                Values can be:
                - Aggregation objects: count_(), min_("timestamp")
                - Tuples: ("*", "count"), ("url", "countdistinct")

        Supported tuple functions: count, min, max, first, last, countdistinct

        Returns:
            Self for method chaining.

        Example:
            >>> Pipeline(records).group_by("ip").agg(
            ...     hits=count_(),
            ...     first_seen=("timestamp", "min"),
            ... )
        """
        if self._pending_group_keys is None:
            raise ValueError("agg() must be called after group_by()")

        if not aggregations:
            raise ValueError("agg() requires at least one aggregation")

        agg_nodes = []
        for alias, agg in aggregations.items():
            if isinstance(agg, Aggregation):
                agg_with_alias = Aggregation(func=agg.func, column=agg.column, alias=alias)
            elif isinstance(agg, tuple) and len(agg) == 2:
                # Tuple syntax: ("column", "func")
                col, func_name = agg
                func_name_lower = func_name.lower()
                if func_name_lower not in _FUNC_MAPPING:
                    raise ValueError(
                        f"Unknown aggregation function '{func_name}'. "
                        f"Supported: {', '.join(_FUNC_MAPPING.keys())}"
                    )
                column = None if col == "*" else col
                agg_with_alias = Aggregation(
                    func=_FUNC_MAPPING[func_name_lower], column=column, alias=alias
                )
            else:
                raise TypeError(
                    f"Expected Aggregation or tuple for '{alias}', got {type(agg).__name__}. "
                    "Use helper functions like count_(), min_() "
                    "or tuples like ('*', 'count')."
                )
            if agg_with_alias.func != AggFunc.COUNT and agg_with_alias.column is None:
                raise ValueError(f"Aggregation '{alias}' requires a column")
            agg_nodes.append(agg_with_alias)

        self._root = GroupBy(
            child=self._root,
            keys=self._pending_group_keys,
            aggregations=tuple(agg_nodes),
        )
        self._pending_group_keys = None
        return self

    def having(self, **kwargs) -> "Pipeline":
        """
        Filter aggregated rows (SQL HAVING).

        Accepts the same ``column__op=value`` keywords as filter(), applied
        to the output columns of the preceding agg().

        Raises:
            ValueError: If no agg() has been applied yet.

        Example:
            >>> Pipeline(records).group_by("ip").agg(count=count_()).having(count__gt=3)
        """
        if not any(isinstance(n, GroupBy) for n in self._walk()):
            raise ValueError("having() must be called after agg()")
        for key, value in kwargs.items():
            column, op, value = _parse_condition(key, value)
            self._root = Having(child=self._root, column=column, op=op, value=value)
        return self

    def sort(
        self,
        column: str,
        order: SortOrder = SortOrder.ASC,
        desc: bool = False,
    ) -> "Pipeline":
        """
        Sort by a column.

        The sort is stable: rows with equal keys keep their current order,
        in both directions.

        Args:
            column: Column name to sort by.
            order: Sort order (SortOrder.ASC or SortOrder.DESC). Default is ASC.
            desc: If True, sort in descending order. Shorthand for order=SortOrder.DESC.

        Returns:
            Self for method chaining.

        Example:
            >>> Pipeline(records).group_by("url").agg(count=count_()).sort("count", desc=True)
        """
        sort_order = SortOrder.DESC if desc else order
        self._root = Sort(child=self._root, columns=((column, sort_order),))
        return self

    def limit(self, count: int, offset: int = 0) -> "Pipeline":
        """
        Limit output to a number of rows.

        Args:
            count: Maximum number of rows to return. 0 returns no rows.
            offset: Number of rows to skip before returning. Default is 0.

        Raises:
            ValueError: If count < 0 or offset < 0.
        """
        if count < 0:
            raise ValueError("limit count must be >= 0")
        if offset < 0:
            raise ValueError("offset must be >= 0")
        self._root = Limit(child=self._root, count=count, offset=offset)
        return self

    def _walk(self):
        node = self._root
        while True:
            yield node
            if not hasattr(node, "child"):
                return
            node = node.child

    def plan(self) -> Node:
        """Return the optimized plan for this pipeline."""
        if self._pending_group_keys is not None:
            raise ValueError("group_by() must be followed by agg()")
        if self._plan is not None and self._plan[0] is self._root:
            return self._plan[1]
        optimized = QueryOptimizer().optimize(self._root)
        self._plan = (self._root, optimized)
        return optimized

    def explain(self) -> str:
        """Return the optimized plan as indented text."""
        return format_plan(self.plan())

    def run_result(self) -> ExecutionResult:
        """
        Execute the pipeline and return the full result.

        Returns:
            ExecutionResult with rows, scanned record count, and plan.
        """
        return execute(self.plan(), self._source)

    def run(self) -> list:
        """
        Execute the pipeline and return result rows.

        For pipelines with an aggregation, returns a list of dicts with
        group keys and aggregation aliases as keys. Otherwise returns the
        matching LogRecord objects.
        """
        return self.run_result().rows

    def count(self) -> int:
        """Execute the pipeline and return the number of result rows."""
        return len(self.run())

    @property
    def ast(self) -> Node:
        """Return the AST root node for inspection."""
        return self._root
