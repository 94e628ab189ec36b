"""AST nodes for LogSpark query plans."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional


class AggFunc(Enum):
    """Supported aggregation functions.

    Attributes:
        COUNT: Count rows.
        MIN: Minimum value.
        MAX: Maximum value.
        FIRST: First value in group.
        LAST: Last value in group.
        COUNTDISTINCT: Count of unique values.
    """

    COUNT = auto()
    MIN = auto()
    MAX = auto()
    FIRST = auto()
    LAST = auto()
    COUNTDISTINCT = auto()


class SortOrder(Enum):
    """Sort order for sort operations.

    Attributes:
        ASC: Ascending order (smallest to largest).
        DESC: Descending order (largest to smallest).
    """

    ASC = auto()
    DESC = auto()


class FilterOp(Enum):
    """Filter comparison operators.

    Attributes:
        EQ: Equality (==).
        NE: Not equal (!=).
        LT: Less than (<).
        LE: Less than or equal (<=).
        GT: Greater than (>).
        GE: Greater than or equal (>=).
        IN: Membership in a set of values.
        NOT_IN: Non-membership in a set of values.
        CONTAINS: Substring match.
        REGEX: Regular expression search.
        STARTSWITH: String prefix match.
        ENDSWITH: String suffix match.
    """

    EQ = auto()  # ==
    NE = auto()  # !=
    LT = auto()  # <
    LE = auto()  # <=
    GT = auto()  # >
    GE = auto()  # >=
    IN = auto()
    NOT_IN = auto()
    CONTAINS = auto()  # substring match
    REGEX = auto()  # regex search
    STARTSWITH = auto()
    ENDSWITH = auto()


@dataclass(frozen=True)
class Node:
    """Base class for all AST nodes."""

    pass


@dataclass(frozen=True)
class Scan(Node):
    """Scan node reading records from the run's input.

    When the input is a PartitionedStore, ``statuses`` restricts the scan
    to those partitions. None means every partition.
    """

    statuses: Optional[frozenset[int]] = None


@dataclass(frozen=True)
class Filter(Node):
    """Filter node for row filtering."""

    child: Node
    column: str
    op: FilterOp
    value: Any


@dataclass(frozen=True)
class Aggregation(Node):
    """Single aggregation specification."""

    func: AggFunc
    column: Optional[str] = None  # None for COUNT(*)
    alias: Optional[str] = None


@dataclass(frozen=True)
class GroupBy(Node):
    """GroupBy node for aggregations.

    Groups are emitted in order of first appearance of their key.
    """

    child: Node
    keys: tuple[str, ...]
    aggregations: tuple[Aggregation, ...]


@dataclass(frozen=True)
class Having(Node):
    """Filter applied to aggregated rows (SQL HAVING)."""

    child: Node
    column: str
    op: FilterOp
    value: Any


@dataclass(frozen=True)
class Sort(Node):
    """Stable sort node. Rows that compare equal keep their input order."""

    child: Node
    columns: tuple[tuple[str, SortOrder], ...]  # (column, order) pairs


@dataclass(frozen=True)
class Limit(Node):
    """Limit node to restrict output rows."""

    child: Node
    count: int
    offset: int = 0


def walk_tree(node: Node):
    """Generator that yields all nodes in the tree (depth-first)."""
    yield node
    if hasattr(node, "child"):
        yield from walk_tree(node.child)


def get_scan(node: Node) -> Optional[Scan]:
    """Find the Scan node in a query tree."""
    for n in walk_tree(node):
        if isinstance(n, Scan):
            return n
    return None


def format_plan(node: Node) -> str:
    """
    Render a query tree as an indented, top-down plan.

    Example:
        >>> print(format_plan(Limit(child=Scan(), count=5)))
        Limit(count=5, offset=0)
          Scan(statuses=*)
    """
    lines = []
    for depth, n in enumerate(walk_tree(node)):
        lines.append("  " * depth + _describe(n))
    return "\n".join(lines)


def _describe(node: Node) -> str:
    if isinstance(node, Scan):
        if node.statuses is None:
            return "Scan(statuses=*)"
        return f"Scan(statuses={sorted(node.statuses)})"
    if isinstance(node, (Filter, Having)):
        value = sorted(node.value) if isinstance(node.value, frozenset) else node.value
        return f"{type(node).__name__}({node.column} {node.op.name} {value!r})"
    if isinstance(node, GroupBy):
        aggs = ", ".join(
            f"{a.alias}={a.func.name}({a.column or '*'})" for a in node.aggregations
        )
        return f"GroupBy(keys={list(node.keys)}, {aggs})"
    if isinstance(node, Sort):
        cols = ", ".join(f"{c} {o.name}" for c, o in node.columns)
        return f"Sort({cols})"
    if isinstance(node, Limit):
        return f"Limit(count={node.count}, offset={node.offset})"
    return type(node).__name__
