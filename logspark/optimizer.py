"""Query plan optimizer with rule-based transformation passes."""

from dataclasses import replace

from logspark.ast import Filter, FilterOp, Limit, Node, Scan

# Filters on this column can be answered by reading fewer partitions
PARTITION_COLUMN = "status"


class QueryOptimizer:
    """
    Rule-based query optimizer.

    Transforms the AST so that less data is scanned and fewer stages run.
    Applies the following optimization passes in order:
    1. Filter pushdown - move filters closer to Scan
    2. Partition pruning - fold status filters into the Scan
    3. Redundancy elimination - remove no-op operations
    4. Limit optimization - merge consecutive limits
    """

    def optimize(self, node: Node) -> Node:
        """
        Apply all optimization passes to the AST.

        Args:
            node: Root of the AST to optimize.

        Returns:
            Optimized AST (new tree, original unchanged).
        """
        node = self._push_filters_down(node)
        node = self._prune_partitions(node)
        node = self._eliminate_redundancy(node)
        node = self._optimize_limits(node)
        return node

    def _push_filters_down(self, node: Node) -> Node:
        """
        Push Filter nodes closer to Scan.

        Rules:
        - Partition-column filters move below other row filters, so that
          they end up directly on top of the Scan
        - Filter cannot move past GroupBy or Having (aggregation changes semantics)
        - Filter cannot move past Sort or Limit
        """
        if isinstance(node, Scan):
            return node

        if hasattr(node, "child"):
            node = replace(node, child=self._push_filters_down(node.child))

        if isinstance(node, Filter):
            return self._try_push_filter_down(node)

        return node

    def _try_push_filter_down(self, filter_node: Filter) -> Node:
        """Try to push a filter node down past its child."""
        child = filter_node.child

        if self._can_push_filter_past(filter_node, child):
            # Before: Filter(child=Target(child=X))
            # After:  Target(child=Filter(child=X))
            pushed = self._try_push_filter_down(replace(filter_node, child=child.child))
            return replace(child, child=pushed)

        return filter_node

    def _can_push_filter_past(self, filter_node: Filter, target: Node) -> bool:
        """Check if a filter can be pushed past a target node."""
        if isinstance(target, Filter):
            # Only reorder when it brings a partition filter closer to the scan
            return (
                self._is_partition_filter(filter_node)
                and not self._is_partition_filter(target)
            )

        # Cannot reorder past GroupBy, Having, Sort or Limit
        return False

    def _is_partition_filter(self, node: Node) -> bool:
        return (
            isinstance(node, Filter)
            and node.column == PARTITION_COLUMN
            and node.op in (FilterOp.EQ, FilterOp.IN)
        )

    def _prune_partitions(self, node: Node) -> Node:
        """
        Fold status EQ/IN filters that sit directly on a Scan into it.

        Before: Filter(status IN {404, 500}, child=Scan(statuses=*))
        After:  Scan(statuses={404, 500})
        """
        if isinstance(node, Scan):
            return node

        node = replace(node, child=self._prune_partitions(node.child))

        if self._is_partition_filter(node) and isinstance(node.child, Scan):
            if node.op == FilterOp.EQ:
                wanted = frozenset([node.value])
            else:
                wanted = frozenset(node.value)
            scan = node.child
            if scan.statuses is not None:
                wanted = scan.statuses & wanted
            return Scan(statuses=wanted)

        return node

    def _eliminate_redundancy(self, node: Node) -> Node:
        """
        Remove redundant operations.

        Rules:
        - Remove consecutive identical Filters
        """
        if isinstance(node, Scan):
            return node

        node = replace(node, child=self._eliminate_redundancy(node.child))

        if isinstance(node, Filter) and isinstance(node.child, Filter):
            if self._filters_identical(node, node.child):
                return node.child

        return node

    def _filters_identical(self, f1: Filter, f2: Filter) -> bool:
        """Check if two filters are identical (ignoring child)."""
        return f1.column == f2.column and f1.op == f2.op and f1.value == f2.value

    def _optimize_limits(self, node: Node) -> Node:
        """
        Optimize Limit placement.

        Rules:
        - Limit stays after Sort (need full sort before limiting)
        - Limit cannot move past GroupBy (need all rows for aggregation)
        - Multiple consecutive limits: keep the smaller one
        """
        if isinstance(node, Scan):
            return node

        node = replace(node, child=self._optimize_limits(node.child))

        if isinstance(node, Limit) and isinstance(node.child, Limit):
            inner_limit = node.child
            # Outer offset skips rows of the inner output; only merge without one
            if node.offset == 0:
                return replace(
                    inner_limit,
                    count=min(node.count, inner_limit.count),
                )

        return node
