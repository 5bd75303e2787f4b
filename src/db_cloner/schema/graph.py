"""Foreign-key dependency graph and topological ordering.

The graph maps every table to the set of tables its foreign keys
reference.  ``topological_order()`` lists dependencies first, which is the
order tables are created and populated in; ``drop_order()`` is its reverse
(dependents first).

Pure logic -- no I/O.  Build a graph from live metadata with
``SchemaIntrospector.get_dependency_graph()``.

Usage:
    from db_cloner.schema.graph import DependencyGraph

    graph = DependencyGraph({"orders": {"users"}, "users": set()})
    graph.topological_order()  # ['users', 'orders']
    graph.drop_order()         # ['orders', 'users']
"""

import logging
from collections.abc import Iterable, Mapping

from db_cloner.schema.models import TableNode

logger = logging.getLogger(__name__)

_VISITING = 1
_DONE = 2


class DependencyGraph:
    """Directed graph: table -> tables it references via foreign key.

    Invariant: every name in a node's ``depends_on`` is itself a node.
    References to tables outside the graph are dropped with a warning.
    Self-references are kept (they are legal) but ignored for ordering.
    Cycles are tolerated: traversal always terminates and the order is
    best-effort for the cyclic set.  See ``cycles()``.

    Args:
        edges: Mapping of table name to the names it references.

    Example:
        graph = DependencyGraph({
            "users": [],
            "orders": ["users"],
            "order_items": ["orders", "products"],
            "products": [],
        })
        graph.topological_order()
        # ['users', 'orders', 'products', 'order_items']
    """

    def __init__(self, edges: Mapping[str, Iterable[str]]) -> None:
        names = set(edges)
        nodes: dict[str, TableNode] = {}

        for name in sorted(names):
            deps = set(edges[name])
            unknown = deps - names
            if unknown:
                logger.warning(
                    "Ignoring foreign keys from '%s' to tables outside the schema: %s",
                    name,
                    ", ".join(sorted(unknown)),
                )
            nodes[name] = TableNode(name=name, depends_on=frozenset(deps & names))

        self._nodes = nodes
        self._order: list[str] | None = None
        self._cycles: list[list[str]] = []

    @classmethod
    def from_nodes(cls, nodes: Iterable[TableNode]) -> "DependencyGraph":
        """Build a graph from ``TableNode`` instances."""
        return cls({node.name: node.depends_on for node in nodes})

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> dict[str, TableNode]:
        return dict(self._nodes)

    @property
    def tables(self) -> list[str]:
        """All table names, sorted."""
        return list(self._nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def dependencies(self, name: str) -> frozenset[str]:
        """Tables that ``name`` references (excluding itself)."""
        return self._nodes[name].depends_on - {name}

    def dependents(self, name: str) -> set[str]:
        """Tables whose foreign keys reference ``name``."""
        return {
            node.name
            for node in self._nodes.values()
            if name in node.depends_on and node.name != name
        }

    def subgraph(self, names: Iterable[str]) -> "DependencyGraph":
        """Restrict the graph to ``names``; edges leaving the set are dropped."""
        keep = set(names) & set(self._nodes)
        return DependencyGraph(
            {name: self._nodes[name].depends_on & keep for name in keep}
        )

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def topological_order(self) -> list[str]:
        """Tables ordered so each comes after every table it references.

        Iterative depth-first post-order.  Roots and dependencies are
        visited in sorted order, so the result is deterministic.
        """
        if self._order is None:
            self._traverse()
        return list(self._order)

    def drop_order(self) -> list[str]:
        """Reverse topological order: dependents before the tables they reference."""
        return list(reversed(self.topological_order()))

    def cycles(self) -> list[list[str]]:
        """Cycles met during traversal, one per back edge.

        Each cycle is the path from the re-entered table down to the table
        that references it.  Self-references are not reported.
        """
        if self._order is None:
            self._traverse()
        return [list(cycle) for cycle in self._cycles]

    def _traverse(self) -> None:
        order: list[str] = []
        cycles: list[list[str]] = []
        state: dict[str, int] = {}

        for root in self._nodes:
            if root in state:
                continue

            state[root] = _VISITING
            stack = [(root, iter(sorted(self.dependencies(root))))]

            while stack:
                node, pending = stack[-1]
                for dep in pending:
                    if dep not in state:
                        state[dep] = _VISITING
                        stack.append((dep, iter(sorted(self.dependencies(dep)))))
                        break
                    if state[dep] == _VISITING:
                        path = [name for name, _ in stack]
                        cycles.append(path[path.index(dep):])
                else:
                    stack.pop()
                    state[node] = _DONE
                    order.append(node)

        self._order = order
        self._cycles = cycles
