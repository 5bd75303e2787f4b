"""Tests for the foreign-key dependency graph.

Verifies that ``DependencyGraph``:
- Orders every table after the tables it references
- Drops references to tables outside the graph
- Ignores self-references for ordering
- Terminates on cycles and reports them
- Produces a deterministic order
"""

import logging

import pytest

from db_cloner.schema.graph import DependencyGraph
from db_cloner.schema.models import TableNode


def _assert_dependencies_first(graph: DependencyGraph) -> None:
    order = graph.topological_order()
    position = {name: i for i, name in enumerate(order)}
    for name in graph.tables:
        for dep in graph.dependencies(name):
            assert position[dep] < position[name], f"{dep} should precede {name}"


# ============================================================================
# Ordering
# ============================================================================


class TestTopologicalOrder:
    """Verify creation and drop order."""

    def test_users_before_orders(self) -> None:
        """A referenced table is populated before the table referencing it."""
        graph = DependencyGraph({"users": [], "orders": ["users"]})
        assert graph.topological_order() == ["users", "orders"]
        assert graph.drop_order() == ["orders", "users"]

    def test_diamond(self) -> None:
        """Tables with several parents come after all of them."""
        graph = DependencyGraph({
            "users": [],
            "orders": ["users"],
            "products": [],
            "order_items": ["orders", "products"],
        })
        assert graph.topological_order() == ["users", "orders", "products", "order_items"]
        _assert_dependencies_first(graph)

    def test_chain_declared_out_of_order(self) -> None:
        """Declaration order does not matter."""
        graph = DependencyGraph({
            "a_invoice_lines": ["invoices"],
            "invoices": ["customers"],
            "customers": ["regions"],
            "regions": [],
        })
        assert graph.topological_order() == [
            "regions", "customers", "invoices", "a_invoice_lines",
        ]

    def test_independent_tables_sorted(self) -> None:
        """Unrelated tables come out in name order."""
        graph = DependencyGraph({"zebra": [], "apple": [], "mango": []})
        assert graph.topological_order() == ["apple", "mango", "zebra"]

    def test_every_table_listed_once(self) -> None:
        """Order is a permutation of the tables."""
        edges = {f"t{i}": [f"t{j}" for j in range(i) if (i + j) % 3 == 0] for i in range(12)}
        graph = DependencyGraph(edges)
        order = graph.topological_order()
        assert sorted(order) == sorted(edges)
        _assert_dependencies_first(graph)

    def test_deterministic(self) -> None:
        """Same edges produce the same order."""
        edges = {"b": ["a"], "c": ["a"], "a": [], "d": ["b", "c"]}
        assert DependencyGraph(edges).topological_order() == DependencyGraph(
            dict(reversed(list(edges.items())))
        ).topological_order()

    def test_empty_graph(self) -> None:
        """An empty database has an empty order."""
        graph = DependencyGraph({})
        assert graph.topological_order() == []
        assert graph.drop_order() == []
        assert len(graph) == 0


# ============================================================================
# Edge cases
# ============================================================================


class TestGraphEdgeCases:
    """Verify self-references, dangling references and cycles."""

    def test_self_reference_ignored_for_ordering(self) -> None:
        """employees.manager_id -> employees does not block ordering."""
        graph = DependencyGraph({"employees": ["employees"], "badges": ["employees"]})
        assert graph.topological_order() == ["employees", "badges"]
        assert graph.dependencies("employees") == frozenset()
        assert graph.cycles() == []

    def test_unknown_reference_dropped(self, caplog: pytest.LogCaptureFixture) -> None:
        """References to tables outside the graph are removed with a warning."""
        with caplog.at_level(logging.WARNING, logger="db_cloner"):
            graph = DependencyGraph({"orders": ["users", "legacy_accounts"], "users": []})

        assert graph.dependencies("orders") == frozenset({"users"})
        assert "legacy_accounts" in caplog.text

    def test_cycle_terminates_and_is_reported(self) -> None:
        """A two-table cycle still yields both tables once."""
        graph = DependencyGraph({"a": ["b"], "b": ["a"]})
        order = graph.topological_order()
        assert sorted(order) == ["a", "b"]
        assert graph.cycles() == [["a", "b"]]

    def test_cycle_does_not_disturb_acyclic_part(self) -> None:
        """Tables outside the cycle are still ordered correctly."""
        graph = DependencyGraph({
            "users": [],
            "a": ["b", "users"],
            "b": ["a"],
            "reports": ["a"],
        })
        order = graph.topological_order()
        assert order.index("users") < order.index("a")
        assert order.index("a") < order.index("reports")
        assert len(graph.cycles()) == 1


# ============================================================================
# Accessors
# ============================================================================


class TestGraphAccessors:
    """Verify nodes, dependents and subgraph."""

    def test_from_nodes(self) -> None:
        """Graph built from TableNodes matches the edge mapping."""
        graph = DependencyGraph.from_nodes([
            TableNode(name="users"),
            TableNode(name="orders", depends_on=frozenset({"users"})),
        ])
        assert graph.topological_order() == ["users", "orders"]
        assert graph.nodes["orders"].depends_on == frozenset({"users"})

    def test_dependents(self) -> None:
        """dependents() lists the tables referencing a table."""
        graph = DependencyGraph({"users": [], "orders": ["users"], "logins": ["users"]})
        assert graph.dependents("users") == {"orders", "logins"}
        assert graph.dependents("orders") == set()

    def test_contains(self) -> None:
        graph = DependencyGraph({"users": []})
        assert "users" in graph
        assert "orders" not in graph

    def test_subgraph_drops_outside_edges(self) -> None:
        """Restricting to a subset keeps only internal edges."""
        graph = DependencyGraph({"users": [], "orders": ["users"], "items": ["orders"]})
        sub = graph.subgraph(["orders", "items"])
        assert sub.tables == ["items", "orders"]
        assert sub.dependencies("orders") == frozenset()
        assert sub.topological_order() == ["orders", "items"]
