"""
Resource graph and dependency resolver tests.
"""
import random

import pytest

from iacdemo import resolver
from iacdemo.errors import CyclicDependency, DuplicateIdentity, UnknownResource
from iacdemo.graph import ResourceGraph
from iacdemo.models.expression import Reference
from iacdemo.models.resource import Resource, ResourceKind


def _table(name="BlogTable"):
    return Resource(
        name=name,
        kind=ResourceKind.TABLE,
        properties={"partitionKey": {"name": "blogId", "type": "S"}},
    )


def _node(name, **props):
    return Resource(name=name, kind=ResourceKind.FUNCTION, properties=props)


def _assert_dependencies_first(order):
    position = {r.name: i for i, r in enumerate(order)}
    for r in order:
        for dep in r.references:
            assert position[dep] < position[r.name], f"{dep} should precede {r.name}"


# --------------------------------------------------------- ResourceGraph
class TestResourceGraph:
    def setup_method(self):
        self.graph = ResourceGraph()

    def test_register_returns_resource(self):
        table = self.graph.register(_table())
        assert table.name == "BlogTable"
        assert "BlogTable" in self.graph
        assert len(self.graph) == 1

    def test_duplicate_name_rejected(self):
        self.graph.register(_table())
        with pytest.raises(DuplicateIdentity) as exc:
            self.graph.register(_table())
        assert exc.value.name == "BlogTable"

    def test_register_with_unknown_reference(self):
        with pytest.raises(UnknownResource) as exc:
            self.graph.register(_node("Fn", env={"TABLE": Reference("Missing", "name")}))
        assert exc.value.name == "Missing"
        assert "Fn" not in self.graph

    def test_register_with_unknown_depends_on(self):
        r = _node("Fn")
        r.depends_on.append("Missing")
        with pytest.raises(UnknownResource):
            self.graph.register(r)

    def test_add_reference_sets_deferred_property(self):
        self.graph.register(_table())
        fn = self.graph.register(_node("Fn"))
        ref = self.graph.add_reference("Fn", "BlogTable", "tableName", attribute="name")
        assert fn.properties["tableName"] == ref
        assert isinstance(fn.properties["tableName"], Reference)
        assert fn.references == {"BlogTable"}

    def test_add_reference_unknown_source(self):
        self.graph.register(_table())
        with pytest.raises(UnknownResource):
            self.graph.add_reference("Ghost", "BlogTable", "tableName")

    def test_add_reference_unknown_target(self):
        self.graph.register(_node("Fn"))
        with pytest.raises(UnknownResource) as exc:
            self.graph.add_reference("Fn", "Ghost", "tableName")
        assert exc.value.referrer == "Fn"

    def test_add_dependency_not_duplicated(self):
        self.graph.register(_table())
        fn = self.graph.register(_node("Fn"))
        self.graph.add_dependency("Fn", "BlogTable")
        self.graph.add_dependency("Fn", "BlogTable")
        assert fn.depends_on == ["BlogTable"]

    def test_iteration_keeps_declaration_order(self):
        for name in ("C", "A", "B"):
            self.graph.register(_node(name))
        assert [r.name for r in self.graph] == ["C", "A", "B"]

    def test_get_unknown_raises(self):
        with pytest.raises(UnknownResource):
            self.graph.get("Nope")


# --------------------------------------------------------- DependencyResolver
class TestResolver:
    def setup_method(self):
        self.graph = ResourceGraph()

    def test_reference_orders_target_first(self):
        self.graph.register(_node("Fn"))
        self.graph.register(_table())
        self.graph.add_reference("Fn", "BlogTable", "tableName", attribute="name")
        order = resolver.resolve(self.graph)
        assert [r.name for r in order] == ["BlogTable", "Fn"]

    def test_independent_resources_keep_declaration_order(self):
        for name in ("Z", "Y", "X"):
            self.graph.register(_node(name))
        assert [r.name for r in resolver.resolve(self.graph)] == ["Z", "Y", "X"]

    def test_diamond(self):
        self.graph.register(_node("Base"))
        self.graph.register(_node("Left", ref=Reference("Base")))
        self.graph.register(_node("Right", ref=Reference("Base")))
        self.graph.register(_node("Top", l=Reference("Left"), r=Reference("Right")))
        order = resolver.resolve(self.graph)
        assert len(order) == 4
        assert order[0].name == "Base"
        assert order[-1].name == "Top"
        _assert_dependencies_first(order)

    def test_two_node_cycle(self):
        self.graph.register(_node("A"))
        self.graph.register(_node("B", ref=Reference("A")))
        self.graph.add_dependency("A", "B")
        with pytest.raises(CyclicDependency) as exc:
            resolver.resolve(self.graph)
        assert exc.value.cycle == ["A", "B", "A"]
        assert "A -> B -> A" in str(exc.value)

    def test_self_reference_is_a_cycle(self):
        self.graph.register(_node("A"))
        self.graph.add_reference("A", "A", "self")
        with pytest.raises(CyclicDependency) as exc:
            resolver.resolve(self.graph)
        assert exc.value.cycle == ["A", "A"]

    def test_cycle_reported_without_unrelated_prefix(self):
        self.graph.register(_node("Entry"))
        self.graph.register(_node("A"))
        self.graph.register(_node("B", ref=Reference("A")))
        self.graph.add_dependency("Entry", "A")
        self.graph.add_dependency("A", "B")
        with pytest.raises(CyclicDependency) as exc:
            resolver.resolve(self.graph)
        assert exc.value.cycle == ["A", "B", "A"]

    @pytest.mark.parametrize("seed", range(10))
    def test_random_acyclic_graphs(self, seed):
        rng = random.Random(seed)
        names = [f"R{i}" for i in range(15)]
        for name in names:
            self.graph.register(_node(name))
        # Edges only point at later-declared nodes, so the graph is acyclic
        # but declaration order is never a valid answer on its own.
        for i, name in enumerate(names):
            for later in names[i + 1:]:
                if rng.random() < 0.3:
                    self.graph.add_dependency(name, later)
        order = resolver.resolve(self.graph)
        assert sorted(r.name for r in order) == sorted(names)
        _assert_dependencies_first(order)
