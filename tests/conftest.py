import pytest

from livegraph.graph import NodeGraph
from livegraph.node import Node
from livegraph.nodes import default_registry


class PassNode(Node):
    """Forwards its input and records every process() call in a shared log."""

    log = None
    fail = False

    def process(self):
        PassNode.log.append(self.id)
        if self.fail:
            raise RuntimeError("boom")
        self.outputs["out"] = self.read_input("in", 0)


@pytest.fixture
def calls():
    PassNode.log = []
    yield PassNode.log
    PassNode.log = None


@pytest.fixture
def registry(calls):
    reg = default_registry()
    reg.register("pass", PassNode, {"inputs": {"in": "number"}, "outputs": {"out": "number"}})
    reg.register("text", Node, {"inputs": {"in": "text"}, "outputs": {"out": "text"}})
    return reg


@pytest.fixture
def graph(registry):
    return NodeGraph(registry)


def chain(graph, *types):
    """Add nodes of ``types`` and connect each to the next; return their ids."""
    ids = [graph.add_node(t) for t in types]
    for a, b in zip(ids, ids[1:]):
        graph.add_connection(a, "out", b, "in")
    return ids
