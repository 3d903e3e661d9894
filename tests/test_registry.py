import pytest

from livegraph.errors import UnknownNodeType
from livegraph.ir import NodeSchema
from livegraph.node import Node
from livegraph.registry import NodeRegistry
from livegraph.nodes import default_registry


def test_register_and_create():
    reg = NodeRegistry()
    reg.register("blank", Node, NodeSchema(inputs={"x": "number"}))
    assert "blank" in reg
    assert isinstance(reg.create("blank"), Node)
    assert reg.schema("blank").inputs == {"x": "number"}
    assert reg.schema("blank").outputs == {}


def test_mapping_schema_and_default_schema():
    reg = NodeRegistry()
    reg.register("mapped", Node, {"outputs": {"y": "text"}})
    reg.register("bare", Node)
    assert reg.schema("mapped").outputs == {"y": "text"}
    assert reg.schema("bare") == NodeSchema()
    assert reg.types() == ["bare", "mapped"]


def test_duplicate_registration_rejected():
    reg = NodeRegistry()
    reg.register("a", Node)
    with pytest.raises(ValueError):
        reg.register("a", Node)


def test_unknown_type():
    reg = NodeRegistry()
    with pytest.raises(UnknownNodeType):
        reg.create("ghost")
    with pytest.raises(UnknownNodeType):
        reg.schema("ghost")
    with pytest.raises(UnknownNodeType):
        reg.unregister("ghost")


def test_unregister():
    reg = default_registry()
    reg.unregister("display")
    assert "display" not in reg
    assert reg.types() == ["add", "constant", "double"]


def test_factory_builds_fresh_instances():
    reg = default_registry()
    assert reg.create("constant") is not reg.create("constant")


def test_unattached_node_cannot_reach_graph():
    node = Node()
    node.process()
    node.on_message({"anything": 1})
    with pytest.raises(RuntimeError):
        node.send_message("hello")


def test_read_input_defaults(graph):
    s = graph.add_node("add")
    node = graph.node(s)
    assert node.read_input("a", 3) == 3
    c = graph.add_node("double")
    graph.add_connection(c, "output", s, "a")
    # upstream has not produced anything yet
    assert node.read_input("a", 3) == 3
    graph.scheduler.run_once()
    assert node.outputs["sum"] == 0
