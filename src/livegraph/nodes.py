"""Small built-in node types used by the CLI, the templates and the tests."""
from __future__ import annotations

import numbers
from typing import Any, Optional

from .node import Node
from .registry import NodeRegistry

NUMBER = "number"


def _as_number(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValueError(f"expected a number, got {value!r}")
    return value


class ConstantNode(Node):
    """Outputs a value set by the editor."""

    def __init__(self) -> None:
        super().__init__()
        self.value = 0

    def get_data(self) -> Any:
        return self.value

    def set_data(self, data: Any) -> None:
        self.value = _as_number(data)

    def on_message(self, payload: Any) -> None:
        self.set_data(payload)
        self.mark_dirty()

    def process(self) -> None:
        self.outputs["output"] = self.value


class DoubleNode(Node):
    def process(self) -> None:
        value = self.read_input("input")
        self.outputs["output"] = None if value is None else value * 2


class AddNode(Node):
    def process(self) -> None:
        a = self.read_input("a", 0)
        b = self.read_input("b", 0)
        self.outputs["sum"] = a + b


class DisplayNode(Node):
    """Sink that pushes its input to the editor whenever it changes."""

    def __init__(self) -> None:
        super().__init__()
        self.last: Optional[Any] = None

    def process(self) -> None:
        value = self.read_input("input")
        if value != self.last:
            self.last = value
            self.send_message({"value": value})


def register_builtin_nodes(registry: NodeRegistry) -> NodeRegistry:
    registry.register("constant", ConstantNode, {"outputs": {"output": NUMBER}})
    registry.register("double", DoubleNode,
                      {"inputs": {"input": NUMBER}, "outputs": {"output": NUMBER}})
    registry.register("add", AddNode,
                      {"inputs": {"a": NUMBER, "b": NUMBER}, "outputs": {"sum": NUMBER}})
    registry.register("display", DisplayNode, {"inputs": {"input": NUMBER}})
    return registry


def default_registry() -> NodeRegistry:
    return register_builtin_nodes(NodeRegistry())
