"""Node type registry: type id -> (factory, socket schema)."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Tuple, Union, TYPE_CHECKING

from .errors import UnknownNodeType
from .ir import NodeSchema

if TYPE_CHECKING:
    from .node import Node

NodeFactory = Callable[[], "Node"]


class NodeRegistry:
    def __init__(self) -> None:
        self._types: Dict[str, Tuple[NodeFactory, NodeSchema]] = {}

    def register(self, type_id: str, factory: NodeFactory,
                 schema: Union[NodeSchema, Mapping[str, Any], None] = None) -> None:
        if type_id in self._types:
            raise ValueError(f"Node type '{type_id}' is already registered")
        if schema is None:
            schema = NodeSchema()
        elif not isinstance(schema, NodeSchema):
            schema = NodeSchema.model_validate(dict(schema))
        self._types[type_id] = (factory, schema)

    def unregister(self, type_id: str) -> None:
        if type_id not in self._types:
            raise UnknownNodeType(type_id)
        del self._types[type_id]

    def create(self, type_id: str) -> "Node":
        if type_id not in self._types:
            raise UnknownNodeType(type_id)
        factory, _ = self._types[type_id]
        return factory()

    def schema(self, type_id: str) -> NodeSchema:
        if type_id not in self._types:
            raise UnknownNodeType(type_id)
        return self._types[type_id][1]

    def types(self) -> List[str]:
        return sorted(self._types)

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._types
