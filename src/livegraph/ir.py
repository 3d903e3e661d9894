from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Dict, List, Optional, Any


class WireModel(BaseModel):
    # snake_case in Python, camelCase on the wire; both accepted on input
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NodeSchema(WireModel):
    inputs: Dict[str, str] = Field(default_factory=dict)   # socket name -> kind
    outputs: Dict[str, str] = Field(default_factory=dict)  # socket name -> kind


class Connection(WireModel):
    model_config = ConfigDict(frozen=True)

    id: int
    from_node: int
    from_socket: str
    to_node: int
    to_socket: str

    def endpoints(self) -> tuple:
        return (self.from_node, self.from_socket, self.to_node, self.to_socket)


class NodeRecord(WireModel):
    id: int
    type: str
    data: Optional[Any] = None


class GraphSnapshot(WireModel):
    nodes: List[NodeRecord] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def node_map(self) -> Dict[int, NodeRecord]:
        return {n.id: n for n in self.nodes}
