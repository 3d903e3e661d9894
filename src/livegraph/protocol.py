from __future__ import annotations
from typing import Any, Dict, Literal, Optional

from .ir import WireModel

InboundKind = Literal[
    "CreateNode",
    "RemoveNode",
    "CreateConnection",
    "RemoveConnection",
    "NodeData",
    "RequestSnapshot",
    "LoadSnapshot",
]

OutboundKind = Literal["GraphChanged", "NodeMessage", "Error"]


class InboundMessage(WireModel):
    kind: InboundKind
    request_id: Optional[str] = None
    node_id: Optional[int] = None
    node_type: Optional[str] = None
    socket: Optional[str] = None
    connection_id: Optional[int] = None
    from_node_id: Optional[int] = None
    from_socket: Optional[str] = None
    to_node_id: Optional[int] = None
    to_socket: Optional[str] = None
    data: Optional[Any] = None


class OutboundMessage(WireModel):
    kind: OutboundKind
    request_id: Optional[str] = None
    node_id: Optional[int] = None
    data: Optional[Any] = None
    error: Optional[str] = None
    detail: Optional[str] = None
    request: Optional[Dict[str, Any]] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
