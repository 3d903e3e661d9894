from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from .errors import GraphError, InvalidSnapshot, MalformedMessage, NodeMessageFailed, NodeProcessFailed
from .graph import NodeGraph
from .ir import GraphSnapshot
from .protocol import InboundMessage, OutboundMessage

logger = logging.getLogger(__name__)

Sender = Callable[[OutboundMessage], None]
RawMessage = Union[str, bytes, Dict[str, Any], InboundMessage]


class MessageRouter:
    def __init__(self, graph: NodeGraph, send: Optional[Sender] = None,
                 graph_changed: str = "diff"):
        if graph_changed not in ("diff", "full"):
            raise ValueError(f"graph_changed must be 'diff' or 'full', not {graph_changed!r}")
        self.graph = graph
        self.graph_changed = graph_changed
        self._send = send
        self._handlers = {
            "CreateNode": self._create_node,
            "RemoveNode": self._remove_node,
            "CreateConnection": self._create_connection,
            "RemoveConnection": self._remove_connection,
            "NodeData": self._node_data,
            "RequestSnapshot": self._request_snapshot,
            "LoadSnapshot": self._load_snapshot,
        }
        graph.message_sink = self.forward_node_message

    # -- codec ----------------------------------------------------------------

    def decode(self, raw: RawMessage) -> InboundMessage:
        if isinstance(raw, InboundMessage):
            return raw
        try:
            if isinstance(raw, (str, bytes, bytearray)):
                return InboundMessage.model_validate_json(raw)
            return InboundMessage.model_validate(raw)
        except ValidationError as exc:
            raise MalformedMessage(f"Invalid message: {exc.errors(include_url=False)}", raw) from exc

    @staticmethod
    def encode(message: OutboundMessage) -> str:
        return json.dumps(message.to_wire())

    # -- inbound --------------------------------------------------------------

    def receive(self, raw: RawMessage) -> List[OutboundMessage]:
        """Decode and handle one raw message, returning what was sent back."""
        try:
            message = self.decode(raw)
        except MalformedMessage as exc:
            logger.warning("Dropping malformed message: %s", exc)
            reply = OutboundMessage(kind="Error", error=exc.kind, detail=str(exc),
                                    request=_raw_to_dict(raw))
            self._emit(reply)
            return [reply]
        return self.handle(message)

    def handle(self, message: InboundMessage) -> List[OutboundMessage]:
        handler = self._handlers[message.kind]
        try:
            replies = handler(message)
        except (GraphError, MalformedMessage, NodeMessageFailed) as exc:
            logger.warning("Rejected %s request: %s", message.kind, exc)
            replies = [self._error_reply(message, exc)]
        except Exception as exc:
            logger.error("Unexpected failure handling %s request", message.kind, exc_info=exc)
            replies = [self._error_reply(message, exc)]
        for reply in replies:
            self._emit(reply)
        return replies

    # -- outbound -------------------------------------------------------------

    def forward_node_message(self, node_id: int, payload: Any) -> None:
        self._emit(OutboundMessage(kind="NodeMessage", node_id=node_id, data=payload))

    def report_failure(self, failure: NodeProcessFailed) -> OutboundMessage:
        reply = OutboundMessage(kind="Error", node_id=failure.node_id, error=failure.kind,
                                detail=str(failure))
        self._emit(reply)
        return reply

    def _emit(self, message: OutboundMessage) -> None:
        if self._send is not None:
            self._send(message)

    def _changed(self, message: InboundMessage, diff: Dict[str, Any]) -> List[OutboundMessage]:
        if self.graph_changed == "full":
            return [self._snapshot_reply(message)]
        return [OutboundMessage(kind="GraphChanged", request_id=message.request_id,
                                data={"diff": diff})]

    def _snapshot_reply(self, message: InboundMessage) -> OutboundMessage:
        snapshot = self.graph.serialize().model_dump(mode="json", by_alias=True)
        return OutboundMessage(kind="GraphChanged", request_id=message.request_id,
                               data={"snapshot": snapshot})

    def _error_reply(self, message: InboundMessage, exc: Exception) -> OutboundMessage:
        node_id = getattr(exc, "node_id", None)
        if not isinstance(node_id, int):
            node_id = message.node_id
        return OutboundMessage(
            kind="Error",
            request_id=message.request_id,
            node_id=node_id,
            error=getattr(exc, "kind", type(exc).__name__),
            detail=str(exc),
            request=message.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    # -- handlers -------------------------------------------------------------

    def _create_node(self, message: InboundMessage) -> List[OutboundMessage]:
        _require(message, "node_type")
        node_id = self.graph.add_node(message.node_type, message.data)
        node = self.graph.node(node_id)
        record = {"id": node_id, "type": node.type_id, "data": node.get_data()}
        return self._changed(message, {"op": "addNode", "node": record})

    def _remove_node(self, message: InboundMessage) -> List[OutboundMessage]:
        _require(message, "node_id")
        removed = self.graph.remove_node(message.node_id)
        return self._changed(message, {
            "op": "removeNode",
            "nodeId": message.node_id,
            "connections": [c.id for c in removed],
        })

    def _create_connection(self, message: InboundMessage) -> List[OutboundMessage]:
        _require(message, "from_node_id", "from_socket", "to_node_id", "to_socket")
        conn = self.graph.add_connection(message.from_node_id, message.from_socket,
                                         message.to_node_id, message.to_socket)
        return self._changed(message, {
            "op": "addConnection",
            "connection": conn.model_dump(mode="json", by_alias=True),
        })

    def _remove_connection(self, message: InboundMessage) -> List[OutboundMessage]:
        if message.connection_id is not None:
            connection_id = message.connection_id
        else:
            _require(message, "from_node_id", "from_socket", "to_node_id", "to_socket")
            connection_id = self.graph.find_connection(
                message.from_node_id, message.from_socket,
                message.to_node_id, message.to_socket).id
        conn = self.graph.remove_connection(connection_id)
        return self._changed(message, {
            "op": "removeConnection",
            "connection": conn.model_dump(mode="json", by_alias=True),
        })

    def _node_data(self, message: InboundMessage) -> List[OutboundMessage]:
        _require(message, "node_id")
        node = self.graph.node(message.node_id)
        try:
            node.on_message(message.data)
        except GraphError:
            raise
        except Exception as exc:
            logger.error("Node %d failed to handle message", node.id, exc_info=exc)
            raise NodeMessageFailed(node.id, exc) from exc
        return []

    def _request_snapshot(self, message: InboundMessage) -> List[OutboundMessage]:
        return [self._snapshot_reply(message)]

    def _load_snapshot(self, message: InboundMessage) -> List[OutboundMessage]:
        _require(message, "data")
        try:
            snapshot = GraphSnapshot.model_validate(message.data)
        except ValidationError as exc:
            raise InvalidSnapshot(f"Invalid snapshot: {exc.errors(include_url=False)}") from exc
        self.graph.apply_snapshot(snapshot)
        return [self._snapshot_reply(message)]


def _require(message: InboundMessage, *fields: str) -> None:
    missing = [f for f in fields if getattr(message, f) is None]
    if missing:
        names = ", ".join(InboundMessage.model_fields[f].alias or f for f in missing)
        raise MalformedMessage(f"{message.kind} requires: {names}")


def _raw_to_dict(raw: Any) -> Optional[Dict[str, Any]]:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return {"raw": str(raw)}
    return parsed if isinstance(parsed, dict) else {"raw": parsed}
