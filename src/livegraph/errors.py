from __future__ import annotations
from typing import Any, Optional


class GraphError(Exception):
    """Base class for errors caused by an invalid request."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class UnknownNodeType(GraphError):
    def __init__(self, type_id: str):
        super().__init__(f"Unknown node type '{type_id}'")
        self.type_id = type_id


class NodeNotFound(GraphError):
    def __init__(self, node_id: Any):
        super().__init__(f"Node {node_id} does not exist")
        self.node_id = node_id


class SocketNotFound(GraphError):
    def __init__(self, node_id: int, socket: str, direction: str):
        super().__init__(f"Node {node_id} has no {direction} socket '{socket}'")
        self.node_id = node_id
        self.socket = socket
        self.direction = direction


class SocketKindMismatch(GraphError):
    def __init__(self, source_kind: str, target_kind: str):
        super().__init__(f"Cannot connect '{source_kind}' output to '{target_kind}' input")
        self.source_kind = source_kind
        self.target_kind = target_kind


class InputSocketAlreadyConnected(GraphError):
    def __init__(self, node_id: int, socket: str, connection_id: int):
        super().__init__(f"Input {node_id}.{socket} is already fed by connection {connection_id}")
        self.node_id = node_id
        self.socket = socket
        self.connection_id = connection_id


class WouldCreateCycle(GraphError):
    def __init__(self, from_node: int, to_node: int):
        super().__init__(f"Connecting node {from_node} to node {to_node} would create a cycle")
        self.from_node = from_node
        self.to_node = to_node


class ConnectionNotFound(GraphError):
    def __init__(self, connection: Any):
        super().__init__(f"Connection {connection} does not exist")
        self.connection = connection


class InvalidSnapshot(GraphError):
    pass


class InvalidNodeData(GraphError):
    def __init__(self, type_id: str, cause: BaseException):
        super().__init__(f"Rejected data for '{type_id}' node: {cause}")
        self.type_id = type_id
        self.cause = cause


class ReentrantMutation(GraphError):
    def __init__(self, operation: str):
        super().__init__(
            f"'{operation}' called while nodes are being processed; use Node.post_request instead"
        )
        self.operation = operation


class NodeProcessFailed(Exception):
    """A node's ``process()`` raised. Isolated to that node."""

    kind = "NodeProcessFailed"

    def __init__(self, node_id: int, cause: BaseException):
        super().__init__(f"Node {node_id} failed to process: {cause!r}")
        self.node_id = node_id
        self.cause = cause


class NodeMessageFailed(Exception):
    kind = "NodeMessageFailed"

    def __init__(self, node_id: int, cause: BaseException):
        super().__init__(f"Node {node_id} failed to handle message: {cause!r}")
        self.node_id = node_id
        self.cause = cause


class MalformedMessage(Exception):
    kind = "MalformedMessage"

    def __init__(self, detail: str, raw: Optional[Any] = None):
        super().__init__(detail)
        self.raw = raw


class SchedulerInvariantError(RuntimeError):
    """The dependency graph turned out cyclic at scheduling time."""
