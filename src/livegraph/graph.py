"""The editable node graph: sole owner of nodes and connections."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .errors import (
    ConnectionNotFound,
    GraphError,
    InputSocketAlreadyConnected,
    InvalidNodeData,
    InvalidSnapshot,
    NodeNotFound,
    ReentrantMutation,
    SocketKindMismatch,
    SocketNotFound,
    WouldCreateCycle,
)
from .ir import Connection, GraphSnapshot, NodeRecord
from .node import Node
from .registry import NodeRegistry
from .scheduler import Scheduler

logger = logging.getLogger(__name__)

MessageSink = Callable[[int, Any], None]


class NodeGraph:
    def __init__(self, registry: NodeRegistry):
        self.registry = registry
        self.message_sink: Optional[MessageSink] = None
        self._nodes: Dict[int, Node] = {}
        self._connections: Dict[int, Connection] = {}
        # (node id, input socket) -> connection id
        self._inputs: Dict[Tuple[int, str], int] = {}
        self._next_node_id = 1
        self._next_connection_id = 1
        self._requests: List[Any] = []
        self.scheduler = Scheduler(self._nodes)

    # -- read-only access -----------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    @property
    def nodes(self) -> List[Node]:
        return [self._nodes[i] for i in sorted(self._nodes)]

    @property
    def connections(self) -> List[Connection]:
        return [self._connections[i] for i in sorted(self._connections)]

    def node(self, node_id: int) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeNotFound(node_id) from None

    def connection(self, connection_id: int) -> Connection:
        try:
            return self._connections[connection_id]
        except KeyError:
            raise ConnectionNotFound(connection_id) from None

    def get_input_connection(self, node_id: int, socket: str) -> Optional[Connection]:
        conn_id = self._inputs.get((node_id, socket))
        return None if conn_id is None else self._connections[conn_id]

    def get_output_connections(self, node_id: int, socket: str) -> List[Connection]:
        return [c for c in self.connections
                if c.from_node == node_id and c.from_socket == socket]

    def find_connection(self, from_node: int, from_socket: str,
                        to_node: int, to_socket: str) -> Connection:
        conn = self.get_input_connection(to_node, to_socket)
        if conn is None or conn.endpoints() != (from_node, from_socket, to_node, to_socket):
            raise ConnectionNotFound(f"{from_node}.{from_socket}->{to_node}.{to_socket}")
        return conn

    # -- structural mutation --------------------------------------------------

    def add_node(self, type_id: str, data: Any = None) -> int:
        self._check_not_running("add_node")
        node_id = self._insert_node(type_id, data, self._next_node_id)
        self.scheduler.mark_dirty(node_id)
        logger.debug("Added node %d (%s)", node_id, type_id)
        return node_id

    def remove_node(self, node_id: int) -> List[Connection]:
        self._check_not_running("remove_node")
        node = self.node(node_id)
        downstream = self.scheduler.downstream(node_id)

        incident = [c for c in self.connections
                    if c.from_node == node_id or c.to_node == node_id]
        for conn in incident:
            self._drop_connection(conn)

        self.scheduler.remove_node(node_id)
        del self._nodes[node_id]
        node._detach()
        for other in sorted(downstream):
            self.scheduler.mark_dirty(other)
        logger.debug("Removed node %d and %d connection(s)", node_id, len(incident))
        return incident

    def add_connection(self, from_node: int, from_socket: str,
                       to_node: int, to_socket: str) -> Connection:
        self._check_not_running("add_connection")
        conn = self._insert_connection(from_node, from_socket, to_node, to_socket,
                                       self._next_connection_id)
        self.scheduler.mark_dirty(to_node)
        logger.debug("Connected %d.%s -> %d.%s (connection %d)",
                     from_node, from_socket, to_node, to_socket, conn.id)
        return conn

    def remove_connection(self, connection_id: int) -> Connection:
        self._check_not_running("remove_connection")
        conn = self.connection(connection_id)
        self._drop_connection(conn)
        self.scheduler.mark_dirty(conn.to_node)
        logger.debug("Removed connection %d", connection_id)
        return conn

    # -- snapshots ------------------------------------------------------------

    def serialize(self) -> GraphSnapshot:
        return GraphSnapshot(
            nodes=[NodeRecord(id=n.id, type=n.type_id, data=n.get_data()) for n in self.nodes],
            connections=self.connections,
        )

    def apply_snapshot(self, snapshot: GraphSnapshot) -> None:
        """Replace the whole graph with ``snapshot``, keeping its ids.

        The replay happens in a staging graph; on any error the current graph
        is left untouched.
        """
        self._check_not_running("apply_snapshot")
        staging = NodeGraph(self.registry)
        seen_connections = set()
        for record in snapshot.nodes:
            if record.id in staging._nodes:
                raise InvalidSnapshot(f"Duplicate node id {record.id}")
            if record.id < 1:
                raise InvalidSnapshot(f"Node ids must be positive, got {record.id}")
            staging._insert_node(record.type, record.data, record.id)
        for conn in snapshot.connections:
            if conn.id in seen_connections:
                raise InvalidSnapshot(f"Duplicate connection id {conn.id}")
            seen_connections.add(conn.id)
            staging._insert_connection(conn.from_node, conn.from_socket,
                                       conn.to_node, conn.to_socket, conn.id)
        self._adopt(staging)
        for node_id in list(self._nodes):
            self.scheduler.mark_dirty(node_id)
        logger.info("Applied snapshot: %d node(s), %d connection(s)",
                    len(self._nodes), len(self._connections))

    def clear(self) -> None:
        self.apply_snapshot(GraphSnapshot())

    # -- node services --------------------------------------------------------

    def emit_node_message(self, node_id: int, payload: Any) -> None:
        if self.message_sink is None:
            logger.debug("No message sink attached; dropping message from node %d", node_id)
            return
        self.message_sink(node_id, payload)

    def post_request(self, message: Any) -> None:
        self._requests.append(message)

    def take_requests(self) -> List[Any]:
        requests, self._requests = self._requests, []
        return requests

    # -- internals ------------------------------------------------------------

    def _check_not_running(self, operation: str) -> None:
        if self.scheduler.running:
            raise ReentrantMutation(operation)

    def _insert_node(self, type_id: str, data: Any, node_id: int) -> int:
        try:
            node = self.registry.create(type_id)
        except GraphError:
            raise
        except Exception as exc:
            raise InvalidNodeData(type_id, exc) from exc
        node._attach(node_id, type_id, self)
        if data is not None:
            try:
                node.set_data(data)
            except Exception as exc:
                node._detach()
                raise InvalidNodeData(type_id, exc) from exc
        self._nodes[node_id] = node
        self.scheduler.add_node(node_id)
        self._next_node_id = max(self._next_node_id, node_id + 1)
        return node_id

    def _insert_connection(self, from_node: int, from_socket: str,
                           to_node: int, to_socket: str, connection_id: int) -> Connection:
        source = self.node(from_node)
        target = self.node(to_node)
        source_kind = self.registry.schema(source.type_id).outputs.get(from_socket)
        if source_kind is None:
            raise SocketNotFound(from_node, from_socket, "output")
        target_kind = self.registry.schema(target.type_id).inputs.get(to_socket)
        if target_kind is None:
            raise SocketNotFound(to_node, to_socket, "input")
        if source_kind != target_kind:
            raise SocketKindMismatch(source_kind, target_kind)
        existing = self._inputs.get((to_node, to_socket))
        if existing is not None:
            raise InputSocketAlreadyConnected(to_node, to_socket, existing)
        if self.scheduler.would_create_cycle(from_node, to_node):
            raise WouldCreateCycle(from_node, to_node)

        conn = Connection(id=connection_id, from_node=from_node, from_socket=from_socket,
                          to_node=to_node, to_socket=to_socket)
        self._connections[conn.id] = conn
        self._inputs[(to_node, to_socket)] = conn.id
        self.scheduler.add_edge(from_node, to_node)
        self._next_connection_id = max(self._next_connection_id, connection_id + 1)
        return conn

    def _drop_connection(self, conn: Connection) -> None:
        del self._connections[conn.id]
        del self._inputs[(conn.to_node, conn.to_socket)]
        self.scheduler.remove_edge(conn.from_node, conn.to_node)

    def _adopt(self, other: "NodeGraph") -> None:
        for node in self._nodes.values():
            node._detach()
        self._nodes.clear()
        self._nodes.update(other._nodes)
        for node in self._nodes.values():
            node._graph = self
        self._connections = other._connections
        self._inputs = other._inputs
        self._next_node_id = max(self._next_node_id, other._next_node_id)
        self._next_connection_id = max(self._next_connection_id, other._next_connection_id)
        self._requests = []
        self.scheduler.reset()
        for node_id in self._nodes:
            self.scheduler.add_node(node_id)
        for conn in self._connections.values():
            self.scheduler.add_edge(conn.from_node, conn.to_node)
