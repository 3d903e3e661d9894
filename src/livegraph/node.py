from __future__ import annotations

from typing import Any, Dict, List, Optional, TYPE_CHECKING

from .ir import Connection

if TYPE_CHECKING:
    from .graph import NodeGraph


class Node:
    def __init__(self) -> None:
        self.id: Optional[int] = None
        self.type_id: Optional[str] = None
        self.outputs: Dict[str, Any] = {}
        self._graph: Optional["NodeGraph"] = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id} type={self.type_id!r}>"

    # -- overridable behaviour ------------------------------------------------

    def process(self) -> None:
        """Recompute ``self.outputs`` from the current inputs."""

    def on_message(self, payload: Any) -> None:
        """Handle an application-defined message from the remote editor."""

    def get_data(self) -> Any:
        """Serializable state stored in snapshots."""
        return None

    def set_data(self, data: Any) -> None:
        """Restore state produced by :meth:`get_data` (or initial data)."""

    # -- helpers for subclasses -----------------------------------------------

    def send_message(self, payload: Any) -> None:
        self._require_graph().emit_node_message(self.id, payload)

    def get_input_connection(self, socket: str) -> Optional[Connection]:
        return self._require_graph().get_input_connection(self.id, socket)

    def get_output_connections(self, socket: str) -> List[Connection]:
        return self._require_graph().get_output_connections(self.id, socket)

    def read_input(self, socket: str, default: Any = None) -> Any:
        conn = self.get_input_connection(socket)
        if conn is None:
            return default
        upstream = self._require_graph().node(conn.from_node)
        value = upstream.outputs.get(conn.from_socket)
        return default if value is None else value

    def mark_dirty(self) -> None:
        self._require_graph().scheduler.mark_dirty(self.id)

    def post_request(self, message: Any) -> None:
        # applied by the engine before the next run
        self._require_graph().post_request(message)

    # -- graph bookkeeping ----------------------------------------------------

    def _attach(self, node_id: int, type_id: str, graph: "NodeGraph") -> None:
        self.id = node_id
        self.type_id = type_id
        self._graph = graph

    def _detach(self) -> None:
        self._graph = None

    def _require_graph(self) -> "NodeGraph":
        if self._graph is None:
            raise RuntimeError(f"{self!r} is not attached to a graph")
        return self._graph
