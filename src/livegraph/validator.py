from pathlib import Path
import networkx as nx
from typing import Tuple, List
from .generator import load_snapshot
from .ir import GraphSnapshot
from .registry import NodeRegistry


def validate_snapshot_file(path: Path, registry: NodeRegistry) -> Tuple[bool, List[str]]:
    try:
        snapshot = load_snapshot(path)
    except (OSError, ValueError) as e:
        return False, [f"ERR: Could not load {path}: {e}"]
    return validate_snapshot(snapshot, registry)


def validate_snapshot(g: GraphSnapshot, registry: NodeRegistry) -> Tuple[bool, List[str]]:
    """Report every problem in a snapshot instead of stopping at the first."""
    messages: List[str] = []
    ok = True

    node_ids = {n.id for n in g.nodes}
    # 1) Unique ids
    if len(node_ids) != len(g.nodes):
        ok = False
        messages.append("ERR: Duplicate node IDs detected.")
    else:
        messages.append("OK: Node IDs are unique.")
    if len({c.id for c in g.connections}) != len(g.connections):
        ok = False
        messages.append("ERR: Duplicate connection IDs detected.")

    # 2) Node types are registered
    types_ok = True
    for n in g.nodes:
        if n.type not in registry:
            types_ok = False
            messages.append(f"ERR: Node {n.id} has unknown type '{n.type}'.")
    if types_ok:
        messages.append("OK: All node types are registered.")
    ok = ok and types_ok

    # 3) Connections refer to existing nodes
    edges_ok = True
    for c in g.connections:
        if c.from_node not in node_ids or c.to_node not in node_ids:
            edges_ok = False
            messages.append(f"ERR: Connection {c.id} ({c.from_node}->{c.to_node}) references missing node(s).")
    if edges_ok:
        messages.append("OK: All connections reference existing nodes.")
    ok = ok and edges_ok

    # 4) Sockets exist, kinds match, inputs fed once
    node_map = g.node_map()
    sockets_ok = True
    fed = {}
    for c in g.connections:
        source, target = node_map.get(c.from_node), node_map.get(c.to_node)
        if source is None or target is None or source.type not in registry or target.type not in registry:
            continue
        so = registry.schema(source.type).outputs
        ti = registry.schema(target.type).inputs
        if c.from_socket not in so:
            sockets_ok = False
            messages.append(f"ERR: Connection from {c.from_node}.{c.from_socket} not an output on that node.")
        if c.to_socket not in ti:
            sockets_ok = False
            messages.append(f"ERR: Connection to {c.to_node}.{c.to_socket} not an input on that node.")
        if c.from_socket in so and c.to_socket in ti and so[c.from_socket] != ti[c.to_socket]:
            sockets_ok = False
            messages.append(f"ERR: Connection {c.id} joins '{so[c.from_socket]}' to '{ti[c.to_socket]}'.")
        key = (c.to_node, c.to_socket)
        if key in fed:
            sockets_ok = False
            messages.append(f"ERR: Input {c.to_node}.{c.to_socket} fed by connections {fed[key]} and {c.id}.")
        fed.setdefault(key, c.id)
    if sockets_ok:
        messages.append("OK: All connection endpoints correspond to declared, compatible sockets.")
    ok = ok and sockets_ok

    # 5) Acyclic check
    nxg = nx.DiGraph()
    nxg.add_nodes_from(node_ids)
    for c in g.connections:
        nxg.add_edge(c.from_node, c.to_node)
    if nx.is_directed_acyclic_graph(nxg):
        messages.append("OK: Graph is acyclic.")
    else:
        ok = False
        messages.append("ERR: Cycle detected in the graph.")

    return ok, messages
