import networkx as nx
from .ir import GraphSnapshot


def ascii_plan(g: GraphSnapshot) -> str:
    nxg = nx.DiGraph()
    nxg.add_nodes_from([n.id for n in g.nodes])
    labels = {}
    for c in g.connections:
        nxg.add_edge(c.from_node, c.to_node)
        labels.setdefault((c.from_node, c.to_node), []).append(f"{c.from_socket}->{c.to_socket}")

    order = list(nx.lexicographical_topological_sort(nxg))
    node_map = g.node_map()
    lines = ["# ASCII Plan (execution order)"]
    for i, nid in enumerate(order, 1):
        node = node_map[nid]
        lines.append(f"{i:02d}. #{node.id} [{node.type}]")
        for succ in sorted(nxg.successors(nid)):
            elabel = ", ".join(labels[(nid, succ)])
            lines.append(f"    └─▶ #{succ}  ({elabel})")
    return "\n".join(lines)
