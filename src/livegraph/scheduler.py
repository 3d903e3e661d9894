from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, List, Mapping, Set, TYPE_CHECKING

import networkx as nx

from .errors import NodeNotFound, NodeProcessFailed, SchedulerInvariantError

if TYPE_CHECKING:
    from .node import Node

logger = logging.getLogger(__name__)


@dataclass
class RunReport:
    executed: List[int] = field(default_factory=list)
    failed: List[NodeProcessFailed] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class Scheduler:
    def __init__(self, nodes: Mapping[int, "Node"]):
        # shared with the owning NodeGraph; the scheduler never mutates it
        self._nodes = nodes
        self._dag = nx.DiGraph()
        self._dirty: Set[int] = set()
        self._pending: Set[int] = set()
        self._running = False

    @property
    def dirty(self) -> FrozenSet[int]:
        return frozenset(self._dirty)

    @property
    def running(self) -> bool:
        return self._running

    def is_dirty(self, node_id: int) -> bool:
        return node_id in self._dirty

    # -- dependency graph maintenance (driven by NodeGraph) -------------------

    def add_node(self, node_id: int) -> None:
        self._dag.add_node(node_id)

    def remove_node(self, node_id: int) -> None:
        self._dag.remove_node(node_id)
        self._dirty.discard(node_id)
        self._pending.discard(node_id)

    def add_edge(self, source: int, target: int) -> None:
        if self._dag.has_edge(source, target):
            self._dag[source][target]["count"] += 1
        else:
            self._dag.add_edge(source, target, count=1)

    def remove_edge(self, source: int, target: int) -> None:
        data = self._dag[source][target]
        data["count"] -= 1
        if data["count"] == 0:
            self._dag.remove_edge(source, target)

    def would_create_cycle(self, source: int, target: int) -> bool:
        if source == target:
            return True
        return nx.has_path(self._dag, target, source)

    def downstream(self, node_id: int) -> Set[int]:
        return nx.descendants(self._dag, node_id)

    # -- dirty propagation ----------------------------------------------------

    def mark_dirty(self, node_id: int) -> None:
        if node_id not in self._dag:
            raise NodeNotFound(node_id)
        affected = {node_id} | nx.descendants(self._dag, node_id)
        if self._running:
            # the node is re-arming itself for the next tick
            self._pending |= affected
        else:
            self._dirty |= affected

    def clear(self) -> None:
        self._dirty.clear()
        self._pending.clear()

    def reset(self) -> None:
        self._dag.clear()
        self.clear()

    # -- execution ------------------------------------------------------------

    def compute_execution_order(self) -> List[int]:
        sub = self._dag.subgraph(self._dirty)
        try:
            return list(nx.lexicographical_topological_sort(sub))
        except nx.NetworkXUnfeasible as exc:
            cycle = nx.find_cycle(sub)
            logger.critical("Dependency cycle among dirty nodes: %s", cycle)
            raise SchedulerInvariantError(f"Dependency cycle detected: {cycle}") from exc

    def run_once(self) -> RunReport:
        report = RunReport()
        order = self.compute_execution_order()
        blocked: Set[int] = set()

        self._running = True
        try:
            for node_id in order:
                if any(p in blocked for p in self._dag.predecessors(node_id)):
                    blocked.add(node_id)
                    report.skipped.append(node_id)
                    continue
                node = self._nodes[node_id]
                try:
                    node.process()
                except Exception as exc:
                    failure = NodeProcessFailed(node_id, exc)
                    logger.error("%s", failure, exc_info=exc)
                    blocked.add(node_id)
                    report.failed.append(failure)
                    continue
                self._dirty.discard(node_id)
                report.executed.append(node_id)
        finally:
            self._running = False
            self._dirty |= self._pending
            self._pending.clear()

        if report.skipped:
            logger.debug("Skipped %d node(s) downstream of failures: %s",
                         len(report.skipped), report.skipped)
        return report
