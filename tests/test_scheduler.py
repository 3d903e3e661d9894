import networkx as nx
import pytest

from livegraph.errors import NodeNotFound, NodeProcessFailed, SchedulerInvariantError
from livegraph.node import Node

from conftest import chain


def diamond(graph):
    a = graph.add_node("pass")
    b = graph.add_node("pass")
    c = graph.add_node("pass")
    d = graph.add_node("add")
    graph.add_connection(a, "out", b, "in")
    graph.add_connection(a, "out", c, "in")
    graph.add_connection(b, "out", d, "a")
    graph.add_connection(c, "out", d, "b")
    return a, b, c, d


def test_diamond_order(graph):
    a, b, c, d = diamond(graph)
    order = graph.scheduler.compute_execution_order()
    assert order == [a, b, c, d]


def test_ties_broken_by_ascending_id(graph):
    ids = [graph.add_node("pass") for _ in range(4)]
    graph.add_connection(ids[3], "out", ids[0], "in")
    assert graph.scheduler.compute_execution_order() == [ids[1], ids[2], ids[3], ids[0]]


def test_mark_dirty_propagates_downstream_only(graph):
    a, b, c = chain(graph, "pass", "pass", "pass")
    graph.scheduler.clear()
    graph.scheduler.mark_dirty(b)
    graph.scheduler.mark_dirty(b)
    assert graph.scheduler.dirty == {b, c}
    with pytest.raises(NodeNotFound):
        graph.scheduler.mark_dirty(42)


def test_run_once_processes_each_dirty_node_once(graph, calls):
    a, b, c = chain(graph, "pass", "pass", "pass")
    other = graph.add_node("pass")
    graph.scheduler.run_once()
    calls.clear()

    graph.scheduler.mark_dirty(a)
    report = graph.scheduler.run_once()

    assert calls == [a, b, c]
    assert report.executed == [a, b, c]
    assert other not in calls
    assert graph.scheduler.dirty == frozenset()


def test_clean_graph_runs_nothing(graph, calls):
    chain(graph, "pass", "pass")
    graph.scheduler.run_once()
    calls.clear()
    report = graph.scheduler.run_once()
    assert calls == []
    assert report.executed == []


def test_failure_is_isolated(graph, calls):
    x = graph.add_node("pass")
    y = graph.add_node("pass")
    z = graph.add_node("pass")
    w = graph.add_node("pass")
    graph.add_connection(x, "out", y, "in")
    graph.add_connection(x, "out", z, "in")
    graph.scheduler.run_once()
    calls.clear()

    graph.node(x).fail = True
    graph.scheduler.mark_dirty(x)
    report = graph.scheduler.run_once()

    assert calls == [x]
    assert [f.node_id for f in report.failed] == [x]
    assert isinstance(report.failed[0], NodeProcessFailed)
    assert isinstance(report.failed[0].cause, RuntimeError)
    assert report.skipped == [y, z]
    assert graph.scheduler.dirty == {x, y, z}
    assert not report.ok


def test_failed_node_retried_until_it_succeeds(graph, calls):
    x, y = chain(graph, "pass", "pass")
    unrelated = graph.add_node("pass")
    graph.node(x).fail = True

    graph.scheduler.run_once()
    assert calls == [x, unrelated]
    graph.scheduler.run_once()
    assert calls == [x, unrelated, x]

    graph.node(x).fail = False
    graph.scheduler.run_once()
    assert calls == [x, unrelated, x, x, y]
    assert graph.scheduler.dirty == frozenset()


def test_node_can_rearm_itself_for_next_tick(graph):
    class Waiting(Node):
        polls = 0

        def process(self):
            Waiting.polls += 1
            if Waiting.polls < 3:
                self.mark_dirty()
            else:
                self.outputs["out"] = "ready"

    graph.registry.register("waiting", Waiting, {"outputs": {"out": "number"}})
    nid = graph.add_node("waiting")

    graph.scheduler.run_once()
    assert graph.scheduler.is_dirty(nid)
    graph.scheduler.run_once()
    graph.scheduler.run_once()
    assert Waiting.polls == 3
    assert not graph.scheduler.is_dirty(nid)


def test_cycle_at_scheduling_time_is_fatal(graph):
    a, b = chain(graph, "pass", "pass")
    # bypass insertion-time checks to simulate a corrupted dependency graph
    graph.scheduler.add_edge(b, a)
    with pytest.raises(SchedulerInvariantError):
        graph.scheduler.run_once()


def test_execution_order_respects_dependencies_in_random_dags(graph):
    import random

    rng = random.Random(3)
    ids = [graph.add_node("add") for _ in range(25)]
    for target in ids:
        for socket in ("a", "b"):
            sources = [i for i in ids if i < target]
            if sources and rng.random() < 0.6:
                graph.add_connection(rng.choice(sources), "sum", target, socket)

    order = graph.scheduler.compute_execution_order()
    position = {n: i for i, n in enumerate(order)}
    dag = nx.DiGraph([(c.from_node, c.to_node) for c in graph.connections])
    for u, v in dag.edges:
        assert position[u] < position[v]
    assert sorted(order) == ids
