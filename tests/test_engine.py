import threading

import pytest

from livegraph.config import EngineConfig
from livegraph.errors import ReentrantMutation, SchedulerInvariantError
from livegraph.node import Node
from livegraph.runner import Engine, read_messages_file, run_snapshot_file
from livegraph.generator import generate_snapshot, save_snapshot


@pytest.fixture
def sent():
    return []


@pytest.fixture
def engine(registry, sent):
    return Engine(registry, send=sent.append)


def test_constant_double_scenario(engine, calls):
    engine.submit({"kind": "CreateNode", "nodeType": "constant", "data": 5})
    engine.submit({"kind": "CreateNode", "nodeType": "double"})
    engine.submit({"kind": "CreateNode", "nodeType": "pass"})
    engine.submit({"kind": "CreateConnection", "fromNodeId": 1, "fromSocket": "output",
                   "toNodeId": 2, "toSocket": "input"})
    engine.tick()
    assert engine.graph.node(2).outputs["output"] == 10
    assert calls == [3]

    engine.submit({"kind": "NodeData", "nodeId": 1, "data": 7})
    report = engine.tick()
    assert engine.graph.node(2).outputs["output"] == 14
    assert report.executed == [1, 2]
    assert calls == [3]


def test_messages_wait_for_tick(engine):
    engine.submit({"kind": "CreateNode", "nodeType": "constant"})
    assert len(engine.graph) == 0
    assert engine.pending == 1
    engine.tick()
    assert len(engine.graph) == 1
    assert engine.pending == 0


def test_submit_from_io_thread(engine):
    def producer():
        for _ in range(50):
            engine.submit('{"kind": "CreateNode", "nodeType": "constant"}')

    threads = [threading.Thread(target=producer) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    engine.tick()
    assert len(engine.graph) == 200


def test_message_budget_per_tick(registry):
    engine = Engine(registry, config=EngineConfig(max_messages_per_tick=2))
    for _ in range(5):
        engine.submit({"kind": "CreateNode", "nodeType": "constant"})
    engine.tick()
    assert len(engine.graph) == 2
    engine.run(2)
    assert len(engine.graph) == 5


def test_process_failures_reported_each_tick(engine, sent):
    engine.submit({"kind": "CreateNode", "nodeType": "pass"})
    engine.tick()
    engine.graph.node(1).fail = True
    engine.graph.scheduler.mark_dirty(1)
    sent.clear()

    engine.run(2)

    assert [(m.kind, m.error, m.node_id) for m in sent] == [("Error", "NodeProcessFailed", 1)] * 2


def test_process_failures_can_be_silenced(registry, sent):
    engine = Engine(registry, send=sent.append, config=EngineConfig(report_process_errors=False))
    engine.graph.add_node("pass")
    engine.graph.node(1).fail = True
    report = engine.tick()
    assert report.failed
    assert sent == []


def test_structural_requests_from_process_are_deferred(registry, engine):
    class Spawner(Node):
        def process(self):
            with pytest.raises(ReentrantMutation):
                self._graph.add_node("constant")
            if len(self._graph) == 1:
                self.post_request({"kind": "CreateNode", "nodeType": "constant"})

    registry.register("spawner", Spawner)
    engine.graph.add_node("spawner")
    engine.tick()
    assert len(engine.graph) == 1
    engine.tick()
    assert len(engine.graph) == 2


def test_invariant_violation_is_raised(engine):
    engine.graph.add_node("pass")
    engine.graph.add_node("pass")
    engine.graph.add_connection(1, "out", 2, "in")
    engine.graph.scheduler.add_edge(2, 1)
    with pytest.raises(SchedulerInvariantError):
        engine.tick()


def test_run_snapshot_file(tmp_path, registry, sent):
    path = tmp_path / "doubler.yaml"
    save_snapshot(generate_snapshot("doubler"), path)
    messages = tmp_path / "edits.jsonl"
    messages.write_text('# bump the constant\n{"kind": "NodeData", "nodeId": 1, "data": 8}\n\n')

    ok = run_snapshot_file(path, registry, messages=read_messages_file(messages), ticks=2,
                           send=sent.append)

    assert ok
    assert [m.data for m in sent if m.kind == "NodeMessage"] == [{"value": 16}]


def test_run_snapshot_file_rejects_bad_snapshot(tmp_path, registry):
    path = tmp_path / "bad.yaml"
    path.write_text("nodes:\n  - {id: 1, type: ghost}\n")
    assert not run_snapshot_file(path, registry)


def test_rejected_node_data_does_not_stall_the_tick(registry, engine, sent):
    class Threshold(Node):
        def set_data(self, data):
            self.threshold = data["threshold"]

    registry.register("threshold", Threshold)
    engine.submit({"kind": "CreateNode", "nodeType": "threshold", "data": {"other": 1}})
    engine.submit({"kind": "CreateNode", "nodeType": "constant", "data": 3})

    report = engine.tick()

    assert [(m.kind, m.error) for m in sent] == [("Error", "InvalidNodeData"), ("GraphChanged", None)]
    assert [n.type_id for n in engine.graph] == ["constant"]
    assert engine.pending == 0
    assert report.executed == [1]


def test_posted_requests_do_not_use_inbox_budget(registry):
    class Chatty(Node):
        def process(self):
            for _ in range(3):
                self.post_request({"kind": "CreateNode", "nodeType": "constant"})

    registry.register("chatty", Chatty)
    engine = Engine(registry, config=EngineConfig(max_messages_per_tick=1))
    engine.graph.add_node("chatty")
    engine.tick()
    engine.submit({"kind": "CreateNode", "nodeType": "double"})

    assert engine.drain() == 4
    assert len(engine.graph) == 5
    assert engine.pending == 0
