from __future__ import annotations
from pathlib import Path
from typing import Iterable, List, Optional
import logging
import queue

from .config import EngineConfig
from .errors import GraphError, SchedulerInvariantError
from .generator import load_snapshot
from .graph import NodeGraph
from .registry import NodeRegistry
from .router import MessageRouter, RawMessage, Sender
from .scheduler import RunReport

logger = logging.getLogger(__name__)


class Engine:
    """Host-facing driver: one inbound queue, one ``tick()`` per frame.

    ``submit`` may be called from any thread. Everything else, including
    ``tick``, belongs to the engine thread.
    """

    def __init__(self, registry: NodeRegistry, send: Optional[Sender] = None,
                 config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.graph = NodeGraph(registry)
        self.router = MessageRouter(self.graph, send=send,
                                    graph_changed=self.config.graph_changed)
        self._inbox: "queue.Queue[RawMessage]" = queue.Queue()
        self.ticks = 0

    def submit(self, raw: RawMessage) -> None:
        self._inbox.put(raw)

    @property
    def pending(self) -> int:
        return self._inbox.qsize()

    def drain(self) -> int:
        # requests posted by nodes during the previous run come first and
        # do not count against the inbox budget
        posted = self.graph.take_requests()
        for request in posted:
            self.router.receive(request)

        limit = self.config.max_messages_per_tick
        received = 0
        while limit is None or received < limit:
            try:
                raw = self._inbox.get_nowait()
            except queue.Empty:
                break
            self.router.receive(raw)
            received += 1
        return len(posted) + received

    def tick(self) -> RunReport:
        self.drain()
        self.ticks += 1
        try:
            report = self.graph.scheduler.run_once()
        except SchedulerInvariantError:
            logger.critical("Tick %d aborted: scheduler invariant violated", self.ticks)
            raise
        if self.config.report_process_errors:
            for failure in report.failed:
                self.router.report_failure(failure)
        return report

    def run(self, ticks: int = 1) -> List[RunReport]:
        return [self.tick() for _ in range(ticks)]


def read_messages_file(path: Path) -> List[str]:
    """JSON-lines file of inbound messages; blank lines and '#' comments skipped."""
    lines = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            lines.append(line)
    return lines


def run_snapshot_file(file: Path, registry: NodeRegistry, *,
                      messages: Iterable[RawMessage] = (), ticks: int = 1,
                      config: Optional[EngineConfig] = None,
                      send: Optional[Sender] = None) -> bool:
    """Load a snapshot, replay ``messages`` and tick. False on any failure."""
    engine = Engine(registry, send=send, config=config)
    try:
        engine.graph.apply_snapshot(load_snapshot(file))
    except (OSError, ValueError, GraphError) as e:
        logger.error("Failed to load snapshot %s: %s", file, e)
        return False

    for raw in messages:
        engine.submit(raw)

    ok = True
    for report in engine.run(max(1, ticks)):
        if report.failed:
            ok = False
    return ok
