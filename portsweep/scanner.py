import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .config import ScanConfig, ScanRequest
from .errors import AggregationError, ScanError
from .probe import PortState, probe_port

logger = logging.getLogger(__name__)


class ScanState(Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    AWAITING = "awaiting"
    DRAINING = "draining"
    SORTED = "sorted"


@dataclass(frozen=True)
class ScanResult:
    """
    Open ports of one scan, strictly ascending.
    Iterates, indexes and measures like the tuple of ports it wraps;
    equality only looks at the ports.
    """
    ports: Tuple[int, ...] = ()
    closed: int = field(default=0, compare=False)
    inconclusive: int = field(default=0, compare=False)
    duration: float = field(default=0.0, compare=False)

    def __iter__(self):
        return iter(self.ports)

    def __len__(self):
        return len(self.ports)

    def __getitem__(self, index):
        return self.ports[index]


class PortScanner:
    """
    Scans one ScanRequest.

    Every port gets its own task. Open ports are pushed into a shared
    unbounded queue; the queue is drained only after all tasks have been
    joined, then sorted. An instance runs exactly once.
    """

    def __init__(self, request: ScanRequest, config: Optional[ScanConfig] = None,
                 on_open: Optional[Callable[[int], None]] = None):
        self.request = request
        self.config = config or ScanConfig()
        self.on_open = on_open
        self.state = ScanState.IDLE
        self._queue: Optional[asyncio.Queue] = None
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._reported = 0
        self._outcomes: Counter = Counter()

    async def _probe_and_report(self, port: int):
        if self._semaphore is None:
            state = await probe_port(self.request.address, port, self.config.timeout)
        else:
            async with self._semaphore:
                state = await probe_port(self.request.address, port, self.config.timeout)

        self._outcomes[state] += 1
        if state is not PortState.OPEN:
            return

        if self.on_open:
            self.on_open(port)
        try:
            self._queue.put_nowait(port)
        except asyncio.QueueFull as e:
            raise AggregationError(f"Result for port {port} was dropped") from e
        self._reported += 1

    def _drain(self) -> List[int]:
        found = []
        while True:
            try:
                found.append(self._queue.get_nowait())
            except asyncio.QueueEmpty:
                break
        if len(found) != self._reported:
            raise AggregationError(
                f"Drained {len(found)} results but {self._reported} probes reported open"
            )
        return found

    async def run(self) -> ScanResult:
        if self.state is not ScanState.IDLE:
            raise ScanError("PortScanner instances can only run once")

        start_time = time.monotonic()
        ports = self.request.ports
        limit = self.config.limit_for(len(ports))

        self.state = ScanState.DISPATCHING
        self._queue = asyncio.Queue()
        if limit is not None:
            self._semaphore = asyncio.Semaphore(limit)
        logger.debug(
            "Scanning %s ports %d-%d (%d probes, limit %s, timeout %s)",
            self.request.address, self.request.start_port, self.request.end_port,
            len(ports), limit or "none", self.config.timeout,
        )
        tasks = [asyncio.create_task(self._probe_and_report(port)) for port in ports]

        # Join barrier: nothing is read from the queue until every task is done
        self.state = ScanState.AWAITING
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        failures = [o for o in outcomes if isinstance(o, BaseException)]
        if failures:
            # Scanner-side faults keep their own type, anything else is a broken pipeline
            for failure in failures:
                if isinstance(failure, ScanError):
                    raise failure
            raise AggregationError(
                f"{len(failures)} probe task(s) failed to report"
            ) from failures[0]

        self.state = ScanState.DRAINING
        found = self._drain()

        found.sort()
        self.state = ScanState.SORTED

        closed = self._outcomes[PortState.CLOSED]
        inconclusive = sum(n for s, n in self._outcomes.items() if s.inconclusive)
        return ScanResult(
            ports=tuple(found),
            closed=closed,
            inconclusive=inconclusive,
            duration=time.monotonic() - start_time,
        )


def scan(request: ScanRequest, config: Optional[ScanConfig] = None,
         on_open: Optional[Callable[[int], None]] = None) -> ScanResult:
    """Run a full scan on a fresh event loop and return the sorted result."""
    return asyncio.run(PortScanner(request, config, on_open).run())
