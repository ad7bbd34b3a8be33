import asyncio
import random
import socket

import pytest

from portsweep.probe import PortState


def _reserve_block(size, attempts=50):
    """Bind `size` consecutive loopback ports, none listening yet."""
    for _ in range(attempts):
        first = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        first.bind(("127.0.0.1", 0))
        base = first.getsockname()[1]
        socks = [first]
        try:
            for port in range(base + 1, base + size):
                s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
                socks.append(s)
                s.bind(("127.0.0.1", port))
            return base, socks
        except (OSError, OverflowError):
            for s in socks:
                s.close()
    pytest.skip("could not reserve a block of consecutive loopback ports")


@pytest.fixture
def port_block():
    """
    Factory for a block of consecutive loopback ports with a known state.
    Ports at the given offsets accept connections; the rest are bound
    but not listening, so connects to them are refused.
    """
    opened = []

    def make(size, listening):
        base, socks = _reserve_block(size)
        opened.extend(socks)
        for offset in listening:
            socks[offset].listen(16)
        return base, socks

    yield make
    for s in opened:
        s.close()


@pytest.fixture
def listener(port_block):
    """A single listening loopback socket; returns (port, socket)."""
    base, socks = port_block(1, listening=[0])
    return base, socks[0]


@pytest.fixture
def closed_port(port_block):
    base, _ = port_block(1, listening=[])
    return base


class FakeProber:
    """
    Stand-in for probe_port that completes in random order and records
    which ports were probed and how many probes overlapped.
    """

    def __init__(self, open_ports, max_delay=0.005, state=PortState.CLOSED):
        self.open_ports = set(open_ports)
        self.max_delay = max_delay
        self.state = state
        self.probed = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, address, port, timeout=None):
        self.probed.append(port)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(random.random() * self.max_delay)
        finally:
            self.in_flight -= 1
        return PortState.OPEN if port in self.open_ports else self.state


@pytest.fixture
def fake_prober(monkeypatch):
    def install(open_ports=(), **kwargs):
        prober = FakeProber(open_ports, **kwargs)
        monkeypatch.setattr("portsweep.scanner.probe_port", prober)
        return prober
    return install
