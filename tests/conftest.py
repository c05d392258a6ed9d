"""Shared pytest fixtures."""

import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

# Set test environment before importing app modules
os.environ.setdefault("AM_HOSTS", "test.example.com,192.0.2.1@5mins")
os.environ.setdefault(
    "DATA_DIR",
    str(Path(__file__).resolve().parents[1] / "data" / "test_data"),
)


class FakeTransport:
    """In-memory ICMP transport.

    Tests queue replies with ``reply``; they become visible to the next
    drain of their address family, as with a real transport.
    """

    def __init__(self, available: bool = True):
        self.available = available
        self.sent: List[Tuple[str, bool]] = []
        self.buffers: Dict[bool, Dict[str, object]] = {False: {}, True: {}}
        self.drains: List[bool] = []
        self.closed = False

    def reply(self, address: str, value: object, ipv6: bool = False) -> None:
        self.buffers[ipv6][address] = value

    def send_echo_request(self, address: str, ipv6: bool) -> None:
        self.sent.append((address, ipv6))

    def drain_results(self, ipv6: bool) -> Dict[str, object]:
        self.drains.append(ipv6)
        results = self.buffers[ipv6]
        self.buffers[ipv6] = {}
        return results

    def is_probing_available(self) -> bool:
        return self.available

    def close(self) -> None:
        self.closed = True


class FakeResolver:
    """Resolver backed by a static name -> address table."""

    def __init__(self, table: Dict[str, Optional[str]]):
        self.table = table
        self.calls: List[str] = []

    def resolve(self, name: str) -> Optional[str]:
        self.calls.append(name)
        return self.table.get(name)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def resolver():
    return FakeResolver({
        "good.example": "1.2.3.4",
        "other.example": "5.6.7.8",
        "v6.example": "2001:db8::1",
        "alias.example": "1.2.3.4",
    })


@pytest.fixture
def make_hosts():
    """Build a hosts mapping from host names."""
    from active_monitor.probing.models import MonitoredHost

    def _make(*names: str, granularity: str = "min") -> Dict[str, MonitoredHost]:
        hosts = [MonitoredHost(host=name, granularity=granularity) for name in names]
        return {host.key: host for host in hosts}

    return _make
