"""Data records shared by the probing engine and its callers."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

# Scheduling cadences and their interval in seconds
GRANULARITIES: Dict[str, int] = {
    "min": 60,
    "5mins": 300,
    "hour": 3600,
}

DEFAULT_GRANULARITY = "min"


def host_key(measurement: str, host: str) -> str:
    """Build the logical key of a monitored host (``measurement@host``)."""
    return f"{measurement}@{host}"


@dataclass(frozen=True)
class MonitoredHost:
    """A logical host configured for active monitoring."""

    host: str
    measurement: str = "icmp"
    granularity: str = DEFAULT_GRANULARITY

    @property
    def key(self) -> str:
        return host_key(self.measurement, self.host)


@dataclass
class HostResult:
    """Outcome of one probing cycle for a logical host.

    A result exists only for hosts whose name resolved. ``value`` stays
    None when no (valid) response arrived, which marks the host unreachable.
    """

    resolved_addr: str
    value: Optional[float] = None

    @property
    def reachable(self) -> bool:
        return self.value is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resolved_addr": self.resolved_addr,
            "value": self.value,
        }
