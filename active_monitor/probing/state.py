"""Per-measurement probing state.

Each measurement owns one state slot holding the address -> host key map of
the probes in flight and the per-host result table. A dispatch replaces the
whole slot, the following collect fills in values, and the slot lives for
the rest of the process.
"""

import asyncio
import threading
from collections import defaultdict
from typing import Dict, Optional

from active_monitor.probing.models import HostResult


class MeasurementState:
    """Pending probes and results of the current cycle of one measurement."""

    def __init__(self, measurement: str):
        self.measurement = measurement
        self._pending: Dict[str, str] = {}
        self._results: Dict[str, HostResult] = {}
        self._lock = threading.Lock()

    def reset(self) -> None:
        """Drop everything left over from the previous cycle."""
        with self._lock:
            self._pending = {}
            self._results = {}

    def register(self, key: str, address: str) -> None:
        """Record a probe sent to address on behalf of key.

        When two keys resolve to the same address, the last one registered
        owns the address.
        """
        with self._lock:
            self._pending[address] = key
            self._results[key] = HostResult(resolved_addr=address)

    def set_value(self, address: str, value: Optional[float]) -> Optional[str]:
        """Attach a measured value to the host probed at address.

        Returns:
            The matched host key, or None when no probe is pending for address.
        """
        with self._lock:
            key = self._pending.get(address)
            if key is None:
                return None
            result = self._results.get(key)
            if result is None:
                return None
            result.value = value
            return key

    def snapshot(self) -> Dict[str, HostResult]:
        """Copy of the result table, safe to hand to callers."""
        with self._lock:
            return {
                key: HostResult(resolved_addr=r.resolved_addr, value=r.value)
                for key, r in self._results.items()
            }


class MeasurementStateRegistry:
    """One lazily created state slot per measurement name."""

    def __init__(self):
        self._states: Dict[str, MeasurementState] = {}
        self._cycle_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._lock = threading.Lock()

    def get(self, measurement: str) -> MeasurementState:
        with self._lock:
            state = self._states.get(measurement)
            if state is None:
                state = MeasurementState(measurement)
                self._states[measurement] = state
            return state

    def cycle_lock(self, measurement: str) -> asyncio.Lock:
        """Lock serializing dispatch/collect cycles of one measurement."""
        return self._cycle_locks[measurement]
