"""Asynchronous ICMP probing engine.

Probing happens in two phases driven by the scheduler:

1. The dispatcher resolves every host of a cycle and sends one echo request
   per resolved address, without waiting for replies.
2. After a wait chosen by the caller, the collector drains the replies that
   arrived in the meantime and matches them back to the hosts by address.

Hosts that failed to resolve never enter the result table. Hosts that
resolved but did not answer stay in it with no value.
"""

import logging
import math
from typing import Any, Dict, Mapping, Optional

from active_monitor.metrics import (
    probes_sent_total,
    resolution_failures_total,
    responses_matched_total,
    responses_unmatched_total,
)
from active_monitor.probing.models import HostResult, MonitoredHost
from active_monitor.probing.resolver import Resolver, is_ipv6
from active_monitor.probing.state import MeasurementState
from active_monitor.probing.transport import IcmpTransport

logger = logging.getLogger(__name__)


def parse_value(raw: Any) -> Optional[float]:
    """Convert a raw transport value into a measurement.

    Returns:
        The value as float, or None if it is not a finite number.
    """
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


class ProbeDispatcher:
    """Send the echo requests of a probing cycle."""

    def __init__(self, transport: IcmpTransport, resolver: Resolver):
        self.transport = transport
        self.resolver = resolver

    def dispatch(
        self,
        state: MeasurementState,
        hosts: Mapping[str, MonitoredHost],
        granularity: str,
    ) -> int:
        """Start a new cycle for the measurement owning state.

        Args:
            state: State slot of the measurement, reset before sending.
            hosts: Hosts to probe, keyed by logical host key.
            granularity: Scheduling label, only used for logging.

        Returns:
            Number of echo requests sent.
        """
        state.reset()
        sent = 0

        for key, host in hosts.items():
            address = self.resolver.resolve(host.host)
            logger.debug(
                "[%s] Pinging address %s/%s", state.measurement, address, host.host
            )

            if not address:
                resolution_failures_total.labels(measurement=state.measurement).inc()
                continue

            self.transport.send_echo_request(address, is_ipv6(address))
            state.register(key, address)
            sent += 1

        probes_sent_total.labels(
            measurement=state.measurement, granularity=granularity
        ).inc(sent)
        logger.info(
            "[%s] Sent %d/%d probes (%s)",
            state.measurement,
            sent,
            len(hosts),
            granularity,
        )
        return sent


class ResultCollector:
    """Match batched echo replies to the hosts of the current cycle."""

    def __init__(self, transport: IcmpTransport):
        self.transport = transport

    def collect(
        self,
        state: MeasurementState,
        granularity: str,
    ) -> Dict[str, HostResult]:
        """Finish the current cycle of the measurement owning state.

        Returns:
            Results keyed by host key, including hosts that did not answer.
        """
        for ipv6 in (False, True):
            replies = self.transport.drain_results(ipv6) or {}

            for address, raw in replies.items():
                key = state.set_value(address, parse_value(raw))
                logger.debug(
                    "[%s] ICMP response for %s, value: %s key: %s",
                    state.measurement,
                    address,
                    raw,
                    key,
                )

                if key is None:
                    responses_unmatched_total.labels(measurement=state.measurement).inc()
                else:
                    responses_matched_total.labels(measurement=state.measurement).inc()

        results = state.snapshot()
        logger.info(
            "[%s] Collected %d results, %d unreachable (%s)",
            state.measurement,
            len(results),
            sum(1 for r in results.values() if not r.reachable),
            granularity,
        )
        return results
