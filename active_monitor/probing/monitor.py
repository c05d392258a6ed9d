"""Probing cycles run by the scheduler.

A cycle sends the probes of one measurement and granularity, waits for the
replies and collects them. Results are published as metrics and kept in
memory as the latest result of that measurement and granularity.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Set, Tuple

from prometheus_client import Gauge

from active_monitor.config import settings
from active_monitor.metrics import cycles_total, host_reachable, host_value
from active_monitor.probing.measurements import MeasurementDefinition, load_measurements
from active_monitor.probing.models import HostResult, MonitoredHost
from active_monitor.probing.resolver import SocketResolver
from active_monitor.probing.state import MeasurementStateRegistry
from active_monitor.probing.transport import IcmplibTransport

logger = logging.getLogger(__name__)

# State slots of every measurement
registry = MeasurementStateRegistry()

# Loaded measurements, built on first use
_measurements: Optional[Dict[str, MeasurementDefinition]] = None

# Transport shared by the loaded measurements
_transport: Optional[IcmplibTransport] = None

# Latest cycle outcome keyed by (measurement, granularity)
_latest_results: Dict[Tuple[str, str], Dict[str, Any]] = {}

# Host keys with exported gauge series, keyed by (measurement, granularity)
_published_hosts: Dict[Tuple[str, str], Set[str]] = {}


def get_measurements() -> Dict[str, MeasurementDefinition]:
    """Get the measurements available on this host.

    The availability check runs once, the first time this is called.
    """
    global _measurements, _transport

    if _measurements is None:
        _transport = IcmplibTransport(
            timeout=settings.icmp_timeout,
            privileged=settings.icmp_privileged,
            payload_size=settings.icmp_payload_size,
        )
        _measurements = load_measurements(_transport, SocketResolver(), registry)

    return _measurements


def close_measurements() -> None:
    """Cancel the echo requests still waiting for a reply."""
    if _transport is not None:
        _transport.close()


def hosts_for(measurement: str, granularity: str) -> Dict[str, MonitoredHost]:
    """Configured hosts of a measurement at a granularity, keyed by host key."""
    return {
        host.key: host
        for host in settings.monitored_hosts
        if host.measurement == measurement and host.granularity == granularity
    }


def _remove_series(gauge: Gauge, measurement: str, granularity: str, host: str) -> None:
    try:
        gauge.remove(measurement, granularity, host)
    except KeyError:
        pass  # Never exported


def publish_results(
    measurement: MeasurementDefinition,
    granularity: str,
    results: Dict[str, HostResult],
) -> None:
    """Export cycle results as metrics and log unreachable hosts.

    Unreachable hosts lose their value series. Hosts missing from results
    (name did not resolve) lose both series.
    """
    slot = (measurement.key, granularity)

    for key in _published_hosts.get(slot, set()) - set(results):
        _remove_series(host_reachable, measurement.key, granularity, key)
        _remove_series(host_value, measurement.key, granularity, key)
    _published_hosts[slot] = set(results)

    for key, result in results.items():
        labels = {"measurement": measurement.key, "granularity": granularity, "host": key}

        if result.reachable:
            host_reachable.labels(**labels).set(1)
            host_value.labels(**labels).set(result.value * measurement.chart_scaling_value)
        else:
            host_reachable.labels(**labels).set(0)
            _remove_series(host_value, measurement.key, granularity, key)
            logger.warning(
                "[%s] Host %s (%s) is unreachable",
                measurement.key,
                key,
                result.resolved_addr,
            )

    cycles_total.labels(measurement=measurement.key, granularity=granularity).inc()


async def run_measurement_cycle(
    measurement_key: str,
    granularity: str,
    delay: Optional[float] = None,
) -> Dict[str, HostResult]:
    """Run one probing cycle.

    Cycles of the same measurement never overlap: a new dispatch would
    discard the probes the previous cycle is still waiting for.

    Args:
        measurement_key: Key of the measurement to run.
        granularity: Granularity whose hosts are probed.
        delay: Seconds between sending and collecting. Defaults to
            the configured collect delay.

    Returns:
        Results keyed by host key.
    """
    measurement = get_measurements().get(measurement_key)
    if measurement is None:
        logger.warning("Measurement %s is not available", measurement_key)
        return {}

    if granularity not in measurement.granularities:
        raise ValueError(
            f"granularity {granularity} not supported by {measurement_key}"
        )

    if delay is None:
        delay = settings.collect_delay_seconds

    hosts = hosts_for(measurement_key, granularity)
    if not hosts:
        logger.debug("[%s] No hosts configured for %s", measurement_key, granularity)
        return {}

    async with registry.cycle_lock(measurement_key):
        started_at = datetime.utcnow()
        measurement.check(hosts, granularity)
        await asyncio.sleep(delay)
        results = measurement.collect_results(granularity)

    publish_results(measurement, granularity, results)

    _latest_results[(measurement_key, granularity)] = {
        "started_at": started_at,
        "completed_at": datetime.utcnow(),
        "hosts": hosts,
        "results": results,
    }
    return results


def get_latest_results(measurement: str, granularity: str) -> Optional[Dict[str, Any]]:
    """Get the last completed cycle of a measurement, if any."""
    return _latest_results.get((measurement, granularity))
