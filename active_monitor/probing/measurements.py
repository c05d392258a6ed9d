"""Measurement definitions exposed to the scheduler.

A measurement couples a check function (sends the probes) with a
collect function (returns the results) and carries the configuration the
alerting and charting layers need. Only the ICMP measurement exists so far.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from active_monitor.probing.engine import ProbeDispatcher, ResultCollector
from active_monitor.probing.models import GRANULARITIES, HostResult, MonitoredHost
from active_monitor.probing.resolver import Resolver
from active_monitor.probing.state import MeasurementStateRegistry
from active_monitor.probing.transport import IcmpTransport

logger = logging.getLogger(__name__)

CheckFn = Callable[[Mapping[str, MonitoredHost], str], int]
CollectFn = Callable[[str], Dict[str, HostResult]]


@dataclass
class MeasurementDefinition:
    """A probing strategy and its pass-through presentation settings."""

    key: str
    check: CheckFn
    collect_results: CollectFn
    i18n_label: str = ""
    granularities: Tuple[str, ...] = tuple(GRANULARITIES)
    # Labels for the measurement and jitter units (e.g. "ms", "Mbits")
    i18n_unit: Optional[str] = None
    i18n_jitter_unit: Optional[str] = None
    i18n_am_ts_label: Optional[str] = None
    i18n_am_ts_metric: Optional[str] = None
    # "gt" or "lt": how a value is compared with its threshold
    operator: str = "gt"
    max_threshold: Optional[float] = None
    default_threshold: Optional[float] = None
    additional_timeseries: List[str] = field(default_factory=list)
    value_js_formatter: Optional[str] = None
    # Raw values are multiplied by this factor before charting
    chart_scaling_value: float = 1
    i18n_chart_notes: List[str] = field(default_factory=list)
    force_host: Optional[str] = None
    unreachable_alert_i18n: Optional[str] = None

    def __post_init__(self):
        if self.operator not in ("gt", "lt"):
            raise ValueError(f"invalid operator: {self.operator}")
        unknown = set(self.granularities) - set(GRANULARITIES)
        if unknown:
            raise ValueError(f"unknown granularities: {sorted(unknown)}")

    def to_dict(self) -> dict:
        """Presentation settings, without the entry points."""
        return {
            "key": self.key,
            "i18n_label": self.i18n_label,
            "granularities": list(self.granularities),
            "i18n_unit": self.i18n_unit,
            "i18n_jitter_unit": self.i18n_jitter_unit,
            "i18n_am_ts_label": self.i18n_am_ts_label,
            "i18n_am_ts_metric": self.i18n_am_ts_metric,
            "operator": self.operator,
            "max_threshold": self.max_threshold,
            "default_threshold": self.default_threshold,
            "additional_timeseries": list(self.additional_timeseries),
            "value_js_formatter": self.value_js_formatter,
            "chart_scaling_value": self.chart_scaling_value,
            "i18n_chart_notes": list(self.i18n_chart_notes),
            "force_host": self.force_host,
            "unreachable_alert_i18n": self.unreachable_alert_i18n,
        }


def build_icmp_measurement(
    transport: IcmpTransport,
    resolver: Resolver,
    registry: MeasurementStateRegistry,
) -> MeasurementDefinition:
    """Create the ICMP round trip time measurement."""
    dispatcher = ProbeDispatcher(transport, resolver)
    collector = ResultCollector(transport)
    state = registry.get("icmp")

    def check(hosts: Mapping[str, MonitoredHost], granularity: str) -> int:
        return dispatcher.dispatch(state, hosts, granularity)

    def collect_results(granularity: str) -> Dict[str, HostResult]:
        return collector.collect(state, granularity)

    return MeasurementDefinition(
        key="icmp",
        i18n_label="icmp",
        check=check,
        collect_results=collect_results,
        granularities=("min", "5mins", "hour"),
        i18n_unit="active_monitoring_stats.msec",
        i18n_am_ts_label="graphs.num_ms_rtt",
        i18n_am_ts_metric="flow_details.round_trip_time",
        operator="gt",
        max_threshold=10000,
        value_js_formatter="NtopUtils.fmillis",
        chart_scaling_value=1,
    )


def load_measurements(
    transport: IcmpTransport,
    resolver: Resolver,
    registry: Optional[MeasurementStateRegistry] = None,
) -> Dict[str, MeasurementDefinition]:
    """Build the measurements usable on this platform.

    The ICMP measurement is only returned if the transport can probe.
    """
    if registry is None:
        registry = MeasurementStateRegistry()

    measurements: Dict[str, MeasurementDefinition] = {}

    if transport.is_probing_available():
        icmp = build_icmp_measurement(transport, resolver, registry)
        measurements[icmp.key] = icmp
    else:
        logger.warning("ICMP probing not available, icmp measurement disabled")

    logger.info("Loaded measurements: %s", ", ".join(measurements) or "none")
    return measurements
