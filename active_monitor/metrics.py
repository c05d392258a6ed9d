"""Prometheus metrics for the Active Monitor application."""

from prometheus_client import Counter, Gauge, Info

from active_monitor.version import __version__

# Application info
app_info = Info("active_monitor", "Application information")
app_info.info({
    "version": __version__,
    "service": "ld-active-monitor",
})

# Probing engine
probes_sent_total = Counter(
    "active_monitor_probes_sent_total",
    "Total number of echo requests sent",
    ["measurement", "granularity"],
)

resolution_failures_total = Counter(
    "active_monitor_resolution_failures_total",
    "Total number of hosts skipped because their name did not resolve",
    ["measurement"],
)

responses_matched_total = Counter(
    "active_monitor_responses_matched_total",
    "Total number of responses matched to a pending probe",
    ["measurement"],
)

responses_unmatched_total = Counter(
    "active_monitor_responses_unmatched_total",
    "Total number of responses discarded for lack of a pending probe",
    ["measurement"],
)

# Cycle results
cycles_total = Counter(
    "active_monitor_cycles_total",
    "Total number of completed probing cycles",
    ["measurement", "granularity"],
)

host_value = Gauge(
    "active_monitor_host_value",
    "Last measured value of a host (scaled for charting)",
    ["measurement", "granularity", "host"],
)

host_reachable = Gauge(
    "active_monitor_host_reachable",
    "Host reachability (1=reachable, 0=unreachable)",
    ["measurement", "granularity", "host"],
)
