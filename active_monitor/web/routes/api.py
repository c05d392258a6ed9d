"""REST API routes."""

from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from active_monitor.config import settings, to_local_iso
from active_monitor.probing.monitor import get_latest_results, get_measurements
from active_monitor.scheduler.job_scheduler import get_jobs_info, trigger_manual_cycle

router = APIRouter()

GRANULARITY_PATTERN = "^(min|5mins|hour)$"


# Response models
class HostResultResponse(BaseModel):
    key: str
    host: str
    resolved_addr: Optional[str] = None
    value: Optional[float] = None
    # "reachable", "unreachable" or "unresolved"
    status: str


class CycleResponse(BaseModel):
    measurement: str
    granularity: str
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    hosts: List[HostResultResponse] = []


class JobResponse(BaseModel):
    id: str
    name: str
    next_run: Optional[str] = None
    trigger: str


class TriggerResponse(BaseModel):
    message: str
    status: str = "queued"
    results: Optional[Dict[str, dict]] = None


def _get_measurement_or_404(measurement: str):
    definition = get_measurements().get(measurement)
    if definition is None:
        raise HTTPException(status_code=404, detail="Measurement not found")
    return definition


@router.get("/measurements")
async def list_measurements():
    """Get the available measurements and their settings."""
    return [m.to_dict() for m in get_measurements().values()]


@router.get("/results/{measurement}", response_model=CycleResponse)
async def get_results(
    measurement: str,
    granularity: str = Query("min", pattern=GRANULARITY_PATTERN),
):
    """Get the last cycle results of a measurement.

    Hosts whose name did not resolve are reported as "unresolved", hosts
    that resolved but did not answer as "unreachable".
    """
    _get_measurement_or_404(measurement)

    cycle = get_latest_results(measurement, granularity)
    if not cycle:
        return CycleResponse(measurement=measurement, granularity=granularity)

    hosts = []
    for key, host in cycle["hosts"].items():
        result = cycle["results"].get(key)
        if result is None:
            hosts.append(HostResultResponse(key=key, host=host.host, status="unresolved"))
            continue
        hosts.append(HostResultResponse(
            key=key,
            host=host.host,
            resolved_addr=result.resolved_addr,
            value=result.value,
            status="reachable" if result.reachable else "unreachable",
        ))

    return CycleResponse(
        measurement=measurement,
        granularity=granularity,
        started_at=to_local_iso(cycle["started_at"]),
        completed_at=to_local_iso(cycle["completed_at"]),
        hosts=hosts,
    )


@router.post("/measurements/{measurement}/run", response_model=TriggerResponse)
async def run_measurement(
    measurement: str,
    granularity: str = Query("min", pattern=GRANULARITY_PATTERN),
):
    """Manually trigger a probing cycle."""
    definition = _get_measurement_or_404(measurement)
    if granularity not in definition.granularities:
        raise HTTPException(status_code=400, detail="Granularity not supported")

    results = await trigger_manual_cycle(measurement, granularity)
    if results is None:
        return TriggerResponse(message=f"{measurement} probe queued")

    return TriggerResponse(
        message=f"{measurement} probe completed",
        status="completed",
        results={key: r.to_dict() for key, r in results.items()},
    )


@router.get("/jobs", response_model=List[JobResponse])
async def list_jobs():
    """Get scheduled jobs information."""
    return get_jobs_info()


@router.get("/config")
async def get_config():
    """Get current configuration (non-sensitive)."""
    return {
        "hosts": [
            {"key": h.key, "host": h.host, "granularity": h.granularity}
            for h in settings.monitored_hosts
        ],
        "collect_delay_seconds": settings.collect_delay_seconds,
        "granularities": list(settings.granularities_list),
        "icmp_timeout": settings.icmp_timeout,
        "icmp_privileged": settings.icmp_privileged,
    }
