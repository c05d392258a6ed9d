"""FastAPI web application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from active_monitor.probing.monitor import close_measurements
from active_monitor.scheduler.job_scheduler import start_scheduler, shutdown_scheduler
from active_monitor.version import __version__

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Active Monitor...")

    start_scheduler()
    logger.info("Scheduler started")

    yield

    logger.info("Shutting down Active Monitor...")
    shutdown_scheduler()
    close_measurements()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Active Monitor",
    description="ICMP reachability and latency monitor",
    version=__version__,
    lifespan=lifespan,
)

# Import and include routers
from active_monitor.web.routes import api, health  # noqa: E402

app.include_router(api.router, prefix="/api", tags=["API"])
app.include_router(health.router, tags=["Health"])
