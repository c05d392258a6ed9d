"""Main entry point for the Active Monitor application."""

import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler

import uvicorn

from active_monitor.config import settings


def configure_logging():
    """Configure logging based on settings.

    Logs are written to both stdout (for container logs) and a rotating
    log file.
    """
    log_level = getattr(logging, settings.log_level.upper())

    log_dir = settings.data_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "active_monitor.log"

    stdout_handler = logging.StreamHandler(sys.stdout)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=3,
        encoding="utf-8",
    )

    if settings.log_format == "json":
        from pythonjsonlogger import jsonlogger

        class CustomJsonFormatter(jsonlogger.JsonFormatter):
            """Custom JSON formatter with additional fields."""

            def add_fields(self, log_record, record, message_dict):
                super().add_fields(log_record, record, message_dict)
                log_record["timestamp"] = datetime.utcnow().isoformat() + "Z"
                log_record["level"] = record.levelname
                log_record["logger"] = record.name
                log_record["service"] = "ld-active-monitor"

        formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    stdout_handler.setFormatter(formatter)
    file_handler.setFormatter(formatter)

    logging.root.handlers = []
    logging.root.addHandler(stdout_handler)
    logging.root.addHandler(file_handler)
    logging.root.setLevel(log_level)

    # Reduce noise from third-party loggers
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


def main():
    """Run the application."""
    from active_monitor.version import __version__

    configure_logging()

    logger.info("Starting LD Active Monitor v%s", __version__)
    logger.info("Monitored hosts: %d", len(settings.monitored_hosts))
    for host in settings.monitored_hosts:
        logger.info("  %s (%s)", host.key, host.granularity)
    logger.info("Granularities: %s", ", ".join(settings.granularities_list))
    logger.info("Collect delay: %.1f seconds", settings.collect_delay_seconds)
    logger.info("ICMP privileged: %s", settings.icmp_privileged)
    logger.info("Log format: %s", settings.log_format)

    # Import app here to ensure logging is configured first
    from active_monitor.web.app import app

    uvicorn.run(
        app,
        host=settings.web_host,
        port=settings.web_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
