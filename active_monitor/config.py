"""Application configuration from environment variables."""

import ipaddress
import os
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

from active_monitor.probing.models import DEFAULT_GRANULARITY, GRANULARITIES, MonitoredHost

# RFC 1123 hostname pattern (allows digits at start)
HOSTNAME_PATTERN = r'^[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?)*$'

DANGEROUS_CHARS = set(';&|`$(){}<>\\\'\"!#*?~')


def validate_host(host: str) -> str:
    """Validate hostname/IP to prevent injection through host names.

    Accepts RFC 1123 hostnames and IPv4/IPv6 literals (IPv6 optionally in
    brackets).
    """
    if not host:
        raise ValueError('host cannot be empty')
    if len(host) > 253:
        raise ValueError('hostname too long (max 253 chars)')

    if any(c in host for c in DANGEROUS_CHARS):
        raise ValueError(f'host contains invalid characters: {host}')

    try:
        ipaddress.ip_address(host.strip("[]"))
        return host
    except ValueError:
        pass

    if not re.match(HOSTNAME_PATTERN, host):
        raise ValueError(f'invalid hostname format: {host}')

    return host


def parse_host_spec(spec: str, measurement: str = "icmp") -> MonitoredHost:
    """Parse a ``host[@granularity]`` entry."""
    spec = spec.strip()
    host, granularity = spec, DEFAULT_GRANULARITY
    if "@" in spec:
        host, granularity = spec.rsplit("@", 1)
        granularity = granularity.strip()
    host = host.strip()

    if granularity not in GRANULARITIES:
        raise ValueError(f'unknown granularity "{granularity}" for {host}')

    return MonitoredHost(
        host=validate_host(host),
        measurement=measurement,
        granularity=granularity,
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Monitored hosts, comma-separated "host[@granularity]" entries,
    # e.g. "dns.google,1.1.1.1@5mins,2606:4700::1111@hour"
    am_hosts: str = ""

    @field_validator('am_hosts')
    @classmethod
    def validate_am_hosts(cls, v: str) -> str:
        """Validate every configured host entry."""
        for entry in v.split(","):
            if entry.strip():
                parse_host_spec(entry)
        return v

    # Probing cycle
    collect_delay_seconds: float = 5.0   # Wait between sending and collecting
    enabled_granularities: str = "min,5mins,hour"

    @field_validator('enabled_granularities')
    @classmethod
    def validate_granularities(cls, v: str) -> str:
        for entry in v.split(","):
            entry = entry.strip()
            if entry and entry not in GRANULARITIES:
                raise ValueError(f'unknown granularity: {entry}')
        return v

    # ICMP transport tuning
    icmp_timeout: float = 3.0       # Seconds to wait for an echo reply
    icmp_privileged: bool = False   # Raw sockets (root/CAP_NET_RAW) vs datagram sockets
    icmp_payload_size: int = 56

    @model_validator(mode="after")
    def validate_timeout_within_cycle(self) -> "Settings":
        """Echo replies must be able to arrive before the cycle collects."""
        if self.icmp_timeout >= self.collect_delay_seconds:
            raise ValueError(
                f'icmp_timeout ({self.icmp_timeout}) must be lower than '
                f'collect_delay_seconds ({self.collect_delay_seconds})'
            )
        return self

    @property
    def monitored_hosts(self) -> List[MonitoredHost]:
        """Parse am_hosts into host records, skipping duplicates."""
        hosts: List[MonitoredHost] = []
        seen = set()
        for entry in self.am_hosts.split(","):
            if not entry.strip():
                continue
            host = parse_host_spec(entry)
            if host.key in seen:
                continue
            seen.add(host.key)
            hosts.append(host)
        return hosts

    @property
    def granularities_list(self) -> Tuple[str, ...]:
        return tuple(
            g.strip() for g in self.enabled_granularities.split(",") if g.strip()
        )

    # Data storage (logs)
    data_dir: Path = Path("/app/data")

    # Web server
    web_host: str = "0.0.0.0"
    web_port: int = 8080

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json"

    # Timezone for display (reads from TZ env var, defaults to UTC)
    display_timezone: str = os.getenv("TZ", "UTC")

    @property
    def tz(self) -> ZoneInfo:
        """Get timezone object for configured display timezone."""
        try:
            return ZoneInfo(self.display_timezone)
        except Exception:
            return ZoneInfo("UTC")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore unknown environment variables


# Global settings instance
settings = Settings()


def to_local_iso(dt: Optional[datetime]) -> Optional[str]:
    """Convert UTC datetime to configured timezone ISO string.

    Args:
        dt: Datetime object (assumed UTC if naive).

    Returns:
        ISO format string with timezone offset, or None if input is None.
    """
    if dt is None:
        return None

    # Assume naive datetime is UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo("UTC"))

    local_dt = dt.astimezone(settings.tz)
    return local_dt.isoformat()
