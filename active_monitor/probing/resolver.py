"""Host name resolution for probe targets."""

import ipaddress
import logging
import socket
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class Resolver(Protocol):
    def resolve(self, name: str) -> Optional[str]:
        ...


def is_ipv6(address: str) -> bool:
    """Check if address is an IPv6 literal."""
    try:
        return ipaddress.ip_address(address).version == 6
    except ValueError:
        return False


class SocketResolver:
    """Resolve names through the system resolver."""

    def __init__(self, prefer_ipv4: bool = True):
        self.prefer_ipv4 = prefer_ipv4

    def resolve(self, name: str) -> Optional[str]:
        """Resolve hostname to IP address.

        IP literals are returned as-is (normalized). For names, IPv4
        results are preferred unless configured otherwise.

        Args:
            name: Hostname or IP address.

        Returns:
            IP address if resolved, None otherwise.
        """
        if not name:
            return None

        try:
            return str(ipaddress.ip_address(name.strip("[]")))
        except ValueError:
            pass

        try:
            result = socket.getaddrinfo(
                name,
                None,
                family=socket.AF_UNSPEC,
                type=socket.SOCK_DGRAM,
            )
        except socket.gaierror as e:
            logger.warning("DNS resolution failed for %s: %s", name, e)
            return None
        except Exception as e:
            logger.error("Unexpected error resolving %s: %s", name, e)
            return None

        addresses = [entry[4][0] for entry in result]
        if not addresses:
            return None

        if self.prefer_ipv4:
            for address in addresses:
                if not is_ipv6(address):
                    logger.debug("Resolved %s to %s", name, address)
                    return address

        logger.debug("Resolved %s to %s", name, addresses[0])
        return addresses[0]
