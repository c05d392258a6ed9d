"""ICMP echo transport with batched result collection.

Echo requests are fire-and-forget: every send schedules a one-shot ping on
the running event loop and returns immediately. Replies are buffered per
address family until the next drain, which hands the whole buffer over and
starts a new one. Lost requests leave no trace in the buffer, and neither do
replies arriving after the drain that followed their request.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol, Set

import icmplib

logger = logging.getLogger(__name__)


class IcmpTransport(Protocol):
    def send_echo_request(self, address: str, ipv6: bool) -> None:
        ...

    def drain_results(self, ipv6: bool) -> Dict[str, Any]:
        ...

    def is_probing_available(self) -> bool:
        ...

    def close(self) -> None:
        ...


class IcmplibTransport:
    """ICMP transport backed by icmplib's asyncio ping."""

    def __init__(
        self,
        timeout: float = 3.0,
        privileged: bool = False,
        payload_size: int = 56,
    ):
        self.timeout = timeout
        self.privileged = privileged
        self.payload_size = payload_size
        self._results: Dict[bool, Dict[str, float]] = {False: {}, True: {}}
        # Drain counter per family; a reply is only kept if no drain of its
        # family happened since its request was sent.
        self._generation: Dict[bool, int] = {False: 0, True: 0}
        self._tasks: Set[asyncio.Task] = set()

    def send_echo_request(self, address: str, ipv6: bool) -> None:
        """Send one echo request to address without waiting for the reply.

        Must be called from within a running event loop.
        """
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._echo(address, ipv6, self._generation[ipv6]))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _echo(self, address: str, ipv6: bool, generation: int) -> None:
        rtt = await self._ping(address, ipv6)
        if rtt is None:
            return

        if generation != self._generation[ipv6]:
            logger.debug("Dropping late ICMP reply from %s", address)
            return

        self._results[ipv6][address] = rtt

    async def _ping(self, address: str, ipv6: bool) -> Optional[float]:
        """Ping address once.

        Returns:
            Round trip time in milliseconds, None if the host did not answer.
        """
        try:
            host = await icmplib.async_ping(
                address,
                count=1,
                timeout=self.timeout,
                family=6 if ipv6 else 4,
                privileged=self.privileged,
                payload_size=self.payload_size,
            )
        except icmplib.ICMPLibError as e:
            logger.debug("ICMP echo to %s failed: %s", address, e)
            return None
        except OSError as e:
            logger.debug("ICMP echo to %s failed: %s", address, e)
            return None

        if not host.is_alive:
            logger.debug("No ICMP reply from %s", address)
            return None

        logger.debug("ICMP reply from %s after %.2f ms", address, host.avg_rtt)
        return host.avg_rtt

    def drain_results(self, ipv6: bool) -> Dict[str, Any]:
        """Take every reply received since the previous drain.

        Args:
            ipv6: Drain the IPv6 buffer instead of the IPv4 one.

        Returns:
            Mapping of target address to round trip time in milliseconds.
        """
        results = self._results[ipv6]
        self._results[ipv6] = {}
        self._generation[ipv6] += 1
        return results

    def close(self) -> None:
        """Cancel every echo request still waiting for a reply."""
        for task in list(self._tasks):
            task.cancel()
        logger.debug("Cancelled %d in-flight ICMP echo requests", len(self._tasks))

    def is_probing_available(self) -> bool:
        """Check if ICMP sockets can be opened with the configured privileges."""
        try:
            sock = icmplib.ICMPv4Socket(privileged=self.privileged)
        except icmplib.SocketPermissionError as e:
            logger.warning("ICMP unavailable (insufficient permissions): %s", e)
            return False
        except OSError as e:
            logger.warning("ICMP unavailable: %s", e)
            return False

        sock.close()
        return True
