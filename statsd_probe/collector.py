"""
Mock Collector - In-process StatsD server.

This module provides the MockStatsDCollector class that handles:
- Binding an asyncio UDP endpoint for the StatsD protocol
- Decoding every received datagram into counter samples
- Accumulating samples into a MetricAggregate
- Polling barriers that wait for delivery to settle
- Idempotent shutdown

"""

import asyncio
import logging
import time
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Tuple

from .aggregate import MetricAggregate
from .exceptions import CollectorError, ProtocolError
from .protocol import MetricParser


logger = logging.getLogger(__name__)


@dataclass
class CollectorStats:
    """Counters describing what the collector has seen."""
    datagrams_received: int = 0
    datagrams_dropped: int = 0
    datagrams_ignored: int = 0
    samples_accepted: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return asdict(self)


class _CollectorProtocol(asyncio.DatagramProtocol):
    """Bridges asyncio datagram callbacks to the collector."""

    def __init__(self, collector: "MockStatsDCollector", ready: asyncio.Future):
        self._collector = collector
        self._ready = ready

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        if not self._ready.done():
            self._ready.set_result(transport)

    def datagram_received(self, data: bytes, addr: Tuple[str, int]) -> None:
        self._collector.on_datagram(data, addr)

    def error_received(self, exc: Exception) -> None:
        logger.warning(f"UDP socket error: {exc}")

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if exc is not None:
            logger.warning(f"UDP endpoint closed with error: {exc}")


class MockStatsDCollector:
    """UDP server that aggregates StatsD counters.

    This class handles:
    - Starting the UDP endpoint and reporting readiness once bound
    - Parsing datagrams and updating the aggregate
    - Dropping malformed datagrams without interrupting reception
    - Exposing snapshots and delivery barriers to the run routine
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 8125,
                 aggregate: Optional[MetricAggregate] = None,
                 parser: Optional[MetricParser] = None):
        """Initialize the collector.

        Args:
            host: Address to bind to.
            port: UDP port to bind to. 0 selects an ephemeral port.
            aggregate: Optional aggregate to write into. Creates one if not provided.
            parser: Optional parser instance.
        """
        self.host = host
        self.port = port

        self._aggregate = aggregate if aggregate is not None else MetricAggregate()
        self._parser = parser or MetricParser()

        self._transport: Optional[asyncio.DatagramTransport] = None
        self._address: Optional[Tuple[str, int]] = None
        self._running = False
        self._stats = CollectorStats()
        self._started_at: Optional[float] = None
        self._last_datagram_at: Optional[float] = None

    @property
    def running(self) -> bool:
        """Check if the collector is listening."""
        return self._running

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Get the bound (host, port), or None when not running."""
        return self._address

    @property
    def aggregate(self) -> MetricAggregate:
        """Get the aggregate this collector writes into."""
        return self._aggregate

    async def start(self, host: Optional[str] = None,
                    port: Optional[int] = None) -> Tuple[str, int]:
        """Bind the UDP endpoint.

        Returns only after the transport has reported the socket bound.

        Args:
            host: Address to bind to, replacing the configured one when given.
            port: UDP port to bind to, replacing the configured one when given.

        Returns:
            The bound (host, port).

        Raises:
            CollectorError: If already running or the bind fails.
        """
        if self._running:
            raise CollectorError("Collector is already running")

        if host is not None:
            self.host = host
        if port is not None:
            self.port = port

        loop = asyncio.get_running_loop()
        ready = loop.create_future()

        try:
            transport, _ = await loop.create_datagram_endpoint(
                lambda: _CollectorProtocol(self, ready),
                local_addr=(self.host, self.port)
            )
        except OSError as e:
            logger.error(f"Failed to bind StatsD collector on {self.host}:{self.port}: {e}")
            raise CollectorError(f"Cannot bind {self.host}:{self.port}: {e}") from e

        await ready

        self._transport = transport
        sockname = transport.get_extra_info("sockname")
        self._address = (sockname[0], sockname[1])
        self._running = True
        self._started_at = time.monotonic()

        logger.info(f"Mock StatsD server started on {self._address[0]}:{self._address[1]}")
        return self._address

    def stop(self) -> None:
        """Close the UDP endpoint. Safe to call when not running."""
        if not self._running:
            logger.debug("Collector is not running")
            return

        if self._transport is not None:
            self._transport.close()
            self._transport = None

        self._running = False
        logger.info("Mock StatsD server stopped")

    def on_datagram(self, data: bytes, addr: Optional[Tuple[str, int]] = None) -> None:
        """Handle one received datagram.

        Args:
            data: Raw datagram payload.
            addr: Sender address, used for diagnostics only.
        """
        self._stats.datagrams_received += 1
        self._last_datagram_at = time.monotonic()

        try:
            samples = self._parser.parse_datagram(data)
        except ProtocolError as e:
            self._stats.datagrams_dropped += 1
            logger.warning(f"Dropped malformed datagram from {addr}: {e.message} (line={e.line!r})")
            return

        if not samples:
            self._stats.datagrams_ignored += 1
            logger.debug(f"Ignored non-counter datagram from {addr}: {data[:100]!r}")
            return

        self._aggregate.add_all(samples)
        self._stats.samples_accepted += len(samples)

        for sample in samples:
            logger.info(f"Received metric: {sample.name} = {sample.delta:g}")

    def snapshot(self) -> Dict[str, float]:
        """Get an independent copy of the aggregated counters."""
        return self._aggregate.snapshot()

    def get_stats(self) -> CollectorStats:
        """Get a copy of the reception statistics."""
        return CollectorStats(**self._stats.to_dict())

    async def wait_until_quiet(self, quiet_period: float, timeout: float,
                               poll_interval: float = 0.05) -> bool:
        """Wait until no datagram has arrived for a quiet period.

        Args:
            quiet_period: Seconds without traffic that count as settled.
            timeout: Upper bound on the wait, in seconds.
            poll_interval: Seconds between checks.

        Returns:
            True if the collector settled, False if the timeout elapsed first.
            A collector that was never started has nothing in flight and
            counts as settled.
        """
        deadline = time.monotonic() + timeout

        while True:
            now = time.monotonic()
            last_activity = self._last_datagram_at or self._started_at
            if last_activity is None or now - last_activity >= quiet_period:
                return True
            if now >= deadline:
                logger.warning(f"Metrics did not settle within {timeout}s")
                return False
            await asyncio.sleep(min(poll_interval, max(deadline - now, 0)))

    async def wait_for_value(self, name: str, minimum: float, timeout: float,
                             poll_interval: float = 0.02) -> bool:
        """Wait until a counter reaches at least a given value.

        Args:
            name: Metric name to watch.
            minimum: Value the counter must reach.
            timeout: Upper bound on the wait, in seconds.
            poll_interval: Seconds between checks.

        Returns:
            True if the value was reached, False on timeout.
        """
        deadline = time.monotonic() + timeout

        while self._aggregate.get(name) < minimum:
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(poll_interval)

        return True
