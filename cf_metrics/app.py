"""
Application context and lifecycle.

``run_exporter`` wires the client, registry, sink, scrape server and poll
loop together and runs them until SIGINT or SIGTERM:

1. discover zones (fatal on failure),
2. bind the scrape listener (fatal on failure),
3. start the poll loop,
4. wait for a shutdown signal, then stop the poll loop and the listener.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import dataclass, field
from typing import Optional

from .client import CloudflareClient
from .config.models import ExporterConfig
from .discovery import discover_zones
from .exceptions import DiscoveryError, ServeError
from .monitoring import MetricsServer, MetricsSink
from .poller import Poller
from .registry import ZoneRegistry

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@dataclass
class AppContext:
    """Everything a pass needs, passed explicitly instead of held in globals."""

    config: ExporterConfig
    client: CloudflareClient
    registry: ZoneRegistry = field(default_factory=ZoneRegistry)
    sink: MetricsSink = field(default_factory=MetricsSink)

    @classmethod
    def from_config(
        cls, config: ExporterConfig, sink: Optional[MetricsSink] = None
    ) -> "AppContext":
        """Build a context with a fresh client and registry."""
        client = CloudflareClient(
            config.api,
            lookback_days=config.poller.lookback_days,
            days_limit=config.poller.days_limit,
        )
        return cls(
            config=config,
            client=client,
            sink=sink or MetricsSink(),
        )

    def create_poller(self) -> Poller:
        return Poller(
            self,
            interval=self.config.poller.interval,
            max_concurrency=self.config.poller.max_concurrency,
        )

    def create_server(self) -> MetricsServer:
        server = self.config.server
        return MetricsServer(self.sink, host=server.host, port=server.port, path=server.path)


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def request_stop(signame: str) -> None:
        logger.info("Received %s, shutting down", signame)
        stop_event.set()

    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, request_stop, sig.name)
        except (NotImplementedError, RuntimeError):
            # Not available on this platform or outside the main thread
            logger.debug("Cannot install handler for %s", sig.name)


def _remove_signal_handlers() -> None:
    loop = asyncio.get_running_loop()
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.remove_signal_handler(sig)
        except (NotImplementedError, RuntimeError):
            pass


async def run_exporter(
    config: ExporterConfig,
    stop_event: Optional[asyncio.Event] = None,
    context: Optional[AppContext] = None,
) -> int:
    """
    Run the collector until a shutdown signal arrives.

    Args:
        config: Validated configuration
        stop_event: Event that ends the run when set; signal handlers are
            only installed when the caller does not supply one
        context: Prebuilt context (tests); built from ``config`` if None

    Returns:
        Process exit code: 0 after a graceful shutdown, 1 if discovery or
        the listener bind failed
    """
    context = context or AppContext.from_config(config)
    own_signals = stop_event is None
    stop_event = stop_event or asyncio.Event()

    async with context.client:
        try:
            await discover_zones(context)
        except DiscoveryError as e:
            logger.error("Zone discovery failed: %s", e.message)
            return EXIT_FAILURE

        server = context.create_server()
        try:
            await server.start()
        except ServeError as e:
            logger.error("%s", e.message)
            return EXIT_FAILURE

        poller = context.create_poller()
        if own_signals:
            _install_signal_handlers(stop_event)
        try:
            poller.start(stop_event)
            await stop_event.wait()
        finally:
            if own_signals:
                _remove_signal_handlers()
            await poller.stop(timeout=config.api.timeout)
            await server.stop()

    logger.info("Shutdown complete")
    return EXIT_OK
