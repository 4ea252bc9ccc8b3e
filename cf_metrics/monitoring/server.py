"""
Scrape endpoint built on aiohttp.web.

Serves the sink's registry in the Prometheus text format on a single path.
"""

from __future__ import annotations

import logging
from typing import Optional

from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST

from ..exceptions import ServeError
from .metrics import MetricsSink

logger = logging.getLogger(__name__)


class MetricsServer:
    """HTTP listener exposing ``GET {path}`` and nothing else."""

    def __init__(
        self,
        sink: MetricsSink,
        host: str = "0.0.0.0",
        port: int = 28191,
        path: str = "/metrics",
    ):
        self.sink = sink
        self.host = host
        self.port = port
        self.path = path
        self._runner: Optional[web.AppRunner] = None

    def create_app(self) -> web.Application:
        """Build the aiohttp application (also used directly by tests)."""
        app = web.Application()
        app.router.add_get(self.path, self.handle_metrics)
        return app

    async def handle_metrics(self, request: web.Request) -> web.Response:
        body = self.sink.render()
        return web.Response(body=body, headers={"Content-Type": CONTENT_TYPE_LATEST})

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        """
        Bind the listener.

        Raises:
            ServeError: If the address cannot be bound
        """
        if self._runner is not None:
            return

        runner = web.AppRunner(self.create_app(), handle_signals=False)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        try:
            await site.start()
        except OSError as e:
            await runner.cleanup()
            raise ServeError(
                f"Cannot listen on {self.host}:{self.port}: {e}", self.host, self.port
            ) from e

        self._runner = runner
        logger.info("Serving metrics on %s:%d%s", self.host, self.port, self.path)

    async def stop(self) -> None:
        """Release the listener."""
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        logger.debug("Metrics listener on %s:%d closed", self.host, self.port)
