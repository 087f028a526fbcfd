"""
Monitor service - runs both observation sources against one alert engine.

Hosts, on a single event loop:
- Gateway feed (real-time message events)
- Channel poller (REST fallback)
- Alert state sweeper
- Health endpoint

Features:
- Graceful shutdown
- Health snapshot for the HTTP endpoint
"""

import asyncio
import time
from collections.abc import Coroutine
from typing import Any

import structlog
import uvicorn

from src.alerts.service import AlertService
from src.config.settings import Settings, get_settings
from src.ingestion.gateway import GatewayFeed
from src.ingestion.poller import ChannelPoller

logger = structlog.get_logger(__name__)


class MonitorService:
    """
    Orchestrates the alert service, its observation sources and the
    health server.

    Usage:
        monitor = MonitorService()
        await monitor.start()  # Runs until stopped
    """

    def __init__(
        self,
        alert_service: AlertService | None = None,
        settings: Settings | None = None,
        enable_gateway: bool = True,
        enable_poll: bool = True,
        serve_health: bool = True,
        gateway: GatewayFeed | None = None,
        poller: ChannelPoller | None = None,
    ):
        """
        Initialize the monitor.

        Args:
            alert_service: Alert engine (or build from config)
            settings: Application settings (default: cached settings)
            enable_gateway: Run the gateway feed
            enable_poll: Run the REST poller
            serve_health: Serve the health endpoint on ``settings.port``
            gateway: Pre-built gateway feed (mainly for tests)
            poller: Pre-built poller (mainly for tests)
        """
        self._settings = settings or get_settings()
        self._alerts = alert_service or AlertService.from_config()
        handler = self._alerts.process_message

        self._gateway = gateway
        if self._gateway is None and enable_gateway:
            self._gateway = GatewayFeed(handler=handler, settings=self._settings)

        self._poller = poller
        if self._poller is None and enable_poll:
            self._poller = ChannelPoller(handler=handler, settings=self._settings)

        self._serve_health = serve_health
        self._server: uvicorn.Server | None = None
        self._tasks: list[asyncio.Task] = []
        self._running = False
        self._started_at: float | None = None

        logger.info(
            "Monitor service initialized",
            gateway=self._gateway is not None,
            poll=self._poller is not None,
            health_port=self._settings.port if serve_health else None,
            tiers=[t.name for t in self._alerts.evaluator.tiers],
        )

    @property
    def alert_service(self) -> AlertService:
        return self._alerts

    @property
    def gateway(self) -> GatewayFeed | None:
        return self._gateway

    @property
    def poller(self) -> ChannelPoller | None:
        return self._poller

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """
        Start every component and wait until they finish.

        Runs until stop() is called.
        """
        self._running = True
        self._started_at = time.time()
        logger.info("Starting heart monitor")

        components: dict[str, Coroutine[Any, Any, None]] = {
            "sweeper": self._alerts.run_sweeper(),
        }
        if self._poller is not None:
            components["poller"] = self._poller.start()
        if self._gateway is not None:
            components["gateway"] = self._gateway.start()
        if self._serve_health:
            components["health"] = self._serve()

        self._tasks = [
            asyncio.create_task(self._run_component(name, coro), name=name)
            for name, coro in components.items()
        ]

        try:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        except asyncio.CancelledError:
            logger.info("Heart monitor cancelled")
        finally:
            self._tasks.clear()
            self._running = False
            logger.info("Heart monitor stopped")

    async def stop(self) -> None:
        """Stop every component gracefully."""
        logger.info("Stopping heart monitor")
        self._running = False

        self._alerts.stop()
        if self._poller is not None:
            self._poller.stop()
        if self._gateway is not None:
            await self._gateway.stop()
        if self._server is not None:
            self._server.should_exit = True

        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _run_component(self, name: str, coro: Coroutine[Any, Any, None]) -> None:
        logger.info("Component started", component=name)
        try:
            await coro
        except asyncio.CancelledError:
            logger.info("Component cancelled", component=name)
        except Exception as e:
            logger.error("Component failed", component=name, error=str(e), exc_info=True)

    async def _serve(self) -> None:
        from src.api.app import create_app

        config = uvicorn.Config(
            create_app(self),
            host=self._settings.health_host,
            port=self._settings.port,
            log_level="warning",
        )
        self._server = uvicorn.Server(config)
        logger.info("Health endpoint listening", port=self._settings.port)
        await self._server.serve()

    def status(self) -> dict[str, Any]:
        """
        Snapshot of monitor health.

        Returns:
            Dictionary matching the ``/health`` response
        """
        gateway_connected = self._gateway.connected if self._gateway else False
        last_poll_at = self._poller.last_poll_at if self._poller else None
        evaluator = self._alerts.evaluator

        if not self._running:
            status = "starting" if self._started_at is None else "stopped"
        elif gateway_connected or last_poll_at is not None:
            status = "healthy"
        else:
            status = "degraded"

        uptime = time.time() - self._started_at if self._started_at else 0.0
        return {
            "status": status,
            "gateway_connected": gateway_connected,
            "last_poll_at": last_poll_at,
            "tracked_messages": evaluator.tracked_count(),
            "store_capacity": evaluator.capacity,
            "alerts_fired": self._alerts.alerts_fired,
            "uptime_seconds": round(uptime, 1),
        }
