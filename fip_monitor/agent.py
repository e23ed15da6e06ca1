"""
Failover Agent — wires the components together and runs them on one event loop.

Startup sequence:
  resolve droplet id → bind heartbeat server → serve + heartbeat loop

Startup failures raise StartupDependencyError. In steady state the only
exception that escapes is AcquisitionPanic.
"""

import asyncio
import logging
import socket
from datetime import datetime
from typing import Callable, Optional

import uvicorn

from fip_monitor.acquisition.controller import AcquisitionController
from fip_monitor.alerts.notifier import AlertNotifier
from fip_monitor.api.app import create_app
from fip_monitor.heartbeat.scheduler import HeartbeatScheduler
from fip_monitor.liveness.tracker import LivenessTracker, utc_now
from fip_monitor.models.config import MonitorConfig
from fip_monitor.probe.client import ProbeClient, ProbeError
from fip_monitor.provider.digitalocean import DigitalOceanProvider

logger = logging.getLogger(__name__)


class StartupDependencyError(Exception):
    """Droplet identity lookup or heartbeat server bind failed."""
    pass


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind the heartbeat listening socket up front so failures surface here."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


class FailoverAgent:
    def __init__(
        self,
        config: MonitorConfig,
        client: Optional[ProbeClient] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.client = client or ProbeClient(timeout=config.http_request_timeout)
        self.clock = clock
        self.provider = DigitalOceanProvider(config, self.client)
        self.notifier = AlertNotifier(config, self.client)
        self.tracker = LivenessTracker(peer_address=config.peer_address, clock=clock)
        self.app = create_app(config)

        self.droplet_id: Optional[str] = config.droplet_id
        self.controller: Optional[AcquisitionController] = None
        self.scheduler: Optional[HeartbeatScheduler] = None

    async def resolve_droplet_id(self) -> str:
        """Look up this droplet's id from the metadata service (once)."""
        if self.droplet_id:
            return self.droplet_id
        try:
            self.droplet_id = await self.provider.get_droplet_id()
        except ProbeError as e:
            raise StartupDependencyError(f"Failed to get droplet id: {e}") from e
        if not self.droplet_id:
            raise StartupDependencyError("Failed to get droplet id: empty response")
        logger.info("Running on droplet %s", self.droplet_id)
        return self.droplet_id

    def build(self, droplet_id: str) -> HeartbeatScheduler:
        """Create the controller and scheduler for ``droplet_id``."""
        self.controller = AcquisitionController(
            config=self.config,
            provider=self.provider,
            tracker=self.tracker,
            notifier=self.notifier,
            droplet_id=droplet_id,
            clock=self.clock,
        )
        self.scheduler = HeartbeatScheduler(
            config=self.config,
            client=self.client,
            tracker=self.tracker,
            controller=self.controller,
        )
        return self.scheduler

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Run until ``stop_event`` is set, the server exits, or a panic."""
        if stop_event is None:
            stop_event = asyncio.Event()

        try:
            droplet_id = await self.resolve_droplet_id()
            scheduler = self.build(droplet_id)

            try:
                sock = bind_socket(self.config.bind_address, self.config.bind_port)
            except OSError as e:
                raise StartupDependencyError(
                    f"Failed to start heartbeat server on "
                    f"{self.config.bind_address}:{self.config.bind_port}: {e}"
                ) from e

            server = uvicorn.Server(uvicorn.Config(
                self.app,
                log_level="warning",
                access_log=False,
                lifespan="off",
            ))
            server_task = asyncio.create_task(server.serve(sockets=[sock]))
            logger.info(
                "Heartbeat server started OK on %s:%d",
                self.config.bind_address,
                self.config.bind_port,
            )

            heartbeat_task = asyncio.create_task(scheduler.run(stop_event))
            try:
                await asyncio.wait(
                    {server_task, heartbeat_task},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if heartbeat_task.done():
                    # Re-raises AcquisitionPanic.
                    heartbeat_task.result()
                else:
                    logger.info("Heartbeat server stopped, shutting down")
            finally:
                stop_event.set()
                server.should_exit = True
                server.force_exit = True
                heartbeat_task.cancel()
                await asyncio.gather(heartbeat_task, server_task, return_exceptions=True)
                sock.close()
        finally:
            await self.notifier.aclose()
            await self.client.aclose()
