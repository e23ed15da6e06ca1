"""
Heartbeat Scheduler — the monitor's outbound loop.

States:
  INITIAL_DELAY → PROBE → (SUCCESS | FAILURE → [ESCALATE]) → WAIT → PROBE ...

A new probe is only armed once the previous one (and any acquisition it
escalated into) has resolved, so slow peers never pile up concurrent probes.
"""

import asyncio
import logging
from typing import Optional

from fip_monitor.acquisition.controller import AcquisitionController
from fip_monitor.liveness.tracker import LivenessTracker
from fip_monitor.models.acquisition import AcquisitionOutcome
from fip_monitor.models.config import MonitorConfig
from fip_monitor.probe.client import ProbeClient, ProbeError

logger = logging.getLogger(__name__)


class HeartbeatScheduler:
    def __init__(
        self,
        config: MonitorConfig,
        client: ProbeClient,
        tracker: LivenessTracker,
        controller: AcquisitionController,
    ):
        self.config = config
        self.client = client
        self.tracker = tracker
        self.controller = controller
        self._running = False
        self._beats = 0

    @property
    def status(self) -> str:
        return "running" if self._running else "stopped"

    @property
    def beats(self) -> int:
        """Number of completed probe cycles."""
        return self._beats

    async def beat_once(self) -> Optional[AcquisitionOutcome]:
        """
        Probe the peer once and escalate if it has been down long enough.
        Returns the acquisition outcome when an acquisition was attempted.
        """
        try:
            await self.client.request(
                "get",
                self.config.peer_url,
                expected_status=self.config.heartbeat_expected_status,
            )
        except ProbeError as e:
            self.tracker.record_failure(str(e))
            if self.tracker.downtime_ms() >= self.config.acquire_ip_after_ms:
                return await self.controller.try_acquire()
            return None
        finally:
            self._beats += 1

        self.tracker.record_success()
        return None

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Run the heartbeat loop until ``stop_event`` is set."""
        self._running = True
        if stop_event is None:
            stop_event = asyncio.Event()

        logger.info(
            "First heartbeat will be sent in %gs...",
            self.config.heartbeat_initial_delay_ms / 1000.0,
        )
        try:
            if await self._wait(stop_event, self.config.heartbeat_initial_delay_ms):
                return
            while not stop_event.is_set():
                await self.beat_once()
                if await self._wait(stop_event, self.config.heartbeat_interval_ms):
                    return
        finally:
            self._running = False

    @staticmethod
    async def _wait(stop_event: asyncio.Event, delay_ms: int) -> bool:
        """Sleep for ``delay_ms``; True if woken by the stop event instead."""
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=delay_ms / 1000.0)
        except asyncio.TimeoutError:
            return False
        return True
