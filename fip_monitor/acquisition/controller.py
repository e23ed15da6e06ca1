"""
Acquisition Controller — claims the floating IP when the peer is gone.

Protocol (one attempt):
  DEBOUNCE → ACTIVE_CHECK → (ALREADY_ASSIGNED | ASSIGN) → (ACQUIRED | FAILED)

Behavioral Contract:
- Attempts are never started closer together than acquire_ip_delay_ms
- Check-then-assign: if the metadata service already reports the IP on this
  droplet, no assign call is issued
- Any failed provider call (timeout, transport error, unexpected status)
  counts as one failed attempt; there is no internal retry loop
- Reaching the panic threshold sends one fatal alert and raises
  AcquisitionPanic, the only exception that leaves this class

The fatal alert gets a single awaited delivery attempt before the panic is
raised, so process exit can lag the third failure by up to
http_request_timeout_ms (20s by default). Nothing else is awaited.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from fip_monitor.alerts.notifier import AlertNotifier
from fip_monitor.liveness.tracker import LivenessTracker, utc_now
from fip_monitor.models.acquisition import AcquisitionOutcome, AcquisitionState
from fip_monitor.models.alert import Alert, AlertPriority
from fip_monitor.models.config import MonitorConfig
from fip_monitor.probe.client import ProbeError
from fip_monitor.provider.digitalocean import DigitalOceanProvider

logger = logging.getLogger(__name__)


class AcquisitionFailure(Exception):
    """A single acquisition attempt failed."""

    def __init__(self, stage: str, cause: Exception):
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause


class AcquisitionPanic(Exception):
    """Too many consecutive acquisition failures; human intervention required."""

    def __init__(self, failures: int, last_failure: AcquisitionFailure):
        super().__init__(
            f"Failed to acquire floating IP {failures} times in a row "
            f"(last: {last_failure})"
        )
        self.failures = failures
        self.last_failure = last_failure


class AcquisitionController:
    """Owns AcquisitionState and drives the check-then-assign protocol."""

    def __init__(
        self,
        config: MonitorConfig,
        provider: DigitalOceanProvider,
        tracker: LivenessTracker,
        notifier: AlertNotifier,
        droplet_id: str,
        state: Optional[AcquisitionState] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.provider = provider
        self.tracker = tracker
        self.notifier = notifier
        self.droplet_id = droplet_id
        self._state = state or AcquisitionState()
        self._clock = clock

    @property
    def state(self) -> AcquisitionState:
        return self._state

    def _is_debounced(self, current_time: datetime) -> bool:
        last = self._state.last_attempt_at
        if last is None:
            return False
        return current_time - last < timedelta(milliseconds=self.config.acquire_ip_delay_ms)

    async def try_acquire(self) -> AcquisitionOutcome:
        """Run one acquisition attempt, unless one ran too recently."""
        current_time = self._clock()
        if self._is_debounced(current_time):
            logger.debug("Acquisition attempted recently, skipping")
            return AcquisitionOutcome.DEBOUNCED

        logger.info("Too many heartbeats missed, checking floating IP assignment...")
        self._state.last_attempt_at = current_time

        try:
            active = await self.provider.is_floating_ip_active()
        except ProbeError as e:
            return await self._record_failure(AcquisitionFailure("Floating IP active check", e))

        if active:
            self._state.consecutive_failures = 0
            self.tracker.record_success(source="floating IP already assigned")
            logger.info("Floating IP is already assigned to us, no action required")
            return AcquisitionOutcome.ALREADY_ASSIGNED

        logger.info(
            "Attempting to acquire floating IP %s for droplet %s...",
            self.config.floating_ip_address,
            self.droplet_id,
        )
        try:
            await self.provider.assign_floating_ip(self.droplet_id)
        except ProbeError as e:
            return await self._record_failure(AcquisitionFailure("Floating IP assignment", e))

        self._state.consecutive_failures = 0
        self.tracker.record_success(source="floating IP acquisition")
        logger.info("Successfully acquired floating IP %s", self.config.floating_ip_address)
        self.notifier.send_alert(Alert(
            title="Floating IP failover",
            message=(
                f"Droplet {self.droplet_id} acquired floating IP "
                f"{self.config.floating_ip_address} after peer "
                f"{self.config.peer_address} stopped responding."
            ),
            priority=AlertPriority.HIGH,
        ))
        return AcquisitionOutcome.ACQUIRED

    async def _record_failure(self, failure: AcquisitionFailure) -> AcquisitionOutcome:
        self._state.consecutive_failures += 1
        failures = self._state.consecutive_failures
        logger.error(
            "Failed to acquire floating IP (%d/%d): %s",
            failures,
            self.config.panic_threshold,
            failure,
        )
        if failures >= self.config.panic_threshold:
            await self._panic(failure)
        return AcquisitionOutcome.FAILED

    async def _panic(self, failure: AcquisitionFailure) -> None:
        panic = AcquisitionPanic(self._state.consecutive_failures, failure)
        logger.critical("PANIC! %s", panic)
        await self.notifier.deliver_now(Alert(
            title="Floating IP failover PANIC",
            message=(
                f"Droplet {self.droplet_id} could not acquire floating IP "
                f"{self.config.floating_ip_address}: {panic}. "
                f"The monitor is exiting; manual intervention required."
            ),
            priority=AlertPriority.EMERGENCY,
        ))
        raise panic
