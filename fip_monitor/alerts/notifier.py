"""
Alert Notifier — best-effort operator alerts via Pushover.

Behavioral Contract:
- Fire-and-forget: send_alert() schedules delivery and returns at once
- Failed deliveries are retried after a fixed backoff until retries run out,
  then given up with a log line; nothing is escalated
- Never blocks or alters the failover path
"""

import asyncio
import logging
from typing import Optional, Set

from fip_monitor.models.alert import Alert
from fip_monitor.models.config import MonitorConfig
from fip_monitor.probe.client import ProbeClient, ProbeError

logger = logging.getLogger(__name__)


class AlertNotifier:
    """Posts alerts to the Pushover messages endpoint in background tasks."""

    def __init__(self, config: MonitorConfig, client: ProbeClient):
        self.config = config
        self.client = client
        self._pending: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self.config.alerts_enabled

    @property
    def messages_url(self) -> str:
        return f"{self.config.alert_url}/1/messages.json"

    @property
    def pending(self) -> int:
        """Number of deliveries still in flight or waiting to retry."""
        return len(self._pending)

    def send_alert(
        self, alert: Alert, retries_remaining: Optional[int] = None
    ) -> Optional[asyncio.Task]:
        """Schedule delivery of ``alert``. Must be called from a running event loop."""
        if not self.enabled:
            logger.debug("Alerting disabled, not sending '%s'", alert.title)
            return None

        if retries_remaining is None:
            retries_remaining = self.config.alert_retries

        task = asyncio.get_running_loop().create_task(
            self._deliver(alert, retries_remaining)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def deliver_now(self, alert: Alert) -> bool:
        """
        Single awaited delivery attempt, no retry.
        Used when the process is about to exit and a retry could never run.
        """
        if not self.enabled:
            logger.debug("Alerting disabled, not sending '%s'", alert.title)
            return False
        try:
            await self._post(alert)
        except ProbeError as e:
            logger.error("Failed to send alert '%s': %s", alert.title, e)
            return False
        logger.info("Sent alert '%s'", alert.title)
        return True

    async def _deliver(self, alert: Alert, retries_remaining: int) -> None:
        attempts = 0
        while True:
            attempts += 1
            try:
                await self._post(alert)
            except ProbeError as e:
                if retries_remaining <= 0:
                    logger.error(
                        "Gave up delivering alert '%s' after %d attempt(s): %s",
                        alert.title,
                        attempts,
                        e,
                    )
                    return
                logger.warning(
                    "Failed to send alert '%s' (%s), retrying in %gs (%d retries left)",
                    alert.title,
                    e,
                    self.config.alert_retry_delay_ms / 1000.0,
                    retries_remaining,
                )
                retries_remaining -= 1
                await asyncio.sleep(self.config.alert_retry_delay_ms / 1000.0)
                continue

            logger.info("Sent alert '%s'", alert.title)
            return

    async def _post(self, alert: Alert) -> str:
        form = alert.to_form(
            token=self.config.pushover_token.get_secret_value(),
            user=self.config.pushover_user_key.get_secret_value(),
        )
        return await self.client.request("post", self.messages_url, body=form)

    async def aclose(self) -> None:
        """Cancel deliveries that are still pending."""
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
