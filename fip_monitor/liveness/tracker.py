"""
Liveness Tracker — remembers when the peer was last known good.

Updated by: Heartbeat Scheduler (probe success) + Acquisition Controller
            (this host confirmed as floating IP owner)
Queried by: Heartbeat Scheduler (escalation decision)
"""

import logging
import math
from datetime import datetime, timezone
from typing import Callable, Optional

from fip_monitor.models.peer import PeerState

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LivenessTracker:
    """Owns PeerState. The only writer of last_heartbeat_at."""

    def __init__(
        self,
        peer_address: str = "peer",
        state: Optional[PeerState] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.peer_address = peer_address
        self._state = state or PeerState()
        self._clock = clock

    @property
    def state(self) -> PeerState:
        return self._state

    @property
    def last_heartbeat_at(self) -> Optional[datetime]:
        return self._state.last_heartbeat_at

    def record_success(self, source: str = "heartbeat") -> None:
        """Mark the peer (or our own IP ownership) as confirmed right now."""
        self._state.last_heartbeat_at = self._clock()
        if source == "heartbeat":
            logger.info("Received heartbeat response from peer (%s)", self.peer_address)
        else:
            logger.info("Liveness clock reset by %s", source)

    def record_failure(self, reason: str) -> None:
        """Log a missed heartbeat. State is left untouched."""
        logger.warning(
            "No heartbeat response received from peer (%s): %s",
            self.peer_address,
            reason,
        )

    def downtime_ms(self) -> float:
        """Milliseconds since the last confirmed contact; inf if there never was one."""
        last = self._state.last_heartbeat_at
        if last is None:
            return math.inf
        return (self._clock() - last).total_seconds() * 1000.0
