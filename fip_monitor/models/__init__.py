"""fip-monitor data models."""

from fip_monitor.models.acquisition import AcquisitionOutcome, AcquisitionState
from fip_monitor.models.alert import Alert, AlertPriority
from fip_monitor.models.config import MonitorConfig
from fip_monitor.models.peer import PeerState

__all__ = [
    "AcquisitionOutcome",
    "AcquisitionState",
    "Alert",
    "AlertPriority",
    "MonitorConfig",
    "PeerState",
]
