"""Peer liveness state."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class PeerState(BaseModel):
    """Last known good contact with the peer (or with our own ownership of the IP)."""

    last_heartbeat_at: Optional[datetime] = None
