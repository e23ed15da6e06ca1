"""Floating IP acquisition state and outcomes."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AcquisitionOutcome(str, Enum):
    DEBOUNCED = "debounced"
    ALREADY_ASSIGNED = "already_assigned"
    ACQUIRED = "acquired"
    FAILED = "failed"


class AcquisitionState(BaseModel):
    """Debounce marker and failure counter for acquisition attempts."""

    last_attempt_at: Optional[datetime] = None
    consecutive_failures: int = Field(ge=0, default=0)
