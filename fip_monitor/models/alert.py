"""Operator alerts delivered through Pushover."""

from enum import IntEnum

from pydantic import BaseModel, Field


class AlertPriority(IntEnum):
    LOW = -1
    NORMAL = 0
    HIGH = 1
    EMERGENCY = 2  # Pushover keeps re-notifying until acknowledged or expired


class Alert(BaseModel):
    """A single alert message."""

    title: str
    message: str
    priority: AlertPriority = AlertPriority.NORMAL
    retry: int = Field(ge=30, default=60)       # seconds between emergency re-notifications
    expire: int = Field(le=10800, default=3600)  # seconds before re-notification stops

    def to_form(self, token: str, user: str) -> dict:
        """Build the form body for the Pushover messages endpoint."""
        return {
            "token": token,
            "user": user,
            "title": self.title,
            "message": self.message,
            "priority": str(int(self.priority)),
            "retry": str(self.retry),
            "expire": str(self.expire),
        }
