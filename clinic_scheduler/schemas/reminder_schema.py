"""Reminder policy and send-ledger records."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class ReminderPolicy(BaseModel):
    """Fires for reservations dated ``today + days_before`` from ``send_hour`` o'clock."""
    id: int
    days_before: int = Field(ge=0)
    send_hour: int = Field(ge=0, le=23)
    template_name: str = "Reminder"
    is_active: bool = True


class ReminderSendRecord(BaseModel):
    """Proof that the reminder for ``(reservation_id, policy_id)`` was sent."""
    reservation_id: str
    policy_id: int
    sent_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def dedup_key(self) -> tuple[str, int]:
        return (self.reservation_id, self.policy_id)
