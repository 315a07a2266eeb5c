"""Booking request and reservation models."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from clinic_scheduler.utils import ensure_utc


def new_reservation_id() -> str:
    return f"RSV-{uuid.uuid4().hex[:8].upper()}"


class BookingRequest(BaseModel):
    """A proposed reservation as submitted by a caller.

    Ordering of ``start``/``end`` is checked by the conflict checker so that
    a reversed range surfaces as ``InvalidInput`` like every other booking
    error.
    """
    doctor_id: str
    employee_number: str
    start: datetime
    end: datetime
    nurse_id: Optional[str] = None

    @field_validator("start", "end")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class Reservation(BaseModel):
    """A committed reservation. Instants are timezone-aware UTC."""
    id: str
    doctor_id: str
    employee_id: str
    nurse_id: Optional[str] = None
    start: datetime
    end: datetime
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("start", "end")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_order(self) -> "Reservation":
        if not self.start < self.end:
            raise ValueError("reservation start must be before end")
        return self

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open overlap against ``[start, end)``."""
        return self.start < end and start < self.end
