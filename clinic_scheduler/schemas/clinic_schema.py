"""Doctor, nurse, employee, and email template records."""

from typing import Optional

from pydantic import BaseModel, Field, model_validator


class Doctor(BaseModel):
    """A doctor who publishes availability.

    The duration bounds are advisory defaults for the booking UI; bookings
    may use any caller-supplied duration.
    """
    id: str
    name: str = Field(min_length=1)
    honorific: Optional[str] = None
    email: Optional[str] = None
    min_duration_minutes: int = Field(default=15, ge=1)
    default_duration_minutes: int = Field(default=30, ge=1)
    max_duration_minutes: int = Field(default=60, ge=1)

    @model_validator(mode="after")
    def _check_duration_bounds(self) -> "Doctor":
        if not (
            self.min_duration_minutes
            <= self.default_duration_minutes
            <= self.max_duration_minutes
        ):
            raise ValueError(
                "duration bounds must satisfy min <= default <= max, got "
                f"{self.min_duration_minutes} / {self.default_duration_minutes} / "
                f"{self.max_duration_minutes}"
            )
        return self

    @property
    def display_name(self) -> str:
        return f"{self.honorific} {self.name}" if self.honorific else self.name


class Nurse(BaseModel):
    """A nurse who may attend a reservation."""
    id: str
    name: str
    email: Optional[str] = None


class Employee(BaseModel):
    """An employee as resolved from the directory."""
    id: str
    employee_number: str
    name: str
    email: str = ""
    company_name: Optional[str] = None
    department: Optional[str] = None
    phone_number: Optional[str] = None


class EmailTemplate(BaseModel):
    """Mail template with literal ``{{key}}`` placeholders in subject and body."""
    id: int
    name: str
    subject: str
    body: str
