"""
In-memory persistence for the clinic scheduler.

Stands in for the database at the persistence boundary. Two guarantees the
scheduling core depends on are provided here:

* ``transaction()``: a single writer lock. Booking decisions run their
  check-then-commit sequence inside it, so two concurrent requests can never
  both pass the overlap or capacity check before either commits.
* The send ledger's claim/complete/release protocol behaves like a unique
  constraint on ``(reservation_id, policy_id)``. A key that is claimed or
  recorded cannot be claimed again, so overlapping reminder ticks cannot
  send twice.
"""

import itertools
import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from clinic_scheduler.scheduling.calendar import AvailabilityCalendar
from clinic_scheduler.schemas.booking_schema import Reservation
from clinic_scheduler.schemas.clinic_schema import Doctor, EmailTemplate, Employee, Nurse
from clinic_scheduler.schemas.reminder_schema import ReminderPolicy, ReminderSendRecord

logger = logging.getLogger(__name__)


class ClinicStore:
    """All persisted clinic records, guarded by one re-entrant write lock."""

    def __init__(self) -> None:
        self.calendar = AvailabilityCalendar()
        self._doctors: dict[str, Doctor] = {}
        self._nurses: dict[str, Nurse] = {}
        self._employees: dict[str, Employee] = {}
        self._reservations: dict[str, Reservation] = {}
        self._policies: dict[int, ReminderPolicy] = {}
        self._templates: dict[int, EmailTemplate] = {}
        self._send_records: dict[tuple[str, int], ReminderSendRecord] = {}
        self._pending_sends: set[tuple[str, int]] = set()
        self._policy_ids = itertools.count(1)
        self._template_ids = itertools.count(1)
        self._write_lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator["ClinicStore"]:
        """Hold the write lock for a read-validate-commit sequence."""
        with self._write_lock:
            yield self

    # ------------------------------------------------------------------ #
    # Doctors and nurses
    # ------------------------------------------------------------------ #

    def add_doctor(self, name: str, doctor_id: Optional[str] = None, **fields) -> Doctor:
        """Create a doctor. Duration bounds are validated here, not per booking.

        Raises:
            pydantic.ValidationError: If the bounds violate min <= default <= max.
        """
        doctor = Doctor(id=doctor_id or f"DOC-{uuid.uuid4().hex[:6].upper()}", name=name, **fields)
        with self._write_lock:
            self._doctors[doctor.id] = doctor
        logger.info("Doctor created: %s (%s)", doctor.display_name, doctor.id)
        return doctor

    def update_doctor(self, doctor_id: str, **changes) -> Optional[Doctor]:
        """Apply changes and re-validate the duration bounds. None if unknown."""
        with self._write_lock:
            current = self._doctors.get(doctor_id)
            if current is None:
                return None
            changes.pop("id", None)
            updated = Doctor.model_validate({**current.model_dump(), **changes})
            self._doctors[doctor_id] = updated
        logger.info("Doctor updated: %s", doctor_id)
        return updated

    def get_doctor(self, doctor_id: str) -> Optional[Doctor]:
        return self._doctors.get(doctor_id)

    def list_doctors(self) -> list[Doctor]:
        return sorted(self._doctors.values(), key=lambda d: d.name)

    def remove_doctor(self, doctor_id: str) -> bool:
        with self._write_lock:
            return self._doctors.pop(doctor_id, None) is not None

    def add_nurse(self, name: str, nurse_id: Optional[str] = None, email: Optional[str] = None) -> Nurse:
        nurse = Nurse(id=nurse_id or f"NRS-{uuid.uuid4().hex[:6].upper()}", name=name, email=email)
        with self._write_lock:
            self._nurses[nurse.id] = nurse
        return nurse

    def get_nurse(self, nurse_id: Optional[str]) -> Optional[Nurse]:
        return self._nurses.get(nurse_id) if nurse_id else None

    # ------------------------------------------------------------------ #
    # Employees (cached from the directory)
    # ------------------------------------------------------------------ #

    def upsert_employee(self, employee: Employee) -> Employee:
        with self._write_lock:
            self._employees[employee.id] = employee
        return employee

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        return self._employees.get(employee_id)

    # ------------------------------------------------------------------ #
    # Reservations
    # ------------------------------------------------------------------ #

    def save_reservation(self, reservation: Reservation) -> Reservation:
        """Insert or replace a reservation by id."""
        with self._write_lock:
            self._reservations[reservation.id] = reservation
        return reservation

    def get_reservation(self, reservation_id: str) -> Optional[Reservation]:
        return self._reservations.get(reservation_id)

    def delete_reservation(self, reservation_id: str) -> bool:
        with self._write_lock:
            return self._reservations.pop(reservation_id, None) is not None

    def list_reservations(self) -> list[Reservation]:
        return sorted(self._reservations.values(), key=lambda r: (r.start, r.id))

    def reservations_for_doctor(self, doctor_id: str) -> list[Reservation]:
        return [r for r in self.list_reservations() if r.doctor_id == doctor_id]

    def reservations_between(self, start: datetime, end: datetime) -> list[Reservation]:
        """Reservations whose start lies in ``[start, end)``."""
        return [r for r in self.list_reservations() if start <= r.start < end]

    def reservations_overlapping(self, start: datetime, end: datetime) -> list[Reservation]:
        """Reservations sharing any time with ``[start, end)``."""
        return [r for r in self.list_reservations() if r.overlaps(start, end)]

    # ------------------------------------------------------------------ #
    # Reminder policies and templates
    # ------------------------------------------------------------------ #

    def add_policy(
        self, days_before: int, send_hour: int, template_name: str = "Reminder",
        is_active: bool = True,
    ) -> ReminderPolicy:
        """Register a reminder policy.

        Raises:
            pydantic.ValidationError: If days_before < 0 or send_hour outside 0-23.
        """
        with self._write_lock:
            policy = ReminderPolicy(
                id=next(self._policy_ids), days_before=days_before, send_hour=send_hour,
                template_name=template_name, is_active=is_active,
            )
            self._policies[policy.id] = policy
        logger.info(
            "Reminder policy %d created: %d day(s) before at %02d:00",
            policy.id, days_before, send_hour,
        )
        return policy

    def set_policy_active(self, policy_id: int, is_active: bool) -> Optional[ReminderPolicy]:
        with self._write_lock:
            policy = self._policies.get(policy_id)
            if policy is None:
                return None
            policy = policy.model_copy(update={"is_active": is_active})
            self._policies[policy_id] = policy
        return policy

    def list_policies(self, active_only: bool = False) -> list[ReminderPolicy]:
        policies = sorted(self._policies.values(), key=lambda p: p.id)
        return [p for p in policies if p.is_active] if active_only else policies

    def remove_policy(self, policy_id: int) -> bool:
        with self._write_lock:
            return self._policies.pop(policy_id, None) is not None

    def add_template(self, name: str, subject: str, body: str) -> EmailTemplate:
        with self._write_lock:
            template = EmailTemplate(id=next(self._template_ids), name=name, subject=subject, body=body)
            self._templates[template.id] = template
        logger.info("Email template created: %s", name)
        return template

    def update_template(self, template_id: int, **changes) -> Optional[EmailTemplate]:
        with self._write_lock:
            current = self._templates.get(template_id)
            if current is None:
                return None
            changes = {k: v for k, v in changes.items() if v and k in ("name", "subject", "body")}
            updated = current.model_copy(update=changes)
            self._templates[template_id] = updated
        return updated

    def find_template(self, name: str) -> Optional[EmailTemplate]:
        """First template registered under ``name``."""
        for template in sorted(self._templates.values(), key=lambda t: t.id):
            if template.name == name:
                return template
        return None

    def list_templates(self) -> list[EmailTemplate]:
        return sorted(self._templates.values(), key=lambda t: t.id)

    def remove_template(self, template_id: int) -> bool:
        with self._write_lock:
            return self._templates.pop(template_id, None) is not None

    # ------------------------------------------------------------------ #
    # Send ledger
    # ------------------------------------------------------------------ #

    def claim_send(self, reservation_id: str, policy_id: int) -> bool:
        """Atomically reserve a dedup key before sending.

        Returns False if the key is already recorded or claimed by another
        in-flight send.
        """
        key = (reservation_id, policy_id)
        with self._write_lock:
            if key in self._send_records or key in self._pending_sends:
                return False
            self._pending_sends.add(key)
            return True

    def complete_send(self, reservation_id: str, policy_id: int) -> ReminderSendRecord:
        """Turn a claim into a permanent send record."""
        key = (reservation_id, policy_id)
        with self._write_lock:
            if key not in self._pending_sends:
                raise RuntimeError(f"Send {key} was not claimed")
            self._pending_sends.discard(key)
            record = ReminderSendRecord(reservation_id=reservation_id, policy_id=policy_id)
            self._send_records[key] = record
        return record

    def release_send(self, reservation_id: str, policy_id: int) -> None:
        """Drop a claim after a failed send so the next tick retries it."""
        with self._write_lock:
            self._pending_sends.discard((reservation_id, policy_id))

    def has_send_record(self, reservation_id: str, policy_id: int) -> bool:
        return (reservation_id, policy_id) in self._send_records

    def send_records(self) -> list[ReminderSendRecord]:
        return sorted(self._send_records.values(), key=lambda r: r.sent_at)
