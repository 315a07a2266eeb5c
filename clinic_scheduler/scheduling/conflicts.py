"""
Conflict checking: the decision pipeline in front of every booking.

``try_book`` runs these steps in order and stops at the first failure:

1. Resolve the employee number through the directory   -> EmployeeNotFound
2. Reject overlap with the doctor's reservations        -> DoubleBooked
3. Require containment by a declared period             -> OutsideSchedule
4. Count other doctors holding reservations in the
   window against the configured room count            -> RoomCapacityExceeded
5. Persist the reservation

Steps 2-5 run inside the store's write transaction so a concurrent request
cannot pass the same checks before this one commits. The directory lookup
is I/O and stays outside the lock.

Two update paths exist. ``reschedule`` is a trusted update that only applies
the new times. ``validated_reschedule`` re-runs steps 2-4 against every
other reservation before applying. Callers pick the one they need.

Usage:
    checker = ConflictChecker(store, directory, config_store)
    reservation = checker.try_book(BookingRequest(
        doctor_id="DOC-1", employee_number="E0001",
        start=datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc),
        end=datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc),
    ))
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, Iterable, Optional

from clinic_scheduler.config import ConfigStore, SchedulingConfig
from clinic_scheduler.errors import (
    DoubleBooked,
    EmployeeNotFound,
    InvalidInput,
    OutsideSchedule,
    ReservationNotFound,
    RoomCapacityExceeded,
)
from clinic_scheduler.logging_context import get_operation_logger, new_operation_id
from clinic_scheduler.scheduling.calendar import PeriodLike, ScheduleEntry
from clinic_scheduler.scheduling.capacity import CapacitySource, concurrent_doctor_count
from clinic_scheduler.scheduling.time_window import (
    CrossDateRange,
    TimeWindow,
    contains,
    find_overlapping_pair,
    project_instants,
)
from clinic_scheduler.schemas.booking_schema import BookingRequest, Reservation, new_reservation_id
from clinic_scheduler.utils import ensure_utc

if TYPE_CHECKING:
    from clinic_scheduler.storage import ClinicStore
    from clinic_scheduler.tools.directory import EmployeeDirectory

logger = get_operation_logger(__name__)


@dataclass(frozen=True)
class CapacityWarning:
    """Advisory result of checking a draft schedule against room capacity."""

    period: TimeWindow
    doctors_in_window: int
    number_of_rooms: int

    @property
    def message(self) -> str:
        return (
            f"Examination rooms are full during {self.period} "
            f"({self.doctors_in_window} doctor(s) already scheduled, "
            f"{self.number_of_rooms} room(s))"
        )


class ConflictChecker:
    """Accepts or rejects proposed reservations."""

    def __init__(
        self,
        store: ClinicStore,
        directory: EmployeeDirectory,
        config_store: ConfigStore,
    ) -> None:
        self._store = store
        self._directory = directory
        self._config_store = config_store

    # ------------------------------------------------------------------ #
    # Booking
    # ------------------------------------------------------------------ #

    def try_book(self, candidate: BookingRequest) -> Reservation:
        """Validate and commit a reservation.

        Raises:
            InvalidInput: If ``start`` is not before ``end``.
            EmployeeNotFound: If the directory cannot resolve the employee.
            DoubleBooked: If the doctor already has an overlapping reservation.
            OutsideSchedule: If no declared period contains the candidate.
            RoomCapacityExceeded: If every room is taken in that window.
        """
        new_operation_id("BOOK")
        _validate_range(candidate.start, candidate.end)
        config = self._config_store.snapshot()

        employee = self._directory.resolve_employee(candidate.employee_number)
        if employee is None:
            logger.info("Booking rejected: employee %s not found", candidate.employee_number)
            raise EmployeeNotFound(candidate.employee_number)

        with self._store.transaction():
            self._evaluate(
                candidate.doctor_id,
                candidate.start,
                candidate.end,
                config,
                self._store.reservations_overlapping(candidate.start, candidate.end),
            )
            self._store.upsert_employee(employee)
            reservation = self._store.save_reservation(
                Reservation(
                    id=new_reservation_id(),
                    doctor_id=candidate.doctor_id,
                    employee_id=employee.id,
                    nurse_id=candidate.nurse_id,
                    start=candidate.start,
                    end=candidate.end,
                )
            )

        logger.info(
            "Reservation %s booked: doctor %s, employee %s, %s - %s",
            reservation.id, reservation.doctor_id, employee.employee_number,
            reservation.start.isoformat(), reservation.end.isoformat(),
        )
        return reservation

    def dry_run(
        self,
        doctor_id: str,
        start: datetime,
        end: datetime,
        *,
        exclude_reservation_id: Optional[str] = None,
        config: Optional[SchedulingConfig] = None,
    ) -> None:
        """Run steps 2-4 without committing anything.

        Raises the same errors as ``try_book`` apart from ``EmployeeNotFound``.
        """
        start, end = ensure_utc(start), ensure_utc(end)
        _validate_range(start, end)
        config = config or self._config_store.snapshot()
        others = [
            r for r in self._store.list_reservations() if r.id != exclude_reservation_id
        ]
        self._evaluate(doctor_id, start, end, config, others)

    # ------------------------------------------------------------------ #
    # Updates
    # ------------------------------------------------------------------ #

    def reschedule(
        self,
        reservation_id: str,
        new_start: Optional[datetime] = None,
        new_end: Optional[datetime] = None,
    ) -> Reservation:
        """Trusted update: apply only the supplied times, no overlap or capacity check.

        Raises:
            ReservationNotFound: If the reservation does not exist.
            InvalidInput: If the resulting start is not before the end.
        """
        new_operation_id("RESCHED")
        with self._store.transaction():
            current = self._require(reservation_id)
            updated = _with_times(current, new_start, new_end)
            self._store.save_reservation(updated)
        logger.info(
            "Reservation %s moved (unchecked) to %s - %s",
            reservation_id, updated.start.isoformat(), updated.end.isoformat(),
        )
        return updated

    def validated_reschedule(
        self,
        reservation_id: str,
        new_start: Optional[datetime] = None,
        new_end: Optional[datetime] = None,
    ) -> Reservation:
        """Move a reservation only if the new times pass steps 2-4.

        The reservation being moved is excluded from its own overlap and
        capacity checks.
        """
        new_operation_id("RESCHED")
        config = self._config_store.snapshot()
        with self._store.transaction():
            current = self._require(reservation_id)
            updated = _with_times(current, new_start, new_end)
            self.dry_run(
                updated.doctor_id, updated.start, updated.end,
                exclude_reservation_id=reservation_id, config=config,
            )
            self._store.save_reservation(updated)
        logger.info(
            "Reservation %s rescheduled to %s - %s",
            reservation_id, updated.start.isoformat(), updated.end.isoformat(),
        )
        return updated

    def cancel(self, reservation_id: str) -> None:
        """Delete a reservation. Sent-reminder records are left as they are."""
        if not self._store.delete_reservation(reservation_id):
            raise ReservationNotFound(reservation_id)
        logger.info("Reservation %s cancelled", reservation_id)

    # ------------------------------------------------------------------ #
    # Schedule authoring
    # ------------------------------------------------------------------ #

    def advise_schedule_capacity(
        self, doctor_id: str, day: date, periods: Iterable[PeriodLike]
    ) -> list[CapacityWarning]:
        """Warn about draft periods where other doctors' declared periods fill every room.

        Advisory only: counts declared availability, not bookings, and never
        blocks the schedule from being saved.
        """
        config = self._config_store.snapshot()
        if config.number_of_rooms is None:
            return []

        entries = self._store.calendar.entries_on(day)
        warnings = []
        for period in (TimeWindow.coerce(p) for p in periods):
            count = concurrent_doctor_count(
                day, period, CapacitySource.DECLARED_PERIODS,
                entries=entries, exclude_doctor_id=doctor_id,
            )
            if count >= config.number_of_rooms:
                warnings.append(CapacityWarning(period, count, config.number_of_rooms))
        return warnings

    def replace_schedule(
        self, doctor_id: str, day: date, periods: Iterable[PeriodLike]
    ) -> tuple[ScheduleEntry, list[CapacityWarning]]:
        """Save a doctor's periods for ``day`` and return any capacity warnings."""
        periods = [TimeWindow.coerce(p) for p in periods]
        warnings = []
        if find_overlapping_pair(periods) is None:
            warnings = self.advise_schedule_capacity(doctor_id, day, periods)
        entry = self._store.calendar.replace_periods(doctor_id, day, periods)
        for warning in warnings:
            logger.warning("Doctor %s on %s: %s", doctor_id, day.isoformat(), warning.message)
        return entry, warnings

    # ------------------------------------------------------------------ #
    # Decision steps
    # ------------------------------------------------------------------ #

    def _evaluate(
        self,
        doctor_id: str,
        start: datetime,
        end: datetime,
        config: SchedulingConfig,
        reservations: list[Reservation],
    ) -> None:
        try:
            check_double_booking(doctor_id, start, end, reservations)
            day, window = self.check_within_schedule(doctor_id, start, end, config)
            check_room_capacity(doctor_id, day, window, config, reservations)
        except (DoubleBooked, RoomCapacityExceeded) as exc:
            logger.info("Booking rejected for doctor %s: %s", doctor_id, exc)
            raise

    def check_within_schedule(
        self, doctor_id: str, start: datetime, end: datetime, config: SchedulingConfig
    ) -> tuple[date, TimeWindow]:
        """Project onto the display-timezone date and require a containing period."""
        try:
            day, window = project_instants(start, end, config.display_timezone)
        except CrossDateRange:
            logger.info("Booking rejected: doctor %s, range spans two dates", doctor_id)
            raise OutsideSchedule(doctor_id, "the range spans more than one date") from None

        periods = self._store.calendar.periods_for(doctor_id, day)
        if not any(contains(period, window) for period in periods):
            logger.info(
                "Booking rejected: doctor %s, %s %s outside [%s]",
                doctor_id, day.isoformat(), window, ", ".join(str(p) for p in periods),
            )
            detail = f"{day.isoformat()} {window}" if periods else f"no schedule on {day.isoformat()}"
            raise OutsideSchedule(doctor_id, detail)
        return day, window

    def _require(self, reservation_id: str) -> Reservation:
        reservation = self._store.get_reservation(reservation_id)
        if reservation is None:
            raise ReservationNotFound(reservation_id)
        return reservation


def check_double_booking(
    doctor_id: str, start: datetime, end: datetime, reservations: Iterable[Reservation]
) -> None:
    """Step 2: strict half-open overlap with the same doctor's reservations."""
    conflicting = [
        r.id for r in reservations if r.doctor_id == doctor_id and r.overlaps(start, end)
    ]
    if conflicting:
        raise DoubleBooked(doctor_id, conflicting)


def check_room_capacity(
    doctor_id: str,
    day: date,
    window: TimeWindow,
    config: SchedulingConfig,
    reservations: Iterable[Reservation],
) -> None:
    """Step 4: other doctors with committed reservations in the window must leave a room free."""
    if config.number_of_rooms is None:
        return
    count = concurrent_doctor_count(
        day, window, CapacitySource.RESERVATIONS,
        reservations=reservations,
        tz_name=config.display_timezone,
        exclude_doctor_id=doctor_id,
    )
    if count >= config.number_of_rooms:
        raise RoomCapacityExceeded(count, config.number_of_rooms)


def _validate_range(start: datetime, end: datetime) -> None:
    if not start < end:
        raise InvalidInput(
            f"Reservation start {start.isoformat()} must be before end {end.isoformat()}"
        )


def _with_times(
    reservation: Reservation, new_start: Optional[datetime], new_end: Optional[datetime]
) -> Reservation:
    start = ensure_utc(new_start) if new_start is not None else reservation.start
    end = ensure_utc(new_end) if new_end is not None else reservation.end
    _validate_range(start, end)
    return reservation.model_copy(update={"start": start, "end": end})
