"""
Reminder dispatch.

A tick walks every active reminder policy and mails the employees whose
reservations fall on ``today + days_before``. ``today`` and the due hour are
read in the scheduler's timezone (UTC unless ``REMINDER_TIMEZONE`` says
otherwise). A policy becomes due once the clock reaches its ``send_hour``;
later ticks on the same day pick up anything an earlier tick missed, and
the send ledger keeps that from producing duplicates.

Per reservation the sequence is claim -> render -> send -> record. A failed
send releases its claim so the next tick retries it, and never stops the
rest of the tick.

Usage:
    scheduler = ReminderScheduler(store, MockMailTransport(), config_store)
    report = scheduler.run_tick()
    scheduler.run_forever(interval_seconds=3600, stop_event=threading.Event())
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

import pytz

from clinic_scheduler.config import ConfigStore
from clinic_scheduler.errors import SendFailed, TemplateMissing
from clinic_scheduler.logging_context import get_operation_logger, new_operation_id
from clinic_scheduler.schemas.booking_schema import Reservation
from clinic_scheduler.schemas.clinic_schema import EmailTemplate
from clinic_scheduler.schemas.reminder_schema import ReminderPolicy
from clinic_scheduler.storage import ClinicStore
from clinic_scheduler.tools.mail import MailTransport
from clinic_scheduler.tools.templates import render_template
from clinic_scheduler.utils import ensure_utc, format_local, local_day_bounds

logger = get_operation_logger(__name__)


@dataclass
class TickReport:
    """What one tick did, per dedup key."""

    operation_id: str
    ran_at: datetime
    sent: list[tuple[str, int]] = field(default_factory=list)
    failed: list[tuple[str, int, str]] = field(default_factory=list)
    missing_templates: list[TemplateMissing] = field(default_factory=list)
    not_due: list[int] = field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "ran_at": self.ran_at.isoformat(),
            "sent": len(self.sent),
            "failed": len(self.failed),
            "missing_templates": [e.template_name for e in self.missing_templates],
            "not_due": list(self.not_due),
        }


class ReminderScheduler:
    """Sends reminder emails for upcoming reservations, at most once per policy."""

    def __init__(
        self,
        store: ClinicStore,
        transport: MailTransport,
        config_store: ConfigStore,
        timezone_name: str = "UTC",
    ) -> None:
        pytz.timezone(timezone_name)
        self._store = store
        self._transport = transport
        self._config_store = config_store
        self._timezone = timezone_name
        self._tick_lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Ticks
    # ------------------------------------------------------------------ #

    def run_tick(self, now: Optional[datetime] = None) -> TickReport:
        """Run one pass over all active policies.

        Args:
            now: Current instant; defaults to the wall clock. Naive values
                are taken as UTC.
        """
        now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
        report = TickReport(operation_id=new_operation_id("TICK"), ran_at=now)
        local_now = now.astimezone(pytz.timezone(self._timezone))
        display_tz = self._config_store.snapshot().display_timezone

        policies = self._store.list_policies(active_only=True)
        logger.info(
            "Reminder tick at %s (%s): %d active polic%s",
            local_now.strftime("%Y-%m-%d %H:%M"), self._timezone,
            len(policies), "y" if len(policies) == 1 else "ies",
        )

        for policy in policies:
            if local_now.hour < policy.send_hour:
                report.not_due.append(policy.id)
                continue

            template = self._store.find_template(policy.template_name)
            if template is None:
                error = TemplateMissing(policy.template_name)
                logger.warning("Policy %d skipped: %s", policy.id, error.message)
                report.missing_templates.append(error)
                continue

            target = local_now.date() + timedelta(days=policy.days_before)
            self._dispatch_policy(policy, template, target, display_tz, report)

        logger.info(
            "Reminder tick done: %d sent, %d failed",
            len(report.sent), len(report.failed),
        )
        return report

    def try_tick(self, now: Optional[datetime] = None) -> Optional[TickReport]:
        """Run a tick unless one is already in progress. Returns None if skipped."""
        if not self._tick_lock.acquire(blocking=False):
            logger.warning("Previous reminder tick still running; skipping this one")
            return None
        try:
            return self.run_tick(now)
        except Exception:
            logger.exception("Reminder tick failed")
            return None
        finally:
            self._tick_lock.release()

    def run_forever(self, interval_seconds: int, stop_event: threading.Event) -> None:
        """Start a tick every ``interval_seconds`` until ``stop_event`` is set.

        Each tick runs on its own worker thread so a slow tick does not delay
        the schedule; a tick that would overlap a running one is skipped.
        """
        if interval_seconds < 1:
            raise ValueError(f"interval_seconds must be >= 1, got {interval_seconds}")
        logger.info("Reminder scheduler started, interval %ds", interval_seconds)
        workers: list[threading.Thread] = []
        while not stop_event.is_set():
            worker = threading.Thread(target=self.try_tick, name="reminder-tick", daemon=True)
            worker.start()
            workers.append(worker)
            workers = [w for w in workers if w.is_alive()]
            stop_event.wait(interval_seconds)
        for worker in workers:
            worker.join()
        logger.info("Reminder scheduler stopped")

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _dispatch_policy(
        self,
        policy: ReminderPolicy,
        template: EmailTemplate,
        target: date,
        display_tz: str,
        report: TickReport,
    ) -> None:
        day_start, day_end = local_day_bounds(target, self._timezone)
        for reservation in self._store.reservations_between(day_start, day_end):
            if not self._store.claim_send(reservation.id, policy.id):
                continue
            completed = False
            try:
                to, subject, body = self._compose(reservation, template, display_tz)
                self._transport.send(to, subject, body)
                self._store.complete_send(reservation.id, policy.id)
                completed = True
            except SendFailed as e:
                report.failed.append((reservation.id, policy.id, e.message))
                logger.warning(
                    "Reminder for %s (policy %d) failed: %s",
                    reservation.id, policy.id, e.message,
                )
                continue
            except Exception as e:
                report.failed.append((reservation.id, policy.id, f"{type(e).__name__}: {e}"))
                logger.exception(
                    "Reminder for %s (policy %d) failed unexpectedly",
                    reservation.id, policy.id,
                )
                continue
            finally:
                if not completed:
                    self._store.release_send(reservation.id, policy.id)
            report.sent.append((reservation.id, policy.id))
            logger.info("Reminder for %s (policy %d) sent to %s", reservation.id, policy.id, to)

    def _compose(
        self, reservation: Reservation, template: EmailTemplate, display_tz: str
    ) -> tuple[str, str, str]:
        employee = self._store.get_employee(reservation.employee_id)
        if employee is None or not employee.email:
            raise SendFailed(
                f"Employee {reservation.employee_id} has no email address on record"
            )
        doctor = self._store.get_doctor(reservation.doctor_id)
        nurse = self._store.get_nurse(reservation.nurse_id)

        variables = {
            "employeeName": employee.name,
            "doctorName": doctor.display_name if doctor else "",
            "nurseName": nurse.name if nurse else "",
            "reservationDateTime": format_local(reservation.start, display_tz),
            "reservationDate": format_local(reservation.start, display_tz, "%Y-%m-%d"),
            "reservationTime": format_local(reservation.start, display_tz, "%H:%M"),
        }
        return (
            employee.email,
            render_template(template.subject, variables),
            render_template(template.body, variables),
        )
