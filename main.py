"""
Clinic scheduler command line.

Every command starts from an in-memory store seeded with a small demo clinic
(two doctors, a nurse, a reminder template and a day-before policy) on the
given date.

Usage:
    Scripted walkthrough:   python main.py demo
    Bookable slots:         python main.py slots --doctor DOC-SATO --date 2026-03-02 --duration 30
    Weekly schedule:        python main.py week --date 2026-03-02
    One reminder pass:      python main.py remind
    Reminder loop:          python main.py serve-reminders --interval 3600
"""

import argparse
import json
import logging
import signal
import sys
import threading
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from clinic_scheduler.app import ClinicApp, build_app, seed_demo_data
from clinic_scheduler.config import settings
from clinic_scheduler.tools.availability import check_availability, weekly_schedule
from clinic_scheduler.tools.booking import cancel_booking, create_booking, list_bookings
from clinic_scheduler.utils import local_instant

logger = logging.getLogger(__name__)

GREEN = "\033[92m"
RED = "\033[91m"
DIM = "\033[2m"
BOLD = "\033[1m"
RESET = "\033[0m"


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not a YYYY-MM-DD date: {value!r}") from None


def _tomorrow() -> date:
    return datetime.now(timezone.utc).date() + timedelta(days=1)


def _show(label: str, result: dict) -> None:
    colour = GREEN if result.get("success", result.get("available")) else RED
    print(f"{BOLD}{label}{RESET}")
    print(f"  {colour}{result['message']}{RESET}")
    if result.get("error"):
        print(f"  {DIM}error kind: {result['error']}{RESET}")


def _book(app: ClinicApp, doctor_id: str, employee: str, day: date, hh: int, mm: int, minutes: int) -> dict:
    tz_name = app.config_store.snapshot().display_timezone
    start = local_instant(day, hh * 60 + mm, tz_name)
    return create_booking(
        app.checker, doctor_id, employee, start, start + timedelta(minutes=minutes),
        tz_name=tz_name,
    )


def run_demo(app: ClinicApp, day: date) -> None:
    """Walk through the booking decisions and a reminder tick."""
    tz_name = app.config_store.snapshot().display_timezone
    print(f"{BOLD}{settings.clinic.name}{RESET} {DIM}({day.isoformat()}, {tz_name}){RESET}\n")

    _show("Slots for Dr. Sato (30 min)", check_availability(
        app.generator, app.store, app.config_store, "DOC-SATO", day, step_minutes=30,
    ))

    first = _book(app, "DOC-SATO", "E0001", day, 9, 0, 30)
    _show("Book Dr. Sato 09:00-09:30 for E0001", first)
    _show("Book Dr. Sato 09:00-09:30 again", _book(app, "DOC-SATO", "E0002", day, 9, 0, 30))
    _show("Book Dr. Sato 09:30-10:00 (back to back)", _book(app, "DOC-SATO", "E0002", day, 9, 30, 30))
    _show("Book Dr. Sato 12:00-12:30 (lunch)", _book(app, "DOC-SATO", "E0003", day, 12, 0, 30))
    _show("Book Dr. Ito 10:00-10:15 (free room)", _book(app, "DOC-ITO", "E0003", day, 10, 0, 15))
    _show("Book Dr. Sato 10:00-10:30 (one room)", _book(app, "DOC-SATO", "E0003", day, 10, 0, 30))
    _show("Book unknown employee", _book(app, "DOC-SATO", "E9999", day, 14, 0, 30))

    print(f"\n{BOLD}Reservations on {day.isoformat()}{RESET}")
    for record in list_bookings(app.store, day, tz_name):
        print(f"  {record['time']}  {record['doctor_id']:<9} {record['reservation_id']}")

    now = local_instant(day - timedelta(days=1), 9 * 60, app.config.reminders.timezone)
    report = app.reminders.run_tick(now)
    print(f"\n{BOLD}Reminder tick{RESET} {DIM}{json.dumps(report.summary())}{RESET}")
    again = app.reminders.run_tick(now + timedelta(hours=1))
    print(f"{BOLD}Second tick{RESET} {DIM}{json.dumps(again.summary())}{RESET}")

    if first.get("success"):
        _show("Cancel the first reservation", cancel_booking(app.checker, first["reservation_id"]))


def run_slots(app: ClinicApp, doctor_id: str, day: date, duration: Optional[int], step: Optional[int]) -> int:
    result = check_availability(
        app.generator, app.store, app.config_store, doctor_id, day, duration, step
    )
    sys.stdout.write(json.dumps(result, indent=2) + "\n")
    return 0 if "error" not in result else 1


def run_serve(app: ClinicApp, interval: int) -> None:
    stop_event = threading.Event()

    def _stop(signum, frame) -> None:
        logger.info("Signal %d received, stopping", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)
    app.reminders.run_forever(interval, stop_event)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Company clinic scheduling core.")
    parser.add_argument(
        "--date",
        type=_parse_date,
        default=None,
        help="Clinic date for the demo data (default: tomorrow, UTC).",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("demo", help="Run a scripted booking and reminder walkthrough.")

    slots = sub.add_parser("slots", help="List bookable start times for a doctor.")
    slots.add_argument("--doctor", default="DOC-SATO", help="Doctor id.")
    slots.add_argument("--duration", type=int, default=None, help="Minutes (default: doctor's default).")
    slots.add_argument("--step", type=int, default=None, help="Step in minutes (default: SLOT_STEP_MINUTES).")

    sub.add_parser("week", help="Show declared schedules for the week from --date.")

    sub.add_parser("remind", help="Run one reminder tick now.")

    serve = sub.add_parser("serve-reminders", help="Run reminder ticks on a fixed interval.")
    serve.add_argument(
        "--interval",
        type=int,
        default=settings.reminders.interval_seconds,
        help="Seconds between ticks (default: REMINDER_INTERVAL_SECONDS).",
    )

    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    day = args.date or _tomorrow()
    app = build_app()
    seed_demo_data(app, day)

    if args.command == "demo":
        run_demo(app, day)
    elif args.command == "slots":
        return run_slots(app, args.doctor, day, args.duration, args.step)
    elif args.command == "week":
        days = weekly_schedule(app.store, app.config_store, day)
        sys.stdout.write(json.dumps(days, indent=2) + "\n")
    elif args.command == "remind":
        report = app.reminders.run_tick()
        sys.stdout.write(json.dumps(report.summary(), indent=2) + "\n")
    elif args.command == "serve-reminders":
        run_serve(app, args.interval)
    return 0


if __name__ == "__main__":
    sys.exit(main())
