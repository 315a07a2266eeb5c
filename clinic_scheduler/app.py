"""
Wiring for a running clinic scheduler.

Builds the store, configuration, directory, checker, slot generator and
reminder scheduler from ``settings`` and hands them out together.
``seed_demo_data`` fills a fresh store with a small clinic used by the CLI
demo.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from clinic_scheduler.config import AppConfig, ConfigStore, SchedulingConfig, settings
from clinic_scheduler.reminders.scheduler import ReminderScheduler
from clinic_scheduler.scheduling.conflicts import ConflictChecker
from clinic_scheduler.scheduling.slots import SlotGenerator
from clinic_scheduler.storage import ClinicStore
from clinic_scheduler.tools.directory import EmployeeDirectory, build_directory
from clinic_scheduler.tools.mail import MailTransport, build_mail_transport
from clinic_scheduler.tools.templates import DEFAULT_REMINDER_BODY, DEFAULT_REMINDER_SUBJECT

logger = logging.getLogger(__name__)


@dataclass
class ClinicApp:
    config: AppConfig
    store: ClinicStore
    config_store: ConfigStore
    directory: EmployeeDirectory
    transport: MailTransport
    checker: ConflictChecker
    generator: SlotGenerator
    reminders: ReminderScheduler


def build_app(
    config: Optional[AppConfig] = None,
    directory: Optional[EmployeeDirectory] = None,
    transport: Optional[MailTransport] = None,
) -> ClinicApp:
    """Assemble every component; ``directory`` and ``transport`` override config."""
    config = config or settings
    store = ClinicStore()
    config_store = ConfigStore(SchedulingConfig.from_settings(config))
    directory = directory or build_directory(config.directory)
    transport = transport or build_mail_transport(config.mail)
    return ClinicApp(
        config=config,
        store=store,
        config_store=config_store,
        directory=directory,
        transport=transport,
        checker=ConflictChecker(store, directory, config_store),
        generator=SlotGenerator(store, config_store),
        reminders=ReminderScheduler(
            store, transport, config_store, timezone_name=config.reminders.timezone
        ),
    )


def seed_demo_data(app: ClinicApp, day: date) -> None:
    """Two doctors, one nurse, a reminder template and a day-before policy."""
    store = app.store
    store.add_doctor("Sato", doctor_id="DOC-SATO", honorific="Dr.", default_duration_minutes=30)
    store.add_doctor(
        "Ito", doctor_id="DOC-ITO", honorific="Dr.",
        min_duration_minutes=15, default_duration_minutes=15, max_duration_minutes=45,
    )
    store.add_nurse("Kobayashi", nurse_id="NRS-KOBAYASHI")

    app.checker.replace_schedule(
        "DOC-SATO", day,
        [{"start_time": "09:00", "end_time": "12:00"}, {"start_time": "13:00", "end_time": "17:00"}],
    )
    app.checker.replace_schedule("DOC-ITO", day, [{"start_time": "10:00", "end_time": "15:00"}])

    template_name = app.config.reminders.template_name
    if store.find_template(template_name) is None:
        store.add_template(template_name, DEFAULT_REMINDER_SUBJECT, DEFAULT_REMINDER_BODY)
    store.add_policy(days_before=1, send_hour=0, template_name=template_name)
    logger.info("Demo data seeded for %s", day.isoformat())
