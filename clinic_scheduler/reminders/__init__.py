from clinic_scheduler.reminders.scheduler import ReminderScheduler, TickReport

__all__ = ["ReminderScheduler", "TickReport"]
