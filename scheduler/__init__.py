"""Task scheduler for appointment reminders."""

from .reminders import configure, send_reminder, setup_scheduler, shutdown_scheduler

__all__ = ["configure", "setup_scheduler", "send_reminder", "shutdown_scheduler"]
