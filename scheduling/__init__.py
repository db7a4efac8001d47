"""Recurring appointment scheduling and batch booking."""

from .lifecycle import LifecycleAction
from .series import SeriesCoordinator
from .service import AppointmentService

__all__ = ["AppointmentService", "LifecycleAction", "SeriesCoordinator"]
