"""
Base Appointment Store

Defines the interface every appointment store adapter must implement.
Instants cross this boundary as naive tenant-local datetimes; adapters are
responsible for the wire format.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from models.appointment import Appointment
from models.client import Client
from models.context import AppointmentScope
from models.schedule import WorkingHours
from models.service import Service


class AppointmentStore(ABC):
    """Query/command interface over the appointment document store."""

    @abstractmethod
    async def query_appointments(
        self,
        tenant_id: str,
        range_start: datetime,
        range_end: datetime,
        scope: AppointmentScope,
    ) -> List[Appointment]:
        """
        Appointments whose start falls in [range_start, range_end).

        Raises:
            StorageError: on read failure
        """

    @abstractmethod
    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        """Fetch one appointment, or None."""

    @abstractmethod
    async def list_appointments(
        self,
        tenant_id: str,
        scope: AppointmentScope,
        client_id: Optional[str] = None,
    ) -> List[Appointment]:
        """
        Every appointment of the tenant within ``scope``, optionally for one
        client, ordered by start.

        Raises:
            StorageError: on read failure
        """

    @abstractmethod
    async def create_appointment(self, appointment: Appointment) -> Appointment:
        """
        Persist a new appointment and return it with its id.

        Raises:
            StorageError: on write failure (including uniqueness violations)
        """

    @abstractmethod
    async def update_appointment(self, appointment_id: str, changes: Dict) -> Appointment:
        """
        Apply a partial update.

        Raises:
            AppointmentNotFoundError: if no such appointment
            StorageError: on write failure
        """

    @abstractmethod
    async def delete_appointment(self, appointment_id: str) -> None:
        """
        Hard delete.

        Raises:
            AppointmentNotFoundError: if no such appointment
        """

    @abstractmethod
    async def get_working_hours(
        self, tenant_id: str, employee_id: Optional[str] = None
    ) -> WorkingHours:
        """Organization opening hours plus the employee schedule, if any."""

    @abstractmethod
    async def get_services_by_ids(self, service_ids: List[str]) -> Dict[str, Service]:
        """Batch fetch service catalog records."""

    @abstractmethod
    async def get_clients_by_ids(self, client_ids: List[str]) -> Dict[str, Client]:
        """Batch fetch client records."""

    @abstractmethod
    async def get_appointments_for_reminder(
        self, window_start: datetime, window_end: datetime
    ) -> List[Appointment]:
        """Non-cancelled, not yet reminded appointments starting in the window."""

    @abstractmethod
    async def mark_reminder_sent(
        self, appointment_id: str, sent_at: datetime
    ) -> Optional[Appointment]:
        """Flag an appointment as reminded."""
