"""
In-memory test doubles for the appointment store.
"""

from datetime import datetime
from typing import Dict, List, Optional, Set

from db.base import AppointmentStore
from models.appointment import Appointment, is_cancelled
from models.client import Client
from models.context import AppointmentScope
from models.schedule import WorkingHours
from models.service import Service
from utils.exceptions import AppointmentNotFoundError, StorageError

ORG_ID = "org_1"
EMPLOYEE_ID = "emp_1"
CLIENT_ID = "client_1"


class InMemoryAppointmentStore(AppointmentStore):
    """Dict-backed store with switches for injecting storage failures."""

    def __init__(
        self,
        services: Optional[List[Service]] = None,
        clients: Optional[List[Client]] = None,
        hours: Optional[WorkingHours] = None,
    ):
        self.appointments: Dict[str, Appointment] = {}
        self.services = {s.id: s for s in services or []}
        self.clients = {c.id: c for c in clients or []}
        self.hours = hours or WorkingHours()

        self.fail_create_on: Set[int] = set()  # 1-based create call numbers
        self.fail_queries = False
        self.fail_updates = False
        self.create_calls = 0
        self.query_calls = 0
        self.deleted: List[str] = []

    def add(self, appointment: Appointment) -> Appointment:
        """Seed an appointment directly, bypassing failure switches."""
        if appointment.id is None:
            appointment = appointment.model_copy(update={"id": f"seed_{len(self.appointments) + 1}"})
        self.appointments[appointment.id] = appointment
        return appointment

    async def query_appointments(
        self,
        tenant_id: str,
        range_start: datetime,
        range_end: datetime,
        scope: AppointmentScope,
    ) -> List[Appointment]:
        self.query_calls += 1
        if self.fail_queries:
            raise StorageError("query failed")
        found = [
            appt
            for appt in self.appointments.values()
            if appt.organization_id == tenant_id
            and range_start <= appt.start_date < range_end
            and (scope.view_all or appt.employee_id == scope.employee_id)
        ]
        return sorted(found, key=lambda appt: appt.start_date)

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        return self.appointments.get(appointment_id)

    async def list_appointments(
        self,
        tenant_id: str,
        scope: AppointmentScope,
        client_id: Optional[str] = None,
    ) -> List[Appointment]:
        self.query_calls += 1
        if self.fail_queries:
            raise StorageError("query failed")
        found = [
            appt
            for appt in self.appointments.values()
            if appt.organization_id == tenant_id
            and (scope.view_all or appt.employee_id == scope.employee_id)
            and (client_id is None or appt.client_id == client_id)
        ]
        return sorted(found, key=lambda appt: appt.start_date)

    async def create_appointment(self, appointment: Appointment) -> Appointment:
        self.create_calls += 1
        if self.create_calls in self.fail_create_on:
            raise StorageError(f"insert {self.create_calls} failed")
        stored = appointment.model_copy(update={"id": f"appt_{self.create_calls}"})
        self.appointments[stored.id] = stored
        return stored

    async def update_appointment(self, appointment_id: str, changes: Dict) -> Appointment:
        if self.fail_updates:
            raise StorageError("update failed")
        current = self.appointments.get(appointment_id)
        if current is None:
            raise AppointmentNotFoundError(appointment_id)
        updated = Appointment.model_validate({**current.model_dump(), **changes})
        self.appointments[appointment_id] = updated
        return updated

    async def delete_appointment(self, appointment_id: str) -> None:
        if appointment_id not in self.appointments:
            raise AppointmentNotFoundError(appointment_id)
        del self.appointments[appointment_id]
        self.deleted.append(appointment_id)

    async def get_working_hours(
        self, tenant_id: str, employee_id: Optional[str] = None
    ) -> WorkingHours:
        return self.hours

    async def get_services_by_ids(self, service_ids: List[str]) -> Dict[str, Service]:
        return {sid: self.services[sid] for sid in service_ids if sid in self.services}

    async def get_clients_by_ids(self, client_ids: List[str]) -> Dict[str, Client]:
        return {cid: self.clients[cid] for cid in client_ids if cid in self.clients}

    async def get_appointments_for_reminder(
        self, window_start: datetime, window_end: datetime
    ) -> List[Appointment]:
        return [
            appt
            for appt in self.appointments.values()
            if not appt.reminder_sent
            and not is_cancelled(appt.status)
            and window_start <= appt.start_date <= window_end
        ]

    async def mark_reminder_sent(
        self, appointment_id: str, sent_at: datetime
    ) -> Optional[Appointment]:
        if appointment_id not in self.appointments:
            return None
        return await self.update_appointment(
            appointment_id, {"reminder_sent": True, "reminder_sent_at": sent_at}
        )


def make_appointment(
    start: datetime,
    end: datetime,
    appointment_id: Optional[str] = None,
    employee_id: str = EMPLOYEE_ID,
    status: str = "pending",
    **extra,
) -> Appointment:
    return Appointment(
        id=appointment_id,
        organization_id=extra.pop("organization_id", ORG_ID),
        client_id=extra.pop("client_id", CLIENT_ID),
        employee_id=employee_id,
        service_id=extra.pop("service_id", "svc_1"),
        start_date=start,
        end_date=end,
        status=status,
        **extra,
    )


