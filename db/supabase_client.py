"""
Supabase appointment store.
Handles all database interactions for appointments, services, clients and
organization/employee schedules.

Wire format notes:
==================
Instant columns (start_date, end_date, client_confirmed_at, reminder_sent_at)
are `timestamp without time zone` holding tenant-local civil time. They are
written with to_wire() and read with from_wire(); no UTC offset is ever sent.
Audit columns (created_at, updated_at) are `timestamptz` and stay in UTC.

Optional backstop against double booking (not required by the service):
----------------------------
ALTER TABLE appointments ADD CONSTRAINT no_overlap
EXCLUDE USING gist (employee_id WITH =, tsrange(start_date, end_date) WITH &&)
WHERE (status NOT IN ('cancelled', 'cancelled_by_customer', 'cancelled_by_admin'));

A violation surfaces as StorageError on create and is recorded per occurrence.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from supabase import Client as SupabaseClientType
from supabase import create_client

from config import settings
from db.base import AppointmentStore
from models.appointment import CANCELLED_STATUSES, Appointment
from models.client import Client
from models.context import AppointmentScope
from models.schedule import OpeningHours, WeeklySchedule, WorkingHours
from models.service import Service
from utils.datetime_utils import from_wire, to_wire, utc_now
from utils.exceptions import (
    AppointmentNotFoundError,
    DatabaseError,
    StorageError,
)
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__)

_LOCAL_INSTANT_FIELDS = ("start_date", "end_date", "client_confirmed_at", "reminder_sent_at")
_WRITE_EXCLUDE = {"id", "created_at", "updated_at"}


class SupabaseClient(AppointmentStore):
    """
    Supabase database client wrapper.

    Includes a simple in-memory cache for organization hours, employee
    schedules and service records, which change rarely compared to
    appointments. Appointments are never cached.
    """

    def __init__(self):
        self.client: SupabaseClientType = create_client(
            settings.supabase_url, settings.supabase_key
        )

        # Format: {cache_key: (data, expiry_time)}
        self._cache: Dict[str, Tuple[Any, datetime]] = {}
        self._cache_ttl = timedelta(minutes=5)

    # ========== Cache Helpers ==========

    def _get_from_cache(self, key: str) -> Optional[Any]:
        """Get value from cache if not expired."""
        if key not in self._cache:
            return None

        data, expiry = self._cache[key]
        if utc_now() > expiry:
            del self._cache[key]
            return None

        return data

    def _set_cache(self, key: str, value: Any) -> None:
        expiry = utc_now() + self._cache_ttl
        self._cache[key] = (value, expiry)

    # ========== Appointment Operations ==========

    async def query_appointments(
        self,
        tenant_id: str,
        range_start: datetime,
        range_end: datetime,
        scope: AppointmentScope,
    ) -> List[Appointment]:
        try:
            query = (
                self.client.table("appointments")
                .select("*")
                .eq("organization_id", tenant_id)
                .gte("start_date", to_wire(range_start))
                .lt("start_date", to_wire(range_end))
            )
            if not scope.view_all:
                query = query.eq("employee_id", scope.employee_id)

            response = query.order("start_date", desc=False).execute()
            return [self._parse_appointment(item) for item in response.data]
        except Exception as e:
            raise StorageError(f"Failed to query appointments: {e}") from e

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        try:
            response = (
                self.client.table("appointments")
                .select("*")
                .eq("id", appointment_id)
                .execute()
            )
            if response.data:
                return self._parse_appointment(response.data[0])
            return None
        except Exception as e:
            raise StorageError(f"Failed to get appointment: {e}") from e

    async def list_appointments(
        self,
        tenant_id: str,
        scope: AppointmentScope,
        client_id: Optional[str] = None,
    ) -> List[Appointment]:
        try:
            query = (
                self.client.table("appointments")
                .select("*")
                .eq("organization_id", tenant_id)
            )
            if not scope.view_all:
                query = query.eq("employee_id", scope.employee_id)
            if client_id:
                query = query.eq("client_id", client_id)

            response = query.order("start_date", desc=False).execute()
            return [self._parse_appointment(item) for item in response.data]
        except Exception as e:
            raise StorageError(f"Failed to list appointments: {e}") from e

    async def create_appointment(self, appointment: Appointment) -> Appointment:
        try:
            data = self._serialize_appointment(appointment)
            response = self.client.table("appointments").insert(data).execute()

            if not response.data:
                raise StorageError("Failed to create appointment: no data returned")

            return self._parse_appointment(response.data[0])
        except DatabaseError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to create appointment: {e}") from e

    async def update_appointment(self, appointment_id: str, changes: Dict) -> Appointment:
        try:
            data = dict(changes)
            for field in _LOCAL_INSTANT_FIELDS:
                if isinstance(data.get(field), datetime):
                    data[field] = to_wire(data[field])
            data["updated_at"] = utc_now().isoformat()

            response = (
                self.client.table("appointments")
                .update(data)
                .eq("id", appointment_id)
                .execute()
            )

            if not response.data:
                raise AppointmentNotFoundError(appointment_id)

            return self._parse_appointment(response.data[0])
        except DatabaseError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update appointment: {e}") from e

    async def delete_appointment(self, appointment_id: str) -> None:
        try:
            response = (
                self.client.table("appointments")
                .delete()
                .eq("id", appointment_id)
                .execute()
            )
            if not response.data:
                raise AppointmentNotFoundError(appointment_id)
        except DatabaseError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete appointment: {e}") from e

    async def get_appointments_for_reminder(
        self, window_start: datetime, window_end: datetime
    ) -> List[Appointment]:
        try:
            response = (
                self.client.table("appointments")
                .select("*")
                .eq("reminder_sent", False)
                .gte("start_date", to_wire(window_start))
                .lte("start_date", to_wire(window_end))
                .not_.in_("status", sorted(CANCELLED_STATUSES))
                .order("start_date", desc=False)
                .execute()
            )
            return [self._parse_appointment(item) for item in response.data]
        except Exception as e:
            raise StorageError(f"Failed to get appointments for reminder: {e}") from e

    async def mark_reminder_sent(
        self, appointment_id: str, sent_at: datetime
    ) -> Optional[Appointment]:
        try:
            return await self.update_appointment(
                appointment_id,
                {"reminder_sent": True, "reminder_sent_at": sent_at},
            )
        except AppointmentNotFoundError:
            return None

    # ========== Schedule / Catalog Operations ==========

    async def get_working_hours(
        self, tenant_id: str, employee_id: Optional[str] = None
    ) -> WorkingHours:
        cache_key = f"hours:{tenant_id}:{employee_id or '-'}"
        cached = self._get_from_cache(cache_key)
        if cached is not None:
            return cached

        try:
            response = (
                self.client.table("organizations")
                .select("opening_hours, timezone")
                .eq("id", tenant_id)
                .execute()
            )
            org = response.data[0] if response.data else {}

            schedule = None
            if employee_id:
                emp_response = (
                    self.client.table("employees")
                    .select("weekly_schedule")
                    .eq("id", employee_id)
                    .execute()
                )
                if emp_response.data and emp_response.data[0].get("weekly_schedule"):
                    schedule = WeeklySchedule.model_validate(
                        emp_response.data[0]["weekly_schedule"]
                    )

            hours = WorkingHours(
                opening_hours=(
                    OpeningHours.model_validate(org["opening_hours"])
                    if org.get("opening_hours")
                    else None
                ),
                employee_schedule=schedule,
                timezone=org.get("timezone") or settings.timezone,
            )
        except Exception as e:
            raise StorageError(f"Failed to get working hours: {e}") from e

        self._set_cache(cache_key, hours)
        return hours

    async def get_services_by_ids(self, service_ids: List[str]) -> Dict[str, Service]:
        """Batch fetch services, serving cached entries first."""
        if not service_ids:
            return {}

        result: Dict[str, Service] = {}
        missing = []
        for service_id in service_ids:
            cached = self._get_from_cache(f"service:{service_id}")
            if cached is not None:
                result[service_id] = cached
            else:
                missing.append(service_id)

        if missing:
            try:
                response = (
                    self.client.table("services")
                    .select("*")
                    .in_("id", missing)
                    .execute()
                )
            except Exception as e:
                raise StorageError(f"Failed to get services by IDs: {e}") from e

            for item in response.data:
                service = Service.model_validate(item)
                self._set_cache(f"service:{service.id}", service)
                result[service.id] = service

        return result

    async def get_clients_by_ids(self, client_ids: List[str]) -> Dict[str, Client]:
        if not client_ids:
            return {}

        try:
            response = (
                self.client.table("clients")
                .select("*")
                .in_("id", client_ids)
                .execute()
            )
            clients = {}
            for item in response.data:
                client = Client.model_validate(item)
                clients[client.id] = client
            return clients
        except Exception as e:
            raise StorageError(f"Failed to get clients by IDs: {e}") from e

    # ========== Helper Methods ==========

    def _serialize_appointment(self, appointment: Appointment) -> Dict[str, Any]:
        """Build the insert payload; local instants go out as wire strings."""
        data = appointment.model_dump(mode="json", exclude=_WRITE_EXCLUDE, exclude_none=True)
        for field in _LOCAL_INSTANT_FIELDS:
            value = getattr(appointment, field)
            if value is not None:
                data[field] = to_wire(value)
        return data

    def _parse_appointment(self, item: dict) -> Appointment:
        """
        Parse appointment data from database response.

        Local instants are read with from_wire; a row carrying a UTC offset
        is rejected rather than silently shifted.
        """
        item = item.copy()
        for field in _LOCAL_INSTANT_FIELDS:
            if item.get(field):
                item[field] = from_wire(item[field])
        return Appointment.model_validate(item)


# Global database client instance
_db_client: Optional[SupabaseClient] = None


def get_db_client() -> SupabaseClient:
    """Get or create database client instance."""
    global _db_client
    if _db_client is None:
        _db_client = SupabaseClient()
    return _db_client
