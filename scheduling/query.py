"""
Scoped appointment reads.

Calendar reads are limited to what the caller may see; conflict reads are
always limited to the employee being booked, whatever the caller's scope.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from db.base import AppointmentStore
from models.appointment import Appointment
from models.context import AppointmentScope, RequestContext
from models.report import AppointmentBucket, Granularity
from scheduling.aggregation import aggregate
from utils.constants import CONFLICT_LOOKBEHIND_DAYS, PERMISSION_VIEW_OWN
from utils.datetime_utils import start_of_day
from utils.exceptions import PermissionDeniedError, ValidationError

_LOOKBEHIND = timedelta(days=CONFLICT_LOOKBEHIND_DAYS)


def scope_for(context: RequestContext) -> AppointmentScope:
    """
    Resolve the read scope of a caller.

    Raises:
        PermissionDeniedError: restricted caller without an employee identity
    """
    if context.can_view_all:
        return AppointmentScope.everything()

    employee_id = context.employee_id or context.user_id
    if not employee_id:
        raise PermissionDeniedError("A restricted caller needs an employee identity")
    return AppointmentScope.for_employee(employee_id)


def read_scope(context: RequestContext) -> AppointmentScope:
    """
    Scope of a caller allowed to read appointments at all.

    Raises:
        PermissionDeniedError: no view permission, or no employee identity
    """
    if not (context.can_view_all or context.has_permission(PERMISSION_VIEW_OWN)):
        raise PermissionDeniedError("Missing permission to view appointments")
    return scope_for(context)


def _check_range(range_start: datetime, range_end: datetime) -> None:
    if range_end <= range_start:
        raise ValidationError("Range end must be after range start")


async def query_appointments(
    store: AppointmentStore,
    context: RequestContext,
    range_start: datetime,
    range_end: datetime,
) -> List[Appointment]:
    """
    Appointments of the caller's tenant starting in [range_start, range_end),
    filtered to the caller's own employee identity when not privileged.
    """
    scope = read_scope(context)
    _check_range(range_start, range_end)
    return await store.query_appointments(context.tenant_id, range_start, range_end, scope)


def visible_to(scope: AppointmentScope, appointment: Appointment) -> bool:
    return scope.view_all or appointment.employee_id == scope.employee_id


async def appointments_for_employee(
    store: AppointmentStore, context: RequestContext, employee_id: str
) -> List[Appointment]:
    """
    Every appointment of one employee.

    Raises:
        PermissionDeniedError: a restricted caller asking for someone else
    """
    scope = read_scope(context)
    if not scope.view_all and scope.employee_id != employee_id:
        raise PermissionDeniedError("Cannot read another employee's appointments")
    return await store.list_appointments(
        context.tenant_id, AppointmentScope.for_employee(employee_id)
    )


async def appointments_for_client(
    store: AppointmentStore, context: RequestContext, client_id: str
) -> List[Appointment]:
    """A client's appointments, limited to what the caller may see."""
    scope = read_scope(context)
    return await store.list_appointments(context.tenant_id, scope, client_id=client_id)


async def aggregate_appointments(
    store: AppointmentStore,
    context: RequestContext,
    range_start: datetime,
    range_end: datetime,
    granularity: Granularity = Granularity.DAY,
    employee_ids: Optional[Sequence[str]] = None,
) -> List[AppointmentBucket]:
    """Income and count buckets over the caller's visible appointments."""
    appointments = await query_appointments(store, context, range_start, range_end)
    if employee_ids:
        wanted = set(employee_ids)
        appointments = [appt for appt in appointments if appt.employee_id in wanted]
    return aggregate(appointments, granularity)


async def employee_bookings(
    store: AppointmentStore,
    tenant_id: str,
    employee_id: str,
    range_start: datetime,
    range_end: datetime,
) -> List[Appointment]:
    """Conflict snapshot: one employee's appointments in the range."""
    _check_range(range_start, range_end)
    return await store.query_appointments(
        tenant_id, range_start, range_end, AppointmentScope.for_employee(employee_id)
    )


async def conflict_snapshot(
    store: AppointmentStore,
    tenant_id: str,
    employee_id: str,
    start: datetime,
    end: datetime,
) -> List[Appointment]:
    """
    Appointments of ``employee_id`` that may overlap [start, end). The read
    starts a day early so bookings crossing midnight are included.
    """
    return await employee_bookings(
        store, tenant_id, employee_id, start_of_day(start) - _LOOKBEHIND, end
    )
