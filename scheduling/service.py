"""
Appointment service: the operations offered to calendar and admin clients.

Every operation takes an explicit RequestContext; nothing here reads the
current tenant, user or permissions from global state.
"""

from datetime import datetime
from typing import List, Optional, Union

from config import settings
from db.base import AppointmentStore
from models.appointment import Appointment, AppointmentUpdate, is_cancelled
from models.confirmation import BatchConfirmResult
from models.context import RequestContext
from models.recurrence import RecurrencePattern
from models.report import AppointmentBucket, Granularity
from models.series import (
    CreateSeriesOptions,
    CreateSeriesResponse,
    OccurrenceStatus,
    SeriesPreview,
    SeriesRequest,
)
from notifications.dispatcher import NotificationDispatcher
from notifications.messages import NotificationKind
from scheduling import lifecycle, query
from scheduling.availability import classify
from scheduling.lifecycle import LifecycleAction
from scheduling.recurrence import TimeRange
from scheduling.series import SeriesCoordinator
from utils.constants import PERMISSION_DELETE, PERMISSION_UPDATE
from utils.datetime_utils import tenant_now
from utils.exceptions import (
    AppointmentNotFoundError,
    BookingRejectedError,
    ValidationError,
)
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__)


class AppointmentService:
    """Facade over series booking, lifecycle and scoped reads."""

    def __init__(
        self,
        store: AppointmentStore,
        dispatcher: Optional[NotificationDispatcher] = None,
        coordinator: Optional[SeriesCoordinator] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.coordinator = coordinator or SeriesCoordinator(store, dispatcher)

    # ========== Booking ==========

    async def preview_series(
        self,
        context: RequestContext,
        request: SeriesRequest,
        pattern: Optional[RecurrencePattern] = None,
    ) -> SeriesPreview:
        return await self.coordinator.preview(context, request, pattern)

    async def create_series(
        self,
        context: RequestContext,
        request: SeriesRequest,
        pattern: Optional[RecurrencePattern] = None,
        options: Optional[CreateSeriesOptions] = None,
    ) -> Union[CreateSeriesResponse, SeriesPreview]:
        return await self.coordinator.create_series(context, request, pattern, options)

    async def create_single_or_co_scheduled(
        self,
        context: RequestContext,
        request: SeriesRequest,
        options: Optional[CreateSeriesOptions] = None,
    ) -> List[Appointment]:
        return await self.coordinator.create_single(context, request, options)

    # ========== Reads ==========

    async def query_appointments(
        self, context: RequestContext, range_start: datetime, range_end: datetime
    ) -> List[Appointment]:
        return await query.query_appointments(self.store, context, range_start, range_end)

    async def get_appointment(self, context: RequestContext, appointment_id: str) -> Appointment:
        """
        One appointment of the caller's tenant. A restricted caller only sees
        their own; anything else reads as not found.
        """
        scope = query.read_scope(context)
        appointment = await self._load(context, appointment_id)
        if not query.visible_to(scope, appointment):
            raise AppointmentNotFoundError(appointment_id)
        return appointment

    async def appointments_for_employee(
        self, context: RequestContext, employee_id: str
    ) -> List[Appointment]:
        return await query.appointments_for_employee(self.store, context, employee_id)

    async def appointments_for_client(
        self, context: RequestContext, client_id: str
    ) -> List[Appointment]:
        return await query.appointments_for_client(self.store, context, client_id)

    async def aggregate_appointments(
        self,
        context: RequestContext,
        range_start: datetime,
        range_end: datetime,
        granularity: Granularity = Granularity.DAY,
        employee_ids: Optional[List[str]] = None,
    ) -> List[AppointmentBucket]:
        return await query.aggregate_appointments(
            self.store, context, range_start, range_end, granularity, employee_ids
        )

    async def _load(self, context: RequestContext, appointment_id: str) -> Appointment:
        appointment = await self.store.get_appointment(appointment_id)
        if appointment is None or appointment.organization_id != context.tenant_id:
            raise AppointmentNotFoundError(appointment_id)
        return appointment

    # ========== Edits and lifecycle ==========

    async def update_appointment(
        self,
        context: RequestContext,
        appointment_id: str,
        update: AppointmentUpdate,
        allow_overbooking: bool = False,
    ) -> Appointment:
        """
        Apply a partial edit. A status change must be a legal transition;
        resending the current status is not a transition.

        Moving an active appointment (new start, end or employee) re-checks
        the target slot, ignoring the appointment itself.

        Raises:
            BookingRejectedError: the new slot overlaps another appointment
                and overbooking was not allowed
        """
        context.require(PERMISSION_UPDATE)
        current = await self._load(context, appointment_id)
        changes = update.model_dump(exclude_unset=True)

        if "status" in changes:
            if changes["status"] is None or changes["status"] == current.status:
                changes.pop("status")
            else:
                lifecycle.check_transition(current.status, changes["status"])

        start = changes.get("start_date") or current.start_date
        end = changes.get("end_date") or current.end_date
        if end <= start:
            raise ValidationError("endDate must be after startDate")

        employee_id = changes.get("employee_id") or current.employee_id
        moved = (
            start != current.start_date
            or end != current.end_date
            or employee_id != current.employee_id
        )
        if moved and not is_cancelled(changes.get("status") or current.status):
            await self._check_slot(
                context.tenant_id, appointment_id, employee_id, start, end, allow_overbooking
            )

        if changes.get("service_id") and changes["service_id"] != current.service_id:
            services = await self.store.get_services_by_ids([changes["service_id"]])
            service = services.get(changes["service_id"])
            if service is None:
                raise ValidationError(f"Unknown service: {changes['service_id']}")
            changes["service_price"] = service.price

        # custom_price may be explicitly reset; other fields ignore nulls
        changes = {
            key: value
            for key, value in changes.items()
            if value is not None or key == "custom_price"
        }
        if not changes:
            return current

        merged = Appointment.model_validate({**current.model_dump(), **changes})
        changes["total_price"] = merged.total_price

        updated = await self.store.update_appointment(appointment_id, changes)
        logger.info(f"Appointment {appointment_id} updated: {sorted(changes)}")
        return updated

    async def _check_slot(
        self,
        tenant_id: str,
        appointment_id: str,
        employee_id: str,
        start: datetime,
        end: datetime,
        allow_overbooking: bool,
    ) -> None:
        hours = await self.store.get_working_hours(tenant_id, employee_id)
        booked = await query.conflict_snapshot(self.store, tenant_id, employee_id, start, end)
        occurrence = classify(
            TimeRange(start, end), hours, booked, employee_id, exclude_appointment=appointment_id
        )
        status = OccurrenceStatus(occurrence.status)

        if status == OccurrenceStatus.ERROR:
            raise ValidationError(occurrence.reason or "Invalid appointment window")
        if status == OccurrenceStatus.CONFLICT:
            if not allow_overbooking:
                raise BookingRejectedError(status.value, occurrence.reason)
            logger.warning(f"Appointment {appointment_id} overbooked: {occurrence.reason}")
        elif status == OccurrenceStatus.NO_WORK:
            logger.info(f"Appointment {appointment_id} moved outside working hours: {occurrence.reason}")

    async def confirm_batch(
        self, context: RequestContext, appointment_ids: List[str]
    ) -> BatchConfirmResult:
        context.require(PERMISSION_UPDATE)
        return await lifecycle.confirm_batch(self.store, appointment_ids, context.tenant_id)

    async def cancel_appointment(
        self,
        context: RequestContext,
        appointment_id: str,
        action: LifecycleAction = LifecycleAction.CANCEL_BY_ADMIN,
    ) -> Appointment:
        context.require(PERMISSION_UPDATE)
        if LifecycleAction(action) == LifecycleAction.CONFIRM:
            raise ValidationError("Use confirm to confirm an appointment")

        appointment = await self._load(context, appointment_id)
        updated = await lifecycle.apply_action(self.store, appointment, action)
        await self._ack(NotificationKind.CLIENT_CANCELLATION_ACK, updated)
        return updated

    async def client_confirm(self, context: RequestContext, appointment_id: str) -> Appointment:
        """Record that the client acknowledged the appointment."""
        appointment = await self._load(context, appointment_id)
        if appointment.client_confirmed:
            return appointment

        updated = await lifecycle.mark_client_confirmed(
            self.store, appointment, tenant_now(settings.timezone)
        )
        await self._ack(NotificationKind.CLIENT_CONFIRMATION_ACK, updated)
        return updated

    async def delete_appointment(self, context: RequestContext, appointment_id: str) -> None:
        """Hard delete; there is no archival state."""
        context.require(PERMISSION_DELETE)
        await self._load(context, appointment_id)
        await self.store.delete_appointment(appointment_id)
        logger.info(f"Appointment {appointment_id} deleted")

    async def _ack(self, kind: NotificationKind, appointment: Appointment) -> None:
        if self.dispatcher is None:
            return
        try:
            await self.dispatcher.send(kind, [appointment])
        except Exception as e:
            logger.warning(f"Notification {kind.value} failed for {appointment.id}: {e}")
