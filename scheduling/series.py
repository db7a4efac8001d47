"""
Series Booking

Drives expansion, classification and persistence for a whole series:

1. Expand the recurrence pattern into candidate occurrences
2. Classify each occurrence (no_work / conflict / error / available)
3. Preview: report classifications, write nothing
4. Commit: walk occurrences chronologically, skip or persist each one,
   numbering only the occurrences that are attempted

A failure on one occurrence is recorded as a skip and never aborts the batch.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional, Tuple, Union

from config import settings
from db.base import AppointmentStore
from models.appointment import Appointment, AppointmentStatus
from models.context import RequestContext
from models.recurrence import RecurrencePattern, RecurrenceType
from models.schedule import WorkingHours
from models.series import (
    AppointmentOccurrence,
    CreatedOccurrence,
    CreateSeriesOptions,
    CreateSeriesResponse,
    OccurrenceStatus,
    SeriesPreview,
    SeriesRequest,
    SeriesSummary,
    SkippedOccurrence,
)
from models.service import Service
from notifications.dispatcher import NotificationDispatcher
from notifications.messages import NotificationKind
from scheduling.availability import classify, classify_all
from scheduling.query import conflict_snapshot
from scheduling.recurrence import TimeRange, expand
from utils.constants import PERMISSION_CREATE
from utils.exceptions import (
    BookingRejectedError,
    DatabaseError,
    PermissionDeniedError,
    ValidationError,
)
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="series.log")


class OccurrenceDecision(str, Enum):
    """What the coordinator does with one classified occurrence."""

    ATTEMPT = "attempt"
    SKIP_NO_WORK = "skip_no_work"
    SKIP_CONFLICT = "skip_conflict"
    REJECT_CONFLICT = "reject_conflict"
    SKIP_ERROR = "skip_error"


def decide(occurrence: AppointmentOccurrence, options: CreateSeriesOptions) -> OccurrenceDecision:
    """Apply the policy flags to one classification."""
    status = OccurrenceStatus(occurrence.status)

    if status == OccurrenceStatus.ERROR:
        return OccurrenceDecision.SKIP_ERROR
    if status == OccurrenceStatus.NO_WORK:
        if options.omit_if_no_work:
            return OccurrenceDecision.SKIP_NO_WORK
        return OccurrenceDecision.ATTEMPT
    if status == OccurrenceStatus.CONFLICT:
        if options.omit_if_conflict:
            return OccurrenceDecision.SKIP_CONFLICT
        if not options.allow_overbooking:
            return OccurrenceDecision.REJECT_CONFLICT
        return OccurrenceDecision.ATTEMPT
    return OccurrenceDecision.ATTEMPT


def _skip_entry(occurrence: AppointmentOccurrence) -> SkippedOccurrence:
    status = OccurrenceStatus(occurrence.status)
    if status == OccurrenceStatus.ERROR:
        reason = occurrence.reason or status.value
    else:
        reason = status.value
    return SkippedOccurrence(
        date=occurrence.start_date,
        reason=reason,
        status=status,
        detail=occurrence.reason,
    )


@dataclass(frozen=True)
class ServiceSegment:
    """One service's slice of an occurrence, as offsets from its start."""

    service: Service
    offset_start: timedelta
    offset_end: timedelta


@dataclass
class SeriesPlan:
    windows: List[TimeRange]
    segments: List[ServiceSegment]
    hours: WorkingHours
    recurring: bool


def build_segments(
    request: SeriesRequest, services: List[Service]
) -> Tuple[List[ServiceSegment], timedelta]:
    """
    Lay services back-to-back from the occurrence start.

    An explicit end_date replaces the computed end; the last service absorbs
    the difference.

    Raises:
        ValidationError: no services, or a non-positive resulting duration
    """
    if not services:
        raise ValidationError("At least one service is required")

    segments = []
    cursor = timedelta(0)
    for service in services:
        length = timedelta(minutes=service.duration_minutes)
        segments.append(ServiceSegment(service, cursor, cursor + length))
        cursor += length

    if request.end_date is not None:
        total = request.end_date - request.start_date
        if total <= timedelta(0):
            raise ValidationError("endDate must be after startDate")
        last = segments[-1]
        if total <= last.offset_start:
            raise ValidationError("endDate leaves no time for the last service")
        segments[-1] = ServiceSegment(last.service, last.offset_start, total)
        cursor = total

    return segments, cursor


class SeriesCoordinator:
    """Preview and create appointment series for one store."""

    def __init__(
        self,
        store: AppointmentStore,
        dispatcher: Optional[NotificationDispatcher] = None,
        max_occurrences: Optional[int] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.max_occurrences = max_occurrences or settings.max_series_occurrences

    def _new_series_id(self) -> str:
        return uuid.uuid4().hex

    def _authorize(self, context: RequestContext, request: SeriesRequest) -> None:
        context.require(PERMISSION_CREATE)
        if request.organization_id != context.tenant_id:
            raise PermissionDeniedError("Request targets another organization")

    async def _load_services(self, request: SeriesRequest) -> List[Service]:
        if not request.services:
            raise ValidationError("At least one service is required")
        found = await self.store.get_services_by_ids(list(dict.fromkeys(request.services)))
        missing = [sid for sid in request.services if sid not in found]
        if missing:
            raise ValidationError(f"Unknown service(s): {', '.join(missing)}")
        return [found[sid] for sid in request.services]

    async def plan(
        self, request: SeriesRequest, pattern: Optional[RecurrencePattern]
    ) -> SeriesPlan:
        """
        Validate the request and expand it. Nothing is classified yet.

        Raises:
            ValidationError: malformed request or pattern
            RecurrenceOverflowError: pattern exceeds the safety cap
        """
        services = await self._load_services(request)
        segments, duration = build_segments(request, services)

        windows = expand(
            request.start_date,
            request.start_date + duration,
            pattern,
            self.max_occurrences,
        )
        hours = await self.store.get_working_hours(
            request.organization_id, request.employee_id
        )
        recurring = pattern is not None and pattern.type == RecurrenceType.WEEKLY
        return SeriesPlan(windows, segments, hours, recurring)

    async def _snapshot(self, request: SeriesRequest, start: datetime, end: datetime):
        return await conflict_snapshot(
            self.store, request.organization_id, request.employee_id, start, end
        )

    async def preview(
        self,
        context: RequestContext,
        request: SeriesRequest,
        pattern: Optional[RecurrencePattern] = None,
    ) -> SeriesPreview:
        """Classify every occurrence without writing anything."""
        self._authorize(context, request)
        plan = await self.plan(request, pattern)
        if not plan.windows:
            return SeriesPreview(total_occurrences=0, available_count=0, occurrences=[])

        booked = await self._snapshot(request, plan.windows[0].start, plan.windows[-1].end)
        occurrences = classify_all(plan.windows, plan.hours, booked, request.employee_id)

        available = sum(
            1 for occ in occurrences if occ.status == OccurrenceStatus.AVAILABLE
        )
        return SeriesPreview(
            total_occurrences=len(occurrences),
            available_count=available,
            occurrences=occurrences,
        )

    async def create_series(
        self,
        context: RequestContext,
        request: SeriesRequest,
        pattern: Optional[RecurrencePattern] = None,
        options: Optional[CreateSeriesOptions] = None,
    ) -> Union[CreateSeriesResponse, SeriesPreview]:
        """
        Create a series, or preview it when ``options.preview_only``.

        Raises only for request-level problems (validation, overflow,
        permissions, unreadable hours); per-occurrence failures become skips.
        """
        options = options or CreateSeriesOptions()
        if options.preview_only:
            return await self.preview(context, request, pattern)

        response, _ = await self._commit(context, request, pattern, options)
        return response

    async def create_single(
        self,
        context: RequestContext,
        request: SeriesRequest,
        options: Optional[CreateSeriesOptions] = None,
    ) -> List[Appointment]:
        """
        Book one slot (one appointment per co-scheduled service).

        Raises:
            BookingRejectedError: the slot was skipped (conflict, no work, failure)
        """
        options = (options or CreateSeriesOptions()).model_copy(update={"preview_only": False})
        response, appointments = await self._commit(context, request, None, options)
        if not appointments:
            skip = response.skipped[0]
            raise BookingRejectedError(skip.status, skip.detail or skip.reason)
        return appointments

    async def _classify_fresh(
        self, request: SeriesRequest, plan: SeriesPlan, window: TimeRange
    ) -> AppointmentOccurrence:
        """Authoritative classification against a fresh read of the day."""
        try:
            booked = await self._snapshot(request, window.start, window.end)
        except DatabaseError as e:
            return AppointmentOccurrence(
                start_date=window.start,
                end_date=window.end,
                status=OccurrenceStatus.ERROR,
                reason=f"Could not read existing appointments: {e}",
            )
        return classify(window, plan.hours, booked, request.employee_id)

    async def _persist_occurrence(
        self,
        request: SeriesRequest,
        plan: SeriesPlan,
        occurrence: AppointmentOccurrence,
        series_id: str,
        number: int,
        pattern: Optional[RecurrencePattern],
    ) -> List[Appointment]:
        """
        Write one appointment per service. On failure, remove the ones already
        written for this occurrence and re-raise.
        """
        written: List[Appointment] = []
        try:
            for index, segment in enumerate(plan.segments):
                service = segment.service
                draft = Appointment(
                    organization_id=request.organization_id,
                    client_id=request.client_id,
                    employee_id=request.employee_id,
                    service_id=service.id,
                    employee_requested_by_client=request.employee_requested_by_client,
                    start_date=occurrence.start_date + segment.offset_start,
                    end_date=occurrence.start_date + segment.offset_end,
                    status=AppointmentStatus.PENDING,
                    advance_payment=request.advance_payment if index == 0 else 0,
                    service_price=service.price,
                    custom_price=request.custom_prices.get(service.id),
                    additional_items=request.additional_items_by_service.get(service.id, []),
                    series_id=series_id,
                    occurrence_number=number,
                    recurrence_pattern=pattern if plan.recurring else None,
                )
                written.append(await self.store.create_appointment(draft))
        except Exception:
            for appt in written:
                try:
                    await self.store.delete_appointment(appt.id)
                except DatabaseError as cleanup_error:
                    logger.error(
                        f"Could not remove partial appointment {appt.id} "
                        f"of series {series_id}: {cleanup_error}"
                    )
            raise
        return written

    async def _commit(
        self,
        context: RequestContext,
        request: SeriesRequest,
        pattern: Optional[RecurrencePattern],
        options: CreateSeriesOptions,
    ) -> Tuple[CreateSeriesResponse, List[Appointment]]:
        self._authorize(context, request)
        plan = await self.plan(request, pattern)
        series_id = self._new_series_id()

        created: List[CreatedOccurrence] = []
        skipped: List[SkippedOccurrence] = []
        created_groups: List[List[Appointment]] = []
        number = 0

        for window in plan.windows:
            occurrence = await self._classify_fresh(request, plan, window)
            decision = decide(occurrence, options)

            if decision != OccurrenceDecision.ATTEMPT:
                logger.warning(
                    f"Series {series_id}: skipping {window.start.isoformat()} "
                    f"({decision.value}: {occurrence.reason})"
                )
                skipped.append(_skip_entry(occurrence))
                continue

            number += 1
            try:
                appointments = await self._persist_occurrence(
                    request, plan, occurrence, series_id, number, pattern
                )
            except DatabaseError as e:
                logger.warning(
                    f"Series {series_id}: occurrence {number} at "
                    f"{window.start.isoformat()} failed to persist: {e}"
                )
                skipped.append(
                    SkippedOccurrence(
                        date=window.start,
                        reason=str(e),
                        status=OccurrenceStatus.ERROR,
                        detail=str(e),
                    )
                )
                continue
            except Exception as e:
                logger.error(
                    f"Series {series_id}: unexpected error on occurrence {number}: {e}",
                    exc_info=True,
                )
                skipped.append(
                    SkippedOccurrence(
                        date=window.start,
                        reason=str(e) or type(e).__name__,
                        status=OccurrenceStatus.ERROR,
                        detail=str(e),
                    )
                )
                continue

            created_groups.append(appointments)
            created.append(
                CreatedOccurrence(
                    id=appointments[0].id,
                    start_date=window.start,
                    end_date=window.end,
                    occurrence_number=number,
                    appointment_ids=[appt.id for appt in appointments],
                )
            )

        total = len(plan.windows)
        response = CreateSeriesResponse(
            series_id=series_id,
            total_occurrences=total,
            created_count=len(created),
            created=created,
            skipped=skipped,
            summary=SeriesSummary(total=total, created=len(created), skipped=len(skipped)),
        )
        logger.info(
            f"Series {series_id} for employee {request.employee_id}: "
            f"{len(created)} created, {len(skipped)} skipped of {total}"
        )

        await self._notify(created_groups, options, plan.recurring)
        return response, [appt for group in created_groups for appt in group]

    async def _notify(
        self,
        created_groups: List[List[Appointment]],
        options: CreateSeriesOptions,
        recurring: bool,
    ) -> None:
        """Tell the client about the booking. Never fails the booking."""
        if options.skip_notification or not created_groups or self.dispatcher is None:
            return

        if options.notify_all_appointments:
            targets = [appt for group in created_groups for appt in group]
        else:
            targets = created_groups[0]

        if recurring and options.notify_all_appointments:
            kind = NotificationKind.RECURRING_APPOINTMENT_SERIES
        elif len(targets) > 1:
            kind = NotificationKind.SCHEDULE_APPOINTMENT_BATCH
        else:
            kind = NotificationKind.SCHEDULE_APPOINTMENT

        try:
            await self.dispatcher.send(kind, targets)
        except Exception as e:
            logger.warning(f"Notification {kind.value} failed: {e}")
