"""
HTTP API for appointment scheduling.

Exposes series preview/creation, single-slot booking, edits, lifecycle
actions and scoped calendar reads. Responses use the envelope
{"code", "status", "data", "message"}.

The caller context (tenant, identity, permissions) is resolved by a
PermissionEvaluator; the default one trusts headers set by an upstream gateway.
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional, Tuple, Type

from aiohttp import web
from aiohttp.web import Request, Response
from pydantic import ValidationError as PydanticValidationError

from models.appointment import Appointment, AppointmentUpdate
from models.context import RequestContext
from models.recurrence import RecurrencePattern
from models.report import Granularity
from models.series import CreateSeriesOptions, SeriesPreview, SeriesRequest
from scheduling.lifecycle import LifecycleAction
from scheduling.service import AppointmentService
from utils.datetime_utils import from_wire
from utils.exceptions import (
    BookingRejectedError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    RecurrenceOverflowError,
    StorageError,
    ValidationError,
)
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="api.log")

MAX_REQUEST_BODY_SIZE = 1024 * 1024  # 1MB

# (exception, HTTP status, error code); first match wins
_ERROR_MAP: List[Tuple[Type[Exception], int, str]] = [
    (PydanticValidationError, 400, "validation_failed"),
    (ValidationError, 400, "validation_failed"),
    (PermissionDeniedError, 403, "forbidden"),
    (NotFoundError, 404, "not_found"),
    (InvalidTransitionError, 409, "invalid_transition"),
    (BookingRejectedError, 409, "booking_rejected"),
    (RecurrenceOverflowError, 422, "too_many_occurrences"),
    (StorageError, 503, "storage_unavailable"),
]


class PermissionEvaluator(ABC):
    """Resolves who is calling and what they may do."""

    @abstractmethod
    async def resolve(self, request: Request) -> RequestContext:
        """
        Raises:
            PermissionDeniedError: if the caller cannot be identified
        """


class HeaderPermissionEvaluator(PermissionEvaluator):
    """Reads the context from trusted gateway headers."""

    async def resolve(self, request: Request) -> RequestContext:
        tenant_id = request.headers.get("X-Organization-Id")
        if not tenant_id:
            raise PermissionDeniedError("Missing X-Organization-Id header")

        permissions = frozenset(
            p.strip()
            for p in request.headers.get("X-Permissions", "").split(",")
            if p.strip()
        )
        return RequestContext(
            tenant_id=tenant_id,
            user_id=request.headers.get("X-User-Id") or None,
            employee_id=request.headers.get("X-Employee-Id") or None,
            permissions=permissions,
        )


SERVICE_KEY = web.AppKey("service", AppointmentService)
EVALUATOR_KEY = web.AppKey("evaluator", PermissionEvaluator)


def envelope(data: Any = None, message: str = "", status: int = 200) -> Response:
    return web.json_response(
        {
            "code": status,
            "status": "success" if status < 400 else "error",
            "data": data,
            "message": message,
        },
        status=status,
    )


def _dump(model) -> Any:
    return model.model_dump(mode="json", by_alias=True)


def _dump_appointments(appointments: List[Appointment]) -> List[dict]:
    return [_dump(appt) for appt in appointments]


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON body: {e}") from e
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


async def _context(request: Request) -> RequestContext:
    return await request.app[EVALUATOR_KEY].resolve(request)


@web.middleware
async def error_middleware(request: Request, handler):
    """Translate domain errors into enveloped HTTP errors."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as e:
        for exc_type, status, code in _ERROR_MAP:
            if isinstance(e, exc_type):
                logger.warning(f"{request.method} {request.path} -> {status} {code}: {e}")
                return web.json_response(
                    {"code": status, "status": "error", "error": code, "data": None, "message": str(e)},
                    status=status,
                )
        logger.error(f"Unexpected error on {request.method} {request.path}: {e}", exc_info=True)
        return web.json_response(
            {
                "code": 500,
                "status": "error",
                "error": "internal_error",
                "data": None,
                "message": "Internal server error",
            },
            status=500,
        )


@web.middleware
async def security_headers_middleware(request: Request, handler):
    """Add security headers to all responses."""
    response = await handler(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Cache-Control"] = "no-store"
    response.headers["Strict-Transport-Security"] = (
        "max-age=31536000; includeSubDomains"
    )
    return response


# ========== Handlers ==========


async def create_series_handler(request: Request) -> Response:
    """POST /appointments/series: preview (previewOnly) or create a series."""
    context = await _context(request)
    body = await _json_body(request)

    series_request = SeriesRequest.model_validate(body)
    raw_pattern = body.get("recurrencePattern") or body.get("recurrence_pattern")
    pattern = RecurrencePattern.model_validate(raw_pattern) if raw_pattern else None
    options = CreateSeriesOptions.model_validate(body)

    result = await request.app[SERVICE_KEY].create_series(
        context, series_request, pattern, options
    )
    if isinstance(result, SeriesPreview):
        return envelope({"preview": _dump(result)}, "Series preview")
    return envelope(_dump(result), "Series created", status=201)


async def create_batch_handler(request: Request) -> Response:
    """POST /appointments/batch: book one slot for one or more services."""
    context = await _context(request)
    body = await _json_body(request)

    series_request = SeriesRequest.model_validate(body)
    options = CreateSeriesOptions.model_validate(body)
    appointments = await request.app[SERVICE_KEY].create_single_or_co_scheduled(
        context, series_request, options
    )
    return envelope(_dump_appointments(appointments), "Appointments created", status=201)


async def confirm_batch_handler(request: Request) -> Response:
    """PUT /appointments/batch/confirm"""
    context = await _context(request)
    body = await _json_body(request)

    ids = body.get("appointmentIds") or body.get("appointment_ids") or []
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        raise ValidationError("appointmentIds must be a list of strings")

    result = await request.app[SERVICE_KEY].confirm_batch(context, ids)
    return envelope(_dump(result), "Batch confirmation processed")


async def update_handler(request: Request) -> Response:
    """PUT /appointments/{id}, body: partial appointment, optional "allowOverbooking": true"""
    context = await _context(request)
    body = await _json_body(request)

    update = AppointmentUpdate.model_validate(body)
    allow_overbooking = body.get("allowOverbooking") is True
    appointment = await request.app[SERVICE_KEY].update_appointment(
        context, request.match_info["appointment_id"], update, allow_overbooking
    )
    return envelope(_dump(appointment), "Appointment updated")


async def cancel_handler(request: Request) -> Response:
    """POST /appointments/{id}/cancel, body: {"action": "cancel_by_admin"}"""
    context = await _context(request)
    body = await _json_body(request) if request.can_read_body else {}

    try:
        action = LifecycleAction(body.get("action", LifecycleAction.CANCEL_BY_ADMIN.value))
    except ValueError as e:
        raise ValidationError(f"Unknown cancel action: {body.get('action')}") from e

    appointment = await request.app[SERVICE_KEY].cancel_appointment(
        context, request.match_info["appointment_id"], action
    )
    return envelope(_dump(appointment), "Appointment cancelled")


async def client_confirm_handler(request: Request) -> Response:
    """POST /appointments/{id}/client-confirm"""
    context = await _context(request)
    appointment = await request.app[SERVICE_KEY].client_confirm(
        context, request.match_info["appointment_id"]
    )
    return envelope(_dump(appointment), "Client confirmation recorded")


async def delete_handler(request: Request) -> Response:
    """DELETE /appointments/{id}"""
    context = await _context(request)
    await request.app[SERVICE_KEY].delete_appointment(
        context, request.match_info["appointment_id"]
    )
    return envelope(None, "Appointment deleted")


def _own_organization(request: Request, context: RequestContext) -> None:
    if request.match_info["org_id"] != context.tenant_id:
        raise PermissionDeniedError("Cannot read another organization's calendar")


def _date_range(request: Request) -> Tuple[datetime, datetime]:
    start = request.query.get("startDate")
    end = request.query.get("endDate")
    if not start or not end:
        raise ValidationError("startDate and endDate are required")
    return from_wire(start), from_wire(end)


async def organization_dates_handler(request: Request) -> Response:
    """GET /appointments/organization/{org_id}/dates?startDate=&endDate="""
    context = await _context(request)
    _own_organization(request, context)
    range_start, range_end = _date_range(request)

    appointments = await request.app[SERVICE_KEY].query_appointments(
        context, range_start, range_end
    )
    return envelope(_dump_appointments(appointments), "Appointments")


async def organization_aggregated_handler(request: Request) -> Response:
    """
    GET /appointments/organization/{org_id}/aggregated
        ?startDate=&endDate=&granularity=day|week|month&employeeIds=a,b
    """
    context = await _context(request)
    _own_organization(request, context)
    range_start, range_end = _date_range(request)

    raw_granularity = request.query.get("granularity", Granularity.DAY.value)
    try:
        granularity = Granularity(raw_granularity)
    except ValueError as e:
        raise ValidationError(f"Unknown granularity: {raw_granularity}") from e

    employee_ids = [
        item.strip()
        for item in request.query.get("employeeIds", "").split(",")
        if item.strip()
    ]
    buckets = await request.app[SERVICE_KEY].aggregate_appointments(
        context, range_start, range_end, granularity, employee_ids or None
    )
    return envelope([_dump(bucket) for bucket in buckets], "Aggregated appointments")


async def get_appointment_handler(request: Request) -> Response:
    """GET /appointments/{id}"""
    context = await _context(request)
    appointment = await request.app[SERVICE_KEY].get_appointment(
        context, request.match_info["appointment_id"]
    )
    return envelope(_dump(appointment), "Appointment")


async def employee_appointments_handler(request: Request) -> Response:
    """GET /appointments/employee/{employee_id}"""
    context = await _context(request)
    appointments = await request.app[SERVICE_KEY].appointments_for_employee(
        context, request.match_info["employee_id"]
    )
    return envelope(_dump_appointments(appointments), "Appointments")


async def client_appointments_handler(request: Request) -> Response:
    """GET /appointments/client/{client_id}"""
    context = await _context(request)
    appointments = await request.app[SERVICE_KEY].appointments_for_client(
        context, request.match_info["client_id"]
    )
    return envelope(_dump_appointments(appointments), "Appointments")


async def health_check(request: Request) -> Response:
    return web.json_response({"status": "ok", "service": "appointment-scheduling"})


def create_app(
    service: AppointmentService, evaluator: Optional[PermissionEvaluator] = None
) -> web.Application:
    """
    Create aiohttp application with middleware and routes.

    Returns:
        Configured web application
    """
    app = web.Application(
        middlewares=[security_headers_middleware, error_middleware],
        client_max_size=MAX_REQUEST_BODY_SIZE,
    )
    app[SERVICE_KEY] = service
    app[EVALUATOR_KEY] = evaluator or HeaderPermissionEvaluator()

    app.router.add_post("/appointments/series", create_series_handler)
    app.router.add_post("/appointments/batch", create_batch_handler)
    app.router.add_put("/appointments/batch/confirm", confirm_batch_handler)
    app.router.add_put("/appointments/{appointment_id}", update_handler)
    app.router.add_post("/appointments/{appointment_id}/cancel", cancel_handler)
    app.router.add_post("/appointments/{appointment_id}/client-confirm", client_confirm_handler)
    app.router.add_delete("/appointments/{appointment_id}", delete_handler)
    app.router.add_get("/appointments/organization/{org_id}/dates", organization_dates_handler)
    app.router.add_get(
        "/appointments/organization/{org_id}/aggregated", organization_aggregated_handler
    )
    app.router.add_get("/appointments/employee/{employee_id}", employee_appointments_handler)
    app.router.add_get("/appointments/client/{client_id}", client_appointments_handler)
    app.router.add_get("/appointments/{appointment_id}", get_appointment_handler)
    app.router.add_get("/health", health_check)

    return app
