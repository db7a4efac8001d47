"""
Appointment Lifecycle

State machine for the administrative status, plus the independent
client-confirmation flag.

    pending ──► confirmed
       │            │
       └──► cancelled | cancelled_by_customer | cancelled_by_admin  (terminal)
"""

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List

from db.base import AppointmentStore
from models.appointment import Appointment, AppointmentStatus, is_cancelled
from models.confirmation import BatchConfirmResult, ConfirmedItem, FailedItem
from utils.exceptions import (
    DatabaseError,
    InvalidTransitionError,
    ValidationError,
)
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__)

_CANCEL_TARGETS = frozenset(
    {
        AppointmentStatus.CANCELLED,
        AppointmentStatus.CANCELLED_BY_CUSTOMER,
        AppointmentStatus.CANCELLED_BY_ADMIN,
    }
)

ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED}) | _CANCEL_TARGETS,
    AppointmentStatus.CONFIRMED: _CANCEL_TARGETS,
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.CANCELLED_BY_CUSTOMER: frozenset(),
    AppointmentStatus.CANCELLED_BY_ADMIN: frozenset(),
}


class LifecycleAction(str, Enum):
    """Administrative actions and the status each one leads to."""

    CONFIRM = "confirm"
    CANCEL = "cancel"
    CANCEL_BY_CUSTOMER = "cancel_by_customer"
    CANCEL_BY_ADMIN = "cancel_by_admin"


ACTION_TARGETS: Dict[LifecycleAction, AppointmentStatus] = {
    LifecycleAction.CONFIRM: AppointmentStatus.CONFIRMED,
    LifecycleAction.CANCEL: AppointmentStatus.CANCELLED,
    LifecycleAction.CANCEL_BY_CUSTOMER: AppointmentStatus.CANCELLED_BY_CUSTOMER,
    LifecycleAction.CANCEL_BY_ADMIN: AppointmentStatus.CANCELLED_BY_ADMIN,
}


def can_transition(current, target) -> bool:
    return AppointmentStatus(target) in ALLOWED_TRANSITIONS[AppointmentStatus(current)]


def check_transition(current, target) -> AppointmentStatus:
    """
    Validate a status change.

    Returns:
        the target status

    Raises:
        InvalidTransitionError: if the change is not allowed
    """
    current = AppointmentStatus(current)
    target = AppointmentStatus(target)
    if not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)
    return target


def target_for(action) -> AppointmentStatus:
    try:
        return ACTION_TARGETS[LifecycleAction(action)]
    except ValueError as e:
        raise ValidationError(f"Unknown lifecycle action: {action}") from e


async def apply_action(
    store: AppointmentStore, appointment: Appointment, action: LifecycleAction
) -> Appointment:
    """
    Move an appointment through the state machine and persist the new status.

    The stored appointment is untouched when the transition is rejected.
    """
    target = check_transition(appointment.status, target_for(action))
    updated = await store.update_appointment(appointment.id, {"status": target.value})
    logger.info(f"Appointment {appointment.id}: {appointment.status} -> {target.value}")
    return updated


async def mark_client_confirmed(
    store: AppointmentStore, appointment: Appointment, confirmed_at: datetime
) -> Appointment:
    """
    Record the client's acknowledgment. Independent of ``status``; only a
    cancelled appointment refuses it.
    """
    if is_cancelled(appointment.status):
        raise InvalidTransitionError(appointment.status, "client_confirmed")
    if appointment.client_confirmed:
        return appointment
    return await store.update_appointment(
        appointment.id,
        {"client_confirmed": True, "client_confirmed_at": confirmed_at},
    )


async def confirm_batch(
    store: AppointmentStore, appointment_ids: List[str], tenant_id: str
) -> BatchConfirmResult:
    """
    Confirm many appointments, reporting per id.

    Already-confirmed ids are an idempotent no-op; unknown, foreign or
    cancelled ids are reported as failed. Nothing is raised for a single bad id.
    """
    result = BatchConfirmResult()

    for appointment_id in dict.fromkeys(appointment_ids):
        try:
            appointment = await store.get_appointment(appointment_id)
            if appointment is None or appointment.organization_id != tenant_id:
                result.failed.append(
                    FailedItem(appointment_id=appointment_id, reason="Appointment not found")
                )
                continue

            if appointment.status == AppointmentStatus.CONFIRMED:
                result.already_confirmed.append(
                    ConfirmedItem(appointment_id=appointment_id, client_id=appointment.client_id)
                )
                continue

            await apply_action(store, appointment, LifecycleAction.CONFIRM)
            result.confirmed.append(
                ConfirmedItem(appointment_id=appointment_id, client_id=appointment.client_id)
            )
        except (InvalidTransitionError, DatabaseError) as e:
            logger.warning(f"Could not confirm appointment {appointment_id}: {e}")
            result.failed.append(FailedItem(appointment_id=appointment_id, reason=str(e)))

    logger.info(
        f"Batch confirm for {tenant_id}: {len(result.confirmed)} confirmed, "
        f"{len(result.already_confirmed)} already confirmed, {len(result.failed)} failed"
    )
    return result
