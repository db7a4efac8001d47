"""Batch confirmation result models."""

from typing import List, Optional

from pydantic import Field

from models.base import CamelModel


class ConfirmedItem(CamelModel):
    appointment_id: str
    client_id: Optional[str] = None


class FailedItem(CamelModel):
    appointment_id: str
    reason: str


class BatchConfirmResult(CamelModel):
    """Per-id outcome of a batch confirmation; never all-or-nothing."""

    confirmed: List[ConfirmedItem] = Field(default_factory=list)
    already_confirmed: List[ConfirmedItem] = Field(default_factory=list)
    failed: List[FailedItem] = Field(default_factory=list)
