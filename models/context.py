"""Explicit caller context threaded into every scheduling operation."""

from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field

from utils.constants import PERMISSION_VIEW_ALL
from utils.exceptions import PermissionDeniedError


class RequestContext(BaseModel):
    """Tenant, caller identity and permissions for one request."""

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    user_id: Optional[str] = None
    employee_id: Optional[str] = None
    permissions: FrozenSet[str] = Field(default_factory=frozenset)

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def require(self, permission: str) -> None:
        """
        Raises:
            PermissionDeniedError: if the caller lacks the permission
        """
        if not self.has_permission(permission):
            raise PermissionDeniedError(f"Missing permission: {permission}")

    @property
    def can_view_all(self) -> bool:
        return self.has_permission(PERMISSION_VIEW_ALL)


class AppointmentScope(BaseModel):
    """Read visibility: every appointment, or one employee's only."""

    model_config = ConfigDict(frozen=True)

    view_all: bool = False
    employee_id: Optional[str] = None

    @classmethod
    def everything(cls) -> "AppointmentScope":
        return cls(view_all=True)

    @classmethod
    def for_employee(cls, employee_id: str) -> "AppointmentScope":
        return cls(view_all=False, employee_id=employee_id)
