"""Service catalog models."""

from typing import Optional

from pydantic import ConfigDict, Field

from models.base import CamelModel


class Service(CamelModel):
    """Service catalog record (read-only for scheduling)."""

    id: str
    organization_id: Optional[str] = None
    name: str = ""
    price: float = Field(default=0, ge=0)
    duration_minutes: int = Field(default=60, ge=1, description="Duration in minutes")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "svc_1",
                "organization_id": "org_1",
                "name": "Personal training",
                "price": 50000,
                "duration_minutes": 60,
            }
        }
    )
