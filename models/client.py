"""Client models used for notification delivery."""

from typing import Optional

from models.base import CamelModel


class Client(CamelModel):
    """Client record as far as scheduling needs it."""

    id: str
    organization_id: Optional[str] = None
    name: str = ""
    phone_number: Optional[str] = None
    email: Optional[str] = None
    telegram_id: Optional[int] = None
