"""
Notification dispatchers.

Dispatch failures never roll back a booking: send() reports success as a
boolean and logs the failure.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from aiogram import Bot

from db.base import AppointmentStore
from models.appointment import Appointment
from notifications.messages import NotificationKind, render_message
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="notifications.log")


class NotificationDispatcher(ABC):
    """Sends client-facing messages about appointments."""

    @abstractmethod
    async def send(self, kind: NotificationKind, appointments: Sequence[Appointment]) -> bool:
        """Send one message covering ``appointments``; True on success."""


class NullNotificationDispatcher(NotificationDispatcher):
    """Dispatcher used when no messaging channel is configured."""

    async def send(self, kind: NotificationKind, appointments: Sequence[Appointment]) -> bool:
        logger.debug(f"Notifications disabled, dropping {kind} for {len(appointments)} appointment(s)")
        return False


class TelegramNotificationDispatcher(NotificationDispatcher):
    """Delivers messages to the client's Telegram chat through an aiogram Bot."""

    def __init__(self, bot: Bot, store: AppointmentStore):
        self.bot = bot
        self.store = store

    async def _chat_id(self, client_id: str) -> Optional[int]:
        clients = await self.store.get_clients_by_ids([client_id])
        client = clients.get(client_id)
        return client.telegram_id if client else None

    async def send(self, kind: NotificationKind, appointments: Sequence[Appointment]) -> bool:
        if not appointments:
            return False

        client_id = appointments[0].client_id
        try:
            chat_id = await self._chat_id(client_id)
            if chat_id is None:
                logger.warning(f"Client {client_id} has no Telegram chat, skipping {kind}")
                return False

            await self.bot.send_message(chat_id, render_message(kind, appointments))
            logger.info(
                f"Sent {kind} to client {client_id} for {len(appointments)} appointment(s)"
            )
            return True
        except Exception as e:
            logger.error(f"Failed to send {kind} to client {client_id}: {e}", exc_info=True)
            return False
