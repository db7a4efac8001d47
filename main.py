"""
Main entry point for the appointment scheduling service.
Serves the HTTP API and runs the reminder scheduler.
"""

import asyncio
import sys
from typing import Optional, Tuple

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiohttp import web

from api import create_app
from config import settings
from db import get_db_client
from notifications import (
    NotificationDispatcher,
    NullNotificationDispatcher,
    TelegramNotificationDispatcher,
)
from scheduler import setup_scheduler, shutdown_scheduler
from scheduling import AppointmentService
from utils.logging_config import setup_logging

logger = setup_logging(name=__name__, log_file="service.log")


def build_dispatcher(store) -> Tuple[Optional[Bot], NotificationDispatcher]:
    """Telegram dispatcher when a bot token is configured, otherwise a no-op one."""
    if not settings.notifications_enabled:
        logger.info("BOT_TOKEN not set, client notifications disabled")
        return None, NullNotificationDispatcher()

    bot = Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    return bot, TelegramNotificationDispatcher(bot, store)


async def main() -> None:
    """Main async function to run the service."""
    try:
        settings.validate_all_required()
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    store = get_db_client()
    bot, dispatcher = build_dispatcher(store)
    service = AppointmentService(store, dispatcher)

    runner: Optional[web.AppRunner] = None
    try:
        logger.info("Starting appointment scheduling service...")

        setup_scheduler(store=store, dispatcher=dispatcher)

        runner = web.AppRunner(create_app(service))
        await runner.setup()
        site = web.TCPSite(runner, host=settings.host, port=settings.port)
        await site.start()
        logger.info(f"API listening on {settings.host}:{settings.port}")

        await asyncio.Event().wait()

    except asyncio.CancelledError:
        logger.info("Service cancelled")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise
    finally:
        logger.info("Shutting down...")
        shutdown_scheduler()

        if runner is not None:
            await runner.cleanup()

        if bot is not None:
            try:
                await bot.session.close()
                logger.info("Bot session closed")
            except Exception as e:
                logger.error(f"Error closing bot session: {e}", exc_info=True)

        logger.info("Shutdown complete")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
