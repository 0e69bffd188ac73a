from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.types import BotCommand

from hydrobot.bot.routers import commands, onboarding, reminders
from hydrobot.config import settings
from hydrobot.database import init_db
from hydrobot.scheduler import ReminderScheduler


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)


async def setup_bot_commands(bot: Bot) -> None:
    """Устанавливает меню команд для бота"""
    commands_list = [
        BotCommand(command="start", description="Set up your hydration plan"),
        BotCommand(command="today", description="Today's schedule"),
        BotCommand(command="history", description="Hydration history"),
        BotCommand(command="profile", description="Show profile"),
        BotCommand(command="setup", description="Set a new goal"),
        BotCommand(command="reset", description="Delete all data"),
        BotCommand(command="help", description="Help"),
    ]
    await bot.set_my_commands(commands_list)


async def main() -> None:
    if settings.database_url.startswith("sqlite") and "/./storage/" in settings.database_url:
        Path("storage").mkdir(exist_ok=True)
    await init_db()
    bot = Bot(
        token=settings.telegram_token.get_secret_value(),
        default=DefaultBotProperties(parse_mode="HTML"),
    )
    await setup_bot_commands(bot)
    reminder_scheduler = ReminderScheduler(bot)
    dp = Dispatcher(reminder_scheduler=reminder_scheduler)
    dp.include_router(onboarding.router)
    dp.include_router(reminders.router)
    dp.include_router(commands.router)
    reminder_scheduler.start()
    try:
        await dp.start_polling(bot)
    finally:
        reminder_scheduler.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
