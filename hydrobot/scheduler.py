from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from hydrobot.bot.keyboards.common import reminder_keyboard
from hydrobot.config import settings
from hydrobot.errors import PersistenceError
from hydrobot.services.clock import Clock, SystemClock
from hydrobot.services.hydration_scheduler import HydrationScheduler
from hydrobot.storage import SQLKeyValueStore, list_namespaces


logger = logging.getLogger(__name__)

JOB_PREFIX = "hydration"


class TelegramNotifier:
    """Уведомления одного пользователя: одна DateTrigger-задача на каждую порцию."""

    def __init__(self, scheduler: AsyncIOScheduler, send, chat_id: int) -> None:
        self.scheduler = scheduler
        self.send = send
        self.chat_id = chat_id

    @property
    def prefix(self) -> str:
        return f"{JOB_PREFIX}:{self.chat_id}:"

    def schedule_at(self, when: datetime, title: str, body: str) -> None:
        job_id = f"{self.prefix}{when.isoformat()}"
        self.scheduler.add_job(
            self.send,
            trigger=DateTrigger(run_date=when),
            id=job_id,
            args=[self.chat_id, title, body],
            replace_existing=True,
            misfire_grace_time=300,
        )

    def cancel_all(self) -> None:
        for job in self.scheduler.get_jobs():
            if job.id.startswith(self.prefix):
                self.scheduler.remove_job(job.id)


class ReminderScheduler:
    def __init__(self, bot: Bot, session_factory=None, clock: Optional[Clock] = None) -> None:
        self.bot = bot
        self.session_factory = session_factory
        self.clock = clock or SystemClock()
        self.scheduler = AsyncIOScheduler(timezone=ZoneInfo(settings.timezone))
        # После рестарта задачи APScheduler теряются, их нужно восстановить
        self._restored: set[str] = set()

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.add_job(
                self._tick,
                trigger=IntervalTrigger(seconds=settings.scheduler_tick_seconds),
                id="hydration_tick",
                max_instances=1,
                misfire_grace_time=30,
            )
            self.scheduler.start()

    def notifier_for(self, chat_id: int) -> TelegramNotifier:
        return TelegramNotifier(self.scheduler, self._send, chat_id)

    async def for_user(self, chat_id: int) -> HydrationScheduler:
        tracker = HydrationScheduler(
            SQLKeyValueStore(str(chat_id), self.session_factory),
            clock=self.clock,
            notifier=self.notifier_for(chat_id),
        )
        await tracker.load()
        return tracker

    async def _tick(self) -> None:
        try:
            namespaces = await list_namespaces(session_factory=self.session_factory)
        except PersistenceError as e:
            logger.error(f"_tick: failed to list users: {e}", exc_info=True)
            return
        logger.debug(f"_tick: processing {len(namespaces)} users")
        for namespace in namespaces:
            try:
                tracker = await self.for_user(int(namespace))
                if namespace not in self._restored:
                    await tracker.reschedule_reminders()
                    self._restored.add(namespace)
                elif await tracker.ensure_today():
                    logger.info(f"_tick: user {namespace} rolled over to a new day")
            except Exception as e:
                logger.error(f"_tick: unexpected error for user {namespace}: {e}", exc_info=True)

    async def _send(self, chat_id: int, title: str, body: str) -> None:
        try:
            await self.bot.send_message(
                chat_id,
                f"<b>{title}</b>\n{body}",
                reply_markup=reminder_keyboard().as_markup(),
            )
        except TelegramAPIError as e:
            logger.error(f"Failed to send hydration reminder to {chat_id}: {e}", exc_info=True)

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
