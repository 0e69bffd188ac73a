from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Protocol

from hydrobot.services.hydration import ServingSlot


logger = logging.getLogger(__name__)

REMINDER_TITLE = "Hydration Reminder"


class Notifier(Protocol):
    def schedule_at(self, when: datetime, title: str, body: str) -> None: ...

    def cancel_all(self) -> None: ...


def reminder_body(size_ml: int) -> str:
    return f"Time to drink your {size_ml} ml of water!"


def schedule_reminders(notifier: Notifier, slots: Iterable[ServingSlot], now: datetime) -> int:
    """
    Перепланирует уведомления на оставшиеся порции дня.
    Ошибки уведомлений только логируются: повторных попыток нет.
    """
    scheduled = 0
    try:
        notifier.cancel_all()
        for slot in slots:
            if slot.target_time <= now:
                continue
            notifier.schedule_at(slot.target_time, REMINDER_TITLE, reminder_body(slot.size_ml))
            scheduled += 1
    except Exception as e:
        logger.error(f"Failed to schedule hydration reminders: {e}", exc_info=True)
    logger.debug(f"Scheduled {scheduled} hydration reminders after {now}")
    return scheduled


def cancel_reminders(notifier: Notifier) -> None:
    try:
        notifier.cancel_all()
    except Exception as e:
        logger.error(f"Failed to cancel hydration reminders: {e}", exc_info=True)
