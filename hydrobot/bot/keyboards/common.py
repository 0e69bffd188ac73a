from __future__ import annotations

from typing import Iterable, Sequence

from aiogram.types import InlineKeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder, ReplyKeyboardBuilder

from hydrobot.models import HistoryEntry, ServingStatus
from hydrobot.services.history import clamp_page, history_page, page_count
from hydrobot.services.hydration import ServingState, format_time


STATUS_MARKERS = {
    ServingStatus.COMPLETED: "✅",
    ServingStatus.ELIGIBLE: "💧",
    ServingStatus.PENDING: "⏳",
    ServingStatus.MISSED: "❌",
}


def main_menu() -> ReplyKeyboardBuilder:
    builder = ReplyKeyboardBuilder()
    builder.button(text="Today")
    builder.button(text="History")
    builder.button(text="Profile")
    builder.adjust(2, 1)
    return builder


def reminder_keyboard() -> InlineKeyboardBuilder:
    builder = InlineKeyboardBuilder()
    builder.button(text="Show today's schedule", callback_data="servings:show")
    builder.adjust(1)
    return builder


def servings_keyboard(states: Iterable[ServingState]) -> InlineKeyboardBuilder:
    builder = InlineKeyboardBuilder()
    for state in states:
        slot = state.slot
        marker = STATUS_MARKERS[state.status]
        builder.button(
            text=f"{marker} {slot.index + 1}. {format_time(slot.target_time)} · {slot.size_ml} ml",
            callback_data=f"servings:log:{slot.index}",
        )
    builder.button(text="Reset day 🔄", callback_data="servings:reset_day")
    builder.adjust(2)
    return builder


def history_keyboard(entries: Sequence[HistoryEntry], page: int = 0) -> InlineKeyboardBuilder:
    builder = InlineKeyboardBuilder()
    page = clamp_page(len(entries), page)
    for entry in history_page(entries, page):
        builder.button(
            text=f"{entry.date} · {int(entry.completion_percentage)}%",
            callback_data=f"history:{entry.date}",
        )
    builder.adjust(1)

    navigation = []
    if page > 0:
        navigation.append(InlineKeyboardButton(text="◀ Newer", callback_data=f"history_page:{page - 1}"))
    if page + 1 < page_count(len(entries)):
        navigation.append(InlineKeyboardButton(text="Older ▶", callback_data=f"history_page:{page + 1}"))
    if navigation:
        builder.row(*navigation)
    return builder


def reset_keyboard() -> InlineKeyboardBuilder:
    builder = InlineKeyboardBuilder()
    builder.button(text="Reset", callback_data="reset:confirm")
    builder.button(text="Cancel", callback_data="reset:cancel")
    builder.adjust(2)
    return builder
