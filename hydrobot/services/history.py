from __future__ import annotations

from datetime import date
from typing import List, Sequence

from hydrobot.models import DailyProgress, History, HistoryEntry
from hydrobot.services.goal import DailyGoal
from hydrobot.services.hydration import format_time


FEEDBACK_THRESHOLDS = (
    (100, "🎉 Excellent! You've reached your hydration goal!"),
    (80, "👏 Great job! Almost there!"),
    (60, "👍 Good progress, keep it up!"),
    (40, "💪 You're making progress!"),
)
DEFAULT_FEEDBACK = "💧 Remember to stay hydrated throughout the day!"

# Telegram: не больше 4096 символов в сообщении и 100 кнопок в клавиатуре
HISTORY_PAGE_SIZE = 30


def completion_percentage(intake_ml: int, goal_ml: int) -> float:
    if goal_ml <= 0:
        return 0.0
    return intake_ml / goal_ml * 100


def feedback_for(percentage: float) -> str:
    for threshold, text in FEEDBACK_THRESHOLDS:
        if percentage >= threshold:
            return text
    return DEFAULT_FEEDBACK


def build_history_entry(progress: DailyProgress, goal: DailyGoal) -> HistoryEntry:
    intake = progress.completed_count * goal.serving_size_ml
    percentage = completion_percentage(intake, goal.total_ml)
    return HistoryEntry(
        date=progress.date,
        goal_ml=goal.total_ml,
        intake_ml=intake,
        servings_completed=progress.completed_count,
        completion_percentage=percentage,
        feedback=feedback_for(percentage),
        times=[format_time(item.completed_at) for item in progress.completions],
    )


def with_entry(history: History, entry: HistoryEntry) -> History:
    """Возвращает копию истории с записанной (или перезаписанной) датой."""
    entries = dict(history.entries)
    entries[entry.date] = entry
    return History(entries=entries)


def sorted_entries(history: History) -> List[HistoryEntry]:
    return sorted(history.entries.values(), key=lambda entry: entry.date, reverse=True)


def _format_date(value: str) -> str:
    try:
        return date.fromisoformat(value).strftime("%b %d, %Y")
    except ValueError:
        return value


def format_history_detail(entry: HistoryEntry, serving_count: int) -> str:
    times = ", ".join(entry.times) if entry.times else "No records"
    return (
        f"📅 {_format_date(entry.date)}\n\n"
        f"💧 Goal: {entry.goal_ml} ml\n"
        f"✅ Consumed: {entry.intake_ml} ml ({int(entry.completion_percentage)}%)\n"
        f"🥛 Servings: {entry.servings_completed}/{serving_count}\n\n"
        f"🕒 Times: {times}\n\n"
        f"{entry.feedback}"
    )


def page_count(total: int, page_size: int = HISTORY_PAGE_SIZE) -> int:
    return max(1, (total + page_size - 1) // page_size)


def clamp_page(total: int, page: int, page_size: int = HISTORY_PAGE_SIZE) -> int:
    return min(max(page, 0), page_count(total, page_size) - 1)


def history_page(entries: Sequence[HistoryEntry], page: int = 0, page_size: int = HISTORY_PAGE_SIZE) -> List[HistoryEntry]:
    """Одна страница истории: page=0 содержит самые свежие записи."""
    start = clamp_page(len(entries), page, page_size) * page_size
    return list(entries[start:start + page_size])


def format_history_list(entries: Sequence[HistoryEntry], page: int = 0, page_size: int = HISTORY_PAGE_SIZE) -> str:
    if not entries:
        return "No history yet. Start tracking to see your progress!"
    lines = [
        f"{_format_date(entry.date)}: {entry.intake_ml}/{entry.goal_ml} ml "
        f"({int(entry.completion_percentage)}%) • {entry.servings_completed} servings"
        for entry in history_page(entries, page, page_size)
    ]
    header = "Hydration History 📊"
    pages = page_count(len(entries), page_size)
    if pages > 1:
        header += f" (page {clamp_page(len(entries), page, page_size) + 1}/{pages})"
    return header + "\n" + "\n".join(lines)
