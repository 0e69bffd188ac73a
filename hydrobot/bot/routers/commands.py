from __future__ import annotations

from typing import List

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import Message

from hydrobot.bot.keyboards.common import STATUS_MARKERS, history_keyboard, main_menu, reset_keyboard, servings_keyboard
from hydrobot.scheduler import ReminderScheduler
from hydrobot.services.history import format_history_list
from hydrobot.services.hydration import ServingState, format_time
from hydrobot.services.hydration_scheduler import DailySummary, HydrationScheduler

router = Router(name="commands")

NO_PROFILE_TEXT = "Profile not found. Send /start to set up your hydration plan."


def render_today(summary: DailySummary, states: List[ServingState]) -> str:
    goal = summary.goal
    lines = [
        "Today's Progress",
        f"{summary.intake_ml} ml of {goal.total_ml} ml ({int(summary.percentage)}%)",
        f"{summary.completed_count}/{goal.serving_count} servings",
        summary.feedback,
        "",
        "Today's Schedule",
    ]
    for state in states:
        slot = state.slot
        lines.append(
            f"{STATUS_MARKERS[state.status]} Serving {slot.index + 1} · {format_time(slot.target_time)} · "
            f"{slot.size_ml} ml · {state.status.value}"
        )
    return "\n".join(lines)


async def answer_today(message: Message, tracker: HydrationScheduler) -> None:
    summary = await tracker.summary()
    if summary is None:
        await message.answer(NO_PROFILE_TEXT)
        return
    states = await tracker.serving_states()
    await message.answer(
        render_today(summary, states),
        reply_markup=servings_keyboard(states).as_markup(),
    )


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(
        "I remind you to drink water eight times a day.\n"
        "/start — set up or show your plan\n"
        "/setup — set a new goal\n"
        "/today — today's schedule and progress\n"
        "/history — past days\n"
        "/profile — your current data\n"
        "/reset — delete all data",
        reply_markup=main_menu().as_markup(resize_keyboard=True),
    )


@router.message(Command("today"))
@router.message(F.text == "Today")
async def cmd_today(message: Message, reminder_scheduler: ReminderScheduler) -> None:
    tracker = await reminder_scheduler.for_user(message.from_user.id)
    await answer_today(message, tracker)


@router.message(Command("history"))
@router.message(F.text == "History")
async def cmd_history(message: Message, reminder_scheduler: ReminderScheduler) -> None:
    tracker = await reminder_scheduler.for_user(message.from_user.id)
    entries = await tracker.history_entries()
    await message.answer(
        format_history_list(entries),
        reply_markup=history_keyboard(entries).as_markup() if entries else None,
    )


@router.message(Command("profile"))
@router.message(F.text == "Profile")
async def cmd_profile(message: Message, reminder_scheduler: ReminderScheduler) -> None:
    tracker = await reminder_scheduler.for_user(message.from_user.id)
    if not tracker.has_profile:
        await message.answer(NO_PROFILE_TEXT)
        return
    profile = tracker.profile
    goal = tracker.goal
    height = f"{profile.height_cm:g} cm" if profile.height_cm else "Not set"
    await message.answer(
        f"Name: {profile.name}\n"
        f"Height: {height}\n"
        f"Weight: {profile.weight_kg:g} kg\n"
        f"Wake time: {format_time(profile.wake_time)}\n"
        f"Bedtime: {format_time(profile.bed_time)}\n"
        f"Timezone: {profile.timezone or 'default'}\n"
        f"Daily goal: {goal.total_ml} ml\n"
        f"Per serving: {goal.serving_size_ml} ml"
    )


@router.message(Command("reset"))
async def cmd_reset(message: Message) -> None:
    await message.answer(
        "Reset all data?\nThis will permanently delete all your hydration data and settings.",
        reply_markup=reset_keyboard().as_markup(),
    )
