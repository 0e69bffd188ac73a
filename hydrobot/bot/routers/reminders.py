from __future__ import annotations

from aiogram import F, Router
from aiogram.types import CallbackQuery

from hydrobot.bot.keyboards.common import history_keyboard, servings_keyboard
from hydrobot.bot.routers.commands import NO_PROFILE_TEXT, answer_today, render_today
from hydrobot.errors import NotEligible
from hydrobot.scheduler import ReminderScheduler
from hydrobot.services.history import format_history_detail, format_history_list


router = Router(name="reminders")


@router.callback_query(F.data == "servings:show")
async def handle_show(callback: CallbackQuery, reminder_scheduler: ReminderScheduler) -> None:
    tracker = await reminder_scheduler.for_user(callback.from_user.id)
    await answer_today(callback.message, tracker)
    await callback.answer()


@router.callback_query(F.data.startswith("servings:log:"))
async def handle_log_serving(callback: CallbackQuery, reminder_scheduler: ReminderScheduler) -> None:
    index = int(callback.data.split(":")[-1])
    tracker = await reminder_scheduler.for_user(callback.from_user.id)
    try:
        result = await tracker.complete_serving(index)
    except NotEligible as e:
        await callback.answer(e.message, show_alert=True)
        return
    if result is None:
        await callback.answer("Could not save this serving. Please try again.", show_alert=True)
        return

    summary = await tracker.summary()
    states = await tracker.serving_states()
    await callback.message.edit_text(
        render_today(summary, states),
        reply_markup=servings_keyboard(states).as_markup(),
    )
    await callback.answer(result.message, show_alert=result.goal_reached)


@router.callback_query(F.data == "servings:reset_day")
async def handle_reset_day(callback: CallbackQuery, reminder_scheduler: ReminderScheduler) -> None:
    tracker = await reminder_scheduler.for_user(callback.from_user.id)
    if not await tracker.reset_day():
        await callback.answer(NO_PROFILE_TEXT if not tracker.has_profile else "Could not reset the day.", show_alert=True)
        return
    summary = await tracker.summary()
    states = await tracker.serving_states()
    await callback.message.edit_text(
        render_today(summary, states),
        reply_markup=servings_keyboard(states).as_markup(),
    )
    await callback.answer("Today's progress has been reset.")


@router.callback_query(F.data.startswith("history:"))
async def handle_history_detail(callback: CallbackQuery, reminder_scheduler: ReminderScheduler) -> None:
    day = callback.data.split(":", 1)[1]
    tracker = await reminder_scheduler.for_user(callback.from_user.id)
    entry = await tracker.history_entry(day)
    if entry is None:
        await callback.answer("No record for this day.", show_alert=True)
        return
    await callback.message.answer(format_history_detail(entry, tracker.policy.serving_count))
    await callback.answer()


@router.callback_query(F.data.startswith("history_page:"))
async def handle_history_page(callback: CallbackQuery, reminder_scheduler: ReminderScheduler) -> None:
    page = int(callback.data.split(":", 1)[1])
    tracker = await reminder_scheduler.for_user(callback.from_user.id)
    entries = await tracker.history_entries()
    await callback.message.edit_text(
        format_history_list(entries, page),
        reply_markup=history_keyboard(entries, page).as_markup() if entries else None,
    )
    await callback.answer()


@router.callback_query(F.data.startswith("reset:"))
async def handle_reset(callback: CallbackQuery, reminder_scheduler: ReminderScheduler) -> None:
    action = callback.data.split(":")[1]
    if action != "confirm":
        await callback.message.edit_text("Reset cancelled.")
        await callback.answer()
        return
    tracker = await reminder_scheduler.for_user(callback.from_user.id)
    if await tracker.reset():
        await callback.message.edit_text("All data deleted. Send /start to begin again.")
        await callback.answer()
    else:
        await callback.answer("Could not delete your data. Please try again.", show_alert=True)
