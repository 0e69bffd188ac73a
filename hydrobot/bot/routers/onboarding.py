from __future__ import annotations

from datetime import datetime, time

from aiogram import F, Router
from aiogram.filters import Command, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import Message

from hydrobot.bot.keyboards.common import main_menu
from hydrobot.errors import ValidationError
from hydrobot.models import UserProfile
from hydrobot.scheduler import ReminderScheduler
from hydrobot.services.goal import goal_message
from hydrobot.services.timezone import detect_timezone_from_user


router = Router(name="onboarding")


class OnboardingStates(StatesGroup):
    name = State()
    physical = State()
    sleep = State()


def _parse_time(value: str) -> time:
    return datetime.strptime(value.strip(), "%H:%M").time()


@router.message(CommandStart())
async def start_onboarding(message: Message, state: FSMContext, reminder_scheduler: ReminderScheduler) -> None:
    tracker = await reminder_scheduler.for_user(message.from_user.id)
    if tracker.has_profile:
        goal = tracker.goal
        await message.answer(
            f"Welcome back, {tracker.profile.name}! 👋\n"
            f"Daily goal: {goal.total_ml} ml, {goal.serving_size_ml} ml per serving.\n"
            "Send /today to see your schedule or /setup to set a new goal.",
            reply_markup=main_menu().as_markup(resize_keyboard=True),
        )
        await state.clear()
        return
    await _begin(message, state)


@router.message(Command("setup"))
async def restart_onboarding(message: Message, state: FSMContext) -> None:
    await _begin(message, state)


async def _begin(message: Message, state: FSMContext) -> None:
    await state.clear()
    await state.update_data(timezone=detect_timezone_from_user(message.from_user.language_code))
    await message.answer("Let's set up your hydration plan! What's your name?")
    await state.set_state(OnboardingStates.name)


@router.message(OnboardingStates.name, F.text)
async def set_name(message: Message, state: FSMContext) -> None:
    name = message.text.strip()
    if not name:
        await message.answer("Please enter your name.")
        return
    await state.update_data(name=name)
    await message.answer("Your height (cm) and weight (kg), separated by a space (example: 178 74).")
    await state.set_state(OnboardingStates.physical)


@router.message(OnboardingStates.physical, F.text)
async def set_physical(message: Message, state: FSMContext) -> None:
    parts = message.text.replace(",", ".").split()
    try:
        height = float(parts[0])
        weight = float(parts[1])
    except (ValueError, IndexError):
        await message.answer("Format: 178 74")
        return
    await state.update_data(height_cm=height, weight_kg=weight)
    await message.answer("When do you wake up and go to bed? Format HH:MM-HH:MM, for example 07:00-23:00.")
    await state.set_state(OnboardingStates.sleep)


@router.message(OnboardingStates.sleep, F.text)
async def set_sleep(message: Message, state: FSMContext, reminder_scheduler: ReminderScheduler) -> None:
    try:
        wake_text, bed_text = message.text.split("-")
        wake_time = _parse_time(wake_text)
        bed_time = _parse_time(bed_text)
    except ValueError:
        await message.answer("Please use the format 07:00-23:00.")
        return

    data = await state.get_data()
    profile = UserProfile(
        name=data["name"],
        weight_kg=data["weight_kg"],
        height_cm=data.get("height_cm"),
        wake_time=wake_time,
        bed_time=bed_time,
        timezone=data.get("timezone"),
    )
    tracker = await reminder_scheduler.for_user(message.from_user.id)
    try:
        goal = await tracker.submit_profile(profile)
    except ValidationError as e:
        await message.answer(f"{e.message}\nLet's try again: your height and weight (example: 178 74).")
        await state.set_state(OnboardingStates.physical)
        return
    if goal is None:
        await message.answer("Could not save your profile. Please try again later.")
        return

    await state.clear()
    await message.answer(
        f"Hello, {profile.name}! 👋\n{goal_message(goal)}\nSend /today to see your schedule.",
        reply_markup=main_menu().as_markup(resize_keyboard=True),
    )
