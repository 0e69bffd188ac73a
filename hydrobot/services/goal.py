from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from hydrobot.config import settings
from hydrobot.errors import ValidationError
from hydrobot.models import UserProfile


@dataclass(slots=True, frozen=True)
class DailyGoal:
    total_ml: int
    serving_size_ml: int
    serving_count: int


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def validate_profile(profile: UserProfile, today: date | None = None) -> None:
    if not profile.name or not profile.name.strip():
        raise ValidationError("Please enter your name.")

    weight = profile.weight_kg
    if weight is None or weight <= 0 or not settings.min_weight_kg <= weight <= settings.max_weight_kg:
        raise ValidationError(
            f"Please enter a valid weight between {int(settings.min_weight_kg)}-{int(settings.max_weight_kg)} kg."
        )

    height = profile.height_cm
    if height is not None and not settings.min_height_cm <= height <= settings.max_height_cm:
        raise ValidationError(
            f"Please enter a valid height between {int(settings.min_height_cm)}-{int(settings.max_height_cm)} cm."
        )

    if profile.date_of_birth and profile.date_of_birth > (today or date.today()):
        raise ValidationError("Date of birth cannot be in the future.")

    if profile.timezone:
        try:
            ZoneInfo(profile.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValidationError(f"Unknown timezone: {profile.timezone}")

    # Секунды в расчёте не участвуют, сравниваем только часы и минуты
    if (profile.wake_time.hour, profile.wake_time.minute) == (profile.bed_time.hour, profile.bed_time.minute):
        raise ValidationError("Wake time and bed time cannot be the same.")


def calculate_daily_goal(weight_kg: float, serving_count: int | None = None) -> DailyGoal:
    count = serving_count or settings.serving_count
    total = round_half_up(weight_kg * settings.ml_per_kg)
    serving = max(1, round_half_up(total / count))
    return DailyGoal(total_ml=total, serving_size_ml=serving, serving_count=count)


def goal_for_profile(profile: UserProfile, today: date | None = None) -> DailyGoal:
    validate_profile(profile, today)
    return calculate_daily_goal(profile.weight_kg)


def goal_message(goal: DailyGoal) -> str:
    return (
        f"🎉 Your daily hydration goal is {goal.total_ml} ml!\n"
        f"Drink {goal.serving_size_ml} ml every serving."
    )
