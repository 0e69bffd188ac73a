from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import List, Optional
from zoneinfo import ZoneInfo

from hydrobot.config import settings
from hydrobot.errors import NotEligible, NotEligibleReason, PersistenceError, ValidationError
from hydrobot.models import DailyProgress, History, HistoryEntry, ServingCompletion, UserProfile
from hydrobot.services.clock import Clock, SystemClock
from hydrobot.services.goal import DailyGoal, goal_for_profile
from hydrobot.services.history import build_history_entry, completion_percentage, feedback_for, sorted_entries, with_entry
from hydrobot.services.hydration import SchedulePolicy, ServingSchedule, ServingSlot, ServingState, active_schedule_day
from hydrobot.services.notifications import Notifier, cancel_reminders, schedule_reminders
from hydrobot.storage import HydrationRepository, KeyValueStore


logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CompletionResult:
    slot: ServingSlot
    completed_count: int
    remaining: int
    goal_reached: bool
    message: str


@dataclass(slots=True, frozen=True)
class DailySummary:
    date: str
    goal: DailyGoal
    completed_count: int
    intake_ml: int
    percentage: float
    feedback: str


def completion_message(remaining: int) -> str:
    if remaining == 0:
        return "🎉 Congratulations! You've completed your daily hydration goal!"
    return f"Great! {remaining} more serving{'' if remaining == 1 else 's'} to go!"


class HydrationScheduler:
    """
    Расписание воды одного пользователя: цель, порции на день, отметки о выпитом и история.

    Каждый публичный метод один раз читает текущее время и перед работой проверяет,
    не наступил ли новый день. При смене дня прогресс прошлого дня сохраняется
    в историю, а расписание строится заново.
    Ошибки хранилища логируются, состояние в памяти при этом не меняется.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Clock] = None,
        notifier: Optional[Notifier] = None,
        policy: Optional[SchedulePolicy] = None,
    ) -> None:
        self.repository = HydrationRepository(store)
        self.clock = clock or SystemClock()
        self.notifier = notifier
        self.policy = policy or SchedulePolicy.from_settings()
        self.profile: Optional[UserProfile] = None
        self.goal: Optional[DailyGoal] = None
        self.progress = DailyProgress()
        self.history = History()
        self.schedule: Optional[ServingSchedule] = None

    @property
    def has_profile(self) -> bool:
        return self.profile is not None and self.goal is not None

    def _now(self, profile: Optional[UserProfile] = None) -> datetime:
        now = self.clock.now()
        if now.tzinfo is None:
            return now
        profile = profile or self.profile
        tz_name = (profile.timezone if profile else None) or settings.timezone
        return now.astimezone(ZoneInfo(tz_name))

    async def load(self) -> None:
        try:
            profile = await self.repository.load_profile()
        except PersistenceError as e:
            logger.error(f"Failed to load profile: {e}", exc_info=True)
        else:
            if profile is not None:
                try:
                    self.goal = goal_for_profile(profile)
                    self.profile = profile
                except ValidationError as e:
                    logger.warning(f"Stored profile is no longer valid: {e.message}")

        try:
            progress = await self.repository.load_progress()
        except PersistenceError as e:
            logger.error(f"Failed to load daily progress: {e}", exc_info=True)
        else:
            if progress is not None:
                self.progress = progress

        try:
            self.history = await self.repository.load_history()
        except PersistenceError as e:
            logger.error(f"Failed to load hydration history: {e}", exc_info=True)

    def _active_day(self, now: datetime, profile: Optional[UserProfile] = None) -> date:
        profile = profile or self.profile
        day = active_schedule_day(now, profile.wake_time, profile.bed_time, self.policy)
        if self.progress.date and self.progress.date > day.isoformat():
            # График сменили после полуночи, уже начатый день назад не откатываем
            return date.fromisoformat(self.progress.date)
        return day

    def _build_schedule(self, day: date, tz: Optional[tzinfo]) -> ServingSchedule:
        return ServingSchedule.build(
            day,
            self.profile.wake_time,
            self.profile.bed_time,
            self.goal.serving_size_ml,
            self.policy,
            tz,
        )

    def _reschedule_reminders(self, now: datetime) -> None:
        if self.notifier is not None and self.schedule is not None:
            schedule_reminders(self.notifier, self.schedule.slots, now)

    async def _save_daily_log(self, progress: DailyProgress) -> bool:
        history = with_entry(self.history, build_history_entry(progress, self.goal))
        try:
            await self.repository.save_history(history)
        except PersistenceError as e:
            logger.warning(f"Daily log for {progress.date} is stale, will retry: {e}", exc_info=True)
            return False
        self.history = history
        return True

    def _daily_log_stale(self) -> bool:
        if not self.progress.completions:
            return False
        return self.history.entries.get(self.progress.date) != build_history_entry(self.progress, self.goal)

    async def _ensure_today(self, now: datetime) -> bool:
        if not self.has_profile:
            return False
        day = self._active_day(now)
        key = day.isoformat()
        if self.progress.date == key:
            if self.schedule is None or self.schedule.day != day:
                self.schedule = self._build_schedule(day, now.tzinfo)
            if self._daily_log_stale():
                await self._save_daily_log(self.progress)
            return False

        fresh = DailyProgress(date=key)
        history = self.history
        if self.progress.date:
            history = with_entry(self.history, build_history_entry(self.progress, self.goal))
        try:
            if history is not self.history:
                await self.repository.save_history(history)
            await self.repository.save_progress(fresh)
        except PersistenceError as e:
            logger.error(f"Failed to roll over to {key}: {e}", exc_info=True)
            return False

        if self.progress.date:
            logger.info(
                f"Day rollover {self.progress.date} -> {key}: "
                f"{self.progress.completed_count}/{self.goal.serving_count} servings flushed to history"
            )
        self.history = history
        self.progress = fresh
        self.schedule = self._build_schedule(day, now.tzinfo)
        self._reschedule_reminders(now)
        return True

    async def ensure_today(self) -> bool:
        return await self._ensure_today(self._now())

    async def reschedule_reminders(self) -> None:
        now = self._now()
        if not await self._ensure_today(now):
            self._reschedule_reminders(now)

    async def submit_profile(self, profile: UserProfile) -> Optional[DailyGoal]:
        now = self._now(profile)
        goal = goal_for_profile(profile, now.date())
        await self._ensure_today(now)

        day = self._active_day(now, profile)
        progress = DailyProgress(
            date=day.isoformat(),
            goal_reached=self.progress.goal_reached and self.progress.date == day.isoformat(),
        )
        try:
            await self.repository.save_profile(profile)
            await self.repository.save_progress(progress)
        except PersistenceError as e:
            logger.error(f"Failed to save profile: {e}", exc_info=True)
            return None

        self.profile = profile
        self.goal = goal
        self.progress = progress
        self.schedule = self._build_schedule(day, now.tzinfo)
        self._reschedule_reminders(now)
        logger.info(f"Hydration goal set: {goal.total_ml} ml in {goal.serving_count} servings of {goal.serving_size_ml} ml")
        return goal

    async def serving_states(self) -> List[ServingState]:
        now = self._now()
        await self._ensure_today(now)
        if self.schedule is None:
            return []
        return self.schedule.states(self.progress.completed_indices, now)

    async def complete_serving(self, index: int) -> Optional[CompletionResult]:
        now = self._now()
        if not self.has_profile:
            raise NotEligible(NotEligibleReason.NO_PROFILE, "Please set up your hydration profile first.")
        await self._ensure_today(now)
        if self.schedule is None or self.progress.date != self._active_day(now).isoformat():
            # Смена дня не сохранилась, отмечать порцию некуда
            return None
        slot = self.schedule.ensure_can_complete(index, self.progress.completed_indices, now)

        completions = [*self.progress.completions, ServingCompletion(index=index, completed_at=now)]
        remaining = self.goal.serving_count - len(completions)
        goal_reached = remaining == 0 and not self.progress.goal_reached
        progress = DailyProgress(
            date=self.progress.date,
            completions=completions,
            goal_reached=self.progress.goal_reached or goal_reached,
        )
        try:
            await self.repository.save_progress(progress)
        except PersistenceError as e:
            logger.error(f"Failed to save serving {index}: {e}", exc_info=True)
            return None
        self.progress = progress
        await self._save_daily_log(progress)

        if goal_reached:
            logger.info(f"Daily hydration goal reached on {progress.date}")
        return CompletionResult(
            slot=slot,
            completed_count=progress.completed_count,
            remaining=remaining,
            goal_reached=goal_reached,
            message=completion_message(remaining),
        )

    async def summary(self) -> Optional[DailySummary]:
        now = self._now()
        await self._ensure_today(now)
        if not self.has_profile:
            return None
        intake = self.progress.completed_count * self.goal.serving_size_ml
        percentage = completion_percentage(intake, self.goal.total_ml)
        return DailySummary(
            date=self.progress.date,
            goal=self.goal,
            completed_count=self.progress.completed_count,
            intake_ml=intake,
            percentage=percentage,
            feedback=feedback_for(percentage),
        )

    async def history_entries(self) -> List[HistoryEntry]:
        await self._ensure_today(self._now())
        return sorted_entries(self.history)

    async def history_entry(self, day: str) -> Optional[HistoryEntry]:
        await self._ensure_today(self._now())
        return self.history.entries.get(day)

    async def reset_day(self) -> bool:
        now = self._now()
        if not self.has_profile:
            return False
        await self._ensure_today(now)
        day = self._active_day(now)
        # Отметка о достигнутой цели переживает сброс дня
        progress = DailyProgress(
            date=day.isoformat(),
            goal_reached=self.progress.goal_reached and self.progress.date == day.isoformat(),
        )
        try:
            await self.repository.save_progress(progress)
        except PersistenceError as e:
            logger.error(f"Failed to reset daily progress: {e}", exc_info=True)
            return False
        self.progress = progress
        self.schedule = self._build_schedule(day, now.tzinfo)
        self._reschedule_reminders(now)
        return True

    async def reset(self) -> bool:
        try:
            await self.repository.clear()
        except PersistenceError as e:
            logger.error(f"Failed to reset hydration data: {e}", exc_info=True)
            return False
        self.profile = None
        self.goal = None
        self.progress = DailyProgress()
        self.history = History()
        self.schedule = None
        if self.notifier is not None:
            cancel_reminders(self.notifier)
        logger.info("Hydration data reset")
        return True
