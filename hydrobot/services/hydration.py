from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Collection, List, Optional

from hydrobot.config import Settings, settings
from hydrobot.errors import NotEligible, NotEligibleReason
from hydrobot.models import DrinkingWindow, EligibilityPolicy, ServingStatus

MIN_WINDOW = timedelta(hours=1)


@dataclass(slots=True, frozen=True)
class SchedulePolicy:
    window: DrinkingWindow = DrinkingWindow.PRE_BED_CUTOFF
    eligibility: EligibilityPolicy = EligibilityPolicy.SEQUENTIAL
    grace: timedelta = timedelta(hours=2)
    pre_bed_cutoff: timedelta = timedelta(hours=2)
    serving_count: int = 8

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "SchedulePolicy":
        source = source or settings
        return cls(
            window=source.drinking_window,
            eligibility=source.eligibility_policy,
            grace=timedelta(minutes=source.grace_window_minutes),
            pre_bed_cutoff=timedelta(minutes=source.pre_bed_cutoff_minutes),
            serving_count=source.serving_count,
        )


@dataclass(slots=True, frozen=True)
class ServingSlot:
    index: int
    target_time: datetime
    size_ml: int


@dataclass(slots=True, frozen=True)
class ServingState:
    slot: ServingSlot
    status: ServingStatus
    closes_at: datetime


def format_time(value: datetime | time) -> str:
    return value.strftime("%H:%M")


def resolve_day_bounds(
    day: date,
    wake_time: time,
    bed_time: time,
    tz: Optional[tzinfo] = None,
) -> tuple[datetime, datetime]:
    wake = datetime.combine(day, wake_time.replace(second=0, microsecond=0), tzinfo=tz)
    bed = datetime.combine(day, bed_time.replace(second=0, microsecond=0), tzinfo=tz)
    if bed <= wake:
        bed += timedelta(days=1)
    return wake, bed


def drinking_window(
    day: date,
    wake_time: time,
    bed_time: time,
    policy: SchedulePolicy,
    tz: Optional[tzinfo] = None,
) -> tuple[datetime, timedelta]:
    wake, bed = resolve_day_bounds(day, wake_time, bed_time, tz)
    last_drink = bed
    if policy.window == DrinkingWindow.PRE_BED_CUTOFF:
        last_drink = bed - policy.pre_bed_cutoff
    duration = last_drink - wake
    if duration <= timedelta(0):
        duration = MIN_WINDOW
    return wake, duration


def build_serving_times(
    day: date,
    wake_time: time,
    bed_time: time,
    policy: SchedulePolicy,
    tz: Optional[tzinfo] = None,
) -> List[datetime]:
    start, duration = drinking_window(day, wake_time, bed_time, policy, tz)
    interval = duration / policy.serving_count
    # Каждая порция стоит в середине своего интервала
    return [start + interval * idx + interval / 2 for idx in range(policy.serving_count)]


def schedule_day_end(
    day: date,
    wake_time: time,
    bed_time: time,
    policy: SchedulePolicy,
    tz: Optional[tzinfo] = None,
    last_target: Optional[datetime] = None,
) -> datetime:
    """Конец суток расписания: полночь, а при ночном графике время отхода ко сну."""
    if last_target is None:
        last_target = build_serving_times(day, wake_time, bed_time, policy, tz)[-1]
    _, bed = resolve_day_bounds(day, wake_time, bed_time, tz)
    midnight = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=tz)
    return max(midnight, bed, last_target)


def active_schedule_day(
    now: datetime,
    wake_time: time,
    bed_time: time,
    policy: SchedulePolicy,
) -> date:
    """
    Календарный день, к которому относится момент now.
    Если вчерашнее расписание ещё не закончилось (отбой после полуночи),
    день остаётся вчерашним.
    """
    previous = now.date() - timedelta(days=1)
    if now < schedule_day_end(previous, wake_time, bed_time, policy, now.tzinfo):
        return previous
    return now.date()


@dataclass(slots=True)
class ServingSchedule:
    day: date
    slots: List[ServingSlot]
    day_end: datetime
    policy: SchedulePolicy

    @classmethod
    def build(
        cls,
        day: date,
        wake_time: time,
        bed_time: time,
        serving_size_ml: int,
        policy: SchedulePolicy,
        tz: Optional[tzinfo] = None,
    ) -> "ServingSchedule":
        times = build_serving_times(day, wake_time, bed_time, policy, tz)
        slots = [ServingSlot(index=idx, target_time=t, size_ml=serving_size_ml) for idx, t in enumerate(times)]
        day_end = schedule_day_end(day, wake_time, bed_time, policy, tz, last_target=slots[-1].target_time)
        return cls(day=day, slots=slots, day_end=day_end, policy=policy)

    def closes_at(self, index: int) -> datetime:
        slot = self.slots[index]
        if self.policy.eligibility == EligibilityPolicy.SEQUENTIAL:
            return slot.target_time + self.policy.grace
        if index + 1 < len(self.slots):
            return self.slots[index + 1].target_time
        return self.day_end

    def _expired(self, index: int, now: datetime) -> bool:
        closes = self.closes_at(index)
        if self.policy.eligibility == EligibilityPolicy.SEQUENTIAL:
            return now > closes
        return now >= closes

    def _predecessors_done(self, index: int, completed: Collection[int]) -> bool:
        if self.policy.eligibility != EligibilityPolicy.SEQUENTIAL:
            return True
        return all(idx in completed for idx in range(index))

    def status(self, index: int, completed: Collection[int], now: datetime) -> ServingStatus:
        if index in completed:
            return ServingStatus.COMPLETED
        if self._expired(index, now):
            return ServingStatus.MISSED
        if now >= self.slots[index].target_time and self._predecessors_done(index, completed):
            return ServingStatus.ELIGIBLE
        return ServingStatus.PENDING

    def states(self, completed: Collection[int], now: datetime) -> List[ServingState]:
        return [
            ServingState(slot=slot, status=self.status(slot.index, completed, now), closes_at=self.closes_at(slot.index))
            for slot in self.slots
        ]

    def ensure_can_complete(self, index: int, completed: Collection[int], now: datetime) -> ServingSlot:
        if not 0 <= index < len(self.slots):
            raise NotEligible(NotEligibleReason.INVALID_INDEX, f"There is no serving #{index + 1} today.")
        slot = self.slots[index]
        if index in completed:
            raise NotEligible(NotEligibleReason.ALREADY_COMPLETED, "You've already logged this serving!")
        if self._expired(index, now):
            raise NotEligible(
                NotEligibleReason.WINDOW_EXPIRED,
                f"The window for serving {index + 1} closed at {format_time(self.closes_at(index))}.",
            )
        if now < slot.target_time:
            raise NotEligible(
                NotEligibleReason.TOO_EARLY,
                f"Please wait until {format_time(slot.target_time)} to log this serving.",
            )
        if not self._predecessors_done(index, completed):
            first_open = next(idx for idx in range(index) if idx not in completed)
            raise NotEligible(
                NotEligibleReason.OUT_OF_ORDER,
                f"Please log serving {first_open + 1} first.",
            )
        return slot
