from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pytest

from hydrobot.errors import NotEligible, NotEligibleReason
from hydrobot.models import DrinkingWindow, EligibilityPolicy, ServingStatus
from hydrobot.services.hydration import (
    SchedulePolicy,
    ServingSchedule,
    active_schedule_day,
    build_serving_times,
    schedule_day_end,
)

DAY = date(2026, 3, 2)
CUTOFF = SchedulePolicy(window=DrinkingWindow.PRE_BED_CUTOFF, eligibility=EligibilityPolicy.SEQUENTIAL)
FULL = SchedulePolicy(window=DrinkingWindow.FULL, eligibility=EligibilityPolicy.TIME_WINDOW)


def at(hour: int, minute: int = 0, second: int = 0, day: date = DAY) -> datetime:
    return datetime.combine(day, time(hour, minute, second))


def test_serving_times_with_pre_bed_cutoff():
    times = build_serving_times(DAY, time(7, 0), time(23, 0), CUTOFF)
    assert len(times) == 8
    # окно 07:00-21:00, интервал 105 минут, порция в середине интервала
    assert times[0] == at(7, 52, 30)
    assert times[1] == at(9, 37, 30)
    assert times[-1] == at(20, 7, 30)


def test_serving_times_with_full_window():
    times = build_serving_times(DAY, time(7, 0), time(23, 0), FULL)
    assert times == [at(8 + 2 * idx) for idx in range(8)]


@pytest.mark.parametrize(
    "wake, bed",
    [(time(7, 0), time(23, 0)), (time(22, 0), time(6, 0)), (time(6, 30), time(0, 15)), (time(9, 0), time(9, 1))],
)
@pytest.mark.parametrize("policy", [CUTOFF, FULL])
def test_serving_times_strictly_increasing_inside_window(wake, bed, policy):
    times = build_serving_times(DAY, wake, bed, policy)
    start = datetime.combine(DAY, wake)
    end = datetime.combine(DAY, bed)
    if end <= start:
        end += timedelta(days=1)
    assert all(a < b for a, b in zip(times, times[1:]))
    assert all(start <= t for t in times)
    if end - start > policy.pre_bed_cutoff or policy.window == DrinkingWindow.FULL:
        assert all(t <= end for t in times)


def test_degenerate_window_is_clamped_to_one_hour():
    # до сна всего час, окно с отсечкой 2 ч получается отрицательным
    times = build_serving_times(DAY, time(7, 0), time(8, 0), CUTOFF)
    assert times[0] == at(7, 3, 45)
    assert times[-1] - times[0] == timedelta(minutes=52, seconds=30)


def test_overnight_bedtime_moves_to_next_day():
    times = build_serving_times(DAY, time(22, 0), time(6, 0), FULL)
    assert times[0] == at(22, 30)
    assert times[-1] == at(5, 30, day=DAY + timedelta(days=1))


def _schedule(policy: SchedulePolicy) -> ServingSchedule:
    return ServingSchedule.build(DAY, time(7, 0), time(23, 0), 306, policy)


def test_sequential_statuses():
    schedule = _schedule(CUTOFF)
    assert schedule.status(0, set(), at(7, 0)) == ServingStatus.PENDING
    assert schedule.status(0, set(), at(8, 0)) == ServingStatus.ELIGIBLE
    assert schedule.status(0, {0}, at(8, 0)) == ServingStatus.COMPLETED
    # grace 2 часа после 07:52:30
    assert schedule.status(0, set(), at(9, 52, 30)) == ServingStatus.ELIGIBLE
    assert schedule.status(0, set(), at(9, 53)) == ServingStatus.MISSED
    # порция 2 ждёт порцию 1
    assert schedule.status(2, {0}, at(11, 30)) == ServingStatus.PENDING
    assert schedule.status(1, {0}, at(11, 30)) == ServingStatus.ELIGIBLE


def test_time_window_statuses():
    schedule = _schedule(FULL)
    assert schedule.status(0, set(), at(7, 59)) == ServingStatus.PENDING
    assert schedule.status(0, set(), at(8, 0)) == ServingStatus.ELIGIBLE
    assert schedule.status(0, set(), at(10, 0)) == ServingStatus.MISSED
    assert schedule.status(2, set(), at(12, 30)) == ServingStatus.ELIGIBLE
    assert schedule.status(7, set(), at(23, 59)) == ServingStatus.ELIGIBLE
    assert schedule.status(7, set(), at(0, 0, day=DAY + timedelta(days=1))) == ServingStatus.MISSED


@pytest.mark.parametrize("policy", [CUTOFF, FULL])
def test_each_slot_has_exactly_one_status(policy):
    schedule = _schedule(policy)
    completed = {0, 1}
    now = at(5, 0)
    while now < at(2, 0, day=DAY + timedelta(days=1)):
        states = schedule.states(completed, now)
        assert len(states) == 8
        assert [state.slot.index for state in states] == list(range(8))
        assert all(isinstance(state.status, ServingStatus) for state in states)
        assert sum(state.status == ServingStatus.ELIGIBLE for state in states) <= (
            1 if policy.eligibility == EligibilityPolicy.TIME_WINDOW else 8
        )
        now += timedelta(minutes=17)


@pytest.mark.parametrize(
    "index, completed, now, reason",
    [
        (8, set(), at(8, 0), NotEligibleReason.INVALID_INDEX),
        (0, {0}, at(8, 0), NotEligibleReason.ALREADY_COMPLETED),
        (0, set(), at(7, 0), NotEligibleReason.TOO_EARLY),
        (0, set(), at(10, 0), NotEligibleReason.WINDOW_EXPIRED),
        (2, {0}, at(11, 30), NotEligibleReason.OUT_OF_ORDER),
    ],
)
def test_ensure_can_complete_reasons(index, completed, now, reason):
    schedule = _schedule(CUTOFF)
    with pytest.raises(NotEligible) as exc:
        schedule.ensure_can_complete(index, completed, now)
    assert exc.value.reason == reason


def test_too_early_message_mentions_target_time():
    schedule = _schedule(CUTOFF)
    with pytest.raises(NotEligible) as exc:
        schedule.ensure_can_complete(0, set(), at(7, 0))
    assert exc.value.message == "Please wait until 07:52 to log this serving."


def test_time_window_allows_out_of_order():
    schedule = _schedule(FULL)
    slot = schedule.ensure_can_complete(2, set(), at(12, 30))
    assert slot.index == 2
    assert slot.size_ml == 306


def test_day_end_is_midnight_for_regular_schedule():
    assert schedule_day_end(DAY, time(7, 0), time(23, 0), CUTOFF) == at(0, day=DAY + timedelta(days=1))


def test_day_end_is_bedtime_for_overnight_schedule():
    assert schedule_day_end(DAY, time(14, 0), time(4, 0), CUTOFF) == at(4, day=DAY + timedelta(days=1))


@pytest.mark.parametrize(
    "now, expected",
    [
        (at(13, 0), DAY),
        (at(23, 59), DAY),
        (at(1, 16, day=DAY + timedelta(days=1)), DAY),
        (at(3, 59, day=DAY + timedelta(days=1)), DAY),
        (at(4, 0, day=DAY + timedelta(days=1)), DAY + timedelta(days=1)),
    ],
)
def test_overnight_schedule_keeps_its_day_until_bedtime(now, expected):
    assert active_schedule_day(now, time(14, 0), time(4, 0), CUTOFF) == expected


def test_regular_schedule_switches_day_at_midnight():
    next_day = DAY + timedelta(days=1)
    assert active_schedule_day(at(23, 59), time(7, 0), time(23, 0), CUTOFF) == DAY
    assert active_schedule_day(at(0, 0, day=next_day), time(7, 0), time(23, 0), CUTOFF) == next_day
