from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from hydrobot.database import init_db, make_session_factory
from hydrobot.models import DrinkingWindow, EligibilityPolicy, UserProfile
from hydrobot.services.hydration import SchedulePolicy
from hydrobot.services.hydration_scheduler import HydrationScheduler
from hydrobot.storage import MemoryKeyValueStore


class FakeClock:
    def __init__(self, current: datetime) -> None:
        self.current = current

    def now(self) -> datetime:
        return self.current

    def set(self, hour: int, minute: int = 0, day_offset: int = 0) -> None:
        base = self.current.date() + timedelta(days=day_offset)
        self.current = datetime(base.year, base.month, base.day, hour, minute, tzinfo=timezone.utc)

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class RecordingNotifier:
    def __init__(self) -> None:
        self.scheduled: list[tuple[datetime, str, str]] = []
        self.cancelled = 0

    def schedule_at(self, when: datetime, title: str, body: str) -> None:
        self.scheduled.append((when, title, body))

    def cancel_all(self) -> None:
        self.cancelled += 1
        self.scheduled.clear()


def make_profile(**overrides) -> UserProfile:
    data = dict(
        name="Alex",
        weight_kg=70,
        height_cm=178,
        wake_time=time(7, 0),
        bed_time=time(23, 0),
        timezone="UTC",
    )
    data.update(overrides)
    return UserProfile(**data)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def policy() -> SchedulePolicy:
    return SchedulePolicy(window=DrinkingWindow.PRE_BED_CUTOFF, eligibility=EligibilityPolicy.SEQUENTIAL)


@pytest.fixture
def tracker(store, clock, notifier, policy) -> HydrationScheduler:
    return HydrationScheduler(store, clock=clock, notifier=notifier, policy=policy)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'hydrobot.db'}")
    await init_db(engine)
    yield make_session_factory(engine)
    await engine.dispose()
