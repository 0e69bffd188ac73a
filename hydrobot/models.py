from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from pydantic import BaseModel
from pydantic import Field as PydanticField
from sqlmodel import Field, SQLModel


class DrinkingWindow(str, Enum):
    FULL = "full"
    PRE_BED_CUTOFF = "pre_bed_cutoff"


class EligibilityPolicy(str, Enum):
    SEQUENTIAL = "sequential"
    TIME_WINDOW = "time_window"


class ServingStatus(str, Enum):
    PENDING = "pending"
    ELIGIBLE = "eligible"
    COMPLETED = "completed"
    MISSED = "missed"


class UserProfile(BaseModel):
    name: str
    weight_kg: float
    wake_time: time
    bed_time: time
    height_cm: Optional[float] = None
    date_of_birth: Optional[date] = None
    timezone: Optional[str] = None


class ServingCompletion(BaseModel):
    index: int
    completed_at: datetime


class DailyProgress(BaseModel):
    date: str = ""
    completions: list[ServingCompletion] = PydanticField(default_factory=list)
    # Цель за этот день уже засчитана, повторно не поздравляем
    goal_reached: bool = False

    @property
    def completed_count(self) -> int:
        return len(self.completions)

    @property
    def completed_indices(self) -> set[int]:
        return {item.index for item in self.completions}


class HistoryEntry(BaseModel):
    date: str
    goal_ml: int
    intake_ml: int = 0
    servings_completed: int = 0
    completion_percentage: float = 0.0
    feedback: str = ""
    times: list[str] = PydanticField(default_factory=list)


class History(BaseModel):
    entries: dict[str, HistoryEntry] = PydanticField(default_factory=dict)


class KeyValueEntry(SQLModel, table=True):
    namespace: str = Field(primary_key=True, description="Telegram chat id владельца")
    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
