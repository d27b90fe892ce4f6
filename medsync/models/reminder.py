from pydantic import BaseModel, Field
from typing import Optional, List, Set
from enum import Enum


class ReminderStatus(str, Enum):
    PENDING = "pending"
    TAKEN = "taken"
    SKIPPED = "skipped"


class RepeatType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    AS_NEEDED = "as_needed"


class ReminderMedication(BaseModel):
    reminder_med_id: str
    medication_id: str = ""
    schedule_time: Optional[str] = None
    status: ReminderStatus = ReminderStatus.PENDING
    taken_at: Optional[str] = None
    snapshot: dict = Field(default_factory=dict)
    synthetic: bool = False


class Reminder(BaseModel):
    id: str
    date: str = ""
    time: str = "00:00"
    title: str = ""
    description: str = ""
    repeat_type: RepeatType = RepeatType.DAILY
    repeat_days: Set[int] = Field(default_factory=set)
    linked_medications: List[ReminderMedication] = Field(default_factory=list)
    raw_source: dict = Field(default_factory=dict)
    synthetic: bool = False


TIME_OF_DAY_DEFAULTS = {
    "morning": "08:00",
    "afternoon": "13:00",
    "evening": "18:00",
    "night": "21:00",
}


class ReminderOptions(BaseModel):
    date: Optional[str] = None
    time: str = "08:00"
    title: Optional[str] = None
    repeat_type: RepeatType = RepeatType.DAILY
    repeat_days: Set[int] = Field(default_factory=lambda: {1, 2, 3, 4, 5, 6, 7})
    repeat_end_date: Optional[str] = None
    with_food: bool = False
    with_water: bool = True
