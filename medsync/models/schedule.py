from pydantic import BaseModel, Field
from typing import List
from medsync.models.medication import Medication
from medsync.models.reminder import ReminderStatus


class ScheduleEntry(BaseModel):
    medication: Medication
    status: ReminderStatus
    reminder_med_id: str
    reminder_id: str
    synthetic: bool = False


class ScheduleSlot(BaseModel):
    time: str
    medications: List[ScheduleEntry] = Field(default_factory=list)


class MedicationSession(BaseModel):
    medication_id: str
    name: str
    color: str
    reminder_count: int = 0


class DaySummary(BaseModel):
    total: int = 0
    taken: int = 0
    skipped: int = 0
    pending: int = 0

    @property
    def complete(self) -> bool:
        return self.total > 0 and self.pending == 0
