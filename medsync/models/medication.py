from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date
from enum import Enum


class PillVisualType(str, Enum):
    WHITE = "white"
    BLUE = "blue"
    ORANGE = "orange"
    PURPLE_WHITE = "purple-white"


class WhenToTake(str, Enum):
    BEFORE_MEAL = "before_meal"
    WITH_MEAL = "with_meal"
    AFTER_MEAL = "after_meal"
    EMPTY_STOMACH = "empty_stomach"
    CUSTOM = "custom"


PILL_COLORS = {
    PillVisualType.PURPLE_WHITE: "#6B5DFF",
    PillVisualType.BLUE: "#45B3FE",
    PillVisualType.ORANGE: "#FFB95A",
    PillVisualType.WHITE: "#FFFFFF",
}

UNKNOWN_MEDICATION_NAME = "Unknown Medication"


class Medication(BaseModel):
    id: str
    name: str = UNKNOWN_MEDICATION_NAME
    dosage: str = "1 tablet"
    dosage_amount: float = 1.0
    dosage_unit: str = "tablet"
    frequency_label: str = "Daily"
    default_time: str = "08:00"
    pill_visual_type: PillVisualType = PillVisualType.WHITE
    icon_type: str = "medicine"
    active_ingredient: str = ""
    side_effects: str = ""
    notes: str = ""
    when_to_take: WhenToTake = WhenToTake.WITH_MEAL
    remaining_quantity: int = 0
    unit: str = "tablet"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    refill_date: Optional[date] = None
    raw_source: dict = Field(default_factory=dict)
    synthetic: bool = False
    is_placeholder: bool = False

    @property
    def color(self) -> str:
        return PILL_COLORS[self.pill_visual_type]

    @field_validator("remaining_quantity")
    @classmethod
    def validate_remaining_quantity(cls, v: int) -> int:
        return max(v, 0)


class MedicationDraft(BaseModel):
    name: str
    dosage: str = "1 tablet"
    frequency: str = "Daily"
    time: str = "08:00"
    pill_type: PillVisualType = PillVisualType.WHITE
    icon_type: str = "medicine"
    when_to_take: WhenToTake = WhenToTake.WITH_MEAL
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    refill_date: Optional[date] = None
    remaining_quantity: int = 0
    unit: str = "tablet"
    active_ingredient: str = ""
    side_effects: str = ""
    notes: str = ""

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Medication name cannot be empty")
        return v.strip()
