import re
import math
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from datetime import date
from medsync.models.medication import (
    Medication,
    MedicationDraft,
    PillVisualType,
    WhenToTake,
    PILL_COLORS,
    UNKNOWN_MEDICATION_NAME,
)
from medsync.models.reminder import (
    Reminder,
    ReminderMedication,
    ReminderStatus,
    RepeatType,
)
from medsync.utils.datetime_parser import (
    add_months,
    canonical_date_string,
    normalize_time,
    parse_calendar_date,
)

logger = logging.getLogger(__name__)


FieldPath = Tuple[Any, ...]

# Bumped whenever an alias is added for a new backend generation.
FIELD_MAP_VERSION = 3

# Aliases are listed in priority order; the first non-empty value wins.
MEDICATION_FIELD_MAP: Dict[str, List[FieldPath]] = {
    "id": [("medication_id",), ("id",), ("medicationId",)],
    "name": [("name",), ("medication_name",)],
    "pill_type": [("pillType",), ("pill_type",)],
    "icon_type": [("iconType",), ("icon_type",), ("icon",)],
    "color": [("color",)],
    "dosage": [("dosage",), ("strength",), ("schedule", "dosage"), ("schedules", 0, "dosage")],
    "dosage_unit": [
        ("dosage_unit",),
        ("schedule", "dosage_unit"),
        ("schedules", 0, "dosage_unit"),
        ("inventory", "unit"),
    ],
    "unit": [("unit",), ("inventory", "unit"), ("schedule", "dosage_unit")],
    "frequency": [("frequency",), ("schedule", "frequency"), ("schedules", 0, "frequency")],
    "time": [("time",), ("schedule", "time"), ("schedules", 0, "time")],
    "start_date": [("start_date",), ("startDate",), ("schedule", "start_date"), ("schedules", 0, "start_date")],
    "end_date": [("end_date",), ("endDate",), ("schedule", "end_date"), ("schedules", 0, "end_date")],
    "refill_date": [("refill_date",), ("refillDate",)],
    "remaining_quantity": [
        ("inventory", "remainingQuantity"),
        ("inventory", "remaining_quantity"),
        ("remaining_quantity",),
        ("remainingQuantity",),
    ],
    "when_to_take": [("when_to_take",), ("whenToTake",)],
    "take_with_food": [("take_with_food",)],
    "schedule_when_to_take": [("schedule", "when_to_take"), ("schedules", 0, "when_to_take")],
    "active_ingredient": [("active_ingredient",), ("activeIngredient",)],
    "side_effects": [("side_effects",), ("sideEffects",)],
    "notes": [
        ("notes",),
        ("instructions",),
        ("schedule", "special_instructions"),
        ("schedule", "notes"),
    ],
}

REMINDER_FIELD_MAP: Dict[str, List[FieldPath]] = {
    "id": [("id",), ("reminder_id",), ("reminderId",)],
    "date": [("date",), ("reminder_date",), ("start_date",)],
    "time": [("time",), ("reminder_time",)],
    "title": [("title",)],
    "description": [("description",), ("reminder_description",)],
    "repeat_type": [("repeat_type",), ("repeatType",), ("frequency",)],
    "repeat_days": [("repeat_days",), ("repeatDays",)],
    "links": [("medications",), ("reminder_medications",), ("linkedMedications",)],
    "medication_id": [("medication_id",), ("medicationId",)],
    "status": [("status",)],
}

LINK_FIELD_MAP: Dict[str, List[FieldPath]] = {
    "reminder_med_id": [("reminderMedId",), ("reminder_med_id",), ("id",)],
    "medication_id": [("medicationId",), ("medication_id",)],
    "schedule_time": [("scheduleTime",), ("schedule_time",)],
    "status": [("status",), ("med_status",)],
    "taken_at": [("takenAt",), ("taken_at",)],
}

# Keys an outbound payload may be written under, canonical key first.
MEDICATION_PAYLOAD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "dosage": ("dosage", "strength"),
    "pill_type": ("pill_type", "pillType"),
    "icon_type": ("icon_type", "iconType", "icon"),
    "start_date": ("start_date", "startDate"),
    "end_date": ("end_date", "endDate"),
    "when_to_take": ("when_to_take", "whenToTake"),
    "refill_date": ("refill_date", "refillDate"),
    "remaining_quantity": ("remaining_quantity", "remainingQuantity"),
    "active_ingredient": ("active_ingredient", "activeIngredient"),
    "side_effects": ("side_effects", "sideEffects"),
}

ICON_PILL_TYPES = {
    "antidepressant": PillVisualType.PURPLE_WHITE,
    "antidep": PillVisualType.PURPLE_WHITE,
    "general": PillVisualType.BLUE,
    "hypertension": PillVisualType.ORANGE,
}

COLOR_PILL_TYPES = {color.upper(): pill for pill, color in PILL_COLORS.items()}

KNOWN_ICON_TYPES = (
    "antibiotics",
    "antidepressant",
    "antihistamine",
    "contraceptive",
    "general",
    "hypertension",
    "medicine",
    "spray",
    "vaccine",
    "vaccine2",
)

STATUS_ALIASES = {
    "taken": ReminderStatus.TAKEN,
    "completed": ReminderStatus.TAKEN,
    "done": ReminderStatus.TAKEN,
    "skipped": ReminderStatus.SKIPPED,
    "missed": ReminderStatus.SKIPPED,
    "dismissed": ReminderStatus.SKIPPED,
    "pending": ReminderStatus.PENDING,
}

REPEAT_ALIASES = {
    "daily": RepeatType.DAILY,
    "weekly": RepeatType.WEEKLY,
    "monthly": RepeatType.MONTHLY,
    "as_needed": RepeatType.AS_NEEDED,
    "as needed": RepeatType.AS_NEEDED,
}

DOSAGE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([^\d\s].*)?$")

TEMP_LINK_PREFIX = "temp-"


#------This Function resolves a nested field path---------
def _resolve_path(raw: Any, path: FieldPath) -> Any:
    current = raw
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, (list, tuple)) or len(current) <= step:
                return None
            current = current[step]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(step)
        if current is None:
            return None
    return current


#------This Function returns the first populated alias---------
def lookup(raw: Any, paths: Sequence[FieldPath], default: Any = None) -> Any:
    for path in paths:
        value = _resolve_path(raw, path)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return default


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


#------This Function resolves the pill visual type---------
def resolve_pill_visual_type(raw: dict) -> PillVisualType:
    explicit = _text(lookup(raw, MEDICATION_FIELD_MAP["pill_type"])).lower()
    if explicit:
        try:
            return PillVisualType(explicit)
        except ValueError:
            logger.debug(f"[SCHEMA] Ignoring unrecognized pill type '{explicit}'")

    icon = _text(lookup(raw, MEDICATION_FIELD_MAP["icon_type"])).lower()
    if icon in ICON_PILL_TYPES:
        return ICON_PILL_TYPES[icon]

    color = _text(lookup(raw, MEDICATION_FIELD_MAP["color"])).upper()
    if color in COLOR_PILL_TYPES:
        return COLOR_PILL_TYPES[color]

    return PillVisualType.WHITE


#------This Function maps an icon type onto the known icon set---------
def resolve_icon_type(value: Any) -> str:
    icon = _text(value).lower()
    if not icon:
        return "medicine"
    if icon == "antidep":
        return "antidepressant"
    if icon in KNOWN_ICON_TYPES:
        return icon
    index = sum(ord(ch) for ch in icon) % len(KNOWN_ICON_TYPES)
    return KNOWN_ICON_TYPES[index]


#------This Function splits a dosage label into amount and unit---------
def parse_dosage(label: Any) -> Tuple[Optional[float], Optional[str]]:
    text = _text(label)
    match = DOSAGE_PATTERN.match(text)
    if not match:
        return None, None
    amount = float(match.group(1))
    unit = (match.group(2) or "").strip() or None
    return amount, unit


def _parse_quantity(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    if isinstance(value, (int, float)):
        return max(int(value), 0)
    match = re.match(r"^\s*(\d+)", _text(value))
    return int(match.group(1)) if match else 0


def _resolve_when_to_take(raw: dict) -> WhenToTake:
    value = _text(lookup(raw, MEDICATION_FIELD_MAP["when_to_take"])).lower()
    if not value:
        take_with_food = lookup(raw, MEDICATION_FIELD_MAP["take_with_food"])
        if take_with_food in (True, 1, "1", "true"):
            return WhenToTake.WITH_MEAL
        value = _text(lookup(raw, MEDICATION_FIELD_MAP["schedule_when_to_take"])).lower()
    if not value:
        return WhenToTake.WITH_MEAL
    try:
        return WhenToTake(value)
    except ValueError:
        return WhenToTake.CUSTOM


#------This Function normalizes a raw medication record---------
def normalize_medication(raw: Any) -> Medication:
    if not isinstance(raw, dict):
        logger.warning(f"[SCHEMA] Medication record is not an object: {type(raw).__name__}")
        raw = {}

    med_id = _text(lookup(raw, MEDICATION_FIELD_MAP["id"]))
    if not med_id:
        med_id = f"{TEMP_LINK_PREFIX}{_text(raw.get('name'), 'unknown').lower().replace(' ', '-')}"

    dosage_label = _text(lookup(raw, MEDICATION_FIELD_MAP["dosage"]))
    amount, parsed_unit = parse_dosage(dosage_label)
    dosage_unit = _text(
        lookup(raw, MEDICATION_FIELD_MAP["dosage_unit"]),
        parsed_unit or "tablet",
    )
    if not dosage_label:
        dosage_label = f"1 {dosage_unit}"

    today = date.today()
    start_date = parse_calendar_date(lookup(raw, MEDICATION_FIELD_MAP["start_date"]))
    if start_date is None:
        start_date = today
    end_date = parse_calendar_date(lookup(raw, MEDICATION_FIELD_MAP["end_date"]))
    if end_date is None:
        end_date = add_months(today, 1)

    return Medication(
        id=med_id,
        name=_text(lookup(raw, MEDICATION_FIELD_MAP["name"]), UNKNOWN_MEDICATION_NAME),
        dosage=dosage_label,
        dosage_amount=amount if amount is not None else 1.0,
        dosage_unit=dosage_unit,
        frequency_label=_text(lookup(raw, MEDICATION_FIELD_MAP["frequency"]), "Daily"),
        default_time=normalize_time(lookup(raw, MEDICATION_FIELD_MAP["time"]), default="08:00"),
        pill_visual_type=resolve_pill_visual_type(raw),
        icon_type=resolve_icon_type(lookup(raw, MEDICATION_FIELD_MAP["icon_type"])),
        active_ingredient=_text(lookup(raw, MEDICATION_FIELD_MAP["active_ingredient"])),
        side_effects=_text(lookup(raw, MEDICATION_FIELD_MAP["side_effects"])),
        notes=_text(lookup(raw, MEDICATION_FIELD_MAP["notes"])),
        when_to_take=_resolve_when_to_take(raw),
        remaining_quantity=_parse_quantity(lookup(raw, MEDICATION_FIELD_MAP["remaining_quantity"])),
        unit=_text(lookup(raw, MEDICATION_FIELD_MAP["unit"]), "tablet"),
        start_date=start_date,
        end_date=end_date,
        refill_date=parse_calendar_date(lookup(raw, MEDICATION_FIELD_MAP["refill_date"])),
        raw_source=dict(raw),
    )


def normalize_status(value: Any) -> ReminderStatus:
    return STATUS_ALIASES.get(_text(value).lower(), ReminderStatus.PENDING)


def _resolve_repeat_days(value: Any) -> set:
    if value is None:
        return set()
    if isinstance(value, str):
        parts = [p.strip() for p in value.split(",")]
    elif isinstance(value, (list, tuple, set)):
        parts = list(value)
    else:
        parts = [value]

    days = set()
    for part in parts:
        if isinstance(part, float) and not math.isfinite(part):
            continue
        try:
            day = int(part)
        except (TypeError, ValueError):
            continue
        if 1 <= day <= 7:
            days.add(day)
    return days


#------This Function normalizes a reminder-medication link---------
def _normalize_link(
    raw: Any,
    reminder_id: str,
    index: int,
    fallback_medication_id: str,
    fallback_status: Any,
) -> ReminderMedication:
    if not isinstance(raw, dict):
        raw = {}

    link_id = _text(lookup(raw, LINK_FIELD_MAP["reminder_med_id"]))
    synthetic = False
    if not link_id:
        link_id = f"{TEMP_LINK_PREFIX}{reminder_id}-{index}"
        synthetic = True

    schedule_time = lookup(raw, LINK_FIELD_MAP["schedule_time"])
    snapshot = {k: v for k, v in raw.items() if k not in ("status", "med_status", "takenAt", "taken_at")}

    return ReminderMedication(
        reminder_med_id=link_id,
        medication_id=_text(lookup(raw, LINK_FIELD_MAP["medication_id"]), fallback_medication_id),
        schedule_time=normalize_time(schedule_time) if schedule_time is not None else None,
        status=normalize_status(lookup(raw, LINK_FIELD_MAP["status"], fallback_status)),
        taken_at=_text(lookup(raw, LINK_FIELD_MAP["taken_at"])) or None,
        snapshot=snapshot,
        synthetic=synthetic,
    )


#------This Function normalizes a raw reminder record---------
def normalize_reminder(raw: Any) -> Reminder:
    if not isinstance(raw, dict):
        logger.warning(f"[SCHEMA] Reminder record is not an object: {type(raw).__name__}")
        raw = {}

    raw_date = lookup(raw, REMINDER_FIELD_MAP["date"])
    reminder_date = canonical_date_string(raw_date) if raw_date is not None else ""
    reminder_time = normalize_time(lookup(raw, REMINDER_FIELD_MAP["time"]))

    reminder_id = _text(lookup(raw, REMINDER_FIELD_MAP["id"]))
    synthetic = False
    if not reminder_id:
        reminder_id = f"{TEMP_LINK_PREFIX}{reminder_date or 'undated'}-{reminder_time.replace(':', '')}"
        synthetic = True

    if not reminder_date:
        logger.warning(f"[SCHEMA] Reminder {reminder_id} has no usable date: {raw_date!r}")

    repeat_type = REPEAT_ALIASES.get(
        _text(lookup(raw, REMINDER_FIELD_MAP["repeat_type"])).lower(),
        RepeatType.DAILY,
    )
    repeat_days = set()
    if repeat_type == RepeatType.WEEKLY:
        repeat_days = _resolve_repeat_days(lookup(raw, REMINDER_FIELD_MAP["repeat_days"]))

    top_medication_id = _text(lookup(raw, REMINDER_FIELD_MAP["medication_id"]))
    top_status = lookup(raw, REMINDER_FIELD_MAP["status"])
    raw_links = lookup(raw, REMINDER_FIELD_MAP["links"])
    if not isinstance(raw_links, list):
        raw_links = []
    if not raw_links and top_medication_id:
        raw_links = [{}]

    links = [
        _normalize_link(item, reminder_id, index, top_medication_id, top_status)
        for index, item in enumerate(raw_links)
    ]

    return Reminder(
        id=reminder_id,
        date=reminder_date,
        time=reminder_time,
        title=_text(lookup(raw, REMINDER_FIELD_MAP["title"])),
        description=_text(lookup(raw, REMINDER_FIELD_MAP["description"])),
        repeat_type=repeat_type,
        repeat_days=repeat_days,
        linked_medications=links,
        raw_source=dict(raw),
        synthetic=synthetic,
    )


#------This Function unwraps a list of records from a response---------
def extract_records(response: Any, key: str) -> List[Any]:
    if isinstance(response, list):
        return response
    if not isinstance(response, dict):
        return []

    for candidate in (response.get("data"), response):
        if isinstance(candidate, list):
            return candidate
        if isinstance(candidate, dict) and isinstance(candidate.get(key), list):
            return candidate[key]
    return []


#------This Function unwraps a single record from a response---------
def extract_record(response: Any, key: str) -> dict:
    if not isinstance(response, dict):
        return {}
    data = response.get("data")
    for candidate in (data, response):
        if isinstance(candidate, dict) and isinstance(candidate.get(key), dict):
            return candidate[key]
    if isinstance(data, dict):
        return data
    return response


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None


#------This Function builds the full medication payload---------
def build_medication_payload(draft: MedicationDraft) -> dict:
    start_date = draft.start_date or date.today()
    end_date = draft.end_date or add_months(start_date, 1)
    return {
        "name": draft.name,
        "dosage": draft.dosage,
        "strength": draft.dosage,
        "frequency": draft.frequency,
        "time": f"{normalize_time(draft.time, default='08:00')}:00",
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "pill_type": draft.pill_type.value,
        "icon_type": resolve_icon_type(draft.icon_type),
        "color": PILL_COLORS[draft.pill_type],
        "when_to_take": draft.when_to_take.value,
        "take_with_food": draft.when_to_take in (WhenToTake.WITH_MEAL, WhenToTake.AFTER_MEAL),
        "refill_reminder": draft.refill_date is not None,
        "refill_date": _iso(draft.refill_date),
        "remaining_quantity": draft.remaining_quantity,
        "unit": draft.unit,
        "active_ingredient": draft.active_ingredient,
        "side_effects": draft.side_effects,
        "notes": draft.notes,
    }


#------This Function builds the simplified medication payload---------
def build_simple_medication_payload(draft: MedicationDraft) -> dict:
    return {
        "name": draft.name,
        "dosage": draft.dosage,
        "icon_type": resolve_icon_type(draft.icon_type),
    }


def build_simple_update_payload(draft: MedicationDraft) -> dict:
    return {
        "name": draft.name,
        "strength": draft.dosage,
        "icon_type": resolve_icon_type(draft.icon_type),
        "color": PILL_COLORS[draft.pill_type],
    }


#------This Function builds an update payload in the record's own schema---------
def build_update_payload(medication: Medication, draft: MedicationDraft) -> dict:
    payload = build_medication_payload(draft)
    source = medication.raw_source or {}
    for canonical, aliases in MEDICATION_PAYLOAD_ALIASES.items():
        if canonical not in payload:
            continue
        for alias in aliases[1:]:
            if alias in source:
                payload[alias] = payload[canonical]
    return payload


def _schedule_time(value: str) -> str:
    return f"{normalize_time(value, default='08:00')}:00"


#------This Function builds the full reminder payload---------
def build_reminder_payload(
    medications: Sequence[Medication],
    reminder_date: str,
    reminder_time: str,
    title: str,
    repeat_type: RepeatType,
    repeat_days: set,
    repeat_end_date: Optional[str],
    with_food: bool,
    with_water: bool,
) -> dict:
    first = medications[0]
    formatted_time = _schedule_time(reminder_time)
    return {
        "date": reminder_date,
        "title": title,
        "description": f"Take {first.dosage_amount:g} {first.dosage_unit} of {first.name}",
        "time": formatted_time,
        "medications": [
            {"medicationId": med.id, "scheduleTime": formatted_time}
            for med in medications
        ],
        "repeat_type": repeat_type.value,
        "repeat_days": ",".join(str(d) for d in sorted(repeat_days)) if repeat_type == RepeatType.WEEKLY else None,
        "repeat_end_date": repeat_end_date,
        "status": ReminderStatus.PENDING.value,
        "dosage": first.dosage_amount,
        "dosage_unit": first.dosage_unit,
        "with_food": with_food,
        "with_water": with_water,
    }


#------This Function builds the simplified reminder payload---------
def build_simple_reminder_payload(full_payload: dict) -> dict:
    return {
        "date": full_payload["date"],
        "title": full_payload["title"],
        "time": full_payload["time"],
        "medications": full_payload["medications"],
    }
