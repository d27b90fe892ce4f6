import logging
from datetime import date, datetime
from typing import Dict, List, Optional, Union
from medsync.models.medication import Medication
from medsync.models.reminder import ReminderMedication, ReminderStatus
from medsync.models.schedule import DaySummary, MedicationSession, ScheduleEntry, ScheduleSlot
from medsync.services.catalog import MedicationCatalog
from medsync.services.reminder_store import ReminderStore
from medsync.services.schema_adapter import normalize_medication
from medsync.utils.datetime_parser import time_to_minutes

logger = logging.getLogger(__name__)


DateKey = Union[str, date, datetime]


def date_key(value: DateKey) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value or "")


#------This Class handles the Schedule Builder----------
class ScheduleBuilder:
    """Joins the reminder store with the medication catalog into day slots.

    Reads only; never mutates either store.
    """

    def __init__(self, catalog: MedicationCatalog, store: ReminderStore):
        self.catalog = catalog
        self.store = store

    def _resolve_medication(self, link: ReminderMedication) -> Medication:
        medication = self.catalog.get(link.medication_id) if link.medication_id else None
        if medication:
            return medication

        logger.debug(f"[SCHEDULE] Medication {link.medication_id or '<none>'} not in catalog, using placeholder")
        if link.snapshot.get("name") or link.snapshot.get("medication_name"):
            placeholder = normalize_medication(link.snapshot)
            if link.medication_id:
                placeholder.id = link.medication_id
            placeholder.is_placeholder = True
            return placeholder
        return Medication(id=link.medication_id or "unknown", is_placeholder=True)

#------This Function builds the time slots for one date---------
    def build(self, day: DateKey, medication_id: Optional[str] = None) -> List[ScheduleSlot]:
        key = date_key(day)
        groups: Dict[str, List[ScheduleEntry]] = {}

        for reminder in self.store.for_date(key):
            for link in reminder.linked_medications:
                if medication_id is not None and link.medication_id != medication_id:
                    continue
                slot_time = link.schedule_time or reminder.time
                groups.setdefault(slot_time, []).append(
                    ScheduleEntry(
                        medication=self._resolve_medication(link),
                        status=link.status,
                        reminder_med_id=link.reminder_med_id,
                        reminder_id=reminder.id,
                        synthetic=link.synthetic or reminder.synthetic,
                    )
                )

        # sorted() is stable, so equal times keep insertion order
        ordered = sorted(groups.items(), key=lambda item: time_to_minutes(item[0]))
        return [ScheduleSlot(time=slot_time, medications=entries) for slot_time, entries in ordered]

#------This Function lists the medications with stored reminders---------
    def medication_sessions(self) -> List[MedicationSession]:
        sessions: Dict[str, MedicationSession] = {}
        for reminder in self.store.all():
            for link in reminder.linked_medications:
                session = sessions.get(link.medication_id)
                if session is None:
                    medication = self._resolve_medication(link)
                    session = MedicationSession(
                        medication_id=link.medication_id,
                        name=medication.name,
                        color=medication.color,
                    )
                    sessions[link.medication_id] = session
                session.reminder_count += 1
        return list(sessions.values())

    @staticmethod
    def summarize(slots: List[ScheduleSlot]) -> DaySummary:
        summary = DaySummary()
        for slot in slots:
            for entry in slot.medications:
                summary.total += 1
                if entry.status == ReminderStatus.TAKEN:
                    summary.taken += 1
                elif entry.status == ReminderStatus.SKIPPED:
                    summary.skipped += 1
                else:
                    summary.pending += 1
        return summary
