import logging
from typing import Dict, Iterable, List, Optional, Tuple
from medsync.core.errors import NotFoundError
from medsync.models.reminder import Reminder, ReminderMedication, ReminderStatus

logger = logging.getLogger(__name__)


#------This Class handles the Reminder Store----------
class ReminderStore:
    """Reminders for the queried dates, keyed by reminder id.

    Status changes go through ``update_status`` or the transition pair
    ``begin_transition``/``end_transition``. A link with a transition still
    in flight keeps its local status across ``replace_all``.
    """

    def __init__(self):
        self._reminders: Dict[str, Reminder] = {}
        self._in_flight: Dict[str, int] = {}

    def _locate(self, reminder_med_id: str) -> Optional[Tuple[Reminder, ReminderMedication]]:
        for reminder in self._reminders.values():
            for link in reminder.linked_medications:
                if link.reminder_med_id == reminder_med_id:
                    return reminder, link
        return None

#------This Function replaces the store with a fresh snapshot---------
    def replace_all(self, reminders: Iterable[Reminder]):
        incoming: Dict[str, Reminder] = {}
        for reminder in reminders:
            if reminder.id in incoming:
                logger.warning(f"[STORE] Duplicate reminder id {reminder.id}, keeping the latest record")
            incoming[reminder.id] = reminder

        preserved = 0
        if self._in_flight:
            for reminder in incoming.values():
                for link in reminder.linked_medications:
                    if link.reminder_med_id not in self._in_flight:
                        continue
                    current = self._locate(link.reminder_med_id)
                    if current:
                        link.status = current[1].status
                        preserved += 1

            for reminder_id, reminder in self._reminders.items():
                if reminder_id in incoming:
                    continue
                if any(link.reminder_med_id in self._in_flight for link in reminder.linked_medications):
                    incoming[reminder_id] = reminder
                    preserved += 1

        self._reminders = incoming
        if preserved:
            logger.info(f"[STORE] Refresh kept {preserved} in-flight status change(s)")
        logger.debug(f"[STORE] Holding {len(incoming)} reminder(s)")

    def get(self, reminder_id: str) -> Optional[Reminder]:
        reminder = self._reminders.get(str(reminder_id))
        return reminder.model_copy(deep=True) if reminder else None

    def all(self) -> List[Reminder]:
        return [r.model_copy(deep=True) for r in self._reminders.values()]

    def for_date(self, date_key: str) -> List[Reminder]:
        return [r.model_copy(deep=True) for r in self._reminders.values() if r.date == date_key]

    def get_link(self, reminder_med_id: str) -> Optional[ReminderMedication]:
        found = self._locate(str(reminder_med_id))
        return found[1].model_copy(deep=True) if found else None

    def get_status(self, reminder_med_id: str) -> Optional[ReminderStatus]:
        found = self._locate(str(reminder_med_id))
        return found[1].status if found else None

#------This Function updates a single link status---------
    def update_status(self, reminder_med_id: str, status: ReminderStatus) -> ReminderStatus:
        found = self._locate(str(reminder_med_id))
        if not found:
            raise NotFoundError(f"No scheduled medication with id {reminder_med_id}")
        link = found[1]
        previous = link.status
        link.status = status
        if status == ReminderStatus.PENDING:
            link.taken_at = None
        return previous

    def begin_transition(self, reminder_med_id: str, status: ReminderStatus) -> ReminderStatus:
        previous = self.update_status(reminder_med_id, status)
        self._in_flight[reminder_med_id] = self._in_flight.get(reminder_med_id, 0) + 1
        return previous

    def end_transition(self, reminder_med_id: str, rollback_to: Optional[ReminderStatus] = None):
        remaining = self._in_flight.get(reminder_med_id, 0) - 1
        if remaining > 0:
            self._in_flight[reminder_med_id] = remaining
        else:
            self._in_flight.pop(reminder_med_id, None)

        if rollback_to is None:
            return
        try:
            self.update_status(reminder_med_id, rollback_to)
        except NotFoundError:
            logger.warning(f"[STORE] Cannot roll back {reminder_med_id}, entry no longer present")

    def has_in_flight(self, reminder_med_id: str) -> bool:
        return reminder_med_id in self._in_flight

    def add(self, reminder: Reminder):
        self._reminders[reminder.id] = reminder

    def remove(self, reminder_id: str) -> bool:
        return self._reminders.pop(str(reminder_id), None) is not None

    def __len__(self) -> int:
        return len(self._reminders)
