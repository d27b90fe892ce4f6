import logging
import uuid
from datetime import timedelta
from enum import Enum
from typing import List, Optional, Sequence
from pydantic import BaseModel
from medsync.core.config import settings
from medsync.core.errors import (
    ErrorInfo,
    MedSyncError,
    NotFoundError,
    SchemaMismatchError,
    ValidationError,
)
from medsync.core.result import Result
from medsync.models.medication import Medication
from medsync.models.reminder import (
    Reminder,
    ReminderMedication,
    ReminderOptions,
    ReminderStatus,
    TIME_OF_DAY_DEFAULTS,
)
from medsync.services.backend_client import BackendClient
from medsync.services.reminder_store import ReminderStore
from medsync.services.schema_adapter import (
    build_reminder_payload,
    build_simple_reminder_payload,
    extract_record,
    normalize_reminder,
)
from medsync.utils.datetime_parser import canonical_date_string, normalize_time, parse_calendar_date

logger = logging.getLogger(__name__)


OFFLINE_PREFIX = "offline-"

ACTION_TARGETS = {
    "taken": ReminderStatus.TAKEN,
    "skipped": ReminderStatus.SKIPPED,
    "reset": ReminderStatus.PENDING,
}

LEGAL_TRANSITIONS = {
    (ReminderStatus.PENDING, ReminderStatus.TAKEN),
    (ReminderStatus.PENDING, ReminderStatus.SKIPPED),
    (ReminderStatus.TAKEN, ReminderStatus.PENDING),
    (ReminderStatus.SKIPPED, ReminderStatus.PENDING),
}


class TransitionOutcome(str, Enum):
    COMMITTED = "committed"
    LOCAL = "local"
    NOOP = "noop"
    ROLLED_BACK = "rolled_back"
    REJECTED = "rejected"


class TransitionResult(BaseModel):
    reminder_med_id: str
    action: str
    previous_status: Optional[ReminderStatus] = None
    status: Optional[ReminderStatus] = None
    outcome: TransitionOutcome
    error: Optional[ErrorInfo] = None

    @property
    def ok(self) -> bool:
        return self.error is None


#------This Class handles the Status Reconciler----------
class StatusReconciler:

    def __init__(
        self,
        client: BackendClient,
        store: ReminderStore,
        synthetic_prefixes: Optional[List[str]] = None,
    ):
        self.client = client
        self.store = store
        self.synthetic_prefixes = tuple(
            synthetic_prefixes if synthetic_prefixes is not None else settings.synthetic_prefix_list
        )

    def is_synthetic(self, link: ReminderMedication) -> bool:
        return link.synthetic or link.reminder_med_id.startswith(self.synthetic_prefixes)

    async def mark_taken(self, reminder_med_id: str) -> TransitionResult:
        return await self._transition(reminder_med_id, "taken")

    async def mark_skipped(self, reminder_med_id: str) -> TransitionResult:
        return await self._transition(reminder_med_id, "skipped")

    async def reset(self, reminder_med_id: str) -> TransitionResult:
        return await self._transition(reminder_med_id, "reset")

#------This Function applies a status change and reconciles it---------
    async def _transition(self, reminder_med_id: str, action: str) -> TransitionResult:
        """Apply ``action`` locally, then commit it to the backend.

        The local status is visible to readers as soon as this coroutine
        suspends on the network call. A failed commit restores the previous
        status and returns the error instead of raising.
        """
        target = ACTION_TARGETS[action]
        link = self.store.get_link(reminder_med_id)
        if link is None:
            error = NotFoundError(f"No scheduled medication with id {reminder_med_id}")
            logger.warning(f"[STATUS] {action} rejected: {error.detail}")
            return TransitionResult(
                reminder_med_id=reminder_med_id,
                action=action,
                outcome=TransitionOutcome.REJECTED,
                error=error.to_info(),
            )

        current = link.status
        if (current, target) not in LEGAL_TRANSITIONS:
            logger.debug(f"[STATUS] {action} on {reminder_med_id} ignored, already {current.value}")
            return TransitionResult(
                reminder_med_id=reminder_med_id,
                action=action,
                previous_status=current,
                status=current,
                outcome=TransitionOutcome.NOOP,
            )

        previous = self.store.begin_transition(reminder_med_id, target)

        if self.is_synthetic(link):
            self.store.end_transition(reminder_med_id)
            logger.info(f"[STATUS] {reminder_med_id} -> {target.value} (local only)")
            return TransitionResult(
                reminder_med_id=reminder_med_id,
                action=action,
                previous_status=previous,
                status=target,
                outcome=TransitionOutcome.LOCAL,
            )

        try:
            await self.client.set_medication_status(reminder_med_id, action)
        except MedSyncError as e:
            self.store.end_transition(reminder_med_id, rollback_to=previous)
            logger.warning(f"[STATUS] {action} on {reminder_med_id} failed, rolled back to {previous.value}: {e.detail}")
            return TransitionResult(
                reminder_med_id=reminder_med_id,
                action=action,
                previous_status=previous,
                status=previous,
                outcome=TransitionOutcome.ROLLED_BACK,
                error=e.to_info(),
            )

        self.store.end_transition(reminder_med_id)
        logger.info(f"[STATUS] {reminder_med_id} -> {target.value}")
        return TransitionResult(
            reminder_med_id=reminder_med_id,
            action=action,
            previous_status=previous,
            status=target,
            outcome=TransitionOutcome.COMMITTED,
        )

    @staticmethod
    def _resolve_time(value: str) -> str:
        label = (value or "").strip().lower()
        if label in TIME_OF_DAY_DEFAULTS:
            return TIME_OF_DAY_DEFAULTS[label]
        return normalize_time(value, default="08:00")

#------This Function creates a reminder with offline fallback---------
    async def create_reminder(
        self,
        medications: Sequence[Medication],
        options: ReminderOptions,
    ) -> Result:
        reminder_date = canonical_date_string(options.date) if options.date else ""
        start = parse_calendar_date(reminder_date) if reminder_date else None
        if start is None:
            return Result.failure(ValidationError("A valid date is required to create a reminder"))
        if not medications:
            return Result.failure(ValidationError("Select at least one medication for the reminder"))

        end_date = canonical_date_string(options.repeat_end_date) if options.repeat_end_date else ""
        if not end_date:
            end_date = (start + timedelta(days=30)).isoformat()

        payload = build_reminder_payload(
            medications,
            reminder_date=reminder_date,
            reminder_time=self._resolve_time(options.time),
            title=options.title or f"Take {medications[0].name}",
            repeat_type=options.repeat_type,
            repeat_days=options.repeat_days,
            repeat_end_date=end_date,
            with_food=options.with_food,
            with_water=options.with_water,
        )

        try:
            response = await self._post_reminder(payload)
        except MedSyncError as e:
            if not e.recoverable:
                logger.error(f"[REMINDER] Create failed: {e.detail}")
                return Result.failure(e)
            logger.warning(f"[REMINDER] Create failed ({e.kind.value}), keeping an offline reminder")
            reminder = self._offline_reminder(payload)
            self.store.add(reminder)
            return Result.fallback(reminder, e)

        reminder = self._created_reminder(payload, response)
        self.store.add(reminder)
        logger.info(f"[REMINDER] Created reminder {reminder.id} for {reminder_date} at {reminder.time}")
        return Result.success(reminder)

    async def _post_reminder(self, payload: dict):
        try:
            return await self.client.create_reminder(payload)
        except SchemaMismatchError as e:
            logger.warning(f"[REMINDER] Backend rejected the full payload ({e.detail}), retrying simplified")
        return await self.client.create_reminder(build_simple_reminder_payload(payload))

    @staticmethod
    def _created_reminder(payload: dict, response) -> Reminder:
        record = extract_record(response, "reminder")
        returned = record.get("medications") if isinstance(record.get("medications"), list) else []

        links = []
        for index, med in enumerate(payload["medications"]):
            link = dict(med)
            if index < len(returned) and isinstance(returned[index], dict) and returned[index].get("id"):
                link["reminderMedId"] = returned[index]["id"]
            links.append(link)

        raw = {**payload, **{k: v for k, v in record.items() if k != "medications"}, "medications": links}
        return normalize_reminder(raw)

    @staticmethod
    def _offline_reminder(payload: dict) -> Reminder:
        reminder_id = f"{OFFLINE_PREFIX}{uuid.uuid4().hex[:12]}"
        raw = {
            **payload,
            "id": reminder_id,
            "medications": [
                {**med, "reminderMedId": f"{reminder_id}-{index}"}
                for index, med in enumerate(payload["medications"])
            ],
        }
        reminder = normalize_reminder(raw)
        reminder.synthetic = True
        for link in reminder.linked_medications:
            link.synthetic = True
        return reminder
