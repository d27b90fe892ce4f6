import logging
from typing import List, Optional, Sequence
from medsync.core.config import settings
from medsync.core.errors import MedSyncError, NotFoundError, SchemaMismatchError
from medsync.core.result import Result
from medsync.models.medication import Medication, MedicationDraft
from medsync.models.reminder import ReminderOptions
from medsync.models.schedule import DaySummary, MedicationSession, ScheduleSlot
from medsync.services.backend_client import BackendClient
from medsync.services.catalog import MedicationCatalog
from medsync.services.connectivity import ConnectivityGuard, tag_synthetic
from medsync.services.reminder_store import ReminderStore
from medsync.services.sample_data import sample_medications, sample_reminders
from medsync.services.schedule_builder import DateKey, ScheduleBuilder, date_key
from medsync.services.schema_adapter import (
    build_medication_payload,
    build_simple_medication_payload,
    build_simple_update_payload,
    build_update_payload,
    extract_record,
    normalize_medication,
    normalize_reminder,
)
from medsync.services.status_reconciler import StatusReconciler, TransitionResult

logger = logging.getLogger(__name__)


#------This Class handles the Medication Sync facade----------
class MedicationSync:
    """Entry point a UI binds to.

    Owns one catalog, one reminder store and the components built on them.
    Loads go through the connectivity guard and fall back to sample data;
    edits to medications are mirrored locally only after the backend
    accepted them.
    """

    def __init__(
        self,
        client: Optional[BackendClient] = None,
        guard: Optional[ConnectivityGuard] = None,
        catalog: Optional[MedicationCatalog] = None,
        store: Optional[ReminderStore] = None,
        demo_mode: Optional[bool] = None,
        synthetic_prefixes: Optional[List[str]] = None,
    ):
        self.client = client or BackendClient()
        self.guard = guard or ConnectivityGuard(self.client)
        self.catalog = catalog or MedicationCatalog()
        self.store = store or ReminderStore()
        self.demo_mode = settings.demo_mode if demo_mode is None else demo_mode
        self.synthetic_prefixes = tuple(
            synthetic_prefixes if synthetic_prefixes is not None else settings.synthetic_prefix_list
        )
        self.builder = ScheduleBuilder(self.catalog, self.store)
        self.reconciler = StatusReconciler(self.client, self.store, list(self.synthetic_prefixes))
        self.selected_date: Optional[str] = None
        self._medication_token = 0
        self._reminder_token = 0

    async def close(self):
        await self.client.close()

    def _is_synthetic_id(self, medication_id: str) -> bool:
        return str(medication_id).startswith(self.synthetic_prefixes)

#------This Function loads the medication catalog---------
    async def load_medications(self) -> Result:
        self._medication_token += 1
        token = self._medication_token

        if self.demo_mode:
            result = Result.fallback(tag_synthetic(sample_medications()), attempts=0)
        else:
            async def fetch():
                records = await self.client.fetch_medications()
                return [normalize_medication(record) for record in records]

            result = await self.guard.with_fallback(fetch, sample_medications)

        if token != self._medication_token:
            logger.info("[SYNC] Discarding superseded medication load")
            return Result.discarded()

        self.catalog.replace_all(result.value)
        return result

#------This Function retries the medication load without sample data---------
    async def retry_connection(self, max_attempts: int = 3) -> Result:
        """Re-fetch the catalog from the backend with a bounded retry budget.

        Unlike ``load_medications`` this never serves sample data: once the
        budget is spent the failure comes back with ``exhausted=True`` and the
        catalog keeps what it held.
        """
        self._medication_token += 1
        token = self._medication_token

        async def fetch():
            records = await self.client.fetch_medications()
            return [normalize_medication(record) for record in records]

        logger.info(f"[SYNC] Retrying backend connection ({max_attempts} attempt(s))")
        result = await self.guard.with_retry(fetch, max_attempts=max_attempts)

        if token != self._medication_token:
            logger.info("[SYNC] Discarding superseded medication retry")
            return Result.discarded()

        if not result.ok:
            logger.warning(f"[SYNC] Backend still unavailable after {result.attempts} attempt(s)")
            return result

        self.catalog.replace_all(result.value)
        logger.info(f"[SYNC] Reconnected, {len(result.value)} medication(s) loaded")
        return result

#------This Function loads the reminders for one date---------
    async def load_reminders(self, day: DateKey) -> Result:
        key = date_key(day)
        self._reminder_token += 1
        token = self._reminder_token

        if self.demo_mode:
            result = Result.fallback(tag_synthetic(sample_reminders(key)), attempts=0)
        else:
            async def fetch():
                records = await self.client.fetch_reminders(key)
                return [normalize_reminder(record) for record in records]

            result = await self.guard.with_fallback(fetch, lambda: sample_reminders(key))

        if token != self._reminder_token:
            logger.info(f"[SYNC] Discarding stale reminders for {key}")
            return Result.discarded()

        self.store.replace_all(result.value)
        logger.info(f"[SYNC] {len(result.value)} reminder(s) for {key}{' (sample data)' if result.synthetic else ''}")
        return result

    async def select_date(self, day: DateKey) -> Result:
        key = date_key(day)
        self.selected_date = key
        result = await self.load_reminders(key)
        if result.stale:
            return result
        return result.model_copy(update={"value": self.builder.build(key)})

    def schedule(self, day: Optional[DateKey] = None, medication_id: Optional[str] = None) -> List[ScheduleSlot]:
        key = date_key(day) if day is not None else (self.selected_date or "")
        return self.builder.build(key, medication_id)

    def summary(self, day: Optional[DateKey] = None) -> DaySummary:
        return self.builder.summarize(self.schedule(day))

    def medication_sessions(self) -> List[MedicationSession]:
        return self.builder.medication_sessions()

    async def mark_taken(self, reminder_med_id: str) -> TransitionResult:
        return await self.reconciler.mark_taken(reminder_med_id)

    async def mark_skipped(self, reminder_med_id: str) -> TransitionResult:
        return await self.reconciler.mark_skipped(reminder_med_id)

    async def reset(self, reminder_med_id: str) -> TransitionResult:
        return await self.reconciler.reset(reminder_med_id)

    async def create_reminder(self, medications: Sequence[Medication], options: ReminderOptions) -> Result:
        return await self.reconciler.create_reminder(medications, options)

#------This Function creates a medication---------
    async def add_medication(self, draft: MedicationDraft) -> Result:
        payload = build_medication_payload(draft)
        try:
            try:
                response = await self.client.create_medication(payload)
            except SchemaMismatchError as e:
                logger.warning(f"[SYNC] Full medication payload rejected ({e.detail}), using simple endpoint")
                response = await self.client.create_simple_medication(build_simple_medication_payload(draft))
        except MedSyncError as e:
            logger.error(f"[SYNC] Could not add {draft.name}: {e.detail}")
            return Result.failure(e)

        record = extract_record(response, "medication")
        medication = normalize_medication({**payload, **record})
        self.catalog.upsert(medication)
        logger.info(f"[SYNC] Added medication {medication.id} ({medication.name})")
        return Result.success(medication)

#------This Function updates a medication---------
    async def update_medication(self, medication_id: str, draft: MedicationDraft) -> Result:
        medication = self.catalog.get(medication_id) or Medication(id=str(medication_id))

        payload = build_update_payload(medication, draft)
        if self._is_synthetic_id(medication_id) or medication.synthetic:
            updated = normalize_medication({**medication.raw_source, **payload})
            updated.id = medication.id
            updated.synthetic = True
            self.catalog.upsert(updated)
            return Result.success(updated, synthetic=True)

        try:
            try:
                response = await self.client.update_medication(medication_id, payload)
            except SchemaMismatchError as e:
                logger.warning(f"[SYNC] Full update rejected ({e.detail}), retrying simplified")
                response = await self.client.update_medication(medication_id, build_simple_update_payload(draft))
        except NotFoundError as e:
            logger.warning(f"[SYNC] Medication {medication_id} no longer exists on the backend")
            return Result.failure(e)
        except MedSyncError as e:
            logger.error(f"[SYNC] Could not update {medication_id}: {e.detail}")
            return Result.failure(e)

        record = extract_record(response, "medication")
        updated = normalize_medication({**medication.raw_source, **payload, **record})
        updated.id = medication.id
        self.catalog.upsert(updated)
        logger.info(f"[SYNC] Updated medication {medication_id}")
        return Result.success(updated)

#------This Function deletes a medication---------
    async def delete_medication(self, medication_id: str) -> Result:
        if self._is_synthetic_id(medication_id):
            removed = self.catalog.remove(medication_id)
            return Result.success(removed, synthetic=True)

        try:
            await self.guard.with_fallback(
                lambda: self.client.delete_medication(medication_id),
                None,
                no_fallback=True,
            )
        except MedSyncError as e:
            logger.error(f"[SYNC] Could not delete {medication_id}: {e.detail}")
            return Result.failure(e)

        self.catalog.remove(medication_id)
        logger.info(f"[SYNC] Deleted medication {medication_id}")
        return Result.success(True)
