import logging
from typing import Dict, Iterable, List, Optional
from medsync.models.medication import Medication

logger = logging.getLogger(__name__)


#------This Class handles the Medication Catalog----------
class MedicationCatalog:

    def __init__(self):
        self._medications: Dict[str, Medication] = {}
        self.synthetic = False

    def replace_all(self, medications: Iterable[Medication]):
        snapshot: Dict[str, Medication] = {}
        for med in medications:
            if med.id in snapshot:
                logger.warning(f"[CATALOG] Duplicate medication id {med.id}, keeping the latest record")
            snapshot[med.id] = med
        self._medications = snapshot
        self.synthetic = any(med.synthetic for med in snapshot.values())
        logger.info(f"[CATALOG] Loaded {len(snapshot)} medication(s)")

    def get(self, medication_id: str) -> Optional[Medication]:
        med = self._medications.get(str(medication_id))
        return med.model_copy(deep=True) if med else None

    def all(self) -> List[Medication]:
        return [med.model_copy(deep=True) for med in self._medications.values()]

    def upsert(self, medication: Medication):
        self._medications[medication.id] = medication

    def remove(self, medication_id: str) -> bool:
        return self._medications.pop(str(medication_id), None) is not None

    def __contains__(self, medication_id: object) -> bool:
        return str(medication_id) in self._medications

    def __len__(self) -> int:
        return len(self._medications)
