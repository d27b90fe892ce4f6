from datetime import date, timedelta
from typing import List, Optional
from medsync.models.medication import Medication
from medsync.models.reminder import Reminder
from medsync.services.schema_adapter import normalize_medication, normalize_reminder
from medsync.utils.datetime_parser import add_months, normalize_time


# Served when the backend cannot be reached. Ids carry the "mock-" prefix so
# status changes on them never leave the device.
SAMPLE_MEDICATIONS = [
    {
        "id": "mock-1",
        "name": "Atorvastatin",
        "dosage": "20mg",
        "time": "08:00 am",
        "frequency": "Once daily",
        "notes": "Take with water, with or without food",
        "pillType": "white",
        "sideEffects": "Muscle pain, headache",
        "activeIngredient": "Atorvastatin calcium",
        "remainingQuantity": "28 tablets remaining",
        "unit": "tablet",
        "status": "pending",
        "months": 1,
        "refill_days": 14,
    },
    {
        "id": "mock-2",
        "name": "Ibuprofen",
        "dosage": "400mg",
        "time": "12:00 pm",
        "frequency": "As needed",
        "notes": "Take with food to reduce stomach upset",
        "pillType": "blue",
        "sideEffects": "Stomach upset, dizziness",
        "activeIngredient": "Ibuprofen",
        "whenToTake": "with_meal",
        "remainingQuantity": "15 tablets remaining",
        "unit": "tablet",
        "status": "pending",
        "months": 1,
        "refill_days": None,
    },
    {
        "id": "mock-3",
        "name": "Vitamin D3",
        "dosage": "1000IU",
        "time": "09:00 am",
        "frequency": "Daily",
        "notes": "",
        "pillType": "orange",
        "sideEffects": "",
        "activeIngredient": "Cholecalciferol",
        "whenToTake": "with_meal",
        "remainingQuantity": "45 capsules remaining",
        "unit": "capsule",
        "status": "taken",
        "months": 2,
        "refill_days": None,
    },
    {
        "id": "mock-4",
        "name": "Fluoxetine",
        "dosage": "20mg",
        "time": "08:00 am",
        "frequency": "Once daily",
        "notes": "Take consistently at the same time each day",
        "pillType": "purple-white",
        "iconType": "antidepressant",
        "sideEffects": "Nausea, headache, insomnia",
        "activeIngredient": "Fluoxetine hydrochloride",
        "remainingQuantity": "32 capsules remaining",
        "unit": "capsule",
        "status": "pending",
        "months": 3,
        "refill_days": 21,
    },
]


def _record(sample: dict, reference: date) -> dict:
    record = {k: v for k, v in sample.items() if k not in ("status", "months", "refill_days")}
    record["startDate"] = reference.isoformat()
    record["endDate"] = add_months(reference, sample["months"]).isoformat()
    if sample["refill_days"]:
        record["refillDate"] = (reference + timedelta(days=sample["refill_days"])).isoformat()
    return record


#------This Function builds the sample medication list---------
def sample_medications(reference: Optional[date] = None) -> List[Medication]:
    reference = reference or date.today()
    return [normalize_medication(_record(sample, reference)) for sample in SAMPLE_MEDICATIONS]


#------This Function builds sample reminders for one date---------
def sample_reminders(reminder_date: str) -> List[Reminder]:
    reminders = []
    for index, sample in enumerate(SAMPLE_MEDICATIONS, start=1):
        time = normalize_time(sample["time"], default="08:00")
        reminders.append(normalize_reminder({
            "id": f"mock-reminder-{index}",
            "date": reminder_date,
            "time": time,
            "title": f"Take {sample['name']}",
            "medications": [{
                "reminderMedId": f"mock-{index}",
                "medicationId": sample["id"],
                "scheduleTime": time,
                "status": sample["status"],
                "name": sample["name"],
                "dosage": sample["dosage"],
                "pillType": sample["pillType"],
            }],
        }))
    return reminders
