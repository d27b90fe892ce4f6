import unittest
from datetime import date

from medsync.models.medication import MedicationDraft, PillVisualType, WhenToTake, UNKNOWN_MEDICATION_NAME
from medsync.models.reminder import ReminderStatus, RepeatType
from medsync.services.schema_adapter import (
    build_medication_payload,
    build_reminder_payload,
    build_simple_reminder_payload,
    build_update_payload,
    extract_record,
    extract_records,
    lookup,
    normalize_medication,
    normalize_reminder,
    parse_dosage,
    resolve_icon_type,
    resolve_pill_visual_type,
)
from medsync.utils.datetime_parser import add_months


class TestPillVisualType(unittest.TestCase):
    def test_explicit_pill_type_wins(self):
        raw = {"pillType": "orange", "icon_type": "antidepressant", "color": "#45B3FE"}
        self.assertEqual(resolve_pill_visual_type(raw), PillVisualType.ORANGE)

    def test_unknown_explicit_type_falls_through_to_icon(self):
        raw = {"pill_type": "tablet", "icon_type": "hypertension"}
        self.assertEqual(resolve_pill_visual_type(raw), PillVisualType.ORANGE)

    def test_icon_mapping(self):
        self.assertEqual(resolve_pill_visual_type({"iconType": "antidep"}), PillVisualType.PURPLE_WHITE)
        self.assertEqual(resolve_pill_visual_type({"icon": "general"}), PillVisualType.BLUE)

    def test_color_is_case_insensitive(self):
        self.assertEqual(resolve_pill_visual_type({"color": "#6b5dff"}), PillVisualType.PURPLE_WHITE)
        self.assertEqual(resolve_pill_visual_type({"color": "#ffb95a"}), PillVisualType.ORANGE)

    def test_default_is_white(self):
        self.assertEqual(resolve_pill_visual_type({"color": "#123456"}), PillVisualType.WHITE)
        self.assertEqual(resolve_pill_visual_type({}), PillVisualType.WHITE)


class TestNormalizeMedication(unittest.TestCase):
    def test_minimal_record_is_tolerated(self):
        med = normalize_medication({"name": "X"})
        today = date.today()
        self.assertEqual(med.name, "X")
        self.assertEqual(med.dosage_amount, 1.0)
        self.assertEqual(med.dosage_unit, "tablet")
        self.assertEqual(med.pill_visual_type, PillVisualType.WHITE)
        self.assertEqual(med.start_date, today)
        self.assertEqual(med.end_date, add_months(today, 1))
        self.assertEqual(med.when_to_take, WhenToTake.WITH_MEAL)

    def test_non_finite_quantity_reads_as_zero(self):
        for value in (float("nan"), float("inf"), float("-inf")):
            med = normalize_medication({"name": "X", "remaining_quantity": value})
            self.assertEqual(med.remaining_quantity, 0)
        self.assertEqual(normalize_medication({"name": "X", "remaining_quantity": 12.7}).remaining_quantity, 12)

    def test_non_dict_input_never_raises(self):
        med = normalize_medication(None)
        self.assertEqual(med.name, UNKNOWN_MEDICATION_NAME)
        self.assertTrue(med.id)

    def test_legacy_nested_schedule_fields(self):
        raw = {
            "medication_id": 7,
            "name": "Metformin",
            "strength": "500mg",
            "schedule": {
                "dosage_unit": "mg",
                "time": "10:00:00",
                "start_date": "2025-06-01T00:00:00.000Z",
                "end_date": "2025-07-01",
            },
            "inventory": {"remainingQuantity": "30 capsule remain"},
        }
        med = normalize_medication(raw)
        self.assertEqual(med.id, "7")
        self.assertEqual(med.dosage, "500mg")
        self.assertEqual(med.dosage_amount, 500.0)
        self.assertEqual(med.dosage_unit, "mg")
        self.assertEqual(med.default_time, "10:00")
        self.assertEqual(med.start_date, date(2025, 6, 1))
        self.assertEqual(med.end_date, date(2025, 7, 1))
        self.assertEqual(med.remaining_quantity, 30)
        self.assertEqual(med.raw_source["strength"], "500mg")

    def test_unit_parsed_from_dosage_label(self):
        med = normalize_medication({"id": "m1", "name": "Vitamin D3", "dosage": "1000IU"})
        self.assertEqual(med.dosage_amount, 1000.0)
        self.assertEqual(med.dosage_unit, "IU")

    def test_take_with_food_flag(self):
        med = normalize_medication({"id": "m1", "name": "A", "take_with_food": 1})
        self.assertEqual(med.when_to_take, WhenToTake.WITH_MEAL)
        med = normalize_medication({"id": "m1", "name": "A", "when_to_take": "Morning or evening"})
        self.assertEqual(med.when_to_take, WhenToTake.CUSTOM)

    def test_color_follows_visual_type(self):
        med = normalize_medication({"id": "m1", "name": "A", "icon_type": "general"})
        self.assertEqual(med.color, "#45B3FE")


class TestIconsAndDosage(unittest.TestCase):
    def test_known_icons_kept(self):
        self.assertEqual(resolve_icon_type("vaccine"), "vaccine")
        self.assertEqual(resolve_icon_type("antidep"), "antidepressant")
        self.assertEqual(resolve_icon_type(None), "medicine")

    def test_unknown_icon_mapping_is_stable(self):
        first = resolve_icon_type("capsule-xl")
        self.assertEqual(first, resolve_icon_type("capsule-xl"))
        self.assertEqual(first, resolve_icon_type("CAPSULE-XL"))

    def test_parse_dosage(self):
        self.assertEqual(parse_dosage("20mg"), (20.0, "mg"))
        self.assertEqual(parse_dosage("2.5 ml"), (2.5, "ml"))
        self.assertEqual(parse_dosage("two tablets"), (None, None))


class TestNormalizeReminder(unittest.TestCase):
    def test_current_shape(self):
        raw = {
            "id": "r1",
            "date": "2025-06-10",
            "time": "08:00:00",
            "repeat_type": "weekly",
            "repeat_days": "1,3,9",
            "medications": [
                {"reminderMedId": "rm1", "medicationId": "m1", "status": "completed", "name": "Atorvastatin"},
            ],
        }
        reminder = normalize_reminder(raw)
        self.assertEqual(reminder.time, "08:00")
        self.assertEqual(reminder.repeat_type, RepeatType.WEEKLY)
        self.assertEqual(reminder.repeat_days, {1, 3})
        link = reminder.linked_medications[0]
        self.assertEqual(link.reminder_med_id, "rm1")
        self.assertEqual(link.status, ReminderStatus.TAKEN)
        self.assertEqual(link.snapshot["name"], "Atorvastatin")
        self.assertNotIn("status", link.snapshot)
        self.assertFalse(link.synthetic)

    def test_legacy_shape(self):
        raw = {
            "reminder_id": 12,
            "reminder_date": "2025-06-10T23:30:00-05:00",
            "reminder_time": "2:30 PM",
            "medication_id": 4,
            "reminder_medications": [{"id": 99, "status": "skipped"}],
        }
        reminder = normalize_reminder(raw)
        self.assertEqual(reminder.id, "12")
        self.assertEqual(reminder.date, "2025-06-10")
        self.assertEqual(reminder.time, "14:30")
        link = reminder.linked_medications[0]
        self.assertEqual(link.reminder_med_id, "99")
        self.assertEqual(link.medication_id, "4")
        self.assertEqual(link.status, ReminderStatus.SKIPPED)

    def test_non_finite_repeat_days_are_skipped(self):
        reminder = normalize_reminder({
            "id": "r4",
            "date": "2025-06-10",
            "repeat_type": "weekly",
            "repeat_days": [float("inf"), float("nan"), 2, 5.0],
        })
        self.assertEqual(reminder.repeat_days, {2, 5})

    def test_top_level_medication_becomes_a_link(self):
        reminder = normalize_reminder({"id": "r2", "date": "2025-06-10", "medication_id": "m3", "status": "pending"})
        self.assertEqual(len(reminder.linked_medications), 1)
        link = reminder.linked_medications[0]
        self.assertEqual(link.medication_id, "m3")
        self.assertTrue(link.reminder_med_id.startswith("temp-"))
        self.assertTrue(link.synthetic)

    def test_bad_time_and_date(self):
        reminder = normalize_reminder({"id": "r3", "date": "##/##", "time": "whenever"})
        self.assertEqual(reminder.time, "00:00")
        self.assertEqual(reminder.date, "")
        self.assertEqual(reminder.linked_medications, [])


class TestEnvelopes(unittest.TestCase):
    def test_extract_records_shapes(self):
        rows = [{"id": 1}]
        self.assertEqual(extract_records(rows, "reminders"), rows)
        self.assertEqual(extract_records({"data": rows}, "reminders"), rows)
        self.assertEqual(extract_records({"reminders": rows}, "reminders"), rows)
        self.assertEqual(extract_records({"data": {"reminders": rows}}, "reminders"), rows)
        self.assertEqual(extract_records({"success": True}, "reminders"), [])
        self.assertEqual(extract_records("oops", "reminders"), [])

    def test_extract_record_shapes(self):
        self.assertEqual(extract_record({"data": {"id": 5}}, "reminder"), {"id": 5})
        self.assertEqual(extract_record({"data": {"reminder": {"id": 6}}}, "reminder"), {"id": 6})
        self.assertEqual(extract_record(None, "reminder"), {})

    def test_lookup_skips_blank_values(self):
        raw = {"dosage": "  ", "strength": "5mg"}
        self.assertEqual(lookup(raw, [("dosage",), ("strength",)]), "5mg")


class TestPayloads(unittest.TestCase):
    def test_medication_payload(self):
        draft = MedicationDraft(
            name="Ibuprofen",
            dosage="400mg",
            time="12:00 pm",
            pill_type=PillVisualType.BLUE,
            start_date=date(2025, 1, 31),
        )
        payload = build_medication_payload(draft)
        self.assertEqual(payload["time"], "12:00:00")
        self.assertEqual(payload["strength"], "400mg")
        self.assertEqual(payload["color"], "#45B3FE")
        self.assertEqual(payload["end_date"], "2025-02-28")
        self.assertTrue(payload["take_with_food"])

    def test_update_payload_follows_source_aliases(self):
        med = normalize_medication({"id": "m1", "name": "A", "pillType": "white", "startDate": "2025-01-01"})
        draft = MedicationDraft(name="A", pill_type=PillVisualType.ORANGE, start_date=date(2025, 2, 1))
        payload = build_update_payload(med, draft)
        self.assertEqual(payload["pill_type"], "orange")
        self.assertEqual(payload["pillType"], "orange")
        self.assertEqual(payload["startDate"], "2025-02-01")
        self.assertNotIn("iconType", payload)

    def test_reminder_payloads(self):
        med = normalize_medication({"id": "m1", "name": "Atorvastatin", "dosage": "20mg"})
        full = build_reminder_payload(
            [med],
            reminder_date="2025-06-10",
            reminder_time="8:00",
            title="Take Atorvastatin",
            repeat_type=RepeatType.DAILY,
            repeat_days={1, 2},
            repeat_end_date="2025-07-10",
            with_food=False,
            with_water=True,
        )
        self.assertEqual(full["time"], "08:00:00")
        self.assertEqual(full["medications"], [{"medicationId": "m1", "scheduleTime": "08:00:00"}])
        self.assertEqual(full["description"], "Take 20 mg of Atorvastatin")
        self.assertIsNone(full["repeat_days"])

        simple = build_simple_reminder_payload(full)
        self.assertEqual(set(simple), {"date", "title", "time", "medications"})


if __name__ == "__main__":
    unittest.main(verbosity=2)
