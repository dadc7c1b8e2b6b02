from __future__ import annotations

import unittest

from pydantic import ValidationError

from babylog.core.errors import SchemaError
from babylog.db.models import (
    DailyLog,
    DiaperEvent,
    GrowthRecord,
    SleepEvent,
    SleepMethod,
    parse_record,
    to_record,
)


class TestRecordModels(unittest.TestCase):
    def test_wire_names_are_camel_case(self) -> None:
        record = to_record(DailyLog(date="2024-03-01", milk_times=2, milk_total_ml=220, symptoms_tags=["rash"]))
        self.assertEqual(record["milkTimes"], 2)
        self.assertEqual(record["milkTotalMl"], 220)
        self.assertEqual(record["symptomsTags"], ["rash"])
        self.assertNotIn("milk_times", record)

    def test_unset_optionals_are_omitted(self) -> None:
        record = to_record(DiaperEvent(datetime="2024-03-01T08:00", kind="urine"))
        self.assertEqual(record, {"datetime": "2024-03-01T08:00", "kind": "urine", "note": ""})

    def test_enum_values_on_the_wire(self) -> None:
        record = to_record(SleepEvent(start="2024-03-01T13:00", end="2024-03-01T14:00", method=SleepMethod.FED_TO_SLEEP))
        self.assertEqual(record["method"], "fed-to-sleep")
        self.assertEqual(record["place"], "crib")

    def test_sleep_end_before_start_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            SleepEvent(start="2024-03-01T14:00", end="2024-03-01T13:00")

    def test_sleep_bounds_may_mix_naive_and_aware(self) -> None:
        # A day apart, so the order holds in any host zone
        sleep = SleepEvent(start="2024-01-01T08:00", end="2024-01-02T12:00:00Z")
        self.assertEqual(sleep.end, "2024-01-02T12:00:00Z")
        with self.assertRaises(ValidationError):
            SleepEvent(start="2024-01-02T12:00:00Z", end="2024-01-01T08:00")

    def test_urine_cannot_have_stool_fields(self) -> None:
        with self.assertRaises(ValidationError):
            DiaperEvent(datetime="2024-03-01T08:00", kind="urine", poop_color="green")
        stool = DiaperEvent(datetime="2024-03-01T08:00", kind="stool", poop_texture="formed", poop_color="green")
        self.assertEqual(stool.poop_texture, "formed")

    def test_growth_needs_a_measurement(self) -> None:
        with self.assertRaises(ValidationError):
            GrowthRecord(date="2024-03-01")
        self.assertEqual(GrowthRecord(date="2024-03-01", head_cm=38.5).head_cm, 38.5)

    def test_bad_timestamp_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            parse_record("feedEvents", {"datetime": "yesterday", "type": "formula"})

    def test_parse_record_accepts_wire_names(self) -> None:
        feed = parse_record("feedEvents", {"datetime": "2024-03-01T08:00", "type": "mixed", "amountMl": 60, "spitUp": True})
        self.assertEqual(feed.amount_ml, 60)
        self.assertTrue(feed.spit_up)

    def test_parse_record_unknown_collection(self) -> None:
        with self.assertRaises(SchemaError):
            parse_record("naps", {})


if __name__ == "__main__":
    unittest.main()
