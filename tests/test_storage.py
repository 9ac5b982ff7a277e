from __future__ import annotations

import json
import tempfile
import unittest
from datetime import date
from pathlib import Path

from models import AppState, DayRecord, EXECUTION, ScheduledTask, SpecificDays, Task
from storage import BackupImportError, Storage, backup_filename

TODAY = date(2026, 4, 1)


class LoadSnapshotTests(unittest.TestCase):
    def test_missing_file_gives_default(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            state = Storage(Path(tmp_dir) / "state.json").load_snapshot(TODAY)
            self.assertEqual(state.base_max, 100)
            self.assertEqual(state.history, [])
            self.assertEqual([t.title for t in state.templates], ["晨间阅读", "深蹲 50 次"])
            self.assertEqual([t.title for t in state.backlog], ["整理桌面"])
            self.assertEqual(state.last_active_date, "2026-04-01")

    def test_corrupt_file_gives_default(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = Path(tmp_dir) / "state.json"
            path.write_text("{not json", encoding="utf-8")
            with self.assertLogs("storage", level="WARNING"):
                state = Storage(path).load_snapshot(TODAY)
            self.assertEqual(state.base_max, 100)
            path.write_text("[1, 2]", encoding="utf-8")
            with self.assertLogs("storage", level="WARNING"):
                self.assertEqual(Storage(path).load_snapshot(TODAY).base_max, 100)

    def test_partial_document_merges_over_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = Path(tmp_dir) / "state.json"
            path.write_text(json.dumps({"baseMax": 70, "phase": "EXECUTION", "backlog": []}), encoding="utf-8")
            state = Storage(path).load_snapshot(TODAY)
            self.assertEqual(state.base_max, 70)
            self.assertEqual(state.phase, EXECUTION)
            self.assertEqual(state.backlog, [])
            self.assertEqual(len(state.templates), 2)
            self.assertFalse(state.settings.bottom_nav_offset)
            self.assertEqual(state.scheduled_tasks, [])

    def test_malformed_entries_are_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = Path(tmp_dir) / "state.json"
            doc = {"todayTasks": [{"id": "a", "title": "Read", "cost": 10}, {"cost": 3}]}
            path.write_text(json.dumps(doc), encoding="utf-8")
            with self.assertLogs("storage", level="WARNING"):
                state = Storage(path).load_snapshot(TODAY)
            self.assertEqual([t.id for t in state.today_tasks], ["a"])

    def test_non_finite_numbers_are_skipped(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = Path(tmp_dir) / "state.json"
            path.write_text(
                '{"baseMax": NaN, "diaryAdjustment": -Infinity,'
                ' "todayTasks": [{"id": "a", "title": "x", "cost": Infinity},'
                ' {"id": "b", "title": "y", "cost": 3}]}',
                encoding="utf-8")
            with self.assertLogs("storage", level="WARNING"):
                state = Storage(path).load_snapshot(TODAY)
            self.assertEqual([t.id for t in state.today_tasks], ["b"])
            self.assertEqual(state.base_max, 100)
            self.assertEqual(state.diary_adjustment, 0)

    def test_save_then_load(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            storage = Storage(Path(tmp_dir) / "nested" / "state.json")
            state = AppState(
                base_max=80,
                today_tasks=[Task(id="s", title="Gym", cost=20, type="scheduled", source_id="p1", note="legs")],
                scheduled_tasks=[ScheduledTask(id="p1", title="Gym", cost=20, config=SpecificDays(frozenset({2, 5})))],
                history=[DayRecord("2026-03-31", "ok", 90, 0, False, 2, 90, ("Gym", "Read"))],
            )
            storage.save_snapshot(state)
            raw = json.loads(storage.path.read_text(encoding="utf-8"))
            self.assertEqual(raw["todayTasks"][0]["sourceId"], "p1")
            self.assertEqual(raw["scheduledTasks"][0]["config"], {"mode": "specific_days", "days": [2, 5]})
            self.assertNotIn("targetCount", raw["scheduledTasks"][0]["config"])
            self.assertEqual(storage.load_snapshot(TODAY), state)


class BackupTests(unittest.TestCase):
    def test_export_uses_dated_name(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            storage = Storage(Path(tmp_dir) / "state.json")
            path = storage.export_backup(AppState(base_max=55), Path(tmp_dir), TODAY)
            self.assertEqual(path.name, backup_filename(TODAY))
            self.assertEqual(path.name, "willpower-backup-2026-04-01.json")
            self.assertEqual(json.loads(path.read_text(encoding="utf-8"))["baseMax"], 55)

    def test_import_without_settings_defaults_them(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            storage = Storage(Path(tmp_dir) / "state.json")
            doc = {"baseMax": 60, "history": [], "templates": []}
            state = storage.import_backup(json.dumps(doc), TODAY)
            self.assertEqual(state.base_max, 60)
            self.assertFalse(state.settings.bottom_nav_offset)
            self.assertEqual(state.templates, [])
            self.assertEqual(storage.load_snapshot(TODAY).base_max, 60)

    def test_invalid_import_leaves_snapshot_untouched(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            storage = Storage(Path(tmp_dir) / "state.json")
            storage.save_snapshot(AppState(base_max=42))
            before = storage.path.read_text(encoding="utf-8")
            bad_documents = [
                "not json",
                "[]",
                json.dumps({"history": [], "templates": []}),
                json.dumps({"baseMax": "100", "history": [], "templates": []}),
                json.dumps({"baseMax": 100, "templates": []}),
                json.dumps({"baseMax": 100, "history": {}, "templates": []}),
                json.dumps({"baseMax": 100, "history": []}),
            ]
            for text in bad_documents:
                with self.subTest(text=text):
                    with self.assertLogs("storage", level="WARNING"):
                        with self.assertRaises(BackupImportError):
                            storage.import_backup(text, TODAY)
            self.assertEqual(storage.path.read_text(encoding="utf-8"), before)

    def test_non_finite_base_max_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp_dir:
            storage = Storage(Path(tmp_dir) / "state.json")
            storage.save_snapshot(AppState(base_max=42))
            before = storage.path.read_text(encoding="utf-8")
            for text in ('{"baseMax": Infinity, "history": [], "templates": []}',
                         '{"baseMax": NaN, "history": [], "templates": []}'):
                with self.subTest(text=text):
                    with self.assertLogs("storage", level="WARNING"):
                        with self.assertRaises(BackupImportError):
                            storage.import_backup(text, TODAY)
            self.assertEqual(storage.path.read_text(encoding="utf-8"), before)


if __name__ == "__main__":
    unittest.main()
