import json
import tempfile
import threading
import time
import unittest
from pathlib import Path
from unittest.mock import patch

from histview import config
from histview.models import CustomCategoryPattern, SessionHeuristics
from histview.history_service import HistoryService
from histview.parsers.history import SourceUnavailable

_HISTORY = "\n".join(
    [
        ": 1767603600:0;terraform plan",
        ": 1767603660:0;git status",
        ": 1767603720:0;git push",
        ": 1767610800:0;docker ps",
    ]
) + "\n"


class HistoryServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.root = Path(tmpdir.name)
        self.history_path = self.root / ".zsh_history"
        self.history_path.write_text(_HISTORY, encoding="utf-8")
        self.settings_path = self.root / "settings.json"
        settings = config.default_settings().model_copy(
            update={"history_file": str(self.history_path), "home_dir": "/home/u"}
        )
        self.service = HistoryService(settings=settings, settings_path=self.settings_path)

    def test_refresh_parses_and_segments(self) -> None:
        sessions = self.service.refresh()

        self.assertEqual(len(self.service.records), 4)
        self.assertEqual([len(s.commands) for s in sessions], [3, 1])
        self.assertIsNotNone(self.service.last_updated)
        self.assertEqual(self.service.get_session(2).commands[0].text, "docker ps")
        self.assertIsNone(self.service.get_session(99))

    def test_failed_refresh_keeps_previous_result(self) -> None:
        self.service.refresh()
        self.history_path.unlink()

        with self.assertRaises(SourceUnavailable):
            self.service.refresh()
        self.assertEqual(len(self.service.sessions), 2)

    def test_update_settings_reclassifies_and_persists(self) -> None:
        self.service.refresh()
        self.assertEqual(self.service.records[0].category, "other")

        updated = self.service.settings.model_copy(
            update={
                "session_heuristics": SessionHeuristics(timeout_minutes=300),
                "custom_category_patterns": [CustomCategoryPattern(category="cloud-infra", pattern=r"^terraform\s")],
            }
        )
        sessions = self.service.update_settings(updated, persist=True)

        self.assertEqual(self.service.records[0].category, "cloud-infra")
        self.assertEqual(len(sessions), 1)
        self.assertEqual(self.service.classify("terraform apply"), "cloud-infra")
        saved = json.loads(self.settings_path.read_text(encoding="utf-8"))
        self.assertEqual(saved["custom_category_patterns"][0]["category"], "cloud-infra")

    def test_failed_settings_update_restores_previous_settings(self) -> None:
        self.service.refresh()
        previous = self.service.settings
        broken = previous.model_copy(
            update={
                "history_file": str(self.root / "missing_history"),
                "custom_category_patterns": [CustomCategoryPattern(category="cloud-infra", pattern=r"^terraform\s")],
            }
        )

        with self.assertRaises(SourceUnavailable):
            self.service.update_settings(broken, persist=True)

        self.assertEqual(self.service.settings, previous)
        self.assertEqual(self.service.categorizer.custom_rules, [])
        self.assertEqual(self.service.classify("terraform plan"), "other")
        self.assertFalse(self.settings_path.exists())
        self.assertEqual(len(self.service.sessions), 2)

    def test_reads_do_not_wait_for_a_running_refresh(self) -> None:
        self.service.refresh()
        parse_started = threading.Event()
        release_parse = threading.Event()
        records = self.service.records

        def slow_parse(parser, path):
            parse_started.set()
            release_parse.wait(5)
            return records

        with patch("histview.history_service.HistoryParser.parse_file", autospec=True, side_effect=slow_parse):
            worker = threading.Thread(target=self.service.refresh)
            worker.start()
            self.addCleanup(worker.join, 5)
            self.addCleanup(release_parse.set)
            self.assertTrue(parse_started.wait(5))

            started = time.perf_counter()
            self.assertEqual(len(self.service.sessions), 2)
            self.assertIsNotNone(self.service.get_session(1))
            self.assertEqual(self.service.classify("git status"), "version-control")
            self.assertLess(time.perf_counter() - started, 1.0)

            release_parse.set()
            worker.join(5)
        self.assertFalse(worker.is_alive())

    def test_records_are_copies(self) -> None:
        self.service.refresh()
        self.service.records.clear()
        self.assertEqual(len(self.service.records), 4)


if __name__ == "__main__":
    unittest.main()
