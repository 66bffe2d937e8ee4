"""Cached parse → segment → describe pipeline over the configured history file."""
from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from pathlib import Path

from histview import config
from histview.categories import Categorizer
from histview.models import CommandRecord, HistorySettings, Session
from histview.observability import record_parse, record_parse_failure, start_span
from histview.parsers.history import HistoryParser
from histview.segmentation import SessionSegmenter

logger = logging.getLogger("histview")


class HistoryService:
    """Owns settings, the categorizer and the last parse result.

    Two locks: ``_refresh_lock`` serializes refreshes and settings updates,
    so custom category rules are never replaced while a parse is
    classifying commands. ``_lock`` only guards the cached result and is
    held just long enough to swap or copy it, so readers never wait on a
    parse.
    """

    def __init__(self, settings: HistorySettings | None = None, settings_path: Path | None = None):
        self.settings_path = settings_path
        self.settings = settings or config.load_settings(settings_path)
        self.categorizer = Categorizer(self.settings.custom_category_patterns)
        self._refresh_lock = threading.RLock()
        self._lock = threading.Lock()
        self._records: list[CommandRecord] = []
        self._sessions: list[Session] = []
        self._last_updated: datetime | None = None

    @property
    def history_path(self) -> Path:
        return Path(self.settings.history_file).expanduser()

    def refresh(self) -> list[Session]:
        """Re-parse the history file. A failure keeps the previous result."""
        with self._refresh_lock:
            started = time.perf_counter()
            settings = self.settings
            with start_span("histview.refresh", {"history.file": settings.history_file}):
                try:
                    parser = HistoryParser(settings.home_dir, self.categorizer)
                    records = parser.parse_file(settings.history_file)
                except Exception:
                    record_parse_failure((time.perf_counter() - started) * 1000)
                    raise
                segmenter = SessionSegmenter(settings.session_heuristics, settings.home_dir)
                sessions = segmenter.segment(records)

            elapsed_ms = (time.perf_counter() - started) * 1000
            with self._lock:
                self._records = records
                self._sessions = sessions
                self._last_updated = datetime.now(timezone.utc)
            record_parse(len(records), len(sessions), elapsed_ms)
            logger.info(f"Loaded {len(sessions)} sessions from {len(records)} commands in {elapsed_ms:.0f}ms")
            return sessions

    def update_settings(self, settings: HistorySettings, persist: bool = False) -> list[Session]:
        """Apply new settings and re-parse with them.

        If the refresh fails the previous settings and rules are restored
        and nothing is written to disk.
        """
        with self._refresh_lock:
            previous_settings = self.settings
            previous_rules = self.categorizer.custom_rules
            self.settings = settings
            self.categorizer.set_custom_rules(settings.custom_category_patterns)
            try:
                sessions = self.refresh()
            except Exception:
                self.settings = previous_settings
                self.categorizer.set_custom_rules(previous_rules)
                raise
            if persist:
                config.save_settings(settings, self.settings_path)
            return sessions

    def classify(self, command_text: str) -> str:
        # The rule tuple is swapped in one assignment, no lock needed.
        return self.categorizer.classify(command_text)

    @property
    def records(self) -> list[CommandRecord]:
        with self._lock:
            return list(self._records)

    @property
    def sessions(self) -> list[Session]:
        with self._lock:
            return list(self._sessions)

    @property
    def last_updated(self) -> datetime | None:
        with self._lock:
            return self._last_updated

    def get_session(self, session_id: int) -> Session | None:
        with self._lock:
            for session in self._sessions:
                if session.id == session_id:
                    return session
        return None


_service: HistoryService | None = None


def get_history_service() -> HistoryService:
    global _service
    if _service is None:
        _service = HistoryService(settings_path=config.CONFIG_PATH)
    return _service


def set_history_service(service: HistoryService | None) -> None:
    global _service
    _service = service
