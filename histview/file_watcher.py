"""History file watcher using watchfiles.

Re-runs the history refresh whenever the history file is written.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from watchfiles import Change, awatch

from histview.history_service import HistoryService
from histview.parsers.history import SourceUnavailable

logger = logging.getLogger("histview.watcher")


class FileWatcher:
    """Background watcher that refreshes the history service on change."""

    def __init__(self):
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._running = False

    async def start(self, service: HistoryService) -> None:
        if self._running:
            logger.warning("File watcher already running")
            return

        self._running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._watch_loop(service, self._stop_event))
        logger.info(f"File watcher started for {service.history_path}")

    async def stop(self) -> None:
        self._running = False
        if self._stop_event:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("File watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def _watch_loop(self, service: HistoryService, stop_event: asyncio.Event) -> None:
        history_path = service.history_path
        # Watch the parent: shells often replace the file instead of appending.
        watch_dir = history_path.parent
        if not watch_dir.exists():
            logger.warning(f"History directory {watch_dir} does not exist, watcher has nothing to monitor")
            self._running = False
            return

        try:
            async for changes in awatch(watch_dir, stop_event=stop_event, recursive=False):
                if not self._running:
                    break
                if not self._touches(changes, history_path):
                    continue
                logger.info(f"{history_path.name} changed, refreshing sessions")
                try:
                    await asyncio.to_thread(service.refresh)
                except SourceUnavailable as e:
                    logger.warning(f"History refresh skipped: {e}")
                except Exception as e:
                    logger.error(f"Error refreshing history: {e}")
        except asyncio.CancelledError:
            logger.info("File watcher task cancelled")
        except Exception as e:
            logger.error(f"File watcher error: {e}")
        finally:
            self._running = False

    @staticmethod
    def _touches(changes: set[tuple[Change, str]], history_path: Path) -> bool:
        target = history_path.resolve()
        for change_type, path_str in changes:
            if change_type == Change.deleted:
                continue
            if Path(path_str).resolve() == target:
                return True
        return False


# Singleton instance
file_watcher = FileWatcher()
