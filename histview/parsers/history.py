"""Parse zsh extended-history logs into CommandRecord models."""
from __future__ import annotations

import logging
import posixpath
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from histview.categories import Categorizer, base_command
from histview.models import CommandRecord

logger = logging.getLogger("histview.parser")

# : <timestamp>:<duration>;<command>
_HISTORY_LINE_PATTERN = re.compile(r"^:\s*(\d+):(\d+);(.*)$")
# cd argument, up to the first shell operator or line break
_CD_PATTERN = re.compile(r"^\s*cd(?:[ \t]+([^;&|\n]*))?(?:[;&|\n]|$)")


class SourceUnavailable(Exception):
    """The history log could not be opened or read."""

    def __init__(self, path: str | Path, reason: str = ""):
        self.path = str(path)
        self.reason = reason
        message = f"History source unavailable: {self.path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


def resolve_directory(current_dir: str, target: str, home_dir: str) -> str:
    """Resolve a ``cd`` argument against the current directory."""
    target = target.strip().strip("\"'")

    if target in ("", "~"):
        return home_dir
    if target.startswith("~/"):
        return posixpath.normpath(posixpath.join(home_dir, target[2:]))
    if posixpath.isabs(target):
        return posixpath.normpath(target)
    if target == "..":
        return posixpath.dirname(current_dir)
    if target == ".":
        return current_dir
    return posixpath.normpath(posixpath.join(current_dir, target))


def cd_target(command_text: str) -> str | None:
    """Return the ``cd`` argument ("" for a bare ``cd``), or None for other commands."""
    if base_command(command_text) != "cd":
        return None
    match = _CD_PATTERN.match(command_text)
    if not match:
        return None
    return (match.group(1) or "").strip()


def _to_datetime(raw: str) -> datetime | None:
    try:
        return datetime.fromtimestamp(int(raw), tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


class HistoryParser:
    """Single-pass parser tracking the implicit working directory."""

    def __init__(self, home_dir: str, categorizer: Categorizer | None = None):
        self.home_dir = home_dir
        self.categorizer = categorizer or Categorizer()
        self.skipped_lines = 0

    def parse_lines(self, lines: Iterable[str]) -> list[CommandRecord]:
        records: list[CommandRecord] = []
        current_dir = self.home_dir
        pending: tuple[datetime, int, list[str]] | None = None
        self.skipped_lines = 0

        def flush() -> None:
            nonlocal current_dir
            if pending is None:
                return
            timestamp, duration, parts = pending
            text = "\n".join(parts)
            records.append(
                CommandRecord(
                    sequence_id=len(records) + 1,
                    timestamp=timestamp,
                    duration=duration,
                    text=text,
                    directory=current_dir,
                    category=self.categorizer.classify(text),
                    base_command=base_command(text),
                )
            )
            target = cd_target(text)
            if target is not None:
                current_dir = resolve_directory(current_dir, target, self.home_dir)

        for raw_line in lines:
            line = raw_line.rstrip("\r\n")
            match = _HISTORY_LINE_PATTERN.match(line)
            timestamp = _to_datetime(match.group(1)) if match else None
            if match and timestamp is not None:
                flush()
                pending = (timestamp, int(match.group(2)), [match.group(3)])
                continue
            if pending is not None:
                pending[2].append(line)
                continue
            self.skipped_lines += 1

        flush()

        if self.skipped_lines:
            logger.debug(f"Skipped {self.skipped_lines} unparsable history lines")
        return records

    def parse_file(self, path: str | Path) -> list[CommandRecord]:
        history_path = Path(path).expanduser()
        try:
            with open(history_path, encoding="utf-8", errors="replace") as handle:
                records = self.parse_lines(handle)
        except OSError as e:
            raise SourceUnavailable(history_path, e.strerror or str(e)) from e
        logger.info(f"Parsed {len(records)} commands from {history_path}")
        return records


def parse_history(
    source: str | Path | Iterable[str],
    home_dir: str,
    categorizer: Categorizer | None = None,
) -> list[CommandRecord]:
    """Parse a history file path, or any iterable of lines, into records."""
    parser = HistoryParser(home_dir, categorizer)
    if isinstance(source, (str, Path)):
        return parser.parse_file(source)
    return parser.parse_lines(source)
