"""Group parsed history records into sessions."""
from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from histview.descriptions import describe_session
from histview.models import CommandRecord, Session, SessionHeuristics


def is_related_directory(dir1: str, dir2: str) -> bool:
    """Same directory, parent/child, or siblings under one parent."""
    if dir1 == dir2:
        return True
    if dir2.startswith(dir1 + "/") or dir1.startswith(dir2 + "/"):
        return True
    return posixpath.dirname(dir1) == posixpath.dirname(dir2)


@dataclass
class _SessionBuilder:
    id: int
    start_time: datetime
    commands: list[CommandRecord] = field(default_factory=list)
    directories: dict[str, None] = field(default_factory=dict)
    categories: dict[str, int] = field(default_factory=dict)

    def add(self, record: CommandRecord) -> None:
        record.session_id = self.id
        self.commands.append(record)
        self.categories[record.category] = self.categories.get(record.category, 0) + 1
        self.directories.setdefault(record.directory, None)

    def finalize(self, home_dir: str | None) -> Session:
        end_time = self.commands[-1].timestamp
        session = Session(
            id=self.id,
            start_time=self.start_time,
            end_time=end_time,
            duration=end_time - self.start_time,
            commands=self.commands,
            directories=list(self.directories),
            categories=self.categories,
        )
        session.description = describe_session(session, home_dir)
        return session


class SessionSegmenter:
    """Single pass over time-ordered records.

    Break checks run in priority order and stop at the first that fires:
    idle timeout, unrelated directory, a run of category changes, and the
    maximum session length. A run shorter than the configured minimum is
    dropped instead of being merged into a neighbour, and the next session
    reuses its id.
    """

    def __init__(self, heuristics: SessionHeuristics | None = None, home_dir: str | None = None):
        self.heuristics = heuristics or SessionHeuristics()
        self.home_dir = home_dir

    @property
    def timeout(self) -> timedelta:
        return timedelta(minutes=self.heuristics.timeout_minutes)

    @property
    def min_commands(self) -> int:
        return max(1, self.heuristics.min_commands_per_session)

    @property
    def category_change_threshold(self) -> int:
        return max(0, self.heuristics.category_change_threshold)

    @property
    def max_duration(self) -> timedelta | None:
        minutes = self.heuristics.max_session_duration_minutes
        if minutes <= 0:
            return None
        return timedelta(minutes=minutes)

    def segment(self, records: list[CommandRecord]) -> list[Session]:
        if not records:
            return []

        sessions: list[Session] = []
        current = _SessionBuilder(id=1, start_time=records[0].timestamp)
        category_changes = 0
        last_category: str | None = None
        threshold = self.category_change_threshold
        max_duration = self.max_duration

        for i, record in enumerate(records):
            if i > 0:
                previous = records[i - 1]
                should_break = record.timestamp - previous.timestamp > self.timeout

                if not should_break and self.heuristics.directory_change_breaks_session:
                    should_break = not is_related_directory(previous.directory, record.directory)

                if not should_break and threshold > 0:
                    if last_category is not None and record.category != last_category:
                        category_changes += 1
                        should_break = category_changes >= threshold
                    else:
                        category_changes = 0

                if not should_break and max_duration is not None:
                    should_break = record.timestamp - current.start_time > max_duration

                if should_break:
                    if len(current.commands) >= self.min_commands:
                        sessions.append(current.finalize(self.home_dir))
                    current = _SessionBuilder(id=len(sessions) + 1, start_time=record.timestamp)
                    category_changes = 0

            last_category = record.category
            current.add(record)

        if len(current.commands) >= self.min_commands:
            sessions.append(current.finalize(self.home_dir))

        return sessions


def segment_sessions(
    records: list[CommandRecord],
    heuristics: SessionHeuristics | None = None,
    home_dir: str | None = None,
) -> list[Session]:
    return SessionSegmenter(heuristics, home_dir).segment(records)
