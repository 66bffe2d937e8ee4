"""Filtering, search and aggregate views over parsed history."""
from __future__ import annotations

from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

from histview.models import CommandPattern, CommandRecord, CommandStats, Session, VolumePoint


def _parse_day(value: str | None) -> datetime | None:
    token = (value or "").strip()
    if not token:
        return None
    try:
        day = date.fromisoformat(token)
    except ValueError:
        return None
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def _keyword_tokens(keyword: str | None) -> list[str]:
    return (keyword or "").lower().split()


def _session_matches_token(session: Session, token: str) -> bool:
    if token in session.description.lower():
        return True
    for record in session.commands:
        if token in record.text.lower() or token in record.directory.lower():
            return True
    return False


def filter_sessions(
    sessions: Iterable[Session],
    start_date: str | None = None,
    end_date: str | None = None,
    category: str | None = None,
    keyword: str | None = None,
) -> list[Session]:
    """Filter sessions by day range, category and keyword tokens.

    Unparsable dates are ignored. ``end_date`` includes the whole day.
    Every keyword token must appear in the description, a command or a
    command's directory.
    """
    start = _parse_day(start_date)
    end = _parse_day(end_date)
    if end is not None:
        end = end + timedelta(days=1)
    wanted_category = (category or "").strip()
    if wanted_category == "all":
        wanted_category = ""
    tokens = _keyword_tokens(keyword)

    filtered: list[Session] = []
    for session in sessions:
        if start is not None and session.start_time < start:
            continue
        if end is not None and session.end_time > end:
            continue
        if wanted_category and wanted_category not in session.categories:
            continue
        if tokens and not all(_session_matches_token(session, token) for token in tokens):
            continue
        filtered.append(session)
    return filtered


def sort_sessions(sessions: Iterable[Session], order: str | None = "desc") -> list[Session]:
    ascending = (order or "").strip().lower() == "asc"
    return sorted(sessions, key=lambda session: (session.start_time, session.id), reverse=not ascending)


def search_commands(records: Iterable[CommandRecord], query: str) -> list[CommandRecord]:
    needle = (query or "").lower()
    if not needle:
        return []
    return [
        record
        for record in records
        if needle in record.text.lower() or needle in record.directory.lower()
    ]


def command_stats(
    records: list[CommandRecord],
    sessions: list[Session],
    last_updated: datetime | None = None,
) -> CommandStats:
    categories: Counter[str] = Counter(record.category for record in records)
    return CommandStats(
        total_commands=len(records),
        total_sessions=len(sessions),
        categories=dict(categories),
        last_updated=last_updated,
    )


def daily_volume(records: Iterable[CommandRecord]) -> list[VolumePoint]:
    volume: Counter[str] = Counter(record.timestamp.date().isoformat() for record in records)
    return [VolumePoint(date=day, count=count) for day, count in sorted(volume.items())]


def command_patterns(records: Iterable[CommandRecord], sessions: Iterable[Session]) -> dict[str, CommandPattern]:
    """Per base command: usage count, categories and same-session co-occurrence."""
    patterns: dict[str, CommandPattern] = {}
    for record in records:
        pattern = patterns.get(record.base_command)
        if pattern is None:
            pattern = CommandPattern(command=record.base_command)
            patterns[record.base_command] = pattern
        pattern.count += 1
        pattern.categories[record.category] = pattern.categories.get(record.category, 0) + 1

    for session in sessions:
        in_session = list(dict.fromkeys(record.base_command for record in session.commands))
        for first in in_session:
            pattern = patterns.get(first)
            if pattern is None:
                continue
            for second in in_session:
                if first != second:
                    pattern.co_occurrence[second] = pattern.co_occurrence.get(second, 0) + 1

    return patterns
