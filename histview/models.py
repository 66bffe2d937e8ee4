"""Pydantic models for parsed history records, sessions and settings."""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    items: list[T]
    total: int
    offset: int
    limit: int


# ── History models ──────────────────────────────────────────────────

class CommandRecord(BaseModel):
    sequence_id: int
    timestamp: datetime
    duration: int = 0  # seconds, 0 when the log has no duration
    text: str = ""
    directory: str = ""
    category: str = "other"
    base_command: str = ""
    session_id: int = 0  # set by the segmenter


class Session(BaseModel):
    id: int
    start_time: datetime
    end_time: datetime
    duration: timedelta = timedelta(0)
    commands: list[CommandRecord] = Field(default_factory=list)
    directories: list[str] = Field(default_factory=list)
    categories: dict[str, int] = Field(default_factory=dict)
    description: str = ""


class CategoryRule(BaseModel):
    category: str
    pattern: str
    origin: Literal["user", "builtin"] = "user"


# ── Settings models ─────────────────────────────────────────────────

class SessionHeuristics(BaseModel):
    # Gap between two commands that always starts a new session
    timeout_minutes: int = 30
    # Break when moving to an unrelated directory tree
    directory_change_breaks_session: bool = False
    # Consecutive category changes that break a session, 0 disables
    category_change_threshold: int = 0
    # Shorter runs are dropped from the output
    min_commands_per_session: int = 1
    # Hard cap on session length, 0 disables
    max_session_duration_minutes: int = 0
    short_break_minutes: int = 5


class CustomCategoryPattern(BaseModel):
    category: str
    pattern: str


class HistorySettings(BaseModel):
    history_file: str
    home_dir: str
    session_timeout_minutes: int = 30
    session_heuristics: SessionHeuristics = Field(default_factory=SessionHeuristics)
    custom_category_patterns: list[CustomCategoryPattern] = Field(default_factory=list)


# ── API models ──────────────────────────────────────────────────────

class CommandStats(BaseModel):
    total_commands: int = 0
    total_sessions: int = 0
    categories: dict[str, int] = Field(default_factory=dict)
    last_updated: datetime | None = None


class VolumePoint(BaseModel):
    date: str
    count: int = 0


class CommandPattern(BaseModel):
    command: str
    count: int = 0
    co_occurrence: dict[str, int] = Field(default_factory=dict)
    categories: dict[str, int] = Field(default_factory=dict)


class CategoryInfo(BaseModel):
    category: str
    display_name: str
    origin: Literal["user", "builtin"] = "builtin"
    pattern: str = ""


class ClassifyRequest(BaseModel):
    command: str


class ClassifyResult(BaseModel):
    command: str
    category: str
    display_name: str
    base_command: str
