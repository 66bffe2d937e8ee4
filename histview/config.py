"""histview configuration.

Process-level settings come from ``HISTVIEW_*`` environment variables.
User settings (history file, session heuristics, custom category
patterns) come from ``~/.history_viewer.json`` or a YAML equivalent.
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from histview.models import CustomCategoryPattern, HistorySettings, SessionHeuristics

logger = logging.getLogger("histview.config")


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


HOME_DIR = os.getenv("HISTVIEW_HOME_DIR") or str(Path.home())
HISTORY_FILE = os.getenv("HISTVIEW_HISTORY_FILE") or str(Path(HOME_DIR) / ".zsh_history")
CONFIG_PATH = Path(os.getenv("HISTVIEW_CONFIG_PATH") or str(Path(HOME_DIR) / ".history_viewer.json"))

# Auto refresh when the history file changes
AUTO_REFRESH = _env_bool("HISTVIEW_AUTO_REFRESH", True)

# Observability
OTEL_ENABLED = _env_bool("HISTVIEW_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("HISTVIEW_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("HISTVIEW_OTEL_SERVICE_NAME", "histview")

# Server settings
HOST = os.getenv("HISTVIEW_HOST", "127.0.0.1")
PORT = _env_int("HISTVIEW_PORT", 8080)

# CORS
FRONTEND_ORIGIN = os.getenv("HISTVIEW_FRONTEND_ORIGIN", "http://localhost:3000")


def default_settings() -> HistorySettings:
    return HistorySettings(
        history_file=HISTORY_FILE,
        home_dir=HOME_DIR,
        session_timeout_minutes=30,
        session_heuristics=SessionHeuristics(),
        custom_category_patterns=[],
    )


def _read_settings_file(path: Path) -> dict[str, Any]:
    content = path.read_text(encoding="utf-8")
    if not content.strip():
        return {}
    if path.suffix.lower() in {".yaml", ".yml"}:
        parsed = yaml.safe_load(content)
    else:
        parsed = json.loads(content)
    return parsed if isinstance(parsed, dict) else {}


def _coerce_patterns(raw: Any) -> list[CustomCategoryPattern]:
    if not isinstance(raw, list):
        return []
    patterns: list[CustomCategoryPattern] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        category = str(item.get("category") or "").strip()
        pattern = str(item.get("pattern") or "")
        if not category or not pattern:
            continue
        patterns.append(CustomCategoryPattern(category=category, pattern=pattern))
    return patterns


def merge_settings(base: HistorySettings, data: dict[str, Any]) -> HistorySettings:
    """Overlay a raw settings mapping onto ``base``.

    Zero/empty values keep the base value. ``session_heuristics`` is taken
    as a block, and only when it carries a non-zero ``timeout_minutes``;
    in that case it also drives the session timeout.
    """
    merged = base.model_copy(deep=True)

    history_file = str(data.get("history_file") or "").strip()
    if history_file:
        merged.history_file = os.path.expanduser(history_file)

    home_dir = str(data.get("home_dir") or "").strip()
    if home_dir:
        merged.home_dir = home_dir

    try:
        timeout = int(data.get("session_timeout_minutes") or 0)
    except (TypeError, ValueError):
        timeout = 0
    if timeout > 0:
        merged.session_timeout_minutes = timeout
        merged.session_heuristics.timeout_minutes = timeout

    heuristics_raw = data.get("session_heuristics")
    if isinstance(heuristics_raw, dict):
        try:
            heuristics = SessionHeuristics(**heuristics_raw)
        except Exception as e:
            logger.warning(f"Ignoring invalid session_heuristics: {e}")
        else:
            if heuristics.timeout_minutes:
                merged.session_heuristics = heuristics
                merged.session_timeout_minutes = heuristics.timeout_minutes

    patterns = _coerce_patterns(data.get("custom_category_patterns"))
    if patterns:
        merged.custom_category_patterns = patterns

    return merged


def load_settings(path: Path | None = None) -> HistorySettings:
    """Load user settings, falling back to defaults on any problem."""
    settings_path = path or CONFIG_PATH
    settings = default_settings()
    if not settings_path.exists():
        return settings

    try:
        data = _read_settings_file(settings_path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load settings from {settings_path}: {e}")
        return settings

    return merge_settings(settings, data)


def save_settings(settings: HistorySettings, path: Path | None = None) -> Path:
    """Persist settings as indented JSON."""
    settings_path = path or CONFIG_PATH
    payload = settings.model_dump(mode="json")
    if settings_path.suffix.lower() in {".yaml", ".yml"}:
        settings_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
    else:
        settings_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return settings_path
