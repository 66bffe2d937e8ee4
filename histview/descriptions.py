"""Short human-readable labels for finalized sessions."""
from __future__ import annotations

import os
import posixpath
from collections import Counter

from histview.categories import base_command, display_name
from histview.models import CommandRecord, Session

EMPTY_SESSION_DESCRIPTION = "Empty session"
_FALLBACK_ACTIVITY = "work"


def _clean_base_command(record: CommandRecord) -> str:
    base = (record.base_command or base_command(record.text)).lower()
    if base.startswith("./"):
        base = base[2:]
    return base


def _dominant_pair(counts: Counter[str], total: int) -> list[tuple[str, int]]:
    # Counter.most_common keeps first-seen order among equal counts.
    ranked = counts.most_common()
    if not ranked:
        return []
    top = ranked[0]
    if top[1] * 2 > total:
        return [top]
    if len(ranked) > 1 and ranked[1][1] * 5 >= total:
        return [top, ranked[1]]
    if top[1] * 5 >= total:
        return [top]
    return []


def extract_top_activities(commands: list[CommandRecord]) -> str:
    """Most frequent base command, or the top two when neither dominates.

    A command alone is used when it covers more than half the session; a
    second one is added when it covers at least a fifth. The top command
    is still used alone when only it covers a fifth. Otherwise the
    activity is ``"work"``.
    """
    counts: Counter[str] = Counter()
    for record in commands:
        base = _clean_base_command(record)
        if base:
            counts[base] += 1

    picked = _dominant_pair(counts, len(commands))
    if not picked:
        return _FALLBACK_ACTIVITY
    return " ".join(command for command, _ in picked)


def find_most_active_directory(session: Session) -> str:
    if not session.commands:
        return session.directories[0] if session.directories else ""

    counts: Counter[str] = Counter(record.directory for record in session.commands)
    return counts.most_common(1)[0][0]


def _path_parts(path: str) -> list[str]:
    return [part for part in posixpath.normpath(path).split("/") if part]


def truncate_directory_path(full_path: str, home_dir: str) -> str:
    """Compact directory label.

    /Users/chris                        -> ~
    /Users/chris/code/project           -> project
    /Users/chris/code/project/src       -> project/src
    /Users/chris/code/project/src/lib   -> src/lib
    /usr/local/bin                      -> local/bin
    """
    if full_path == home_dir:
        return "~"

    parts = _path_parts(full_path)
    if not parts or parts == ["."]:
        return "."

    home = home_dir.rstrip("/")
    if home and full_path.startswith(home + "/"):
        home_parts = _path_parts(home)
        if len(parts) > len(home_parts):
            parts = parts[len(home_parts):]

    if len(parts) == 1:
        return parts[0]
    if len(parts) == 2:
        return parts[-1]
    if len(parts) in (3, 4):
        return "/".join(parts[-2:])
    return "/".join(parts[-3:])


def top_categories(categories: dict[str, int], total: int) -> list[str]:
    ranked = sorted(categories.items(), key=lambda item: item[1], reverse=True)
    if not ranked:
        return []
    picked = [ranked[0][0]]
    if len(ranked) > 1 and ranked[1][1] * 5 >= total:
        picked.append(ranked[1][0])
    return picked


def describe_session(session: Session, home_dir: str | None = None) -> str:
    """``"<dir>: <activity> [<Category>, <Category>]"``"""
    if not session.commands:
        return EMPTY_SESSION_DESCRIPTION

    home = home_dir if home_dir is not None else os.path.expanduser("~")
    activities = extract_top_activities(session.commands)
    short_dir = truncate_directory_path(find_most_active_directory(session), home)

    category_str = ""
    labels = [display_name(category) for category in top_categories(session.categories, len(session.commands))]
    if labels:
        category_str = f" [{', '.join(labels)}]"

    return f"{short_dir}: {activities}{category_str}"

