"""Command categorization rules and classification utilities."""
from __future__ import annotations

import logging
import re
from typing import Any, Iterable

from histview.models import CategoryInfo, CategoryRule

logger = logging.getLogger("histview.categories")

OTHER_CATEGORY = "other"

# Evaluated in this order; the first matching rule wins.
_BUILTIN_CATEGORY_RULES: list[tuple[str, str, str]] = [
    ("version-control", "Version Control", r"^(git|hg|svn|bzr|cvs)\s"),
    (
        "build",
        "Build",
        r"^(make|cmake|cargo|npm|yarn|pnpm|gradle|mvn|ant|bazel|go build|go test|gcc|g\+\+|clang|rustc|javac)\s",
    ),
    (
        "file-operations",
        "File Operations",
        r"^(cp|mv|rm|mkdir|rmdir|touch|chmod|chown|ln|cat|head|tail|less|more|dd|rsync|scp)\s",
    ),
    ("navigation", "Navigation", r"^(cd|ls|pwd|tree|find|locate|which|whereis)\s"),
    (
        "dev-tools",
        "Dev Tools",
        r"^(vim|nvim|emacs|nano|code|subl|idea|pycharm|gdb|lldb|valgrind|strace|ltrace)\s",
    ),
    (
        "system-admin",
        "System Admin",
        r"^(sudo|su|systemctl|service|kill|killall|ps|top|htop|free|df|du|mount|umount|lsof|netstat|ss|iptables|ufw|systemd)\s",
    ),
    (
        "network",
        "Network",
        r"^(curl|wget|ssh|scp|rsync|ping|traceroute|nslookup|dig|host|telnet|nc|netcat|ftp|sftp)\s",
    ),
    ("containers", "Containers", r"^(docker|podman|kubectl|k|helm|minikube|kind|k3s|nerdctl|containerd)\s"),
    ("database", "Database", r"^(psql|mysql|sqlite3|mongo|redis-cli|mongosh|clickhouse-client)\s"),
    ("editor", "Editor", r"^(vim|nvim|emacs|nano|vi|ed|joe|pico)\s"),
    ("search", "Search", r"^(grep|egrep|fgrep|ag|rg|ack|find.*-name|locate)\s"),
    (
        "package-manager",
        "Package Manager",
        r"^(apt|apt-get|yum|dnf|pacman|brew|pip|pip3|npm|yarn|cargo|gem|composer)\s",
    ),
]

_DISPLAY_NAMES: dict[str, str] = {category: label for category, label, _ in _BUILTIN_CATEGORY_RULES}
_DISPLAY_NAMES[OTHER_CATEGORY] = "Other"

BUILTIN_CATEGORIES: tuple[str, ...] = tuple(category for category, _, _ in _BUILTIN_CATEGORY_RULES)


def display_name(category: str) -> str:
    """Human-friendly title for a category label."""
    label = _DISPLAY_NAMES.get(category)
    if label:
        return label
    words = re.split(r"[-_\s]+", (category or "").strip())
    return " ".join(word[:1].upper() + word[1:] for word in words if word) or "Other"


def base_command(command_text: str) -> str:
    """First whitespace-delimited token, or "" for blank input."""
    parts = (command_text or "").split()
    return parts[0] if parts else ""


def _compile_rules(
    rules: Iterable[Any] | None,
) -> tuple[tuple[CategoryRule, re.Pattern[str]], ...]:
    compiled: list[tuple[CategoryRule, re.Pattern[str]]] = []
    for raw in rules or ():
        if isinstance(raw, dict):
            category = str(raw.get("category") or "").strip()
            pattern = str(raw.get("pattern") or "")
        else:
            category = str(getattr(raw, "category", "") or "").strip()
            pattern = str(getattr(raw, "pattern", "") or "")
        if not category or not pattern:
            continue
        try:
            regex = re.compile(pattern)
        except re.error as e:
            logger.warning(f"Dropping custom category pattern {pattern!r} ({category}): {e}")
            continue
        logger.debug(f"Loaded custom pattern: category={category} pattern={pattern!r}")
        compiled.append((CategoryRule(category=category, pattern=pattern, origin="user"), regex))
    return tuple(compiled)


_BUILTIN_COMPILED: tuple[tuple[CategoryRule, re.Pattern[str]], ...] = tuple(
    (CategoryRule(category=category, pattern=pattern, origin="builtin"), re.compile(pattern))
    for category, _, pattern in _BUILTIN_CATEGORY_RULES
)


class Categorizer:
    """Maps command text to a category label.

    User rules are checked first, in configured order, then the built-in
    rules in declaration order. The user rule set is an immutable tuple
    swapped in one assignment by ``set_custom_rules``; a ``classify`` call
    reads it once, so a concurrent replacement is seen either entirely or
    not at all.
    """

    def __init__(self, custom_rules: Iterable[Any] | None = None):
        self._custom: tuple[tuple[CategoryRule, re.Pattern[str]], ...] = ()
        self.set_custom_rules(custom_rules)

    def set_custom_rules(self, rules: Iterable[Any] | None) -> list[CategoryRule]:
        """Replace all user rules. Invalid patterns are skipped."""
        self._custom = _compile_rules(rules)
        return self.custom_rules

    @property
    def custom_rules(self) -> list[CategoryRule]:
        return [rule for rule, _ in self._custom]

    def rules(self) -> list[CategoryRule]:
        """All rules in evaluation order."""
        return [rule for rule, _ in self._custom] + [rule for rule, _ in _BUILTIN_COMPILED]

    def classify(self, command_text: str) -> str:
        text = (command_text or "").strip()
        for rule, regex in self._custom:
            if regex.search(text):
                return rule.category
        for rule, regex in _BUILTIN_COMPILED:
            if regex.search(text):
                return rule.category
        return OTHER_CATEGORY

    def base_command(self, command_text: str) -> str:
        return base_command(command_text)

    def describe_categories(self) -> list[CategoryInfo]:
        """Category listing for the API: user rules first, then built-ins."""
        infos: list[CategoryInfo] = []
        for rule in self.rules():
            infos.append(
                CategoryInfo(
                    category=rule.category,
                    display_name=display_name(rule.category),
                    origin=rule.origin,
                    pattern=rule.pattern,
                )
            )
        infos.append(CategoryInfo(category=OTHER_CATEGORY, display_name=display_name(OTHER_CATEGORY)))
        return infos
