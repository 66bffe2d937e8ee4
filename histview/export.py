"""Export sessions as JSON, CSV, Markdown, zsh history or scripts."""
from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from typing import Iterable

from histview.models import CommandRecord, Session

EXPORT_FORMATS = ("json", "csv", "markdown", "zsh", "bash", "python")

_CSV_HEADER = ["Session ID", "Command ID", "Timestamp", "Duration", "Command", "Directory", "Category", "Base Command"]


def _rfc3339(value: datetime) -> str:
    dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _rfc1123(value: datetime) -> str:
    dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S UTC")


def export_json(sessions: Iterable[Session]) -> str:
    payload = [session.model_dump(mode="json") for session in sessions]
    return json.dumps(payload, indent=2)


def export_csv(sessions: Iterable[Session]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(_CSV_HEADER)
    for session in sessions:
        for record in session.commands:
            writer.writerow(
                [
                    session.id,
                    record.sequence_id,
                    _rfc3339(record.timestamp),
                    record.duration,
                    record.text,
                    record.directory,
                    record.category,
                    record.base_command,
                ]
            )
    return buffer.getvalue()


def export_markdown(sessions: Iterable[Session], generated_at: datetime | None = None) -> str:
    generated = generated_at or datetime.now(timezone.utc)
    lines = ["# Shell History Sessions", "", f"Generated: {_rfc1123(generated)}", ""]

    for session in sessions:
        lines.append(f"## Session {session.id}: {session.description}")
        lines.append("")
        lines.append(f"- **Start:** {_rfc1123(session.start_time)}")
        lines.append(f"- **End:** {_rfc1123(session.end_time)}")
        lines.append(f"- **Duration:** {int(session.duration.total_seconds())}s")
        lines.append(f"- **Commands:** {len(session.commands)}")
        lines.append(f"- **Directories:** {', '.join(session.directories)}")
        lines.append("")

        if session.categories:
            lines.append("### Categories")
            lines.append("")
            for category, count in session.categories.items():
                lines.append(f"- {category}: {count} commands")
            lines.append("")

        lines.append("### Commands")
        lines.append("")
        for record in session.commands:
            clock = record.timestamp.astimezone(timezone.utc).strftime("%H:%M:%S")
            lines.append(f"#### {clock} - {record.base_command}")
            lines.append("")
            lines.append(f"**Directory:** `{record.directory}`")
            lines.append("")
            lines.append(f"**Category:** {record.category}")
            lines.append("")
            lines.append("```bash")
            lines.append(record.text)
            lines.append("```")
            lines.append("")

        lines.append("---")
        lines.append("")

    return "\n".join(lines)


def export_zsh_history(records: Iterable[CommandRecord]) -> str:
    """Render records back into ``: <ts>:<duration>;<command>`` lines."""
    return "".join(
        f": {int(record.timestamp.timestamp())}:{record.duration};{record.text}\n" for record in records
    )


def _session_records(sessions: Iterable[Session]) -> list[CommandRecord]:
    return [record for session in sessions for record in session.commands]


def export_script(sessions: Iterable[Session], lang: str) -> str:
    commands = [record.text for record in _session_records(sessions)]
    if lang == "bash":
        body = "\n".join(commands)
        return f"#!/usr/bin/env bash\nset -euo pipefail\n\n{body}\n"
    if lang == "python":
        rendered = ",\n".join(f"    {json.dumps(command)}" for command in commands)
        return (
            "#!/usr/bin/env python3\n"
            "import subprocess\n\n"
            f"COMMANDS = [\n{rendered}\n]\n\n"
            "for command in COMMANDS:\n"
            "    subprocess.run(command, shell=True, check=True)\n"
        )
    raise ValueError(f"Unsupported script language: {lang}")


def export_sessions(sessions: list[Session], fmt: str) -> str:
    normalized = (fmt or "").strip().lower()
    if normalized == "json":
        return export_json(sessions)
    if normalized == "csv":
        return export_csv(sessions)
    if normalized in ("markdown", "md"):
        return export_markdown(sessions)
    if normalized == "zsh":
        return export_zsh_history(_session_records(sessions))
    if normalized in ("bash", "python"):
        return export_script(sessions, normalized)
    raise ValueError(f"Unsupported export format: {fmt}")
