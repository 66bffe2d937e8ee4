"""API routers for sessions, commands, analytics, export and settings."""
from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Query, Response

from histview.analytics import (
    command_patterns,
    command_stats,
    daily_volume,
    filter_sessions,
    search_commands,
    sort_sessions,
)
from histview.categories import display_name
from histview.export import export_sessions
from histview.history_service import get_history_service
from histview.models import (
    CategoryInfo,
    ClassifyRequest,
    ClassifyResult,
    CommandPattern,
    CommandRecord,
    CommandStats,
    HistorySettings,
    PaginatedResponse,
    Session,
    VolumePoint,
)
from histview.parsers.history import SourceUnavailable

logger = logging.getLogger("histview")

_EXPORT_MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
    "markdown": "text/markdown",
    "md": "text/markdown",
    "zsh": "text/plain",
    "bash": "text/x-shellscript",
    "python": "text/x-python",
}
_EXPORT_EXTENSIONS = {
    "json": "json",
    "csv": "csv",
    "markdown": "md",
    "md": "md",
    "zsh": "zsh_history",
    "bash": "sh",
    "python": "py",
}

sessions_router = APIRouter(prefix="/api/sessions", tags=["sessions"])
history_router = APIRouter(prefix="/api", tags=["history"])
categories_router = APIRouter(prefix="/api/categories", tags=["categories"])


# ── Sessions ────────────────────────────────────────────────────────

@sessions_router.get("", response_model=PaginatedResponse[Session])
async def list_sessions(
    offset: int = 0,
    limit: int = 50,
    sort: str = Query("desc", description="'asc' for oldest first, anything else newest first"),
    start_date: str | None = Query(None, description="YYYY-MM-DD, sessions starting on or after"),
    end_date: str | None = Query(None, description="YYYY-MM-DD, sessions ending on or before (inclusive)"),
    category: str | None = Query(None, description="Category label, 'all' disables the filter"),
    keyword: str | None = Query(None, description="Whitespace-separated tokens, all must match"),
):
    """Return filtered, sorted, paginated sessions."""
    service = get_history_service()
    filtered = filter_sessions(service.sessions, start_date, end_date, category, keyword)
    ordered = sort_sessions(filtered, sort)
    safe_offset = max(0, offset)
    safe_limit = max(1, limit)
    return PaginatedResponse[Session](
        items=ordered[safe_offset:safe_offset + safe_limit],
        total=len(ordered),
        offset=safe_offset,
        limit=safe_limit,
    )


@sessions_router.get("/{session_id}", response_model=Session)
async def get_session(session_id: int):
    session = get_history_service().get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return session


# ── History ─────────────────────────────────────────────────────────

@history_router.get("/commands", response_model=list[CommandRecord])
async def list_commands():
    return get_history_service().records


@history_router.get("/search", response_model=list[CommandRecord])
async def search(q: str = Query("", description="Case-insensitive substring of command or directory")):
    if not q:
        raise HTTPException(status_code=400, detail="Query parameter 'q' required")
    return search_commands(get_history_service().records, q)


@history_router.get("/stats", response_model=CommandStats)
async def stats():
    service = get_history_service()
    return command_stats(service.records, service.sessions, service.last_updated)


@history_router.get("/volume", response_model=list[VolumePoint])
async def volume():
    return daily_volume(get_history_service().records)


@history_router.get("/patterns", response_model=dict[str, CommandPattern])
async def patterns():
    service = get_history_service()
    return command_patterns(service.records, service.sessions)


@history_router.post("/refresh")
async def refresh():
    service = get_history_service()
    try:
        sessions = await asyncio.to_thread(service.refresh)
    except SourceUnavailable as e:
        logger.warning(f"Refresh failed: {e}")
        raise HTTPException(status_code=503, detail=f"Failed to refresh: {e}")
    return {"status": "ok", "message": "Data refreshed", "sessions": len(sessions)}


@history_router.get("/export")
async def export(
    format: str = Query("json", description="json, csv, markdown, zsh, bash or python"),
    session: int | None = Query(None, description="Export a single session"),
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    category: str | None = Query(None),
    keyword: str | None = Query(None),
):
    service = get_history_service()
    if session is not None:
        found = service.get_session(session)
        if found is None:
            raise HTTPException(status_code=404, detail=f"Session {session} not found")
        selected = [found]
    else:
        selected = filter_sessions(service.sessions, start_date, end_date, category, keyword)

    fmt = (format or "").strip().lower()
    try:
        body = export_sessions(selected, fmt)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    filename = f"history_sessions.{_EXPORT_EXTENSIONS.get(fmt, 'txt')}"
    return Response(
        content=body,
        media_type=_EXPORT_MEDIA_TYPES.get(fmt, "text/plain"),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@history_router.get("/config", response_model=HistorySettings)
async def get_config():
    return get_history_service().settings


@history_router.put("/config", response_model=HistorySettings)
async def update_config(payload: HistorySettings):
    service = get_history_service()
    try:
        await asyncio.to_thread(service.update_settings, payload, True)
    except SourceUnavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return service.settings


# ── Categories ──────────────────────────────────────────────────────

@categories_router.get("", response_model=list[CategoryInfo])
async def list_categories():
    return get_history_service().categorizer.describe_categories()


@categories_router.post("/test", response_model=ClassifyResult)
async def classify_command(payload: ClassifyRequest):
    service = get_history_service()
    category = service.classify(payload.command)
    return ClassifyResult(
        command=payload.command,
        category=category,
        display_name=display_name(category),
        base_command=service.categorizer.base_command(payload.command),
    )
