"""Export API endpoint.

GET /api/users/{user_id}/export - Export a user's sessions as CSV or JSON
"""

from __future__ import annotations

import csv
import io
import re
from datetime import datetime, timezone
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse, Response

from cognimirror.aggregation.cognitive import derive_session_point, round_half_up
from cognimirror.api.app import get_db_session
from cognimirror.db import repo
from cognimirror.db.repo import DbSession
from cognimirror.models.domain import SessionRecord

router = APIRouter()

EXPORT_COLUMNS = [
    "session_id",
    "user_id",
    "user_name",
    "game_id",
    "start_time",
    "end_time",
    "duration_minutes",
    "accuracy",
    "avg_rt_ms",
    "max_span",
    "self_correction_rate",
    "fluency",
    "error_rate",
    "score",
]

IN_PROGRESS = "in progress"

# Excel needs the BOM to detect UTF-8
UTF8_BOM = "\ufeff"


def format_export_datetime(value: datetime) -> str:
    """Format as D/M/YYYY, H:MM:SS (UTC)."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return f"{value.day}/{value.month}/{value.year}, {value.hour}:{value.minute:02d}:{value.second:02d}"


def build_export_rows(records: list[SessionRecord]) -> list[dict[str, Any]]:
    """Flatten sessions into one export row each.

    Args:
        records: Session records ascending by start time.

    Returns:
        Rows keyed by EXPORT_COLUMNS.
    """
    rows = []
    for record in records:
        point = derive_session_point(record)
        duration_minutes = 0
        if record.end_time is not None:
            elapsed = (record.end_time - record.start_time).total_seconds()
            duration_minutes = int(round_half_up(elapsed / 60.0, 0))
        rows.append(
            {
                "session_id": record.session_id,
                "user_id": record.user_id,
                "user_name": record.user_name or "",
                "game_id": record.game_id or "",
                "start_time": format_export_datetime(record.start_time),
                "end_time": (
                    format_export_datetime(record.end_time) if record.end_time else IN_PROGRESS
                ),
                "duration_minutes": duration_minutes,
                "accuracy": round_half_up(point.accuracy, 1),
                "avg_rt_ms": round_half_up(point.avg_rt, 0),
                "max_span": point.max_span,
                "self_correction_rate": round_half_up(point.self_correction_rate, 3),
                "fluency": round_half_up(point.fluency, 1),
                "error_rate": round_half_up(point.error_rate, 1),
                "score": point.score if point.score is not None else "",
            }
        )
    return rows


def rows_to_csv(rows: list[dict[str, Any]]) -> str:
    """Render rows as CSV text with a UTF-8 BOM and a header line."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return UTF8_BOM + buffer.getvalue()


def export_filename(user_label: str, extension: str) -> str:
    """Build the download filename, stamped with today's UTC date."""
    today = datetime.now(timezone.utc).date().isoformat()
    safe_label = re.sub(r"[^A-Za-z0-9_-]+", "_", user_label).strip("_") or "user"
    return f"CogniMirror_Metrics_{safe_label}_{today}.{extension}"


@router.get("/users/{user_id}/export")
def export_sessions(
    user_id: str,
    export_format: Literal["csv", "json"] = Query("csv", alias="format"),
    session: DbSession = Depends(get_db_session),
) -> Response:
    """Export a user's sessions as a downloadable file.

    Args:
        user_id: User to export.
        export_format: "csv" or "json".
        session: Database session (injected).

    Returns:
        CSV or JSON response with Content-Disposition header for download.

    Raises:
        HTTPException: 404 if the user has no sessions.
    """
    records = repo.get_sessions_for_user(session, user_id)
    if not records:
        raise HTTPException(status_code=404, detail="No metrics available to export")

    rows = build_export_rows(records)
    user_label = records[-1].user_name or user_id
    filename = export_filename(user_label, export_format)
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}

    if export_format == "json":
        return JSONResponse(content=rows, headers=headers)

    return Response(
        content=rows_to_csv(rows),
        media_type="text/csv; charset=utf-8",
        headers=headers,
    )
