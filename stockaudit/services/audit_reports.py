"""CSV and PDF exports of an audit session's verification sheet."""

from __future__ import annotations

import csv
import re
from collections import Counter
from io import BytesIO, StringIO
from typing import Any, Iterable

from sqlalchemy.orm import Session

from stockaudit.models import AuditSession, User
from stockaudit.services.session_guards import get_session
from stockaudit.services.verification_service import list_verifications
from stockaudit.utils.pdf_fonts import register_pdf_font
from stockaudit.utils.time import utc_now

REPORT_COLUMNS: list[tuple[str, str]] = [
    ("serial_number", "#"),
    ("sku", "SKU"),
    ("item_name", "Item"),
    ("batch_number", "Batch"),
    ("system_quantity", "System Qty"),
    ("physical_quantity", "Physical Qty"),
    ("discrepancy", "Discrepancy"),
    ("status", "Status"),
    ("confirmed_by", "Confirmed By"),
    ("notes", "Notes"),
]


def _reportlab():
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import A4, landscape
    from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
    from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

    return {
        "colors": colors,
        "A4": A4,
        "landscape": landscape,
        "ParagraphStyle": ParagraphStyle,
        "getSampleStyleSheet": getSampleStyleSheet,
        "Paragraph": Paragraph,
        "SimpleDocTemplate": SimpleDocTemplate,
        "Spacer": Spacer,
        "Table": Table,
        "TableStyle": TableStyle,
    }


def sanitize_filename(value: str, max_length: int = 80) -> str:
    """Return a filesystem-friendly filename fragment."""
    normalized = re.sub(r"[\\/:*?\"<>|]+", "_", (value or "").strip())
    normalized = re.sub(r"\s+", "_", normalized)
    normalized = re.sub(r"_+", "_", normalized).strip("._")
    return (normalized or "audit")[:max_length]


def report_filename(session: AuditSession, extension: str) -> str:
    return f"{sanitize_filename(session.audit_code or str(session.id))}_{sanitize_filename(session.title)}.{extension}"


def build_report_rows(db: Session, actor: User, session_id: int) -> tuple[AuditSession, list[dict[str, Any]]]:
    session = get_session(db, session_id)
    rows: list[dict[str, Any]] = []
    for view in list_verifications(db, actor, session.id):
        verification = view.verification
        rows.append(
            {
                "serial_number": verification.serial_number,
                "sku": verification.item.sku if verification.item else "",
                "item_name": verification.item.name if verification.item else "",
                "batch_number": verification.batch_number,
                "system_quantity": verification.system_quantity,
                "physical_quantity": verification.physical_quantity,
                "discrepancy": verification.discrepancy,
                "status": verification.status.value,
                "confirmed_by": verification.confirmer.username if verification.confirmer else None,
                "notes": verification.notes,
            }
        )
    return session, rows


def summarize(rows: Iterable[dict[str, Any]]) -> dict[str, int]:
    counts = Counter(str(row.get("status")) for row in rows)
    return {
        "total": sum(counts.values()),
        "pending": counts.get("pending", 0),
        "confirmed": counts.get("confirmed", 0),
        "complete": counts.get("complete", 0),
        "short": counts.get("short", 0),
        "excess": counts.get("excess", 0),
    }


def _cell(value: Any) -> str:
    if value is None or value == "":
        return "-"
    return str(value)


def render_csv(session: AuditSession, rows: list[dict[str, Any]]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["Audit", session.audit_code, session.title])
    writer.writerow(["Warehouse", session.warehouse_id, "Status", session.status.value])
    writer.writerow(["Period", session.start_date.isoformat(), session.end_date.isoformat()])
    writer.writerow([])
    writer.writerow([header for _, header in REPORT_COLUMNS])
    for row in rows:
        writer.writerow(["" if row.get(key) is None else row.get(key) for key, _ in REPORT_COLUMNS])
    writer.writerow([])
    for label, value in summarize(rows).items():
        writer.writerow([label, value])
    return output.getvalue()


def render_pdf(session: AuditSession, rows: list[dict[str, Any]]) -> bytes:
    """Landscape A4 verification sheet with a status summary."""
    rl = _reportlab()
    font_name = register_pdf_font()
    base = rl["getSampleStyleSheet"]()
    title_style = rl["ParagraphStyle"]("AuditTitle", parent=base["Title"], fontName=font_name)
    normal_style = rl["ParagraphStyle"]("AuditNormal", parent=base["Normal"], fontName=font_name)

    story: list[Any] = [
        rl["Paragraph"](f"Audit: {session.audit_code} - {session.title}", title_style),
        rl["Paragraph"](
            f"Warehouse {session.warehouse_id} | {session.start_date.isoformat()} to {session.end_date.isoformat()}"
            f" | Status: {session.status.value}",
            normal_style,
        ),
        rl["Paragraph"](f"Generated: {utc_now().strftime('%Y-%m-%d %H:%M UTC')}", normal_style),
        rl["Spacer"](1, 10),
    ]

    table = rl["Table"](
        [[header for _, header in REPORT_COLUMNS], *[[_cell(row.get(key)) for key, _ in REPORT_COLUMNS] for row in rows]],
        repeatRows=1,
    )
    table.setStyle(
        rl["TableStyle"](
            [
                ("BACKGROUND", (0, 0), (-1, 0), rl["colors"].lightgrey),
                ("GRID", (0, 0), (-1, -1), 0.5, rl["colors"].black),
                ("FONTNAME", (0, 0), (-1, -1), font_name),
                ("FONTSIZE", (0, 0), (-1, -1), 7),
            ]
        )
    )
    story.append(table)
    story.append(rl["Spacer"](1, 10))

    summary = summarize(rows)
    summary_table = rl["Table"]([[label.title(), str(value)] for label, value in summary.items()], colWidths=[120, 60])
    summary_table.setStyle(
        rl["TableStyle"](
            [
                ("GRID", (0, 0), (-1, -1), 0.5, rl["colors"].black),
                ("FONTNAME", (0, 0), (-1, -1), font_name),
            ]
        )
    )
    story.append(summary_table)

    buffer = BytesIO()
    rl["SimpleDocTemplate"](buffer, pagesize=rl["landscape"](rl["A4"])).build(story)
    return buffer.getvalue()
