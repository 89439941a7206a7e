from __future__ import annotations

import csv
from datetime import UTC, datetime
import io
from pathlib import Path

from relay.domain.models import DeliveryBrief, DeliveryReport

DELIMITER = ";"
EMPTY_MARKER = "[EMPTY]"


def report_file_name(now: datetime | None = None) -> str:
    moment = now or datetime.now(UTC)
    return f"job_report_{int(moment.timestamp() * 1000)}.csv"


def render_report(report: DeliveryReport) -> str:
    """Render one labeled section per bucket: label, header row, entries or [EMPTY]."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=DELIMITER, lineterminator="\r\n")
    header = DeliveryBrief.field_names()
    for label, briefs in report.sections().items():
        buffer.write("\r\n\r\n")
        writer.writerow([label])
        if not briefs:
            writer.writerow([EMPTY_MARKER])
            continue
        writer.writerow(header)
        for brief in briefs:
            writer.writerow([_cell(getattr(brief, name)) for name in header])
    return buffer.getvalue()


def save_report(report: DeliveryReport, path: str | Path) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_report(report), encoding="utf-8", newline="")
    return target


def _cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)
