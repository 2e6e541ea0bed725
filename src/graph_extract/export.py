from __future__ import annotations
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List

from .config import settings


CSV_HEADER = ["Node 1", "Connection", "Node 2"]


def to_csv(rows: Iterable[Dict[str, str]]) :
    """
    Render table rows as comma separated text.
    Fields are joined as-is: commas or quotes inside a value are not escaped.
    """
    lines: List[str] = [",".join(CSV_HEADER)]
    for row in rows:
        lines.append(",".join([row["node1"], row["connection"], row["node2"]]))
    return "\n".join(lines)


def export_filename(now: datetime | None = None) :
    now = now or datetime.now(timezone.utc)
    return f"graph-data-{now.isoformat()}.csv"


def save_csv(rows: Iterable[Dict[str, str]], path: Path | None = None) :
    path = path or settings.export_dir / export_filename()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_csv(rows), encoding="utf-8")
    return path
