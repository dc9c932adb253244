"""Per-job result records: JSONL log and run summary."""

from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from rich.table import Table

log = logging.getLogger(__name__)

STATUSES = ("submitted", "incomplete", "failed", "skipped")


@dataclass
class JobResult:
    job_id: str
    job: str
    status: str
    reason: str = ""
    steps: int = 0
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


def log_result(result: JobResult, path: Path) -> None:
    """Append one result as a JSON line."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(asdict(result), ensure_ascii=False) + "\n")


def summarize(results: list[JobResult]) -> dict[str, int]:
    counts = Counter(r.status for r in results)
    return {status: counts.get(status, 0) for status in STATUSES}


def render_summary(results: list[JobResult]) -> Table:
    table = Table(title="Quick-apply run")
    table.add_column("Job")
    table.add_column("Status")
    table.add_column("Reason")
    table.add_column("Steps", justify="right")

    colors = {"submitted": "green", "incomplete": "yellow", "failed": "red", "skipped": "dim"}
    for r in results:
        color = colors.get(r.status, "white")
        table.add_row(r.job[:60], f"[{color}]{r.status}[/{color}]", r.reason, str(r.steps))

    counts = summarize(results)
    table.caption = ", ".join(f"{counts[s]} {s}" for s in STATUSES)
    return table
