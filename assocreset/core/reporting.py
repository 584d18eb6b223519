# path: assocreset/core/reporting.py
"""
assocreset/core/reporting.py — Text summaries and JSON audit report

- format_sample(): sampling summary block shown before the decision gate
- format_report(): per-category performance table with TOTAL row and
  top-5 fastest / slowest categories
- write_json_report(): single schema-tagged JSON file for auditing a run
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .models import CategoryMetrics, OutcomeRecord, Report, SampleResult

REPORT_SCHEMA = "assocreset.report.v1"
TOP_N = 5

_ROW = "{:<16} {:>8} {:>8} {:>8} {:>7} {:>9} {:>10}"


def _label(category: str) -> str:
    return category if category == "TOTAL" else f".{category}"


def _row(m: CategoryMetrics) -> str:
    return _ROW.format(
        _label(m.category),
        m.files_seen,
        m.files_with_override,
        m.files_cleared,
        m.errors,
        f"{m.elapsed_seconds:.2f}s",
        f"{m.rate:.1f}/s",
    )


def format_sample(result: SampleResult) -> str:
    if not result.computable:
        return "Sampling: no matching files found (confidence N/A)"
    lines = [
        "Sampling results:",
        f"  Population:        {result.total_population} files",
        f"  Sampled:           {result.sampled_count} files",
        f"  With override:     {result.hit_count} ({result.hit_rate_percent:.2f}%)",
        f"  Estimated total:   ~{result.estimated_population_hits} files",
        f"  Confidence:        {result.confidence.value}",
    ]
    return "\n".join(lines)


def format_report(report: Report, dry_run: bool = False) -> str:
    cleared_header = "Would" if dry_run else "Cleared"
    lines: List[str] = []
    lines.append("Performance report" + (" (dry run)" if dry_run else ""))
    lines.append(_ROW.format("Category", "Files", "w/Attr", cleared_header, "Errors", "Duration", "Rate"))

    # Categories with no matching files are noise in the table.
    for m in report.categories:
        if m.files_seen > 0:
            lines.append(_row(m))
    lines.append(_row(report.total))

    ranked = [m for m in report.categories if m.files_seen > 0]
    if len(ranked) > 1:
        lines.append("")
        lines.append(f"Top {TOP_N} fastest:")
        for m in report.fastest(TOP_N):
            lines.append(f"  {_label(m.category):<16} {m.rate:>8.1f} files/s")
        lines.append(f"Top {TOP_N} slowest:")
        for m in report.slowest(TOP_N):
            lines.append(f"  {_label(m.category):<16} {m.rate:>8.1f} files/s")

    if report.skipped:
        lines.append("")
        lines.append("Skipped (over the file limit): " + ", ".join(_label(c) for c in report.skipped))

    if report.cancelled:
        lines.append("")
        lines.append("Run was cancelled; figures cover completed files only.")
    return "\n".join(lines)


def write_json_report(
    out_path: Path,
    *,
    run_id: str = "",
    config: Any = None,
    sample: Optional[SampleResult] = None,
    report: Optional[Report] = None,
    errors: Iterable[OutcomeRecord] = (),
    dry_run: bool = False,
) -> Path:
    out_path = Path(out_path).expanduser()
    out_path.parent.mkdir(parents=True, exist_ok=True)

    config_out: Dict[str, Any] = {}
    if config is not None:
        config_out = config.to_dict() if hasattr(config, "to_dict") else dict(config)

    payload: Dict[str, Any] = {
        "schema": REPORT_SCHEMA,
        "generated_ts": time.time(),
        "run_id": run_id,
        "dry_run": bool(dry_run),
        "config": config_out,
        "sample": sample.to_dict() if sample is not None else None,
        "metrics": report.to_dict() if report is not None else None,
        "errors": [r.to_dict() for r in errors],
    }

    out_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False, default=str), encoding="utf-8")
    return out_path


__all__ = ["REPORT_SCHEMA", "format_report", "format_sample", "write_json_report"]
