import json
from pathlib import Path

from assocreset.config import ResetConfig
from assocreset.core.errors import ErrorKind
from assocreset.core.metrics import MetricsAggregator
from assocreset.core.models import OutcomeAction, OutcomeRecord, SampleResult
from assocreset.core.reporting import REPORT_SCHEMA, format_report, format_sample, write_json_report


def _report(categories=("pdf",), cancelled=False):
    agg = MetricsAggregator()
    for c in categories:
        agg.start(c)
        agg.accumulate(c, OutcomeRecord(Path(f"a.{c}"), c, True, OutcomeAction.CLEARED))
        agg.accumulate(c, OutcomeRecord(Path(f"b.{c}"), c, False, OutcomeAction.SKIPPED))
        agg.finish(c)
    if cancelled:
        agg.mark_cancelled()
    return agg.report()


def test_table_rows_and_total():
    text = format_report(_report())
    lines = text.splitlines()
    assert "Cleared" in lines[1]
    assert any(line.startswith(".pdf") for line in lines)
    assert any(line.startswith("TOTAL") for line in lines)
    assert "fastest" not in text


def test_top_lists_with_several_categories():
    text = format_report(_report(("pdf", "jpg", "png")), dry_run=True)
    assert "(dry run)" in text
    assert "Would" in text.splitlines()[1]
    assert "Top 5 fastest:" in text
    assert "Top 5 slowest:" in text


def test_empty_categories_left_out_of_table():
    agg = MetricsAggregator()
    agg.start("pdf")
    agg.start("gif")
    agg.accumulate("pdf", OutcomeRecord(Path("a.pdf"), "pdf", False, OutcomeAction.SKIPPED))
    text = format_report(agg.report())
    assert ".gif" not in text


def test_skipped_categories_listed():
    agg = MetricsAggregator()
    agg.start("pdf")
    agg.mark_skipped("pdf")
    agg.finish("pdf")

    text = format_report(agg.report())

    assert "Skipped (over the file limit): .pdf" in text
    assert "Skipped" not in format_report(_report())


def test_cancelled_note():
    assert "cancelled" in format_report(_report(cancelled=True))


def test_sample_summary():
    assert "N/A" in format_sample(SampleResult.empty())
    text = format_sample(SampleResult.from_counts(sampled=99, hits=1, total_population=122))
    assert "1.01%" in text
    assert "~1 files" in text
    assert "High" in text


def test_json_report(tmp_path):
    error = OutcomeRecord(
        Path("/x/locked.pdf"), "pdf", True, OutcomeAction.ERROR, "Permission denied", ErrorKind.PERMISSION_DENIED, 4
    )
    out = write_json_report(
        tmp_path / "nested" / "report.json",
        run_id="abc123",
        config=ResetConfig(target_dir=str(tmp_path)),
        sample=SampleResult.from_counts(sampled=10, hits=2, total_population=100),
        report=_report(),
        errors=[error],
    )

    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["schema"] == REPORT_SCHEMA
    assert payload["run_id"] == "abc123"
    assert payload["sample"]["estimated_population_hits"] == 20
    assert payload["metrics"]["total"]["files_seen"] == 2
    assert payload["errors"][0]["error_kind"] == "permission_denied"
    assert payload["config"]["target_dir"] == str(tmp_path)
