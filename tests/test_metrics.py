import threading
from pathlib import Path

from assocreset.core.metrics import MetricsAggregator
from assocreset.core.models import OutcomeAction, OutcomeRecord


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _rec(category: str, action: OutcomeAction, had_override: bool = None) -> OutcomeRecord:
    if had_override is None:
        had_override = action is not OutcomeAction.SKIPPED
    return OutcomeRecord(Path(f"/x/file.{category}"), category, had_override, action)


def _assert_ordering(report):
    for m in list(report.categories) + [report.total]:
        assert m.files_cleared <= m.files_with_override <= m.files_seen


def test_counts_per_action():
    agg = MetricsAggregator()
    agg.start("pdf")
    for action in (OutcomeAction.SKIPPED, OutcomeAction.SKIPPED, OutcomeAction.CLEARED, OutcomeAction.WOULD_CLEAR):
        agg.accumulate("pdf", _rec("pdf", action))
    agg.accumulate("pdf", _rec("pdf", OutcomeAction.ERROR, had_override=True))
    agg.accumulate("pdf", _rec("pdf", OutcomeAction.ERROR, had_override=False))
    agg.finish("pdf")

    m = agg.report().get("pdf")
    assert (m.files_seen, m.files_with_override, m.files_cleared, m.errors) == (6, 3, 2, 2)
    _assert_ordering(agg.report())


def test_elapsed_rate_and_total_span():
    clock = FakeClock()
    agg = MetricsAggregator(clock=clock, wall_clock=clock)
    agg.start("pdf")
    clock.now = 1.0
    agg.start("jpg")
    for _ in range(6):
        agg.accumulate("pdf", _rec("pdf", OutcomeAction.SKIPPED))
    for _ in range(2):
        agg.accumulate("jpg", _rec("jpg", OutcomeAction.CLEARED))
    clock.now = 3.0
    agg.finish("pdf")
    clock.now = 5.0
    agg.finish("jpg")

    report = agg.report()
    pdf, jpg = report.get("pdf"), report.get("jpg")
    assert pdf.elapsed_seconds == 3.0 and pdf.rate == 2.0
    assert jpg.elapsed_seconds == 4.0 and jpg.rate == 0.5
    assert report.total.files_seen == 8
    assert report.total.elapsed_seconds == 5.0
    assert report.total.rate == 8 / 5.0
    assert [m.category for m in report.fastest()] == ["pdf", "jpg"]
    assert [m.category for m in report.slowest(1)] == ["jpg"]


def test_finish_is_idempotent_and_freezes_rate():
    clock = FakeClock()
    agg = MetricsAggregator(clock=clock, wall_clock=clock)
    agg.start("pdf")
    agg.accumulate("pdf", _rec("pdf", OutcomeAction.SKIPPED))
    clock.now = 2.0
    agg.finish("pdf")
    clock.now = 10.0
    agg.finish("pdf")

    m = agg.report().get("pdf")
    assert m.finished
    assert m.elapsed_seconds == 2.0
    assert m.rate == 0.5


def test_accumulate_without_start_is_not_dropped():
    agg = MetricsAggregator()
    agg.accumulate("png", _rec("png", OutcomeAction.CLEARED))
    assert agg.report().get("png").files_cleared == 1


def test_start_resets_category():
    agg = MetricsAggregator()
    agg.start("pdf")
    agg.accumulate("pdf", _rec("pdf", OutcomeAction.CLEARED))
    agg.start("pdf")
    assert agg.report().get("pdf").files_seen == 0


def test_concurrent_accumulate_is_exact():
    agg = MetricsAggregator()
    for c in ("pdf", "jpg"):
        agg.start(c)
    actions = [OutcomeAction.SKIPPED, OutcomeAction.CLEARED, OutcomeAction.ERROR]

    def worker(n: int):
        cat = "pdf" if n % 2 else "jpg"
        for i in range(1000):
            agg.accumulate(cat, _rec(cat, actions[i % 3]))
            if i % 250 == 0:
                _assert_ordering(agg.report())

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    for c in ("pdf", "jpg"):
        agg.finish(c)

    report = agg.report()
    assert report.total.files_seen == 8000
    assert report.get("pdf").files_seen == 4000
    assert report.total.errors == sum(1 for i in range(1000) if i % 3 == 2) * 8
    _assert_ordering(report)


def test_cancelled_flag_and_empty_report():
    agg = MetricsAggregator()
    report = agg.report()
    assert report.categories == ()
    assert report.total.files_seen == 0
    agg.mark_cancelled()
    assert agg.report().cancelled


def test_skipped_categories_are_reported_once():
    agg = MetricsAggregator()
    agg.start("pdf")
    agg.mark_skipped("pdf")
    agg.mark_skipped("pdf")
    agg.finish("pdf")

    report = agg.report()

    assert report.skipped == ("pdf",)
    assert report.to_dict()["skipped"] == ["pdf"]
    assert report.get("pdf").files_seen == 0
