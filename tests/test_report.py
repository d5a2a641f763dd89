import json

import pytest

from n8n_shots.report import ItemOutcome, RunReport, ScreenshotRecord


def _record(name):
    return ScreenshotRecord(workflow=name, category="Cat_A", filename=f"{name}.png", url=f"https://x/{name}.png")


def test_counters_follow_outcomes():
    report = RunReport(total=4)
    report.record(ItemOutcome.succeeded(_record("one")))
    report.record(ItemOutcome.failed("two.json", "boom"))
    report.record(ItemOutcome.skipped("three.json"))

    assert (report.succeeded, report.failed, report.skipped) == (1, 1, 1)
    assert report.processed == 3
    assert report.remaining == 1
    assert report.errors[0].workflow == "two.json"
    assert report.screenshots[0].filename == "one.png"


def test_record_beyond_total_raises():
    report = RunReport(total=1)
    report.record(ItemOutcome.skipped("a.json"))
    with pytest.raises(ValueError):
        report.record(ItemOutcome.skipped("b.json"))


def test_to_dict_shape():
    report = RunReport(total=2)
    report.record(ItemOutcome.succeeded(_record("one")))
    report.record(ItemOutcome.failed("two.json", "boom"))

    data = report.to_dict()

    assert set(data) == {"timestamp", "stats", "screenshots", "errors"}
    assert data["stats"] == {"total": 2, "succeeded": 1, "failed": 1, "skipped": 0}
    assert data["screenshots"] == [
        {"workflow": "one", "category": "Cat_A", "filename": "one.png", "url": "https://x/one.png"}
    ]
    assert data["errors"] == [{"workflow": "two.json", "error": "boom"}]


def test_write_creates_parent_folders(tmp_path):
    path = RunReport().write(tmp_path / "out" / "results.json")

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["stats"] == {"total": 0, "succeeded": 0, "failed": 0, "skipped": 0}
    assert data["errors"] == []
