"""Tests for the bulk rescan worker pool."""
import asyncio
import json
import pytest
from unittest.mock import AsyncMock, MagicMock

from core.bulk import BulkProgress, JsonLinesSink, rescan_domains, run_bulk
from models.scan import DiffResult, ScanResult, ScanStatus
from models.tech_stack import TechStackResult


@pytest.mark.asyncio
async def test_concurrency_is_bounded():
    in_flight = 0
    peak = 0
    seen = []

    async def task(domain):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        seen.append(domain)
        in_flight -= 1

    domains = [f"site{i}.gov" for i in range(10)]
    progress = await run_bulk(domains, 3, task)

    assert peak == 3
    assert sorted(seen) == sorted(domains)
    assert progress.total == 10
    assert progress.done == 10
    assert progress.current == []


@pytest.mark.asyncio
async def test_each_domain_processed_once():
    calls = []

    async def task(domain):
        await asyncio.sleep(0)
        calls.append(domain)

    domains = [f"site{i}.gov" for i in range(25)]
    await run_bulk(domains, 4, task)
    assert sorted(calls) == sorted(domains)
    assert len(calls) == len(set(calls))


@pytest.mark.asyncio
async def test_failures_are_counted_and_workers_continue():
    async def task(domain):
        await asyncio.sleep(0)
        if domain.startswith("bad"):
            raise RuntimeError(f"cannot scan {domain}")

    domains = ["bad1.gov", "ok1.gov", "bad2.gov", "ok2.gov", "ok3.gov"]
    progress = await run_bulk(domains, 2, task)

    assert progress.failed == 2
    assert progress.done == 3


@pytest.mark.asyncio
async def test_abort_stops_new_dequeues_but_finishes_in_flight():
    aborted = False
    started = []
    finished = []

    async def task(domain):
        nonlocal aborted
        started.append(domain)
        if len(started) == 2:
            aborted = True
        await asyncio.sleep(0.01)
        finished.append(domain)

    domains = [f"site{i}.gov" for i in range(10)]
    progress = await run_bulk(domains, 2, task, should_abort=lambda: aborted)

    assert len(started) == 2
    assert sorted(finished) == sorted(started)
    assert progress.done == 2


@pytest.mark.asyncio
async def test_empty_domain_list():
    task = AsyncMock()
    progress = await run_bulk([], 3, task)
    assert progress.total == 0
    task.assert_not_awaited()


@pytest.mark.asyncio
async def test_progress_is_observable_while_running():
    progress = BulkProgress()
    snapshots = []

    async def task(domain):
        snapshots.append(list(progress.current))
        await asyncio.sleep(0)

    await run_bulk(["a.gov", "b.gov"], 1, task, progress=progress)
    assert snapshots == [["a.gov"], ["b.gov"]]


def _result(url):
    return ScanResult(
        target_url=url,
        scanned_at="2024-01-01T00:00:00+00:00",
        status=ScanStatus.COMPLETED,
        tech_stack=TechStackResult(cms="Drupal"),
        live=True,
    )


@pytest.mark.asyncio
async def test_rescan_domains_diffs_against_baseline():
    engine = MagicMock()
    engine.scan_site = AsyncMock(side_effect=lambda url: _result(url))
    sink = MagicMock()
    baseline = {
        "agency.gov": {"url": "https://www.agency.gov", "cms": "WordPress", "live": 1},
        "other.gov": {"cms": "Drupal"},
    }

    progress = await rescan_domains(["agency.gov", "other.gov"], engine, baseline, sink, concurrency=2)

    assert progress.done == 2
    scanned_urls = sorted(call.args[0] for call in engine.scan_site.await_args_list)
    assert scanned_urls == ["https://other.gov", "https://www.agency.gov"]

    saved = {call.args[0]: call.args[2] for call in sink.save_scan.call_args_list}
    agency_changes = [c.field for c in saved["agency.gov"].changed]
    assert "cms" in agency_changes
    assert "live" not in agency_changes
    assert "cms" not in [c.field for c in saved["other.gov"].changed]


def test_json_lines_sink_appends(tmp_path):
    path = tmp_path / "scans.jsonl"
    sink = JsonLinesSink(str(path))
    sink.save_scan("a.gov", _result("https://a.gov"), DiffResult())
    sink.save_scan("b.gov", _result("https://b.gov"), DiffResult())

    lines = path.read_text().splitlines()
    assert len(lines) == 2
    record = json.loads(lines[0])
    assert record["domain"] == "a.gov"
    assert record["result"]["status"] == "completed"
    assert record["diff"] == {"changed": [], "unchanged_count": 0}
