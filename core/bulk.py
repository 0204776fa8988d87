"""
Bulk rescans with a fixed-size worker pool.

Workers pull domains from one shared deque. Abort is advisory: it is checked
before each dequeue, so scans already in flight run to completion.
"""
import asyncio
import json
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Protocol, Tuple

from core.diff import compute_diff
from core.engine import Engine
from core.fields import relevant_fields, scan_result_to_fields
from models.scan import DiffResult, ScanResult

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3


@dataclass
class BulkProgress:
    total: int = 0
    done: int = 0
    failed: int = 0
    current: List[str] = field(default_factory=list) # domains being processed right now


async def run_bulk(
    domains: List[str],
    concurrency: int,
    task: Callable[[str], Awaitable[Any]],
    should_abort: Optional[Callable[[], bool]] = None,
    progress: Optional[BulkProgress] = None,
) -> BulkProgress:
    """
    Run `task` for every domain with at most `concurrency` in flight.

    A failing task is logged and counted, never raised, and never stops its
    worker.
    """
    progress = progress or BulkProgress()
    progress.total = len(domains)
    queue: Deque[str] = deque(domains)
    should_abort = should_abort or (lambda: False)

    async def worker(worker_id: int) -> None:
        # No await between the abort check and popleft: the dequeue is atomic
        while queue and not should_abort():
            domain = queue.popleft()
            progress.current.append(domain)
            try:
                await task(domain)
                progress.done += 1
            except Exception as e:
                progress.failed += 1
                logger.error(f"Bulk task failed for {domain}: {e}", exc_info=True)
            finally:
                progress.current.remove(domain)
        logger.debug(f"Bulk worker {worker_id} finished")

    worker_count = min(max(concurrency, 1), len(domains))
    logger.info(f"Bulk run: {len(domains)} domains, {worker_count} workers")
    await asyncio.gather(*(worker(i) for i in range(worker_count)), return_exceptions=True)

    if queue:
        logger.info(f"Bulk run aborted with {len(queue)} domains not started")
    logger.info(f"Bulk run finished: {progress.done} done, {progress.failed} failed")
    return progress


class ScanSink(Protocol):
    """Persistence collaborator for rescans."""

    def save_scan(self, domain: str, result: ScanResult, diff: DiffResult) -> None:
        ...


class JsonLinesSink:
    """Appends one JSON object per scanned domain to a file."""

    def __init__(self, path: str):
        self.path = path

    def save_scan(self, domain: str, result: ScanResult, diff: DiffResult) -> None:
        line = json.dumps({"domain": domain, "result": result.to_dict(), "diff": diff.to_dict()}, default=str)
        with open(self.path, "a") as f:
            f.write(line + "\n")


async def rescan_domain(domain: str, engine: Engine, baseline: Dict[str, Any]) -> Tuple[ScanResult, DiffResult]:
    """Scan one domain and diff it against its stored record."""
    record = baseline.get(domain) or {}
    url = str(record.get("url") or f"https://{domain}")
    result = await engine.scan_site(url)
    fields = scan_result_to_fields(result)
    diff = compute_diff(relevant_fields(record, fields), fields)
    return result, diff


async def rescan_domains(
    domains: List[str],
    engine: Engine,
    baseline: Dict[str, Dict[str, Any]],
    sink: ScanSink,
    concurrency: int = DEFAULT_CONCURRENCY,
    should_abort: Optional[Callable[[], bool]] = None,
    progress: Optional[BulkProgress] = None,
) -> BulkProgress:
    abort = should_abort or (lambda: False)

    async def task(domain: str) -> None:
        result, diff = await rescan_domain(domain, engine, baseline)
        if abort():
            logger.info(f"Discarding scan of {domain}: run aborted")
            return
        sink.save_scan(domain, result, diff)
        logger.info(f"{domain}: {result.status.value}, {len(diff.changed)} changed fields")

    return await run_bulk(domains, concurrency, task, should_abort=abort, progress=progress)
