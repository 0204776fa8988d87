import asyncio
import argparse
import dataclasses
import json
import logging
import signal

import uvicorn

from core.bulk import BulkProgress, JsonLinesSink, rescan_domains
from core.config import get_config, load_config, set_config
from core.diff import compute_diff
from core.engine import Engine
from core.exceptions import InvalidURLError
from core.fields import relevant_fields, scan_result_to_fields
from fetch.proxy import create_app


def _load_json(path: str, logger: logging.Logger):
    try:
        with open(path, "r") as f:
            return json.load(f)
    except FileNotFoundError:
        logger.error(f"File not found: {path}")
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in {path}: {e}")
    return None


def _read_domains(path: str, logger: logging.Logger):
    try:
        with open(path, "r") as f:
            lines = (line.strip() for line in f)
            return [line for line in lines if line and not line.startswith("#")]
    except FileNotFoundError:
        logger.error(f"File not found: {path}")
    return None


def _scan(args, logger: logging.Logger) -> int:
    baseline = None
    if args.baseline:
        baseline = _load_json(args.baseline, logger)
        if not isinstance(baseline, dict):
            logger.error("Baseline file must contain a JSON object of field values")
            return 1

    async def run():
        engine = Engine()
        result = await engine.scan_site(args.url)
        output = {"result": result.to_dict()}
        if baseline is not None:
            fields = scan_result_to_fields(result)
            output["diff"] = compute_diff(relevant_fields(baseline, fields), fields).to_dict()
        print(json.dumps(output, indent=2, default=str))

    try:
        asyncio.run(run())
    except InvalidURLError as e:
        logger.error(f"Invalid target URL {args.url!r}: {e.message}")
        return 1
    return 0


def _bulk(args, logger: logging.Logger) -> int:
    domains = _read_domains(args.domains_file, logger)
    if domains is None:
        return 1
    baseline = {}
    if args.baseline:
        baseline = _load_json(args.baseline, logger)
        if not isinstance(baseline, dict):
            logger.error("Baseline file must contain a JSON object keyed by domain")
            return 1

    progress = BulkProgress()
    aborted = False

    def should_abort() -> bool:
        return aborted

    async def run():
        loop = asyncio.get_running_loop()

        def on_interrupt():
            nonlocal aborted
            if not aborted:
                logger.warning("Interrupt received: finishing in-flight scans, no new domains will start")
            aborted = True

        try:
            loop.add_signal_handler(signal.SIGINT, on_interrupt)
        except NotImplementedError:
            logger.debug("Signal handlers not supported on this platform")

        concurrency = args.concurrency or get_config().bulk_concurrency
        await rescan_domains(
            domains,
            Engine(),
            baseline,
            JsonLinesSink(args.output),
            concurrency=concurrency,
            should_abort=should_abort,
            progress=progress,
        )

    asyncio.run(run())
    logger.info(f"Bulk scan: {progress.done}/{progress.total} saved, {progress.failed} failed, output in {args.output}")
    return 1 if progress.failed else 0


def _proxy(args, logger: logging.Logger) -> int:
    logger.info(f"Serving fetch proxy on {args.host}:{args.port}")
    uvicorn.run(create_app(), host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


def main():
    parser = argparse.ArgumentParser(description="Government website scanner CLI")
    parser.add_argument("--config", type=str, help="Path to a YAML config file")
    parser.add_argument("--proxy-url", type=str, help="Fallback fetch proxy endpoint (e.g., http://localhost:8000/api/v1/proxy)")
    parser.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging verbosity level (default: INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser("scan", help="Scan one site and print the result as JSON")
    scan_parser.add_argument("url", help="Target URL or bare domain (e.g., example.gov)")
    scan_parser.add_argument("--baseline", type=str, help="JSON file with the site's stored field values to diff against")

    bulk_parser = subparsers.add_parser("bulk", help="Rescan many domains with a bounded worker pool")
    bulk_parser.add_argument("domains_file", help="Text file with one domain per line")
    bulk_parser.add_argument("--concurrency", type=int, default=None, help="Scans in flight at once (default: from config, 3)")
    bulk_parser.add_argument("--baseline", type=str, help="JSON file mapping domain -> stored field record")
    bulk_parser.add_argument("--output", type=str, default="scans.jsonl", help="JSON Lines output file (default: scans.jsonl)")

    proxy_parser = subparsers.add_parser("proxy", help="Serve the fetch proxy endpoint")
    proxy_parser.add_argument("--host", type=str, default="127.0.0.1")
    proxy_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args()

    # Configure logging
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, args.log_level),
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    logger = logging.getLogger(__name__)

    config = load_config(args.config)
    if args.proxy_url:
        config = dataclasses.replace(config, proxy_url=args.proxy_url)
    set_config(config)

    handlers = {"scan": _scan, "bulk": _bulk, "proxy": _proxy}
    raise SystemExit(handlers[args.command](args, logger))

if __name__ == "__main__":
    main()
