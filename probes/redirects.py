"""Manual, hop-by-hop redirect resolution."""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Set
from urllib.parse import urljoin, urlparse

import httpx

from core.config import get_config
from core.exceptions import (
    FetchTimeout,
    InvalidRedirectTarget,
    NetworkError,
    RedirectError,
    RedirectLoop,
)
from fetch.http_client import fetch_url
from models.scan import RedirectChainResult, RedirectHop

logger = logging.getLogger(__name__)

HEAD_TIMEOUT = 15.0
GET_TIMEOUT = 20.0
# Servers that reject HEAD outright instead of failing the connection
HEAD_UNSUPPORTED_STATUSES = {405, 501}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def next_location(current_url: str, location: Optional[str]) -> str:
    """
    Resolve a Location header against the current URL.

    Raises:
        InvalidRedirectTarget: header missing, unparseable, or not http(s)
    """
    if not location or not location.strip():
        raise InvalidRedirectTarget("Missing Location header", url=current_url)
    try:
        target = urljoin(current_url, location.strip())
        parsed = urlparse(target)
    except ValueError as e:
        raise InvalidRedirectTarget(f"Invalid Location header: {location!r}", url=current_url) from e
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidRedirectTarget(f"Invalid Location header: {location!r}", url=current_url)
    return target


async def _request_hop(url: str) -> httpx.Response:
    """HEAD with manual redirects, falling back to GET when HEAD fails or is refused."""
    try:
        response = await fetch_url(url, method="HEAD", timeout=HEAD_TIMEOUT, follow_redirects=False)
        if response.status_code not in HEAD_UNSUPPORTED_STATUSES:
            return response
        logger.debug(f"HEAD refused by {url} ({response.status_code}), retrying with GET")
    except (FetchTimeout, NetworkError) as e:
        logger.debug(f"HEAD failed for {url} ({e.message}), retrying with GET")

    try:
        return await fetch_url(url, method="GET", timeout=GET_TIMEOUT, follow_redirects=False)
    except (FetchTimeout, NetworkError) as e:
        raise RedirectError(f"Redirect check failed at {url}: {e.message}", url=url) from e


async def resolve_redirects(url: str) -> RedirectChainResult:
    """
    Follow redirects from `url`, recording every observed hop.

    The chain ends on a non-3xx status, a missing or invalid Location, a
    revisited URL or the hop cap. Raises RedirectError only when a hop cannot
    be fetched at all.
    """
    max_hops = get_config().max_redirects
    hops: List[RedirectHop] = []
    visited: Set[str] = set()
    current_url = url

    while len(hops) < max_hops:
        if current_url in visited:
            logger.info(f"{RedirectLoop.error_code}: {current_url} already visited, stopping")
            break
        visited.add(current_url)

        response = await _request_hop(current_url)
        hops.append(RedirectHop(url=current_url, status_code=response.status_code, timestamp=_now()))

        if not 300 <= response.status_code < 400:
            break
        try:
            current_url = next_location(current_url, response.headers.get("location"))
        except InvalidRedirectTarget as e:
            logger.info(f"{e.error_code}: {e.message} at {current_url}")
            break
    else:
        logger.info(f"Redirect hop cap ({max_hops}) reached for {url}")

    final_url = hops[-1].url if hops else url
    was_redirected = len(hops) > 1 or (len(hops) == 1 and hops[0].url != url)
    logger.debug(f"Redirect chain for {url}: {len(hops)} hops, final={final_url}")

    return RedirectChainResult(
        original_url=url,
        final_url=final_url,
        was_redirected=was_redirected,
        hops=hops,
    )
