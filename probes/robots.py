"""robots.txt fetch and line scan (crawl-delay and sitemap directives only)."""
import logging
import re
from typing import List, Optional

from core.exceptions import FetchTimeout, NetworkError
from core.html_utils import site_root
from fetch.http_client import fetch_url
from models.scan import RobotsResult

logger = logging.getLogger(__name__)

ROBOTS_TIMEOUT = 15.0

CRAWL_DELAY_PATTERN = re.compile(r'^crawl-delay:\s*(\d+(?:\.\d+)?)', re.IGNORECASE)
SITEMAP_PATTERN = re.compile(r'^sitemap:\s*(.+)', re.IGNORECASE)


def parse_robots(text: str) -> tuple:
    """Return (crawl_delay, sitemap_locations) from robots.txt text."""
    crawl_delay: Optional[float] = None
    sitemap_locations: List[str] = []

    for line in text.splitlines():
        stripped = line.strip()
        delay_match = CRAWL_DELAY_PATTERN.match(stripped)
        if delay_match and crawl_delay is None:
            crawl_delay = float(delay_match.group(1))
        sitemap_match = SITEMAP_PATTERN.match(stripped)
        if sitemap_match:
            sitemap_locations.append(sitemap_match.group(1).strip())

    return crawl_delay, sitemap_locations


async def fetch_robots_txt(base_url: str) -> RobotsResult:
    robots_url = f"{site_root(base_url)}/robots.txt"

    try:
        response = await fetch_url(robots_url, timeout=ROBOTS_TIMEOUT)
    except (FetchTimeout, NetworkError) as e:
        logger.info(f"robots.txt unreachable for {base_url}: {e.message}")
        return RobotsResult(detected=False, url=robots_url, status_code=0, error=e.message)

    if not response.is_success:
        logger.debug(f"robots.txt {robots_url}: HTTP {response.status_code}")
        return RobotsResult(detected=False, url=robots_url, status_code=response.status_code)

    crawl_delay, sitemap_locations = parse_robots(response.text)
    logger.debug(f"robots.txt {robots_url}: crawl_delay={crawl_delay}, {len(sitemap_locations)} sitemap lines")
    return RobotsResult(
        detected=True,
        url=robots_url,
        status_code=response.status_code,
        filesize=len(response.content),
        crawl_delay=crawl_delay,
        sitemap_locations=sitemap_locations or None,
    )
