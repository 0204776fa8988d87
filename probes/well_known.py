import logging
from typing import Optional
from urllib.parse import urljoin

from core.exceptions import FetchTimeout, NetworkError
from fetch.http_client import fetch_url

logger = logging.getLogger(__name__)

WELL_KNOWN_PATH = "/.well-known/hosting-provider"
WELL_KNOWN_TIMEOUT = 6.0
MAX_PROVIDER_LENGTH = 100


async def check_hosting_provider(base_url: str) -> Optional[str]:
    """
    Read a self-declared hosting provider from /.well-known/hosting-provider.

    Returns None unless the body is a short plain-text value; empty, long
    or HTML bodies (typically error pages) are rejected.
    """
    url = urljoin(base_url, WELL_KNOWN_PATH)
    try:
        response = await fetch_url(url, timeout=WELL_KNOWN_TIMEOUT)
    except (FetchTimeout, NetworkError) as e:
        logger.debug(f"well-known hosting-provider unavailable for {base_url}: {e.message}")
        return None

    if not response.is_success:
        return None
    text = response.text.strip()
    if not text or len(text) >= MAX_PROVIDER_LENGTH or "<" in text:
        logger.debug(f"Rejected well-known hosting-provider body at {url} ({len(text)} chars)")
        return None
    logger.info(f"Hosting provider declared by {url}: {text}")
    return text
