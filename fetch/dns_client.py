import logging
from typing import List, Optional

import dns.rdatatype
import httpx

from core.config import get_config

# Default DoH timeout (in seconds)
DEFAULT_DNS_TIMEOUT = 8.0

async def doh_query(
    hostname: str,
    record_type: str,
    timeout: Optional[float] = None
) -> List[str]:
    """
    Resolves one DNS record type through the DNS-over-HTTPS JSON API.

    Args:
        hostname: The hostname to query
        record_type: Record type mnemonic (A, AAAA, MX, NS)
        timeout: Request timeout in seconds (default: 8s)

    Returns:
        List of answer data strings; empty on any failure
    """
    logger = logging.getLogger(__name__)
    type_code = int(dns.rdatatype.from_text(record_type))
    doh_url = get_config().doh_url
    logger.debug(f"DoH query for {hostname}: {record_type} ({type_code})")

    try:
        async with httpx.AsyncClient(timeout=timeout or DEFAULT_DNS_TIMEOUT) as client:
            response = await client.get(
                doh_url,
                params={"name": hostname, "type": type_code},
                headers={"Accept": "application/dns-json"},
            )
        if response.status_code != 200:
            logger.debug(f"DoH {record_type} {hostname}: HTTP {response.status_code}")
            return []
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.debug(f"DoH {record_type} {hostname}: no records ({type(e).__name__})")
        return []

    answers = (data.get("Answer") or []) if isinstance(data, dict) else []
    records = [a["data"] for a in answers if isinstance(a, dict) and a.get("data") and a.get("type", type_code) == type_code]
    logger.debug(f"DoH {record_type} {hostname}: {len(records)} records")
    return records
