import asyncio
import logging

from analyzers.hosting import infer_hosting_provider
from fetch.dns_client import doh_query
from models.scan import DnsResult
from rules.rules_loader import RuleSet

logger = logging.getLogger(__name__)

RECORD_TYPES = ("A", "AAAA", "MX", "NS")


async def resolve_dns(hostname: str, rules: RuleSet) -> DnsResult:
    """Query A, AAAA, MX and NS over DoH in parallel and infer the hosting provider."""
    a_records, aaaa_records, mx_records, ns_records = await asyncio.gather(
        *(doh_query(hostname, record_type) for record_type in RECORD_TYPES)
    )
    hosting_provider = infer_hosting_provider(ns_records, a_records, rules.hosting)
    logger.debug(
        f"DNS {hostname}: {len(a_records)} A, {len(aaaa_records)} AAAA, "
        f"{len(mx_records)} MX, {len(ns_records)} NS, hosting={hosting_provider}"
    )
    return DnsResult(
        a_records=a_records,
        aaaa_records=aaaa_records,
        mx_records=mx_records,
        ns_records=ns_records,
        hosting_provider=hosting_provider,
    )
