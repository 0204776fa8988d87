import re
import logging
from typing import List, Optional
from models.technology import Technology

logger = logging.getLogger(__name__)


def infer_hosting_provider(ns_records: List[str], a_records: List[str], rules: List[Technology]) -> Optional[str]:
    """
    First-match hosting inference over the hosting.yaml table.

    NS-hostname rules are tried first in table order; IP-range rules over the
    A records are only consulted when no NS rule matched.
    """
    ns = " ".join(r.lower() for r in ns_records)
    ips = " ".join(a_records)

    if ns:
        for tech in rules:
            for rule in tech.evidence_rules:
                if rule.type == "ns_substring" and rule.value and rule.value.lower() in ns:
                    logger.debug(f"Hosting inferred from NS '{rule.value}': {tech.name}")
                    return tech.name

    if ips:
        for tech in rules:
            for rule in tech.evidence_rules:
                if rule.type == "ip_regex" and rule.pattern and re.search(rule.pattern, ips):
                    logger.debug(f"Hosting inferred from A records: {tech.name}")
                    return tech.name

    return None
