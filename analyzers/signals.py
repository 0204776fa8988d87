"""Generic evaluation of rule-table signals against a landing page."""
import re
import logging
from core.context import PageContext
from models.technology import EvidenceRule, Technology

logger = logging.getLogger(__name__)


def rule_matches(rule: EvidenceRule, context: PageContext) -> bool:
    """True if a single page signal fires. Unknown signal types never fire."""
    if rule.type == "html_regex" and rule.pattern:
        return bool(re.search(rule.pattern, context.html, re.IGNORECASE))

    if rule.type == "html_substring" and rule.value:
        return rule.value in context.html

    if rule.type == "html_substring_ci" and rule.value:
        return rule.value.lower() in context.html_lower

    if rule.type == "header_substring" and rule.name and rule.value:
        header_value = context.headers.get(rule.name.lower(), "")
        return rule.value.lower() in header_value.lower()

    if rule.type == "header_present" and rule.pattern:
        return any(re.search(rule.pattern, name, re.IGNORECASE) for name in context.headers)

    if rule.type == "cookie_regex" and rule.pattern:
        return bool(re.search(rule.pattern, context.cookies, re.IGNORECASE))

    logger.debug(f"Unsupported page signal type: {rule.type}")
    return False


def score(tech: Technology, context: PageContext) -> int:
    """Sum of the weights of every signal of `tech` that fires."""
    return sum(rule.weight for rule in tech.evidence_rules if rule_matches(rule, context))


def any_match(tech: Technology, context: PageContext) -> bool:
    return any(rule_matches(rule, context) for rule in tech.evidence_rules)
