import json
import logging
from typing import Any, Dict, List

from models.scan import DiffField, DiffResult

logger = logging.getLogger(__name__)

# Bookkeeping timestamps, never reported as changes
SKIP_FIELDS = {"imported_at", "updated_at", "scan_date"}

# Fields stored as JSON-encoded strings
JSON_FIELDS = {
    "dap_parameters", "third_party_service_domains", "third_party_service_urls",
    "cookie_domains", "source_list", "required_links_url", "required_links_text",
    "robots_txt_sitemap_locations", "uswds_usa_class_list",
}


def _parse_value(key: str, value: Any) -> Any:
    if key in JSON_FIELDS and isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def _canonical(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def compute_diff(before: Dict[str, Any], after: Dict[str, Any]) -> DiffResult:
    """
    Field-level comparison of two flat records.

    Keys are visited in first-seen order (before, then after). A key present
    on only one side is always a change, even when the other value is None.
    Values are compared by their canonical JSON encoding, so '1' and 1 differ
    while JSON whitespace and key order do not.
    """
    changed: List[DiffField] = []
    unchanged_count = 0

    keys = list(dict.fromkeys([*before.keys(), *after.keys()]))
    for key in keys:
        if key in SKIP_FIELDS:
            continue
        before_value = _parse_value(key, before.get(key))
        after_value = _parse_value(key, after.get(key))
        one_sided = (key in before) != (key in after)
        if one_sided or _canonical(before_value) != _canonical(after_value):
            changed.append(DiffField(field=key, before=before_value, after=after_value))
        else:
            unchanged_count += 1

    logger.debug(f"Diff: {len(changed)} changed, {unchanged_count} unchanged")
    return DiffResult(changed=changed, unchanged_count=unchanged_count)
