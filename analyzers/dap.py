"""Digital Analytics Program (DAP) tag detection."""
import re
from typing import Dict, List, Optional
from urllib.parse import unquote

from core.version_utils import extract_query_version
from models.detection import DapResult

DAP_DOMAINS = ["dap.digitalgov.gov"]
DAP_SCRIPT_PATTERN = re.compile(r'dap\.digitalgov\.gov/Universal-Federated-Analytics[^"\'\s]*', re.IGNORECASE)
DAP_SRC_PATTERN = re.compile(r'//[^"\']*dap\.digitalgov\.gov[^"\']*\?[^"\']*', re.IGNORECASE)
DAP_VERSION_COMMENT_PATTERN = re.compile(r'DAP[^<]{0,100}v(\d+\.\d+)', re.IGNORECASE)
GA4_TAG_PATTERN = re.compile(r'G-[A-Z0-9]{10,}')
UA_TAG_PATTERN = re.compile(r'UA-\d{4,}-\d+')


def _parse_parameters(script_url: str) -> Optional[Dict[str, str]]:
    if "?" not in script_url:
        return None
    params: Dict[str, str] = {}
    for pair in script_url.split("?", 1)[1].split("&"):
        key, _, value = pair.partition("=")
        if key and value:
            params[unquote(key)] = unquote(value)
    return params or None


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


def detect_dap(html: str) -> DapResult:
    if not any(d in html.lower() for d in DAP_DOMAINS):
        return DapResult()

    script_match = DAP_SCRIPT_PATTERN.search(html)
    parameters = _parse_parameters(script_match.group(0)) if script_match else None

    tags = _unique(GA4_TAG_PATTERN.findall(html)) + _unique(UA_TAG_PATTERN.findall(html))

    version = None
    src_match = DAP_SRC_PATTERN.search(html)
    if src_match:
        version = extract_query_version(src_match.group(0))
    if not version:
        comment_match = DAP_VERSION_COMMENT_PATTERN.search(html)
        version = comment_match.group(1) if comment_match else None

    return DapResult(
        detected=True,
        parameters=parameters,
        version=version,
        ga_tag_id=",".join(tags) if tags else None,
    )
