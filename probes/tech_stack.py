"""
Landing-page technology fingerprinting.

The page is fetched once; every detector then works on the same PageContext.
Only the stylesheet fetches and, for WordPress sites, the REST API probe
issue further requests.
"""
import asyncio
import dataclasses
import logging
from typing import List

from analyzers.cms import CmsAnalyzer
from analyzers.dap import detect_dap
from analyzers.headers import detect_cdn, detect_https, detect_security_headers, detect_web_server
from analyzers.login_gate import detect_login_gate
from analyzers.technologies import AnalyticsAnalyzer, TechnologiesAnalyzer
from analyzers.uswds import detect_uswds
from analyzers.wordpress import detect_wordpress
from core.config import get_config
from core.context import PageContext
from core.exceptions import FetchTimeout, NetworkError
from core.html_utils import extract_stylesheets
from fetch.http_client import fetch_url
from models.tech_stack import TechStackResult, empty_tech_stack
from probes.wp_content import analyze_wp_content
from rules.rules_loader import RuleSet

logger = logging.getLogger(__name__)

PAGE_TIMEOUT = 25.0
CSS_TIMEOUT = 8.0
MAX_STYLESHEETS = 3


async def _fetch_stylesheet(url: str) -> str:
    try:
        response = await fetch_url(url, timeout=CSS_TIMEOUT)
    except (FetchTimeout, NetworkError) as e:
        logger.debug(f"Stylesheet {url} skipped: {e.message}")
        return ""
    return response.text if response.is_success else ""


async def fetch_css(urls: List[str]) -> str:
    """Concatenated bodies of the given stylesheets; failures contribute nothing."""
    if not urls:
        return ""
    bodies = await asyncio.gather(*(_fetch_stylesheet(u) for u in urls))
    return "\n".join(b for b in bodies if b)


async def _no_wp_content():
    return None


async def detect_tech(url: str, rules: RuleSet) -> TechStackResult:
    config = get_config()
    try:
        response = await fetch_url(url, timeout=PAGE_TIMEOUT)
    except (FetchTimeout, NetworkError) as e:
        logger.warning(f"Landing page fetch failed for {url}: {e.message}")
        return empty_tech_stack(url, error=e.message)

    headers = {k.lower(): v for k, v in response.headers.items()}
    # 403 pages frequently still carry CMS and design-system markup
    html = response.text if response.is_success or response.status_code == 403 else ""
    context = PageContext(
        url=url,
        status_code=response.status_code,
        headers=headers,
        html=html,
        cookies="\n".join(response.headers.get_list("set-cookie")),
    )

    cms_match = await CmsAnalyzer(rules.cms, threshold=config.cms_score_threshold).analyze(context)
    cms = cms_match.cms
    logger.info(f"CMS for {url}: {cms or 'unknown'}")

    stylesheets = extract_stylesheets(html, url, limit=MAX_STYLESHEETS)
    css, wp_content = await asyncio.gather(
        fetch_css(stylesheets),
        analyze_wp_content(url) if cms == "WordPress" else _no_wp_content(),
    )
    context = dataclasses.replace(context, css=css)

    wordpress = None
    if cms == "WordPress":
        wordpress = detect_wordpress(html)
        if wordpress is not None:
            wordpress = dataclasses.replace(wordpress, content=wp_content)

    https = detect_https(headers, url)
    return TechStackResult(
        cms=cms,
        web_server=detect_web_server(headers),
        analytics=await AnalyticsAnalyzer(rules.analytics).analyze(context),
        cdn=detect_cdn(headers, html),
        wordpress=wordpress,
        technologies=await TechnologiesAnalyzer(rules.technologies).analyze(context),
        security_headers=detect_security_headers(headers),
        uswds=detect_uswds(html, css, weights=config.uswds_weights),
        dap=detect_dap(html),
        https_enforced=https["https_enforced"],
        hsts=https["hsts"],
        login_gate=detect_login_gate(url, html, response.status_code),
    )
