"""
sitemap.xml analysis.

A plain urlset is counted directly. A sitemap index fans out to a capped
number of child sitemaps fetched concurrently; failing children are skipped.
Leaf URLs collected from an index also get a URL-shape analysis (content-type
histogram, path depth, clean-URL flags).
"""
import asyncio
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import urlparse
from xml.etree.ElementTree import Element, ParseError as XMLParseError

from defusedxml import ElementTree as ET
from defusedxml import DefusedXmlException

from core.config import get_config
from core.exceptions import FetchTimeout, HTTPError, NetworkError, ParseError, ScanError
from core.html_utils import site_root
from fetch.http_client import fetch_url
from models.scan import SitemapResult, UrlPattern

logger = logging.getLogger(__name__)

SITEMAP_TIMEOUT = 20.0
CHILD_SITEMAP_TIMEOUT = 15.0

SCRIPT_EXTENSION_PATTERN = re.compile(r'\.(php|asp|aspx|cfm)$', re.IGNORECASE)
NODE_PATH_PATTERN = re.compile(r'/node/\d+')
ID_QUERY_PATTERN = re.compile(r'[?&]id=\d+')
YEAR_PATTERN = re.compile(r'^\d{4}$')
MONTH_PATTERN = re.compile(r'^\d{4}-\d{2}$')


def _local_name(element: Element) -> str:
    """Tag name without its XML namespace."""
    return element.tag.rsplit("}", 1)[-1].lower() if isinstance(element.tag, str) else ""


def _child_text(element: Element, name: str) -> Optional[str]:
    for child in element:
        if _local_name(child) == name and child.text and child.text.strip():
            return child.text.strip()
    return None


def _elements(root: Element, name: str) -> List[Element]:
    return [el for el in root.iter() if _local_name(el) == name]


@dataclass
class UrlTally:
    """Running totals over <url> entries, possibly spread across several files."""
    urls: List[str] = field(default_factory=list)
    pdf_count: int = 0
    lastmod: Optional[str] = None
    by_year: Counter = field(default_factory=Counter)
    by_month: Counter = field(default_factory=Counter)

    def add_urlset(self, root: Element) -> None:
        for url_el in _elements(root, "url"):
            loc = _child_text(url_el, "loc")
            if loc:
                self.urls.append(loc)
                if loc.lower().endswith(".pdf"):
                    self.pdf_count += 1
            lastmod = _child_text(url_el, "lastmod")
            if lastmod:
                # ISO-8601 strings compare correctly as text
                if self.lastmod is None or lastmod > self.lastmod:
                    self.lastmod = lastmod
                if YEAR_PATTERN.match(lastmod[:4]):
                    self.by_year[lastmod[:4]] += 1
                if MONTH_PATTERN.match(lastmod[:7]):
                    self.by_month[lastmod[:7]] += 1


def analyze_urls(urls: List[str]) -> Dict:
    """URL-shape statistics over leaf URLs."""
    segment_counts: Counter = Counter()
    depths: List[int] = []
    has_clean_urls = True
    has_node_ids = False
    has_query_strings = False

    for raw in urls:
        try:
            parsed = urlparse(raw)
        except ValueError:
            continue
        path = parsed.path.rstrip("/")

        if parsed.query:
            has_query_strings = True
            has_clean_urls = False
        if SCRIPT_EXTENSION_PATTERN.search(path):
            has_clean_urls = False
        if NODE_PATH_PATTERN.search(path) or ID_QUERY_PATTERN.search(raw):
            has_node_ids = True

        parts = [p for p in path.split("/") if p]
        depths.append(len(parts))
        if parts:
            segment_counts[parts[0]] += 1

    total = len(urls)
    content_types: Dict[str, Dict[str, float]] = {}
    url_patterns: List[UrlPattern] = []
    for segment, count in segment_counts.items():
        percentage = round(count / total * 100, 1) if total else 0.0
        content_types[segment] = {"count": count, "percentage": percentage}
        url_patterns.append(UrlPattern(segment=segment, count=count, percentage=percentage))
    url_patterns.sort(key=lambda p: p.count, reverse=True)

    return {
        "content_types": content_types,
        "url_patterns": url_patterns,
        "has_clean_urls": has_clean_urls,
        "has_node_ids": has_node_ids,
        "has_query_strings": has_query_strings,
        "path_depth_avg": round(sum(depths) / len(depths), 1) if depths else None,
    }


def parse_xml(content: bytes, url: str) -> Element:
    """Parse untrusted XML; raises ParseError on malformed or unsafe input."""
    try:
        return ET.fromstring(content)
    except (XMLParseError, DefusedXmlException) as e:
        raise ParseError(f"Invalid XML: {e}", url=url) from e


async def _fetch_child(loc: str) -> Element:
    """One child sitemap of an index."""
    response = await fetch_url(loc, timeout=CHILD_SITEMAP_TIMEOUT)
    if not response.is_success:
        raise HTTPError(response.status_code, url=loc)
    return parse_xml(response.content, loc)


async def _analyze_index(root: Element, sitemap_url: str, status_code: int, filesize: int) -> SitemapResult:
    max_children = get_config().max_sub_sitemaps
    sitemap_elements = _elements(root, "sitemap")[:max_children]
    locs = [loc for loc in (_child_text(el, "loc") for el in sitemap_elements) if loc]
    logger.debug(f"Sitemap index {sitemap_url}: fetching {len(locs)} of {len(_elements(root, 'sitemap'))} children")

    children = await asyncio.gather(*(_fetch_child(loc) for loc in locs), return_exceptions=True)

    tally = UrlTally()
    for child in children:
        if isinstance(child, ScanError):
            logger.debug(f"Child sitemap {child.url} skipped: {child.message}")
        elif isinstance(child, BaseException):
            logger.warning(f"Unexpected child sitemap failure under {sitemap_url}: {child!r}")
        else:
            tally.add_urlset(child)

    shape = analyze_urls(tally.urls)
    return SitemapResult(
        detected=True,
        url=sitemap_url,
        status_code=status_code,
        page_count=len(tally.urls),
        pdf_count=tally.pdf_count or None,
        filesize=filesize,
        lastmod=tally.lastmod,
        sitemaps_found=len(sitemap_elements),
        content_types=shape["content_types"] or None,
        url_patterns=shape["url_patterns"] or None,
        publishing_by_year=dict(sorted(tally.by_year.items())) or None,
        publishing_by_month=dict(sorted(tally.by_month.items())) or None,
        latest_update=tally.lastmod,
        has_clean_urls=shape["has_clean_urls"],
        has_node_ids=shape["has_node_ids"],
        has_query_strings=shape["has_query_strings"],
        path_depth_avg=shape["path_depth_avg"],
    )


async def analyze_sitemap(base_url: str) -> SitemapResult:
    """Fetch and analyze <origin>/sitemap.xml. Never raises."""
    sitemap_url = f"{site_root(base_url)}/sitemap.xml"

    try:
        response = await fetch_url(sitemap_url, timeout=SITEMAP_TIMEOUT)
    except (FetchTimeout, NetworkError) as e:
        logger.info(f"sitemap.xml unreachable for {base_url}: {e.message}")
        return SitemapResult(detected=False, url=sitemap_url, status_code=0, error=f"Network error: {e.message}")

    if not response.is_success:
        logger.debug(f"sitemap.xml {sitemap_url}: HTTP {response.status_code}")
        return SitemapResult(detected=False, url=sitemap_url, status_code=response.status_code)

    filesize = len(response.content)
    try:
        root = parse_xml(response.content, sitemap_url)
    except ParseError as e:
        logger.info(f"sitemap.xml at {sitemap_url} is not valid XML: {e.message}")
        return SitemapResult(
            detected=True,
            url=sitemap_url,
            status_code=response.status_code,
            filesize=filesize,
            error="Invalid XML",
        )

    if _elements(root, "sitemap"):
        return await _analyze_index(root, sitemap_url, response.status_code, filesize)

    tally = UrlTally()
    tally.add_urlset(root)
    logger.debug(f"sitemap.xml {sitemap_url}: {len(tally.urls)} URLs")
    return SitemapResult(
        detected=True,
        url=sitemap_url,
        status_code=response.status_code,
        page_count=len(tally.urls),
        pdf_count=tally.pdf_count or None,
        filesize=filesize,
        lastmod=tally.lastmod,
    )
