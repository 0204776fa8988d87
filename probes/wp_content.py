"""
WordPress REST API content analysis.

Only run once the landing page has been classified as WordPress. Reads the
/wp-json/ index for namespaces and routes, then counts content through the
paginated collection endpoints. A blocked REST API yields an inactive result
with every count left as None.
"""
import asyncio
import logging
import re
from typing import Dict, List, Optional

import httpx

from core.exceptions import FetchTimeout, NetworkError
from core.html_utils import format_bytes, site_root
from fetch.http_client import fetch_url
from models.tech_stack import WordPressContentResult, WpPlugin

logger = logging.getLogger(__name__)

WP_TIMEOUT = 10.0
FEED_TIMEOUT = 5.0

# Namespaces shipped with WordPress core, never reported as plugins
CORE_NAMESPACES = {
    "wp/v2", "wp-block-editor/v1", "wp-site-health/v1", "wp-abilities/v1",
    "oembed/1.0", "automattic/v1",
}

BUILTIN_TYPES = {
    "posts", "pages", "media", "comments", "blocks", "users",
    "categories", "tags", "settings", "statuses", "types", "taxonomies", "themes",
    "plugins", "search", "templates", "template-parts", "navigation", "menus", "menu-items",
    "menu-locations", "sidebars", "widgets", "widget-types", "global-styles",
    "font-families", "font-collections", "block-types", "block-renderer", "block-patterns",
    "block-directory", "pattern-directory", "autosaves", "revisions",
}

TYPE_ROUTE_PATTERN = re.compile(r'^/wp/v2/([a-z0-9_-]+)$')
SLUG_CLEANUP_PATTERN = re.compile(r'[^a-z0-9-]')

COUNT_ENDPOINTS = {
    "posts": "/wp-json/wp/v2/posts?per_page=1",
    "pages": "/wp-json/wp/v2/pages?per_page=1",
    "users": "/wp-json/wp/v2/users?per_page=100",
    "categories": "/wp-json/wp/v2/categories?per_page=1",
    "tags": "/wp-json/wp/v2/tags?per_page=1",
    "media": "/wp-json/wp/v2/media?per_page=100&_fields=id,media_details",
}
FEED_PATHS = ["/feed/", "/rss/", "/atom/"]


def wp_total(response: httpx.Response) -> Optional[int]:
    """X-WP-Total of a paginated collection response, if present and numeric."""
    value = response.headers.get("x-wp-total")
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def namespace_to_plugin(namespace: str) -> WpPlugin:
    """e.g. 'rank-math/v1' -> WpPlugin(slug='rank-math', name='Rank Math')"""
    slug = SLUG_CLEANUP_PATTERN.sub("-", namespace.split("/")[0].lower())
    name = " ".join(word.capitalize() for word in slug.split("-"))
    return WpPlugin(slug=slug, name=name, api_namespace=namespace)


def _ok(response) -> bool:
    return isinstance(response, httpx.Response) and response.is_success


def _json_or_none(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None


def _media_size(items: List) -> int:
    total = 0
    for item in items:
        if not isinstance(item, dict):
            continue
        details = item.get("media_details") or {}
        filesize = details.get("filesize")
        if filesize is None:
            filesize = ((details.get("sizes") or {}).get("full") or {}).get("filesize")
        if isinstance(filesize, (int, float)) and not isinstance(filesize, bool):
            total += int(filesize)
    return total


async def _fetch_optional(url: str, timeout: float) -> Optional[httpx.Response]:
    try:
        return await fetch_url(url, timeout=timeout)
    except (FetchTimeout, NetworkError) as e:
        logger.debug(f"WP probe {url}: {e.message}")
        return None


async def analyze_wp_content(base_url: str) -> WordPressContentResult:
    base = site_root(base_url)

    root_response = await _fetch_optional(f"{base}/wp-json/", WP_TIMEOUT)
    root_data = _json_or_none(root_response) if _ok(root_response) else None
    if not isinstance(root_data, dict):
        logger.info(f"WordPress REST API not available at {base}/wp-json/")
        return WordPressContentResult()

    namespaces = [ns for ns in (root_data.get("namespaces") or []) if isinstance(ns, str)]
    routes = root_data.get("routes") if isinstance(root_data.get("routes"), dict) else {}

    endpoint_namespaces = [ns for ns in namespaces if ns not in CORE_NAMESPACES]

    custom_post_types: List[str] = []
    for route in routes:
        match = TYPE_ROUTE_PATTERN.match(route)
        if match and match.group(1) not in BUILTIN_TYPES:
            custom_post_types.append(match.group(1))

    plugins: Dict[str, WpPlugin] = {}
    for namespace in endpoint_namespaces:
        plugin = namespace_to_plugin(namespace)
        plugins.setdefault(plugin.slug, plugin)

    names = list(COUNT_ENDPOINTS)
    responses = await asyncio.gather(
        *(_fetch_optional(f"{base}{COUNT_ENDPOINTS[name]}", WP_TIMEOUT) for name in names)
    )
    counts = dict(zip(names, responses))

    def total_of(name: str) -> Optional[int]:
        response = counts[name]
        return wp_total(response) if _ok(response) else None

    author_count = total_of("users")
    if author_count is None and _ok(counts["users"]):
        users = _json_or_none(counts["users"])
        author_count = len(users) if isinstance(users, list) else None

    media_total = None
    media_size_bytes = None
    media_scan_complete = False
    if _ok(counts["media"]):
        media_total = wp_total(counts["media"])
        items = _json_or_none(counts["media"])
        if isinstance(items, list):
            size = _media_size(items)
            media_size_bytes = size or None
            media_scan_complete = media_total is not None and len(items) >= media_total

    feed_urls = [f"{base}{path}" for path in FEED_PATHS]
    feed_responses = await asyncio.gather(*(_fetch_optional(url, FEED_TIMEOUT) for url in feed_urls))
    feeds = [url for url, response in zip(feed_urls, feed_responses) if _ok(response)]

    logger.debug(f"WP content at {base}: {len(plugins)} plugins, {len(custom_post_types)} custom types, {len(feeds)} feeds")
    return WordPressContentResult(
        json_api_active=True,
        json_api_endpoints=endpoint_namespaces,
        post_count=total_of("posts"),
        page_count=total_of("pages"),
        author_count=author_count,
        category_count=total_of("categories"),
        tag_count=total_of("tags"),
        media_total=media_total,
        media_size_bytes=media_size_bytes,
        media_size_formatted=format_bytes(media_size_bytes) if media_size_bytes else None,
        media_scan_complete=media_scan_complete,
        detected_plugins=list(plugins.values()),
        feeds=feeds,
        custom_post_types=custom_post_types,
    )
