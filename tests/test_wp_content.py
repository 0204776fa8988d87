"""Tests for the WordPress REST API content probe."""
import json
import pytest
from unittest.mock import AsyncMock, patch
import httpx

from probes.wp_content import analyze_wp_content, namespace_to_plugin

BASE = "https://agency.gov"

WP_JSON_ROOT = {
    "namespaces": ["oembed/1.0", "wp/v2", "yoast/v1", "rank-math/v1", "rank-math/v2", "gravityforms/v2"],
    "routes": {
        "/": {},
        "/wp/v2/posts": {},
        "/wp/v2/pages": {},
        "/wp/v2/press_release": {},
        "/wp/v2/event": {},
        "/wp/v2/posts/(?P<id>[\\d]+)": {},
        "/yoast/v1/meta": {},
    },
}


def _response(url: str, body=None, status_code: int = 200, headers=None) -> httpx.Response:
    content = json.dumps(body).encode("utf-8") if body is not None else b""
    return httpx.Response(status_code, content=content, headers=headers or {}, request=httpx.Request("GET", url))


def _site(overrides=None):
    pages = {
        f"{BASE}/wp-json/": _response(f"{BASE}/wp-json/", WP_JSON_ROOT),
        f"{BASE}/wp-json/wp/v2/posts?per_page=1": _response("p", [{}], headers={"X-WP-Total": "1234"}),
        f"{BASE}/wp-json/wp/v2/pages?per_page=1": _response("p", [{}], headers={"X-WP-Total": "56"}),
        f"{BASE}/wp-json/wp/v2/users?per_page=100": _response("u", [{"id": 1}, {"id": 2}, {"id": 3}]),
        f"{BASE}/wp-json/wp/v2/categories?per_page=1": _response("c", [{}], headers={"X-WP-Total": "12"}),
        f"{BASE}/wp-json/wp/v2/tags?per_page=1": _response("t", [], status_code=401),
        f"{BASE}/wp-json/wp/v2/media?per_page=100&_fields=id,media_details": _response(
            "m",
            [
                {"id": 1, "media_details": {"filesize": 1_048_576}},
                {"id": 2, "media_details": {"sizes": {"full": {"filesize": 1_048_576}}}},
                {"id": 3, "media_details": {}},
            ],
            headers={"X-WP-Total": "3"},
        ),
        f"{BASE}/feed/": _response("f", {}),
        f"{BASE}/rss/": _response("f", None, status_code=404),
        f"{BASE}/atom/": _response("f", {}),
    }
    pages.update(overrides or {})

    def fetch(url, **kwargs):
        if url in pages:
            return pages[url]
        return _response(url, None, status_code=404)
    return fetch


def test_namespace_to_plugin():
    plugin = namespace_to_plugin("rank-math/v1")
    assert plugin.slug == "rank-math"
    assert plugin.name == "Rank Math"
    assert plugin.api_namespace == "rank-math/v1"
    assert plugin.detection_method == "rest_api_namespaces"
    assert plugin.confidence == "high"


@pytest.mark.asyncio
async def test_full_content_analysis():
    with patch("probes.wp_content.fetch_url", new=AsyncMock(side_effect=_site())):
        result = await analyze_wp_content(f"{BASE}/some/page/")

    assert result.json_api_active is True
    assert result.json_api_endpoints == ["yoast/v1", "rank-math/v1", "rank-math/v2", "gravityforms/v2"]
    assert [p.slug for p in result.detected_plugins] == ["yoast", "rank-math", "gravityforms"]
    assert result.custom_post_types == ["press_release", "event"]
    assert result.post_count == 1234
    assert result.page_count == 56
    assert result.category_count == 12
    assert result.tag_count is None
    # no X-WP-Total on users: falls back to the array length
    assert result.author_count == 3
    assert result.media_total == 3
    assert result.media_size_bytes == 2_097_152
    assert result.media_size_formatted == "2.00 MB"
    assert result.media_scan_complete is True
    assert result.feeds == [f"{BASE}/feed/", f"{BASE}/atom/"]


@pytest.mark.asyncio
async def test_partial_media_page_is_incomplete():
    media_url = f"{BASE}/wp-json/wp/v2/media?per_page=100&_fields=id,media_details"
    overrides = {media_url: _response("m", [{"id": 1, "media_details": {"filesize": 10}}], headers={"X-WP-Total": "900"})}
    with patch("probes.wp_content.fetch_url", new=AsyncMock(side_effect=_site(overrides))):
        result = await analyze_wp_content(BASE)

    assert result.media_total == 900
    assert result.media_scan_complete is False
    assert result.media_size_formatted == "10 B"


@pytest.mark.asyncio
async def test_blocked_rest_api_returns_inactive_result():
    overrides = {f"{BASE}/wp-json/": _response(f"{BASE}/wp-json/", {"code": "rest_disabled"}, status_code=403)}
    mock_fetch = AsyncMock(side_effect=_site(overrides))
    with patch("probes.wp_content.fetch_url", new=mock_fetch):
        result = await analyze_wp_content(BASE)

    assert result.json_api_active is False
    assert result.post_count is None
    assert result.media_total is None
    assert result.detected_plugins == []
    assert mock_fetch.await_count == 1
