"""Tests for hop-by-hop redirect resolution."""
import pytest
from unittest.mock import AsyncMock, patch
import httpx

from core.config import ScanConfig, get_config, set_config
from core.exceptions import FetchTimeout, InvalidRedirectTarget, NetworkError, RedirectError
from probes.redirects import next_location, resolve_redirects


def _response(url: str, status_code: int, location: str = None, method: str = "HEAD") -> httpx.Response:
    headers = {"location": location} if location else {}
    return httpx.Response(status_code, headers=headers, request=httpx.Request(method, url))


def _fake_fetch(routes, head_fails=()):
    """routes: url -> (status, location). URLs in head_fails raise on HEAD."""
    def fetch(url, method="GET", **kwargs):
        if method == "HEAD" and url in head_fails:
            raise NetworkError("Network error: connection reset", url=url)
        status, location = routes.get(url, (200, None))
        return _response(url, status, location, method)
    return fetch


@pytest.fixture
def restore_config():
    original = get_config()
    yield
    set_config(original)


def test_next_location_resolves_relative_paths():
    assert next_location("https://agency.gov/a/b", "/c") == "https://agency.gov/c"
    assert next_location("https://agency.gov/a/b", "c") == "https://agency.gov/a/c"
    assert next_location("http://agency.gov/", "https://www.agency.gov/") == "https://www.agency.gov/"


@pytest.mark.parametrize("location", [None, "", "   ", "ftp://agency.gov/file", "javascript:alert(1)"])
def test_next_location_rejects_invalid_targets(location):
    with pytest.raises(InvalidRedirectTarget):
        next_location("https://agency.gov/", location)


@pytest.mark.asyncio
async def test_no_redirect_single_hop():
    fetch = AsyncMock(side_effect=_fake_fetch({}))
    with patch("probes.redirects.fetch_url", new=fetch):
        chain = await resolve_redirects("https://agency.gov")

    assert chain.total_hops == 1
    assert chain.final_url == "https://agency.gov"
    assert chain.was_redirected is False
    assert chain.hops[0].status_code == 200
    assert fetch.await_args.kwargs["follow_redirects"] is False


@pytest.mark.asyncio
async def test_follows_relative_and_absolute_locations():
    routes = {
        "http://agency.gov": (301, "https://agency.gov/"),
        "https://agency.gov/": (302, "/home"),
    }
    with patch("probes.redirects.fetch_url", new=AsyncMock(side_effect=_fake_fetch(routes))):
        chain = await resolve_redirects("http://agency.gov")

    assert [h.url for h in chain.hops] == ["http://agency.gov", "https://agency.gov/", "https://agency.gov/home"]
    assert [h.status_code for h in chain.hops] == [301, 302, 200]
    assert chain.final_url == "https://agency.gov/home"
    assert chain.was_redirected is True


@pytest.mark.asyncio
async def test_redirect_loop_stops_without_repeating_urls():
    routes = {
        "https://a.gov/": (302, "https://b.gov/"),
        "https://b.gov/": (302, "https://a.gov/"),
    }
    with patch("probes.redirects.fetch_url", new=AsyncMock(side_effect=_fake_fetch(routes))):
        chain = await resolve_redirects("https://a.gov/")

    urls = [h.url for h in chain.hops]
    assert urls == ["https://a.gov/", "https://b.gov/"]
    assert len(urls) == len(set(urls))


@pytest.mark.asyncio
async def test_hop_cap_is_enforced():
    routes = {f"https://agency.gov/{i}": (302, f"/{i + 1}") for i in range(50)}
    with patch("probes.redirects.fetch_url", new=AsyncMock(side_effect=_fake_fetch(routes))):
        chain = await resolve_redirects("https://agency.gov/0")

    assert chain.total_hops == 10
    assert chain.final_url == "https://agency.gov/9"


@pytest.mark.asyncio
async def test_hop_cap_follows_config(restore_config):
    set_config(ScanConfig(max_redirects=3))
    routes = {f"https://agency.gov/{i}": (302, f"/{i + 1}") for i in range(50)}
    with patch("probes.redirects.fetch_url", new=AsyncMock(side_effect=_fake_fetch(routes))):
        chain = await resolve_redirects("https://agency.gov/0")

    assert chain.total_hops == 3


@pytest.mark.asyncio
async def test_missing_location_ends_chain():
    routes = {"https://agency.gov/": (301, None)}
    with patch("probes.redirects.fetch_url", new=AsyncMock(side_effect=_fake_fetch(routes))):
        chain = await resolve_redirects("https://agency.gov/")

    assert chain.total_hops == 1
    assert chain.hops[0].status_code == 301
    assert chain.final_url == "https://agency.gov/"


@pytest.mark.asyncio
async def test_head_failure_falls_back_to_get():
    fetch = AsyncMock(side_effect=_fake_fetch({}, head_fails={"https://agency.gov/"}))
    with patch("probes.redirects.fetch_url", new=fetch):
        chain = await resolve_redirects("https://agency.gov/")

    assert chain.hops[0].status_code == 200
    methods = [call.kwargs["method"] for call in fetch.await_args_list]
    assert methods == ["HEAD", "GET"]


@pytest.mark.asyncio
async def test_head_not_allowed_falls_back_to_get():
    def fetch(url, method="GET", **kwargs):
        if method == "HEAD":
            return _response(url, 405)
        return _response(url, 200, method=method)

    with patch("probes.redirects.fetch_url", new=AsyncMock(side_effect=fetch)):
        chain = await resolve_redirects("https://agency.gov/")

    assert chain.hops[0].status_code == 200


@pytest.mark.asyncio
async def test_both_methods_failing_raises_redirect_error():
    with patch("probes.redirects.fetch_url", new=AsyncMock(side_effect=FetchTimeout("Request timeout after 15.0s"))):
        with pytest.raises(RedirectError) as exc_info:
            await resolve_redirects("https://unreachable.example.gov/")

    assert exc_info.value.url == "https://unreachable.example.gov/"
    assert isinstance(exc_info.value, NetworkError)
