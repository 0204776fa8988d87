import httpx
import logging
from typing import Optional, Dict

from core.config import get_config
from core.exceptions import FetchTimeout, NetworkError

# Default timeout configuration (in seconds)
DEFAULT_TIMEOUT = 30.0
DEFAULT_CONNECT_TIMEOUT = 10.0
PROXY_TIMEOUT = 35.0

async def fetch_url(
    url: str,
    method: str = "GET",
    timeout: Optional[float] = None,
    headers: Optional[Dict[str, str]] = None,
    follow_redirects: bool = True,
) -> httpx.Response:
    """
    Fetches a URL with a timeout, falling back to the same-origin proxy on network failure.

    Args:
        url: The URL to fetch
        method: HTTP method (GET or HEAD for anything that may be proxied)
        timeout: Total request timeout in seconds (default: 30s)
        headers: Optional dictionary of HTTP headers
        follow_redirects: Set to False to observe 3xx responses directly

    Returns:
        httpx.Response object (status codes are not raised)

    Raises:
        FetchTimeout: the request did not finish within the timeout
        NetworkError: the request failed and the proxy was unavailable or failed too
    """
    logger = logging.getLogger(__name__)
    config = get_config()
    timeout_value = timeout or DEFAULT_TIMEOUT
    logger.debug(f"HTTP {method} {url} (timeout: {timeout_value}s)")

    timeout_config = httpx.Timeout(
        timeout=timeout_value,
        connect=min(DEFAULT_CONNECT_TIMEOUT, timeout_value)
    )
    request_headers = {"User-Agent": config.user_agent}
    if headers:
        request_headers.update(headers)

    try:
        async with httpx.AsyncClient(timeout=timeout_config, follow_redirects=follow_redirects) as client:
            response = await client.request(method.upper(), url, headers=request_headers)
            logger.debug(f"HTTP {response.status_code} {url} ({len(response.content)} bytes)")
            return response
    except httpx.TimeoutException as e:
        logger.warning(f"HTTP timeout for {url}: {e!r}")
        raise FetchTimeout(f"Request timeout after {timeout_value}s", url=url) from e
    except httpx.TransportError as e:
        if not config.proxy_url:
            logger.warning(f"HTTP request error for {url}: {e!r}")
            raise NetworkError(f"Network error: {e}", url=url) from e
        logger.info(f"Direct {method} {url} failed ({type(e).__name__}), retrying via proxy")
        return await fetch_via_proxy(url, method=method, proxy_url=config.proxy_url)


async def fetch_via_proxy(url: str, method: str = "GET", proxy_url: Optional[str] = None) -> httpx.Response:
    """
    Fetches a URL through the server-side proxy endpoint.

    The proxy performs the real request with manual redirects and answers with
    JSON {success, status, headers, body, location}; that payload is turned
    back into an httpx.Response so callers cannot tell the two paths apart.
    """
    logger = logging.getLogger(__name__)
    proxy_url = proxy_url or get_config().proxy_url
    if not proxy_url:
        raise NetworkError("No proxy configured", url=url)

    try:
        async with httpx.AsyncClient(timeout=PROXY_TIMEOUT) as client:
            proxy_response = await client.post(proxy_url, json={"url": url, "method": method.upper()})
    except httpx.TimeoutException as e:
        raise FetchTimeout("Proxy request timeout", url=url) from e
    except httpx.TransportError as e:
        raise NetworkError(f"Proxy unreachable: {e}", url=url) from e

    if proxy_response.status_code != 200:
        raise NetworkError(f"Proxy error: HTTP {proxy_response.status_code}", url=url)
    try:
        data = proxy_response.json()
    except ValueError as e:
        raise NetworkError("Proxy returned invalid JSON", url=url) from e
    if not data.get("success"):
        raise NetworkError(f"Proxy failed: {data.get('error', 'unknown error')}", url=url)

    logger.debug(f"Proxy {method} {url} -> {data.get('status')}")
    return proxy_to_response(data, url, method)


def proxy_to_response(data: Dict, url: str, method: str = "GET") -> httpx.Response:
    """Synthesize an httpx.Response from a proxy JSON payload."""
    headers = {k.lower(): v for k, v in (data.get("headers") or {}).items()}
    # Encoding headers describe the upstream bytes, not the decoded body we got back
    headers.pop("content-encoding", None)
    headers.pop("content-length", None)
    headers.pop("transfer-encoding", None)
    if data.get("location"):
        headers["location"] = data["location"]
    return httpx.Response(
        status_code=int(data.get("status") or 0),
        headers=headers,
        content=(data.get("body") or "").encode("utf-8"),
        request=httpx.Request(method.upper(), url),
    )
