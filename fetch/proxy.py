"""
Server-side fetch proxy used by the gateway when a direct request fails.

Only GET/HEAD requests to public addresses are relayed. Redirects are not
followed, so every hop of a redirect chain arrives as its own proxied request
and its own hostname is resolved and checked.
"""
import asyncio
import ipaddress
import logging
import socket
from typing import Dict, List, Optional
from urllib.parse import urlparse

import httpx
from fastapi import APIRouter, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from core.config import get_config
from core.exceptions import InvalidURLError, SSRFBlockedError

logger = logging.getLogger(__name__)

PROXY_PATH = "/api/v1/proxy"
UPSTREAM_TIMEOUT = 30.0
DNS_TIMEOUT = 5.0

ALLOWED_METHODS = {"GET", "HEAD"}
FORWARDED_HEADERS = {"accept", "accept-language", "cache-control"}
BLOCKED_HOSTNAMES = {"localhost", "metadata.google.internal", "169.254.169.254"}

BLOCKED_NETWORKS = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("100.64.0.0/10"),  # Carrier-grade NAT
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("224.0.0.0/4"),  # Multicast
    ipaddress.ip_network("240.0.0.0/4"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
    ipaddress.ip_network("ff00::/8"),
    ipaddress.ip_network("::ffff:0:0/96"),  # IPv4-mapped
]


def is_private_ip(address: str) -> bool:
    """True if the address is in a blocked range; unparseable addresses are blocked."""
    try:
        ip_obj = ipaddress.ip_address(address)
    except ValueError:
        return True
    if ip_obj.is_multicast or ip_obj.is_reserved or ip_obj.is_unspecified:
        return True
    return any(ip_obj.version == net.version and ip_obj in net for net in BLOCKED_NETWORKS)


async def resolve_addresses(hostname: str) -> List[str]:
    """
    Resolve a hostname through the system resolver, the same path the upstream
    connection takes (hosts file included). IP literals resolve to themselves.
    """
    try:
        ipaddress.ip_address(hostname)
        return [hostname]
    except ValueError:
        pass

    loop = asyncio.get_running_loop()
    try:
        infos = await asyncio.wait_for(
            loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM), timeout=DNS_TIMEOUT
        )
    except (socket.gaierror, asyncio.TimeoutError) as e:
        logger.debug(f"Proxy resolve {hostname}: no addresses ({type(e).__name__})")
        return []
    # sockaddr[0] is the address; IPv6 scope ids are dropped
    return list(dict.fromkeys(info[4][0].split("%")[0] for info in infos))


async def check_target(url: str) -> None:
    """
    Validate a proxy target URL.

    Raises:
        InvalidURLError: bad scheme, missing or unresolvable hostname
        SSRFBlockedError: blocked hostname or any resolved address is private
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise InvalidURLError("Only HTTP and HTTPS protocols are allowed", url=url)
    hostname = (parsed.hostname or "").lower()
    if not hostname:
        raise InvalidURLError("Missing hostname", url=url)
    if hostname in BLOCKED_HOSTNAMES:
        raise SSRFBlockedError("SSRF protection: blocked hostname", url=url)

    addresses = await resolve_addresses(hostname)
    if not addresses:
        raise InvalidURLError("Could not resolve hostname", url=url)
    for address in addresses:
        if is_private_ip(address):
            raise SSRFBlockedError(f"SSRF protection: private IP address blocked ({address})", url=url)


class ProxyRequest(BaseModel):
    url: str
    method: str = "GET"
    headers: Dict[str, str] = Field(default_factory=dict)


async def proxy_fetch(url: str, method: str = "GET", headers: Optional[Dict[str, str]] = None) -> Dict:
    """Perform the upstream request and package it for the gateway."""
    safe_headers = {
        "User-Agent": get_config().user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    }
    for key, value in (headers or {}).items():
        if key.lower() in FORWARDED_HEADERS:
            safe_headers[key] = value

    async with httpx.AsyncClient(timeout=UPSTREAM_TIMEOUT, follow_redirects=False) as client:
        response = await client.request(method, url, headers=safe_headers)

    response_headers = {k.lower(): v for k, v in response.headers.items()}
    return {
        "success": True,
        "status": response.status_code,
        "headers": response_headers,
        "body": response.text if method == "GET" else "",
        "redirected": 300 <= response.status_code < 400,
        "location": response_headers.get("location"),
    }


router = APIRouter()


@router.post(PROXY_PATH)
async def proxy_endpoint(payload: ProxyRequest):
    method = payload.method.upper()
    if method not in ALLOWED_METHODS:
        return JSONResponse(status_code=400, content={"success": False, "error": "Only GET and HEAD methods are allowed"})

    try:
        await check_target(payload.url)
    except SSRFBlockedError as e:
        logger.warning(f"Proxy refused {payload.url}: {e.message}")
        return JSONResponse(status_code=403, content={"success": False, "error": e.message})
    except InvalidURLError as e:
        return JSONResponse(status_code=400, content={"success": False, "error": e.message})

    try:
        return await proxy_fetch(payload.url, method, payload.headers)
    except (httpx.TimeoutException, asyncio.TimeoutError):
        return JSONResponse(status_code=504, content={"success": False, "error": "Request timed out"})
    except httpx.HTTPError as e:
        logger.info(f"Proxy upstream failure for {payload.url}: {e!r}")
        return JSONResponse(status_code=502, content={"success": False, "error": str(e)})


def create_app() -> FastAPI:
    app = FastAPI(title="gov-site-scanner proxy")
    app.include_router(router)
    return app
