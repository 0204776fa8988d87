"""Small helpers for pulling structure out of landing-page HTML and URLs."""
import re
from typing import List, Optional
from urllib.parse import urljoin, urlparse

from core.exceptions import InvalidURLError

STYLESHEET_PATTERNS = [
    re.compile(r'<link[^>]*rel=["\']stylesheet["\'][^>]*href=["\']([^"\']+)["\']', re.IGNORECASE),
    re.compile(r'<link[^>]*href=["\']([^"\']+)["\'][^>]*rel=["\']stylesheet["\']', re.IGNORECASE),
]
TITLE_PATTERN = re.compile(r'<title[^>]*>([^<]*)</title>', re.IGNORECASE)
PASSWORD_INPUT_PATTERN = re.compile(r'<input[^>]+type=["\']?password', re.IGNORECASE)
STYLE_BLOCK_PATTERN = re.compile(r'<style[^>]*>.*?</style>', re.IGNORECASE | re.DOTALL)


def extract_stylesheets(html: str, base_url: str, limit: int = 3) -> List[str]:
    """Absolute URLs of linked stylesheets in document order, capped at `limit`."""
    urls: List[str] = []
    for pattern in STYLESHEET_PATTERNS:
        for href in pattern.findall(html):
            absolute = urljoin(base_url, href)
            if absolute not in urls:
                urls.append(absolute)
    return urls[:limit]


def extract_title(html: str) -> str:
    match = TITLE_PATTERN.search(html)
    return match.group(1).strip() if match else ""


def has_password_input(html: str) -> bool:
    return bool(PASSWORD_INPUT_PATTERN.search(html))


def extract_style_blocks(html: str) -> List[str]:
    return STYLE_BLOCK_PATTERN.findall(html)


def normalize_target_url(url: str) -> str:
    """
    Turn user input into a scan target URL.

    A bare domain gets an https:// scheme. Raises InvalidURLError when no
    http(s) URL with a hostname can be made from the input.
    """
    candidate = (url or "").strip()
    if not candidate:
        raise InvalidURLError("Empty URL", url=url)
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    try:
        parsed = urlparse(candidate)
        hostname = parsed.hostname
    except ValueError as e:
        raise InvalidURLError(f"Unparseable URL: {e}", url=url) from e
    if parsed.scheme not in ("http", "https") or not hostname:
        raise InvalidURLError("URL must be http(s) with a hostname", url=url)
    return candidate


def site_root(url: str) -> str:
    """Origin (scheme://host[:port]) of a URL, without a trailing slash."""
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return url.rstrip("/")
    return f"{parsed.scheme}://{parsed.netloc}"


def hostname_of(url: str) -> Optional[str]:
    return urlparse(url).hostname


def format_bytes(size: int) -> str:
    """Human-readable byte size, e.g. 928_432_128 -> '885.42 MB'."""
    if size >= 1_073_741_824:
        return f"{size / 1_073_741_824:.2f} GB"
    if size >= 1_048_576:
        return f"{size / 1_048_576:.2f} MB"
    if size >= 1024:
        return f"{size / 1024:.2f} KB"
    return f"{size} B"
