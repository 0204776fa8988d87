"""Exception taxonomy for the scanner.

Probes catch these internally and fold them into their result objects; only
input-side errors such as an unparseable target URL reach the caller.
"""
from typing import Optional


class ScanError(Exception):
    """Base exception for all scanner errors."""

    error_code: str = "SCAN_ERROR"

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.url = url


class FetchTimeout(ScanError):
    """Request did not complete within its timeout."""

    error_code = "TIMEOUT"


class NetworkError(ScanError):
    """Connection, DNS or protocol failure (including a failed proxy fallback)."""

    error_code = "NETWORK_ERROR"


class RedirectError(NetworkError):
    """A redirect hop could not be fetched with either HEAD or GET."""

    error_code = "REDIRECT_FAILED"


class HTTPError(ScanError):
    """Unexpected HTTP status."""

    error_code = "HTTP_ERROR"

    def __init__(self, status_code: int, url: Optional[str] = None):
        super().__init__(f"HTTP {status_code}", url=url)
        self.status_code = status_code


class ParseError(ScanError):
    """Malformed XML or JSON payload."""

    error_code = "PARSE_ERROR"


class RedirectLoop(ScanError):
    """A redirect target was already visited."""

    error_code = "REDIRECT_LOOP"


class InvalidRedirectTarget(ScanError):
    """Location header missing or not resolvable to an http(s) URL."""

    error_code = "INVALID_REDIRECT_TARGET"


class InvalidURLError(ScanError):
    """The scan target itself is not a usable URL."""

    error_code = "INVALID_URL"


class SSRFBlockedError(ScanError):
    """Proxy target resolves to a private, loopback or otherwise blocked address."""

    error_code = "SSRF_BLOCKED"
