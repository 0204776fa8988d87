from typing import Dict, Optional
from models.detection import SecurityHeaders

# Known server families, checked in order against the lower-cased Server header
SERVER_FAMILIES = [
    ("nginx", "Nginx"),
    ("apache", "Apache"),
    ("iis", "IIS"),
    ("cloudflare", "Cloudflare"),
    ("litespeed", "LiteSpeed"),
]


def detect_web_server(headers: Dict[str, str]) -> Optional[str]:
    server = headers.get("server", "")
    if not server:
        return None
    lowered = server.lower()
    for needle, name in SERVER_FAMILIES:
        if needle in lowered:
            return name
    return server.split("/")[0] or None


def detect_cdn(headers: Dict[str, str], html: str) -> Optional[str]:
    if headers.get("cf-cache-status") or headers.get("cf-ray"):
        return "Cloudflare"
    if "cloudfront" in headers.get("x-cache", "").lower() or "cloudfront.net" in html:
        return "CloudFront"
    if headers.get("x-fastly-request-id") or "fastly" in headers.get("via", "").lower():
        return "Fastly"
    if headers.get("x-akamai-transformed") or "AkamaiGHost" in headers.get("server", ""):
        return "Akamai"
    if "squid" in headers.get("via", "").lower():
        return "Squid"
    return None


def detect_security_headers(headers: Dict[str, str]) -> SecurityHeaders:
    return SecurityHeaders(
        csp=headers.get("content-security-policy"),
        xss_protection=headers.get("x-xss-protection"),
    )


def detect_https(headers: Dict[str, str], url: str) -> Dict[str, bool]:
    return {
        "https_enforced": url.lower().startswith("https://"),
        "hsts": bool(headers.get("strict-transport-security")),
    }
