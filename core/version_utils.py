"""
Utility functions for extracting versions from page HTML and asset URLs.
"""
import re
from typing import Optional


def extract_wordpress_version(html: str) -> Optional[str]:
    """
    WordPress core version from the generator meta tag, else from an asset ?ver= query.

    Examples:
        - <meta name="generator" content="WordPress 6.4.2" /> -> 6.4.2
        - /wp-includes/js/jquery.min.js?ver=6.4.2 -> 6.4.2
    """
    match = re.search(r'<meta[^>]*generator[^>]*WordPress\s+([\d.]+)', html, re.IGNORECASE)
    if match:
        return match.group(1)
    match = re.search(r'[?&]ver=(\d+\.\d+(?:\.\d+)?)', html)
    return match.group(1) if match else None


def extract_theme_version(html: str, theme: str) -> Optional[str]:
    """Theme version from its enqueued assets, e.g. themes/<slug>/style.css?ver=1.4."""
    match = re.search(rf'themes/{re.escape(theme)}/[^"\']*\?ver=([\d.]+)', html)
    return match.group(1) if match else None


def extract_semantic_version(text: str, prefix: str) -> Optional[str]:
    """
    Three-part version following a product prefix.

    Examples:
        - "uswds-3.8.1.min.css" with prefix "uswds" -> 3.8.1
        - "/uswds/2.13.3/" with prefix "uswds" -> 2.13.3
    """
    match = re.search(rf'{re.escape(prefix)}[- /]+(\d+\.\d+\.\d+)', text, re.IGNORECASE)
    return match.group(1) if match else None


def extract_query_version(url: str) -> Optional[str]:
    """Version carried as a ver= query parameter."""
    match = re.search(r'[?&]ver=([^&"\'\s]+)', url, re.IGNORECASE)
    return match.group(1) if match else None
