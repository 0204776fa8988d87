import re
from typing import Optional
from core.version_utils import extract_wordpress_version, extract_theme_version
from models.tech_stack import WordPressResult

THEME_PATTERN = re.compile(r'wp-content/themes/([^/"\'?]+)')
PLUGIN_PATTERN = re.compile(r'wp-content/plugins/([^/"\'?#\s]+)', re.IGNORECASE)


def detect_wordpress(html: str) -> Optional[WordPressResult]:
    """Version, active theme and plugin slugs from the page HTML alone (no extra requests)."""
    if "wp-content/" not in html and "wp-includes/" not in html:
        return None

    theme_match = THEME_PATTERN.search(html)
    theme = theme_match.group(1) if theme_match else None

    plugins = set()
    for slug in PLUGIN_PATTERN.findall(html):
        slug = slug.lower()
        if len(slug) > 2 and not slug.startswith("."):
            plugins.add(slug)

    return WordPressResult(
        version=extract_wordpress_version(html),
        theme=theme,
        theme_version=extract_theme_version(html, theme) if theme else None,
        plugins=sorted(plugins),
    )
