"""
U.S. Web Design System detection.

Purely computational: counts independent USWDS signals in the page HTML and
the fetched stylesheets and folds them into one composite score.
"""
import re
from typing import Dict, Optional

from core.html_utils import extract_style_blocks
from core.version_utils import extract_semantic_version
from models.detection import UswdsResult

PUBLIC_SANS_PATTERNS = ["public-sans", "PublicSans", "public_sans"]
USWDS_STRINGS = ["uswds", "us-banner", "usa-banner", "uswds-"]
BANNER_PATTERNS = ["here's how you know", "heres how you know", "usa-banner", "gov-banner"]

CLASS_ATTR_PATTERN = re.compile(r'class="[^"]*\busa-[\w-]+')
USA_CLASS_PATTERN = re.compile(r'\busa-[\w-]+')

DEFAULT_WEIGHTS = {"publicsans_font": 20, "favicon": 10, "inpage_css": 5}


def _count_strings(text: str) -> int:
    return sum(text.count(s) for s in USWDS_STRINGS)


def detect_uswds(html: str, css: str, weights: Optional[Dict[str, int]] = None) -> UswdsResult:
    weights = {**DEFAULT_WEIGHTS, **(weights or {})}
    html_lower = html.lower()
    css_lower = css.lower()

    class_list = set()
    for match in CLASS_ATTR_PATTERN.findall(html):
        for cls in match[len('class="'):].split():
            if cls.startswith("usa-"):
                class_list.add(cls)

    usa_classes = len(USA_CLASS_PATTERN.findall(html))
    string_count = _count_strings(html_lower)
    string_in_css = _count_strings(css_lower)

    publicsans_font = 1 if any(p in html or p in css for p in PUBLIC_SANS_PATTERNS) else 0
    favicon = 1 if "uswds" in html_lower and "favicon" in html_lower else 0
    favicon_in_css = 1 if "uswds" in css_lower and "favicon" in css_lower else 0

    inpage_css = 0
    for block in extract_style_blocks(html):
        block_lower = block.lower()
        if "usa-" in block_lower or "uswds" in block_lower:
            inpage_css += 1

    banner_heres_how = any(p in html_lower for p in BANNER_PATTERNS)
    semantic_version = extract_semantic_version(html, "uswds")

    count = (
        usa_classes
        + string_count
        + string_in_css
        + publicsans_font * weights["publicsans_font"]
        + favicon * weights["favicon"]
        + inpage_css * weights["inpage_css"]
    )

    return UswdsResult(
        count=count,
        usa_classes=usa_classes,
        usa_class_list=sorted(class_list),
        favicon=favicon,
        favicon_in_css=favicon_in_css,
        publicsans_font=publicsans_font,
        inpage_css=inpage_css,
        string=string_count,
        string_in_css=string_in_css,
        version=1 if semantic_version else 0,
        semantic_version=semantic_version,
        banner_heres_how=banner_heres_how,
    )
