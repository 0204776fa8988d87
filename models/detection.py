from dataclasses import dataclass, field
from typing import Dict, List, Optional

@dataclass(frozen=True)
class DetectedTechnology:
    """A generic technology found on the landing page."""
    name: str
    category: str

@dataclass(frozen=True)
class CmsMatch:
    """Outcome of CMS scoring: the winner (if over threshold) and every candidate's score."""
    cms: Optional[str]
    scores: Dict[str, int] = field(default_factory=dict)

@dataclass(frozen=True)
class SecurityHeaders:
    csp: Optional[str] = None
    xss_protection: Optional[str] = None

@dataclass(frozen=True)
class UswdsResult:
    """U.S. Web Design System signals and their composite score."""
    count: int = 0
    usa_classes: int = 0
    usa_class_list: List[str] = field(default_factory=list)
    favicon: int = 0
    favicon_in_css: int = 0
    publicsans_font: int = 0
    inpage_css: int = 0
    string: int = 0
    string_in_css: int = 0
    version: int = 0
    semantic_version: Optional[str] = None
    banner_heres_how: bool = False

@dataclass(frozen=True)
class DapResult:
    """Digital Analytics Program tag detection."""
    detected: bool = False
    parameters: Optional[Dict[str, str]] = None
    version: Optional[str] = None
    ga_tag_id: Optional[str] = None
