from dataclasses import dataclass, field
from typing import List, Optional

from models.detection import DetectedTechnology, SecurityHeaders, UswdsResult, DapResult

@dataclass(frozen=True)
class WpPlugin:
    """A plugin inferred from a WordPress REST API namespace."""
    slug: str
    name: str
    detection_method: str = "rest_api_namespaces"
    confidence: str = "high"
    api_namespace: Optional[str] = None

@dataclass(frozen=True)
class WordPressContentResult:
    json_api_active: bool = False
    json_api_endpoints: List[str] = field(default_factory=list)
    post_count: Optional[int] = None
    page_count: Optional[int] = None
    author_count: Optional[int] = None
    category_count: Optional[int] = None
    tag_count: Optional[int] = None
    media_total: Optional[int] = None
    media_size_bytes: Optional[int] = None
    media_size_formatted: Optional[str] = None
    media_scan_complete: bool = False
    detected_plugins: List[WpPlugin] = field(default_factory=list)
    feeds: List[str] = field(default_factory=list)
    custom_post_types: List[str] = field(default_factory=list)

@dataclass(frozen=True)
class WordPressResult:
    version: Optional[str] = None
    theme: Optional[str] = None
    theme_version: Optional[str] = None
    plugins: List[str] = field(default_factory=list) # slugs seen in the page HTML
    content: Optional[WordPressContentResult] = None # REST API enrichment

@dataclass(frozen=True)
class TechStackResult:
    cms: Optional[str] = None
    web_server: Optional[str] = None
    analytics: List[str] = field(default_factory=list)
    cdn: Optional[str] = None
    hosting_provider: Optional[str] = None # filled in by the engine after all probes settle
    wordpress: Optional[WordPressResult] = None
    technologies: List[DetectedTechnology] = field(default_factory=list)
    security_headers: SecurityHeaders = field(default_factory=SecurityHeaders)
    uswds: UswdsResult = field(default_factory=UswdsResult)
    dap: DapResult = field(default_factory=DapResult)
    https_enforced: bool = False
    hsts: bool = False
    login_gate: bool = False
    error: Optional[str] = None


def empty_tech_stack(url: str, error: Optional[str] = None) -> TechStackResult:
    """Structurally complete result for a landing page that could not be fetched."""
    return TechStackResult(https_enforced=url.startswith("https://"), error=error)
