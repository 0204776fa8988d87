from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from models.tech_stack import TechStackResult


class ScanStatus(str, Enum):
    COMPLETED = "completed"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class RedirectHop:
    url: str
    status_code: int
    timestamp: str


@dataclass(frozen=True)
class RedirectChainResult:
    original_url: str
    final_url: str
    was_redirected: bool
    hops: List[RedirectHop] = field(default_factory=list)

    @property
    def total_hops(self) -> int:
        return len(self.hops)


@dataclass(frozen=True)
class UrlPattern:
    segment: str
    count: int
    percentage: float


@dataclass(frozen=True)
class SitemapResult:
    detected: bool
    url: str
    status_code: int
    page_count: Optional[int] = None
    pdf_count: Optional[int] = None
    filesize: Optional[int] = None
    lastmod: Optional[str] = None
    error: Optional[str] = None
    # Populated only when sitemap.xml is a sitemap index
    sitemaps_found: Optional[int] = None
    content_types: Optional[Dict[str, Dict[str, float]]] = None
    url_patterns: Optional[List[UrlPattern]] = None
    publishing_by_year: Optional[Dict[str, int]] = None
    publishing_by_month: Optional[Dict[str, int]] = None
    latest_update: Optional[str] = None
    has_clean_urls: Optional[bool] = None
    has_node_ids: Optional[bool] = None
    has_query_strings: Optional[bool] = None
    path_depth_avg: Optional[float] = None


@dataclass(frozen=True)
class RobotsResult:
    detected: bool
    url: str
    status_code: int
    filesize: Optional[int] = None
    crawl_delay: Optional[float] = None
    sitemap_locations: Optional[List[str]] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class DnsResult:
    a_records: List[str] = field(default_factory=list)
    aaaa_records: List[str] = field(default_factory=list)
    mx_records: List[str] = field(default_factory=list)
    ns_records: List[str] = field(default_factory=list)
    hosting_provider: Optional[str] = None

    @property
    def ipv6(self) -> bool:
        return len(self.aaaa_records) > 0


@dataclass(frozen=True)
class ScanResult:
    target_url: str
    scanned_at: str
    status: ScanStatus
    redirect_chain: Optional[RedirectChainResult] = None
    sitemap: Optional[SitemapResult] = None
    robots: Optional[RobotsResult] = None
    tech_stack: Optional[TechStackResult] = None
    dns: Optional[DnsResult] = None
    errors: List[str] = field(default_factory=list)
    duration_ms: int = 0
    live: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible representation, including derived fields."""
        data = asdict(self)
        data["status"] = self.status.value
        if self.redirect_chain is not None:
            data["redirect_chain"]["total_hops"] = self.redirect_chain.total_hops
        if self.dns is not None:
            data["dns"]["ipv6"] = self.dns.ipv6
        return data


@dataclass(frozen=True)
class DiffField:
    field: str
    before: Any
    after: Any


@dataclass(frozen=True)
class DiffResult:
    changed: List[DiffField] = field(default_factory=list)
    unchanged_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
