import asyncio
import dataclasses
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, TypeVar

from core.config import ScanConfig, get_config, use_config
from core.html_utils import hostname_of, normalize_target_url
from models.scan import (
    RedirectChainResult,
    RobotsResult,
    ScanResult,
    ScanStatus,
    SitemapResult,
)
from models.tech_stack import TechStackResult
from probes.dns import resolve_dns
from probes.redirects import resolve_redirects
from probes.robots import fetch_robots_txt
from probes.sitemap import analyze_sitemap
from probes.tech_stack import detect_tech
from probes.well_known import check_hosting_provider
from rules.rules_loader import RuleSet, load_rule_set

ProgressCallback = Callable[[str, bool], None]
T = TypeVar("T")


class Engine:
    def __init__(self, config: Optional[ScanConfig] = None, rules: Optional[RuleSet] = None):
        """Initialize the engine.

        Args:
            config: Settings used by this engine's scans; defaults to the current config
            rules: Fingerprint tables; loaded from rules/*.yaml when omitted
        """
        self.logger = logging.getLogger(__name__)
        self.config = config or get_config()
        self.rules = rules or load_rule_set()
        self.logger.debug(
            f"Loaded rule tables: {len(self.rules.cms)} CMS, {len(self.rules.technologies)} technologies, "
            f"{len(self.rules.analytics)} analytics, {len(self.rules.hosting)} hosting"
        )

    def _report(self, on_progress: Optional[ProgressCallback], step: str, done: bool) -> None:
        if on_progress is None:
            return
        try:
            on_progress(step, done)
        except Exception as e:
            self.logger.warning(f"Progress callback failed for step '{step}': {e!r}")

    async def _run_step(
        self,
        step: str,
        probe: Callable[[], Awaitable[T]],
        errors: List[str],
        on_progress: Optional[ProgressCallback],
    ) -> Optional[T]:
        """Run one probe, recording a failure as an error entry instead of raising."""
        self._report(on_progress, step, False)
        try:
            return await probe()
        except Exception as e:
            self.logger.error(f"Error in {step} step: {e}", exc_info=True)
            errors.append(f"{step}: {getattr(e, 'message', None) or e}")
            return None
        finally:
            self._report(on_progress, step, True)

    async def _well_known(self, url: str) -> Optional[str]:
        # Best effort: a failure here is not a scan error
        try:
            return await check_hosting_provider(url)
        except Exception as e:
            self.logger.debug(f"well-known check failed for {url}: {e!r}")
            return None

    async def scan_site(self, url: str, on_progress: Optional[ProgressCallback] = None) -> ScanResult:
        """
        Run a full scan of one site.

        Always returns a ScanResult; probe failures end up in `errors`. Only an
        unusable input URL raises (InvalidURLError).
        """
        # Probes read settings through get_config(); scope ours to this scan
        with use_config(self.config):
            return await self._scan(url, on_progress)

    async def _scan(self, url: str, on_progress: Optional[ProgressCallback]) -> ScanResult:
        target_url = normalize_target_url(url)
        start = time.monotonic()
        scanned_at = datetime.now(timezone.utc).isoformat()
        errors: List[str] = []
        self.logger.info(f"Starting scan of {target_url}")

        redirect_chain: Optional[RedirectChainResult] = await self._run_step(
            "redirect", lambda: resolve_redirects(target_url), errors, on_progress
        )
        final_url = redirect_chain.final_url if redirect_chain else target_url
        hostname = hostname_of(final_url) or ""

        sitemap, robots, tech_stack, dns, well_known_provider = await asyncio.gather(
            self._run_step("sitemap", lambda: analyze_sitemap(final_url), errors, on_progress),
            self._run_step("robots", lambda: fetch_robots_txt(final_url), errors, on_progress),
            self._run_step("tech", lambda: detect_tech(final_url, self.rules), errors, on_progress),
            self._run_step("dns", lambda: resolve_dns(hostname, self.rules), errors, on_progress),
            self._well_known(final_url),
        )

        tech_stack = self._merge_hosting(tech_stack, [well_known_provider, dns.hosting_provider if dns else None])
        live = self._liveness(redirect_chain, tech_stack)
        errors.extend(self._result_errors(sitemap, robots, tech_stack))

        status = ScanStatus(self.config.classify_status(len(errors)))
        duration_ms = int((time.monotonic() - start) * 1000)
        self.logger.info(f"Scan of {target_url} finished: {status.value}, {len(errors)} errors, {duration_ms} ms")

        return ScanResult(
            target_url=target_url,
            scanned_at=scanned_at,
            status=status,
            redirect_chain=redirect_chain,
            sitemap=sitemap,
            robots=robots,
            tech_stack=tech_stack,
            dns=dns,
            errors=errors,
            duration_ms=duration_ms,
            live=live,
        )

    @staticmethod
    def _merge_hosting(tech_stack: Optional[TechStackResult], sources: List[Optional[str]]) -> Optional[TechStackResult]:
        """First non-empty provider source wins; sources are ordered by authority."""
        if tech_stack is None:
            return None
        provider = next((s for s in sources if s), None)
        if provider is None:
            return tech_stack
        return dataclasses.replace(tech_stack, hosting_provider=provider)

    @staticmethod
    def _liveness(redirect_chain: Optional[RedirectChainResult], tech_stack: Optional[TechStackResult]) -> Optional[bool]:
        if redirect_chain is None or not redirect_chain.hops:
            return None
        final_status = redirect_chain.hops[-1].status_code
        login_gate = tech_stack.login_gate if tech_stack else False
        return 200 <= final_status < 300 and not login_gate

    @staticmethod
    def _result_errors(
        sitemap: Optional[SitemapResult],
        robots: Optional[RobotsResult],
        tech_stack: Optional[TechStackResult],
    ) -> List[str]:
        errors = []
        for step, result in (("sitemap", sitemap), ("robots", robots), ("tech", tech_stack)):
            if result is not None and result.error:
                errors.append(f"{step}: {result.error}")
        return errors


async def scan_site(url: str, on_progress: Optional[ProgressCallback] = None) -> ScanResult:
    """Scan one site with the process-wide config and the bundled rule tables."""
    return await Engine().scan_site(url, on_progress=on_progress)
