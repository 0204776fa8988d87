"""
Scanner configuration.

Settings are read-only for the lifetime of a scan. They can be loaded from a
YAML file and overridden by environment variables.
"""
import os
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Iterator, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "GovSiteScanner/1.0"
DEFAULT_DOH_URL = "https://cloudflare-dns.com/dns-query"


def _default_uswds_weights() -> Dict[str, int]:
    return {"publicsans_font": 20, "favicon": 10, "inpage_css": 5}


@dataclass(frozen=True)
class ScanConfig:
    user_agent: str = DEFAULT_USER_AGENT
    # Same-origin proxy used when a direct request fails at the network level
    proxy_url: Optional[str] = None
    doh_url: str = DEFAULT_DOH_URL
    max_redirects: int = 10
    max_sub_sitemaps: int = 20
    cms_score_threshold: int = 40
    # 0 errors = completed, fewer than this = partial, otherwise failed
    failed_error_threshold: int = 3
    bulk_concurrency: int = 3
    uswds_weights: Dict[str, int] = field(default_factory=_default_uswds_weights)

    def classify_status(self, error_count: int) -> str:
        if error_count == 0:
            return "completed"
        if error_count < self.failed_error_threshold:
            return "partial"
        return "failed"


def load_config(config_file: Optional[str] = None) -> ScanConfig:
    """
    Build a ScanConfig from an optional YAML file plus environment overrides.

    Args:
        config_file: Path to a YAML mapping of ScanConfig field names to values

    Returns:
        The resulting ScanConfig
    """
    data: Dict[str, Any] = {}
    if config_file:
        with open(config_file, "r") as f:
            loaded = yaml.safe_load(f)
        if loaded and not isinstance(loaded, dict):
            raise ValueError(f"Config file must contain a mapping: {config_file}")
        data = loaded or {}

    known = {f.name for f in fields(ScanConfig)}
    for key in sorted(set(data) - known):
        logger.warning(f"Ignoring unknown config key: {key}")
    config = ScanConfig(**{k: v for k, v in data.items() if k in known})

    if os.environ.get("SITESCAN_PROXY_URL"):
        config = replace(config, proxy_url=os.environ["SITESCAN_PROXY_URL"])
    if os.environ.get("SITESCAN_DOH_URL"):
        config = replace(config, doh_url=os.environ["SITESCAN_DOH_URL"])

    logger.debug(f"Loaded config: proxy={config.proxy_url or 'none'}, doh={config.doh_url}")
    return config


_config = ScanConfig()

# Set for the duration of one Engine scan; tasks spawned by the scan inherit it
_scan_config: ContextVar[Optional[ScanConfig]] = ContextVar("scan_config", default=None)


def get_config() -> ScanConfig:
    """Get the configuration of the running scan, or the process-wide default."""
    scoped = _scan_config.get()
    return scoped if scoped is not None else _config


def set_config(config: ScanConfig) -> None:
    """Install the process-wide configuration (call before starting scans)."""
    global _config
    _config = config


@contextmanager
def use_config(config: ScanConfig) -> Iterator[ScanConfig]:
    """Scope a configuration to the current task and the tasks it spawns."""
    token = _scan_config.set(config)
    try:
        yield config
    finally:
        _scan_config.reset(token)
