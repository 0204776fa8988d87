import os
import sys
import pytest

# Ensure project root is on sys.path for imports like `core.*`
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)


@pytest.fixture(autouse=True)
def default_config(monkeypatch):
    """Every test starts from the built-in configuration (no proxy, default thresholds)."""
    from core.config import ScanConfig, set_config
    monkeypatch.delenv("SITESCAN_PROXY_URL", raising=False)
    monkeypatch.delenv("SITESCAN_DOH_URL", raising=False)
    set_config(ScanConfig())
    yield
    set_config(ScanConfig())
