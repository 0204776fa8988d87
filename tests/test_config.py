"""Tests for configuration loading and status classification."""
import asyncio
import pytest

from core.config import ScanConfig, get_config, load_config, use_config


def test_default_thresholds():
    config = ScanConfig()
    assert config.cms_score_threshold == 40
    assert config.max_redirects == 10
    assert config.max_sub_sitemaps == 20
    assert config.bulk_concurrency == 3
    assert config.uswds_weights == {"publicsans_font": 20, "favicon": 10, "inpage_css": 5}


@pytest.mark.parametrize("error_count,status", [(0, "completed"), (1, "partial"), (2, "partial"), (3, "failed"), (7, "failed")])
def test_classify_status(error_count, status):
    assert ScanConfig().classify_status(error_count) == status


def test_load_config_from_yaml(tmp_path, monkeypatch):
    monkeypatch.delenv("SITESCAN_PROXY_URL", raising=False)
    monkeypatch.delenv("SITESCAN_DOH_URL", raising=False)
    path = tmp_path / "scanner.yaml"
    path.write_text("cms_score_threshold: 50\nbulk_concurrency: 5\nnot_a_setting: true\n")

    config = load_config(str(path))

    assert config.cms_score_threshold == 50
    assert config.bulk_concurrency == 5
    assert config.proxy_url is None


def test_environment_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "scanner.yaml"
    path.write_text("proxy_url: http://file-proxy/api/v1/proxy\n")
    monkeypatch.setenv("SITESCAN_PROXY_URL", "http://env-proxy/api/v1/proxy")
    monkeypatch.setenv("SITESCAN_DOH_URL", "https://dns.google/resolve")

    config = load_config(str(path))

    assert config.proxy_url == "http://env-proxy/api/v1/proxy"
    assert config.doh_url == "https://dns.google/resolve"


def test_non_mapping_config_is_rejected(tmp_path):
    path = tmp_path / "scanner.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_scoped_config_is_restored():
    default = get_config()
    with use_config(ScanConfig(max_redirects=2)):
        assert get_config().max_redirects == 2
    assert get_config() is default


@pytest.mark.asyncio
async def test_scoped_configs_do_not_leak_between_tasks():
    seen = {}

    async def scan(name, max_redirects):
        with use_config(ScanConfig(max_redirects=max_redirects)):
            await asyncio.sleep(0)
            seen[name] = get_config().max_redirects

    await asyncio.gather(scan("a", 2), scan("b", 7))

    assert seen == {"a": 2, "b": 7}
    assert get_config().max_redirects == 10
