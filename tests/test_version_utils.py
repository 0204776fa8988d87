import pytest

from core.exceptions import InvalidURLError
from core.html_utils import extract_stylesheets, format_bytes, normalize_target_url, site_root
from core.version_utils import (
    extract_query_version,
    extract_semantic_version,
    extract_theme_version,
    extract_wordpress_version,
)


def test_wordpress_version_from_generator():
    html = '<meta name="generator" content="WordPress 6.4.2" />'
    assert extract_wordpress_version(html) == "6.4.2"


def test_wordpress_version_from_asset_query():
    html = '<script src="/wp-includes/js/jquery/jquery.min.js?ver=6.3"></script>'
    assert extract_wordpress_version(html) == "6.3"


def test_theme_version():
    html = '<link href="/wp-content/themes/twentytwentyfour/style.css?ver=1.1">'
    assert extract_theme_version(html, "twentytwentyfour") == "1.1"
    assert extract_theme_version(html, "other") is None


@pytest.mark.parametrize("text,expected", [
    ("/assets/uswds-3.8.1.min.css", "3.8.1"),
    ("/vendor/uswds/2.13.3/css/uswds.css", "2.13.3"),
    ("USWDS 3.0.0", "3.0.0"),
    ("uswds.min.css", None),
])
def test_semantic_version(text, expected):
    assert extract_semantic_version(text, "uswds") == expected


def test_query_version():
    assert extract_query_version("https://dap.digitalgov.gov/x.js?agency=GSA&ver=20240712") == "20240712"
    assert extract_query_version("https://dap.digitalgov.gov/x.js") is None


@pytest.mark.parametrize("raw,expected", [
    ("agency.gov", "https://agency.gov"),
    ("  http://agency.gov/path ", "http://agency.gov/path"),
    ("https://www.agency.gov/", "https://www.agency.gov/"),
])
def test_normalize_target_url(raw, expected):
    assert normalize_target_url(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "ftp://agency.gov", "https://", "javascript://"])
def test_normalize_target_url_rejects(raw):
    with pytest.raises(InvalidURLError):
        normalize_target_url(raw)


def test_site_root_drops_path_and_query():
    assert site_root("https://agency.gov/a/b?c=1") == "https://agency.gov"
    assert site_root("http://agency.gov:8080/") == "http://agency.gov:8080"


def test_extract_stylesheets_resolves_and_caps():
    html = "".join(f'<link rel="stylesheet" href="/css/{i}.css">' for i in range(5))
    html += '<link href="/css/0.css" rel="stylesheet">'
    urls = extract_stylesheets(html, "https://agency.gov/about/")
    assert urls == ["https://agency.gov/css/0.css", "https://agency.gov/css/1.css", "https://agency.gov/css/2.css"]


def test_format_bytes():
    assert format_bytes(512) == "512 B"
    assert format_bytes(2048) == "2.00 KB"
    assert format_bytes(928_432_128) == "885.42 MB"
    assert format_bytes(3 * 1_073_741_824) == "3.00 GB"
