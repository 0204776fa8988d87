"""
Flattening of a ScanResult into the per-site field record that baselines are
stored as. Booleans become 1/0 and list or dict values become JSON strings,
so a freshly scanned record compares directly with a stored one.
"""
import json
from typing import Any, Dict, Iterable

from models.scan import ScanResult


def _flag(value: bool) -> int:
    return 1 if value else 0


def _json(value: Any) -> str:
    return json.dumps(value)


def scan_result_to_fields(result: ScanResult) -> Dict[str, Any]:
    """Only sections the scan actually produced contribute fields."""
    fields: Dict[str, Any] = {}

    ts = result.tech_stack
    if ts is not None:
        fields["cms"] = ts.cms
        fields["https_enforced"] = _flag(ts.https_enforced)
        fields["hsts"] = _flag(ts.hsts)
        fields["web_server"] = ts.web_server
        fields["cdn_provider"] = ts.cdn
        fields["hosting_provider"] = ts.hosting_provider

        u = ts.uswds
        fields.update({
            "uswds_count": u.count,
            "uswds_usa_classes": u.usa_classes,
            "uswds_favicon": u.favicon,
            "uswds_favicon_in_css": u.favicon_in_css,
            "uswds_publicsans_font": u.publicsans_font,
            "uswds_inpage_css": u.inpage_css,
            "uswds_string": u.string,
            "uswds_string_in_css": u.string_in_css,
            "uswds_version": u.version,
            "uswds_semantic_version": u.semantic_version,
            "uswds_banner_heres_how": _flag(u.banner_heres_how),
            "uswds_usa_class_list": _json(u.usa_class_list),
        })

        fields["dap"] = _flag(ts.dap.detected)
        fields["dap_parameters"] = _json(ts.dap.parameters)
        fields["dap_version"] = ts.dap.version
        fields["ga_tag_id"] = ts.dap.ga_tag_id

        wp = ts.wordpress
        if wp is not None:
            fields["wp_version"] = wp.version
            fields["wp_theme"] = wp.theme
            fields["wp_theme_version"] = wp.theme_version
            fields["wp_plugins"] = _json(wp.plugins)

    sm = result.sitemap
    if sm is not None:
        fields.update({
            "sitemap_xml_detected": _flag(sm.detected),
            "sitemap_xml_status_code": sm.status_code,
            "sitemap_xml_count": sm.page_count,
            "sitemap_xml_pdf_count": sm.pdf_count,
            "sitemap_xml_filesize": sm.filesize,
            "sitemap_xml_lastmod": sm.lastmod,
        })

    rb = result.robots
    if rb is not None:
        fields.update({
            "robots_txt_detected": _flag(rb.detected),
            "robots_txt_status_code": rb.status_code,
            "robots_txt_filesize": rb.filesize,
            "robots_txt_crawl_delay": rb.crawl_delay,
            "robots_txt_sitemap_locations": _json(rb.sitemap_locations),
        })

    if result.live is not None:
        fields["live"] = _flag(result.live)

    if result.dns is not None:
        fields["ipv6"] = _flag(result.dns.ipv6)
        # DNS inference only fills a provider the tech stack did not carry
        if result.dns.hosting_provider is not None and not fields.get("hosting_provider"):
            fields["hosting_provider"] = result.dns.hosting_provider

    return fields


def relevant_fields(record: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """
    The subset of a stored record matching freshly scanned field names.

    Names the record never stored stay absent, so the diff reports them as new.
    """
    return {name: record[name] for name in fields if name in record}
