from __future__ import annotations

from coda_framer.assets import extract_image_url, is_likely_image_url, is_valid_asset_url
from coda_framer.richtext import markdown_to_sanitized_html, sanitize_html


def test_markdown_tables_and_lists_survive() -> None:
    html = markdown_to_sanitized_html("| a | b |\n|---|---|\n| 1 | 2 |\n\n- one\n- two\n")
    assert "<table>" in html
    assert "<td>1</td>" in html
    assert "<li>one</li>" in html


def test_scripts_and_unsafe_links_are_removed() -> None:
    html = markdown_to_sanitized_html('<script>alert(1)</script>\n\nClick <a href="javascript:alert(1)">here</a>')
    assert "<script" not in html
    assert "javascript:" not in html


def test_allowed_attributes_are_kept_without_injected_rel() -> None:
    html = sanitize_html('<a href="https://x.io" target="_blank" onclick="bad()">x</a>')
    assert 'href="https://x.io"' in html
    assert 'target="_blank"' in html
    assert "onclick" not in html
    assert "noopener" not in html


def test_asset_url_predicates() -> None:
    assert is_valid_asset_url("https://x.io/file")
    assert is_valid_asset_url("codahosted.io/docs/abc")
    assert not is_valid_asset_url("ftp://x.io/file")
    assert is_likely_image_url("https://x.io/pic.JPG?w=10")
    assert not is_likely_image_url("https://x.io/pic.txt")


def test_extract_image_url_wrapper_keys() -> None:
    assert extract_image_url({"value": "`https://x.io/a.png`"}) == "https://x.io/a.png"
    assert extract_image_url({"linkedRow": {"imageUrl": "https://x.io/b.webp"}}) == "https://x.io/b.webp"
    assert extract_image_url({"@type": "ImageObject", "contentUrl": "https://x.io/c.gif"}) == "https://x.io/c.gif"
    assert extract_image_url([{"@type": "Other"}]) is None
