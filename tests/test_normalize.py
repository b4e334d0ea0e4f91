from __future__ import annotations

from coda_framer.normalize import (
    build_reference_map,
    extract_meaningful_text,
    extract_slug_value,
    normalize_columns,
    normalize_rows,
    strip_markdown,
    stringify,
)


def test_normalize_columns_defaults_and_table_id() -> None:
    columns = normalize_columns(
        [
            {"id": "c1"},
            "not a column",
            {"id": "c2", "name": "Tags", "format": {"type": "lookup", "isArray": True, "table": {"id": "grid-9"}}},
        ]
    )

    assert [c.id for c in columns] == ["c1", "c2"]
    assert columns[0].name == "c1"
    assert columns[0].format.base_type == "text"
    assert columns[1].format.is_array is True
    assert columns[1].format.table_id == "grid-9"


def test_normalize_rows_handles_wrapped_and_flat_rows() -> None:
    rows = normalize_rows(
        [
            {"id": "r1", "values": {"c1": "a"}},
            {"_id": {"value": 42}, "c1": "b"},
            {"values": {"c1": "c"}},
            7,
        ]
    )

    assert rows[0].id == "r1" and rows[0].values == {"c1": "a"}
    assert rows[1].id == "42" and rows[1].values == {"c1": "b"}
    assert rows[2].id is None
    assert rows[3].id is None and rows[3].values == {}


def test_build_reference_map_skips_incomplete_entries() -> None:
    ref = build_reference_map(
        [
            {"codaTableId": "grid-1", "framerCollectionId": "col-1"},
            {"codaTableId": "grid-2"},
            {"framerCollectionId": "col-3"},
            "junk",
        ]
    )

    assert ref == {"grid-1": "col-1"}
    assert build_reference_map(None) == {}


def test_strip_markdown_links_and_code() -> None:
    assert strip_markdown("[Docs](https://example.com)") == "Docs"
    assert strip_markdown("[a@b.com](mailto:a@b.com)") == "a@b.com"
    assert strip_markdown("`code`") == "code"
    assert strip_markdown("```block```") == "block"


def test_extract_meaningful_text_prefers_known_keys() -> None:
    assert extract_meaningful_text({"@type": "WebPage", "url": "https://x.io", "name": "X"}) == "https://x.io"
    assert extract_meaningful_text({"displayValue": "Shown", "name": "Name"}) == "Shown"
    assert extract_meaningful_text({"unknown": 1}) == ""
    assert extract_meaningful_text(3.0) == "3"
    assert stringify(True) == "true"


def test_extract_slug_value() -> None:
    assert extract_slug_value("  [Hello](https://x.io) ") == "Hello"
    assert extract_slug_value({"value": "wrapped"}) == "wrapped"
    assert extract_slug_value({"name": "named"}) == "named"
    assert extract_slug_value(12) is None
    assert extract_slug_value("   ") == ""
