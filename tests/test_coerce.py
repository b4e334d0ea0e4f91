from __future__ import annotations

from datetime import datetime, time, timezone

from coda_framer.coerce import COERCERS, Shape, classify, format_time_value, transform_value
from coda_framer.models import FIELD_TYPES, Case, Field, FieldValue


def _field(type_: str, **kwargs) -> Field:
    return Field(id="c1", name="Col", type=type_, **kwargs)


def test_classify_value_shapes() -> None:
    assert classify(None) is Shape.MISSING
    assert classify("  ") is Shape.BLANK
    assert classify(True) is Shape.FLAG
    assert classify(3) is Shape.NUMBER
    assert classify(["a"]) is Shape.LIST
    assert classify({"@type": "MonetaryAmount", "amount": 3}) is Shape.MONETARY_AMOUNT
    assert classify({"@type": "WebPage"}) is Shape.WEB_PAGE
    assert classify({"x": 1}) is Shape.RECORD
    assert classify(object()) is Shape.OTHER


def test_every_field_type_has_a_coercer() -> None:
    assert set(COERCERS) == FIELD_TYPES


def test_blank_cells_get_canonical_empty_values() -> None:
    assert transform_value(None, _field("string")) == FieldValue("string", "")
    assert transform_value("", _field("number")) == FieldValue("number", 0)
    assert transform_value(" ", _field("boolean")) == FieldValue("boolean", False)
    assert transform_value(None, _field("multiCollectionReference")) == FieldValue("multiCollectionReference", [])
    assert transform_value(None, _field("enum", cases=[])) == FieldValue("enum", "")
    assert transform_value(None, _field("date"), "date") is None


def test_number_parsing() -> None:
    field = _field("number")
    assert transform_value("$1,200.50", field, "currency") == FieldValue("number", 1200.5)
    assert transform_value("25%", field, "percent") == FieldValue("number", 0.25)
    assert transform_value("abc", field) == FieldValue("number", 0)
    assert transform_value("€ 42", field) == FieldValue("number", 42)
    assert transform_value({"@type": "MonetaryAmount", "amount": 9.5}, field) == FieldValue("number", 9.5)
    assert transform_value({"value": 7}, field) == FieldValue("number", 7)
    assert transform_value(True, field) == FieldValue("number", 0)


def test_boolean_uses_truthiness() -> None:
    assert transform_value(True, _field("boolean")) == FieldValue("boolean", True)
    assert transform_value(0, _field("boolean")) == FieldValue("boolean", False)


def test_date_output_per_source_type() -> None:
    field = _field("date")
    assert transform_value("2024-01-15", field, "date") == FieldValue("date", "2024-01-15")
    assert transform_value("2024-01-15T10:30:00", field, "datetime") == FieldValue("date", "2024-01-15T10:30:00.000Z")
    assert transform_value("2024-01-15T10:30:00Z", field, "text") == FieldValue("date", "2024-01-15T10:30:00.000Z")
    assert transform_value("2024-01-15T08:05:09Z", field, "time") == FieldValue("date", "1970-01-01T08:05:09.000Z")
    assert transform_value(0, field, "date") == FieldValue("date", "1970-01-01")
    assert transform_value({"value": "2024-03-01"}, field, "date") == FieldValue("date", "2024-03-01")
    assert transform_value("not a date", field, "date") is None


def test_date_round_trips_through_iso_parsing() -> None:
    source_value = "2023-06-30T21:15:42.250Z"
    out = transform_value(source_value, _field("date"), "text")
    parsed = datetime.fromisoformat(out.value.replace("Z", "+00:00"))
    assert parsed == datetime(2023, 6, 30, 21, 15, 42, 250000, tzinfo=timezone.utc)


def test_time_column_formatting() -> None:
    field = _field("string")
    assert transform_value("14:05", field, "time") == FieldValue("string", "14:05")
    assert transform_value("14:05", field, "time", use_12_hour_time=True) == FieldValue("string", "2:05 PM")
    assert format_time_value("0:15:30", use_12_hour_time=True) == "12:15:30 AM"
    assert format_time_value(time(9, 0, 0)) == "09:00"
    assert format_time_value("nonsense") is None


def test_string_joins_lists_and_strips_markdown() -> None:
    field = _field("string")
    assert transform_value(["a", {"name": "b"}, {"x": 1}], field) == FieldValue("string", "a, b")
    assert transform_value({"rawValue": ["x", "y"]}, field) == FieldValue("string", "x, y")
    assert transform_value("[Site](https://x.io)", field) == FieldValue("string", "Site")
    assert transform_value({"@type": "WebPage", "url": "https://x.io"}, field) == FieldValue("string", "https://x.io")
    assert transform_value(12.0, field) == FieldValue("string", "12")


def test_formatted_text_renders_canvas_markdown() -> None:
    field = _field("formattedText")
    html = transform_value("# Title\n\n**bold**", field, "canvas").value
    assert "<h1>Title</h1>" in html
    assert "<strong>bold</strong>" in html
    assert transform_value("plain *text*", field, "text") == FieldValue("formattedText", "plain *text*")


def test_image_and_file_urls() -> None:
    image = _field("image")
    assert transform_value("![alt](https://cdn.x.io/a.png)", image) == FieldValue("image", "https://cdn.x.io/a.png")
    assert transform_value(
        [{"@type": "ImageObject", "url": "https://codahosted.io/docs/1/blobs/2"}], image
    ) == FieldValue("image", "https://codahosted.io/docs/1/blobs/2")
    assert transform_value("not a url", image) is None

    file_field = _field("file", allowed_file_types=["*"])
    assert transform_value({"url": "https://x.io/a.pdf"}, file_field) == FieldValue("file", "https://x.io/a.pdf")
    assert transform_value("relative/path.pdf", file_field) is None


def test_link_and_references() -> None:
    assert transform_value({"@type": "WebPage", "url": "https://x.io"}, _field("link")) == FieldValue("link", "https://x.io")
    assert transform_value({"name": "no url"}, _field("link")) == FieldValue("link", "")
    assert transform_value({"id": "row-1"}, _field("collectionReference")) == FieldValue("collectionReference", "row-1")
    multi = transform_value(["r1", {"rowId": "r2"}, {"nothing": 1}], _field("multiCollectionReference", collection_id="col"))
    assert multi == FieldValue("multiCollectionReference", ["r1", "r2"])


def test_enum_resolves_against_cases() -> None:
    field = _field("enum", cases=[Case(id="live", name="Live"), Case(id="Draft", name="Draft")])
    assert transform_value("Live", field) == FieldValue("enum", "live")
    assert transform_value({"name": "Draft"}, field) == FieldValue("enum", "Draft")
    assert transform_value([{"name": "Live"}, "Draft"], field) == FieldValue("enum", "live")
    assert transform_value("Unknown", field) == FieldValue("enum", "Unknown")
    assert transform_value({"other": 1}, field) is None


def test_partial_date_text_is_left_out() -> None:
    field = _field("date")
    for text in ("12", "March", "10am", "1"):
        assert transform_value(text, field, "date") is None, text
    assert transform_value("2024", field, "date") == FieldValue("date", "2024-01-01")


def test_out_of_range_dates_are_left_out() -> None:
    field = _field("date")
    assert transform_value("9999-12-31T23:59:59-14:00", field, "text") is None
    assert transform_value("0001-01-01T00:00:00+05:00", field, "date") is None


def test_time_formatter_reads_timestamps() -> None:
    assert format_time_value("2024-01-15T14:05:30") == "14:05:30"
    assert format_time_value(datetime(2024, 1, 15, 7, 5)) == "07:05"
    assert format_time_value(datetime(2024, 1, 15, 19, 45), use_12_hour_time=True) == "7:45 PM"
    assert format_time_value("10am") is None
