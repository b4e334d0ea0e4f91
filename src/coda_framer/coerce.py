"""
Per-cell coercion of Coda values into Framer field data.

Every raw cell is first classified into one of a closed set of value shapes
(see ``Shape``); each field type then walks its own ordered fallback chain
over those shapes. A coercer returns ``None`` when the cell should be left out
of the item's field data. Nothing in here raises on bad data.
"""

from __future__ import annotations
import json
import logging
import math
import re
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from dateutil import parser as date_parser

from .assets import extract_file_url, extract_image_url
from .models import Field, FieldValue
from .normalize import extract_meaningful_text, strip_code_fence, strip_markdown, stringify
from .richtext import markdown_to_sanitized_html


logger = logging.getLogger(__name__)


class Shape(Enum):
    MISSING = "missing"
    BLANK = "blank"
    TEXT = "text"
    NUMBER = "number"
    FLAG = "flag"
    LIST = "list"
    TIMESTAMP = "timestamp"
    WEB_PAGE = "WebPage"
    MONETARY_AMOUNT = "MonetaryAmount"
    IMAGE_OBJECT = "ImageObject"
    RECORD = "record"
    OTHER = "other"


TYPED_OBJECT_SHAPES = {
    "WebPage": Shape.WEB_PAGE,
    "MonetaryAmount": Shape.MONETARY_AMOUNT,
    "ImageObject": Shape.IMAGE_OBJECT,
}

RICH_TEXT_SOURCES = ("canvas", "richtext")

CURRENCY_RE = re.compile(r"[$£€¥]")
NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
TIME_ONLY_RE = re.compile(r"^([0-1]?\d|2[0-3]):([0-5]\d)(:([0-5]\d))?$")
DATE_ONLY_RE = re.compile(r"^\d{4}(-\d{2}(-\d{2})?)?$")

# dateutil fills components missing from the text from these values; parsing
# against both shows which date parts the text actually carried
PARSE_DEFAULT = datetime(1970, 1, 1)
CHECK_DEFAULT = datetime(1971, 2, 2)

CONVERSION_ERRORS = (OverflowError, ValueError, OSError)


def classify(value: Any) -> Shape:
    if value is None:
        return Shape.MISSING
    if isinstance(value, str):
        return Shape.TEXT if value.strip() else Shape.BLANK
    if isinstance(value, bool):
        return Shape.FLAG
    if isinstance(value, (int, float)):
        return Shape.NUMBER
    if isinstance(value, (datetime, date, time)):
        return Shape.TIMESTAMP
    if isinstance(value, (list, tuple)):
        return Shape.LIST
    if isinstance(value, dict):
        return TYPED_OBJECT_SHAPES.get(value.get("@type"), Shape.RECORD)
    return Shape.OTHER


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _clean_number(value: float) -> Any:
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        if value.is_integer():
            return int(value)
    return value


# --- timestamps ---

def _parse_text(text: str) -> Optional[datetime]:
    """Parse timestamp text, rejecting text without a full calendar date.

    ISO date-only text (``2024``, ``2024-03``) may leave month and day out;
    anything else must name year, month and day, so ``"12"`` or ``"10am"``
    do not turn into dates in 1970.
    """
    try:
        dt = date_parser.parse(text, default=PARSE_DEFAULT)
        check = date_parser.parse(text, default=CHECK_DEFAULT)
    except CONVERSION_ERRORS:
        return None
    if DATE_ONLY_RE.match(text):
        return dt
    if (dt.year, dt.month, dt.day) != (check.year, check.month, check.day):
        logger.debug(f"parse_timestamp: {text!r} has no full calendar date")
        return None
    return dt


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a cell into an aware datetime.

    Numbers are epoch milliseconds. ISO date-only strings are UTC midnight;
    any other value without an offset is read as local wall-clock time.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    elif _is_number(value):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except CONVERSION_ERRORS:
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        dt = _parse_text(text)
        if dt is None:
            return None
        if dt.tzinfo is None and DATE_ONLY_RE.match(text):
            dt = dt.replace(tzinfo=timezone.utc)
    else:
        return None
    if dt.tzinfo is None:
        try:
            dt = dt.astimezone()
        except CONVERSION_ERRORS:
            return None
    return dt


def _iso_clock(dt: datetime) -> str:
    return f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}.{dt.microsecond // 1000:03d}"


def _iso_day(dt: datetime) -> str:
    return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"


def format_date_for_source(dt: datetime, source_type: str) -> str:
    if source_type == "date":
        return _iso_day(dt.astimezone(timezone.utc))
    if source_type == "time":
        return f"1970-01-01T{_iso_clock(dt.astimezone(timezone.utc))}Z"
    if source_type == "datetime":
        # local wall clock stamped Z, not a UTC conversion
        local = dt.astimezone()
        return f"{_iso_day(local)}T{_iso_clock(local)}Z"
    utc = dt.astimezone(timezone.utc)
    return f"{_iso_day(utc)}T{_iso_clock(utc)}Z"


def _local_clock(dt: datetime) -> Optional[Tuple[int, int, int]]:
    try:
        local = dt.astimezone()
    except CONVERSION_ERRORS:
        return None
    return local.hour, local.minute, local.second


def _clock_parts(value: Any) -> Optional[Tuple[int, int, int]]:
    if isinstance(value, str):
        m = TIME_ONLY_RE.match(value)
        if m:
            return int(m.group(1)), int(m.group(2)), int(m.group(4) or 0)
        dt = parse_timestamp(value)
        if dt is None:
            return None
        return _local_clock(dt)
    if isinstance(value, datetime):
        return _local_clock(value)
    if isinstance(value, time):
        return value.hour, value.minute, value.second
    return None


def format_time_value(value: Any, use_12_hour_time: bool = False) -> Optional[str]:
    """Render a time-of-day as ``HH:MM[:SS]`` or ``h:MM[:SS] AM/PM``; None if unparsable."""
    parts = _clock_parts(value)
    if parts is None:
        return None
    hours, minutes, seconds = parts
    suffix = f":{seconds:02d}" if seconds > 0 else ""
    if use_12_hour_time:
        ampm = "PM" if hours >= 12 else "AM"
        return f"{hours % 12 or 12}:{minutes:02d}{suffix} {ampm}"
    return f"{hours:02d}:{minutes:02d}{suffix}"


# --- per-type coercers ---

def _empty_value(field_type: str) -> Any:
    if field_type == "number":
        return 0
    if field_type == "boolean":
        return False
    if field_type == "multiCollectionReference":
        return []
    return ""


def _parse_number_text(text: str) -> Optional[float]:
    cleaned = CURRENCY_RE.sub("", text).replace(",", "").strip()
    percent = cleaned.endswith("%")
    if percent:
        cleaned = cleaned[:-1].strip()
    if not cleaned:
        number = 0.0
    elif NUMBER_RE.match(cleaned):
        number = float(cleaned)
    else:
        return None
    return number / 100 if percent else number


def _coerce_number(value: Any, shape: Shape, field: Field, source_type: str, twelve_hour: bool) -> FieldValue:
    number: Any = 0
    if shape is Shape.NUMBER:
        number = value
    elif shape is Shape.TEXT:
        parsed = _parse_number_text(value)
        if parsed is None:
            logger.debug(f"number field {field.id}: unparsable {value!r}, using 0")
        else:
            number = parsed
    elif shape is Shape.MONETARY_AMOUNT and _is_number(value.get("amount")):
        number = value["amount"]
    elif isinstance(value, dict):
        if _is_number(value.get("value")):
            number = value["value"]
        elif _is_number(value.get("amount")):
            number = value["amount"]
    return FieldValue("number", _clean_number(number))


def _coerce_boolean(value: Any, shape: Shape, field: Field, source_type: str, twelve_hour: bool) -> FieldValue:
    return FieldValue("boolean", bool(value))


def _coerce_date(value: Any, shape: Shape, field: Field, source_type: str, twelve_hour: bool) -> Optional[FieldValue]:
    raw = value
    if isinstance(value, dict):
        raw = value.get("value")
    elif shape not in (Shape.TEXT, Shape.NUMBER, Shape.TIMESTAMP):
        return None
    dt = parse_timestamp(raw)
    if dt is None:
        return None
    try:
        formatted = format_date_for_source(dt, source_type)
    except CONVERSION_ERRORS:
        logger.debug(f"date field {field.id}: {raw!r} is out of range for {source_type}")
        return None
    return FieldValue("date", formatted)


def _rich_text_markdown(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        if isinstance(value.get("content"), str):
            return value["content"]
        if isinstance(value.get("value"), str):
            return value["value"]
    if isinstance(value, (dict, list)):
        serialized = json.dumps(value, ensure_ascii=False)
        return "" if serialized == "{}" else serialized
    return ""


def _coerce_formatted_text(value: Any, shape: Shape, field: Field, source_type: str, twelve_hour: bool) -> FieldValue:
    if source_type in RICH_TEXT_SOURCES:
        return FieldValue("formattedText", markdown_to_sanitized_html(_rich_text_markdown(value)))
    return FieldValue("formattedText", stringify(value))


def _coerce_string(value: Any, shape: Shape, field: Field, source_type: str, twelve_hour: bool) -> FieldValue:
    if source_type == "time":
        formatted = format_time_value(value, twelve_hour)
        if formatted:
            return FieldValue("string", formatted)
    if shape is Shape.LIST or (isinstance(value, dict) and isinstance(value.get("rawValue"), list)):
        elements = value if shape is Shape.LIST else value["rawValue"]
        labels = [extract_meaningful_text(e) for e in elements]
        text = ", ".join(label for label in labels if label)
    else:
        text = extract_meaningful_text(value)
    return FieldValue("string", strip_markdown(text))


def _coerce_image(value: Any, shape: Shape, field: Field, source_type: str, twelve_hour: bool) -> Optional[FieldValue]:
    url = extract_image_url(value)
    return FieldValue("image", url) if url else None


def _coerce_file(value: Any, shape: Shape, field: Field, source_type: str, twelve_hour: bool) -> Optional[FieldValue]:
    url = extract_file_url(value)
    return FieldValue("file", url) if url else None


def _coerce_link(value: Any, shape: Shape, field: Field, source_type: str, twelve_hour: bool) -> FieldValue:
    url = ""
    if isinstance(value, dict):
        url = value["url"] if isinstance(value.get("url"), str) else ""
    elif isinstance(value, str):
        url = value
    return FieldValue("link", url)


def _reference_id(item: Any, keys: Tuple[str, ...]) -> Optional[str]:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        for key in keys:
            if isinstance(item.get(key), str):
                return item[key]
    return None


def _coerce_collection_reference(value: Any, shape: Shape, field: Field, source_type: str, twelve_hour: bool) -> FieldValue:
    return FieldValue("collectionReference", _reference_id(value, ("id", "@id")) or "")


def _coerce_multi_collection_reference(value: Any, shape: Shape, field: Field, source_type: str, twelve_hour: bool) -> FieldValue:
    items = value if shape is Shape.LIST else [value]
    ids: List[str] = []
    for item in items:
        ref = _reference_id(item, ("rowId", "id", "@id"))
        if ref:
            ids.append(ref)
    return FieldValue("multiCollectionReference", ids)


def _enum_label(value: Any) -> str:
    if isinstance(value, dict):
        if isinstance(value.get("name"), str):
            return value["name"]
        if isinstance(value.get("id"), str):
            return value["id"]
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)) and value:
        first = value[0]
        if isinstance(first, dict) and "name" in first:
            return stringify(first.get("name"))
        if isinstance(first, str):
            return first
    return ""


def _coerce_enum(value: Any, shape: Shape, field: Field, source_type: str, twelve_hour: bool) -> Optional[FieldValue]:
    label = _enum_label(value)
    label = strip_code_fence(label) if label else ""
    if not label:
        return None
    cases = field.cases or []
    for case in cases:
        if case.id == label:
            return FieldValue("enum", case.id)
    for case in cases:
        if case.name == label:
            return FieldValue("enum", case.id)
    return FieldValue("enum", label)


Coercer = Callable[[Any, Shape, Field, str, bool], Optional[FieldValue]]

COERCERS: Dict[str, Coercer] = {
    "string": _coerce_string,
    "number": _coerce_number,
    "boolean": _coerce_boolean,
    "date": _coerce_date,
    "formattedText": _coerce_formatted_text,
    "image": _coerce_image,
    "file": _coerce_file,
    "link": _coerce_link,
    "collectionReference": _coerce_collection_reference,
    "multiCollectionReference": _coerce_multi_collection_reference,
    "enum": _coerce_enum,
}


def transform_value(
    value: Any,
    field: Field,
    source_type: str = "text",
    use_12_hour_time: bool = False,
) -> Optional[FieldValue]:
    """Coerce one raw cell for ``field``.

    Blank cells produce the type's empty value so every field key is present
    on every item; date fields are the exception and are left out.
    """
    shape = classify(value)
    source_type = (source_type or "text").lower()
    coercer = COERCERS.get(field.type)
    if shape in (Shape.MISSING, Shape.BLANK):
        if field.type == "date":
            return None
        if coercer is None:
            return FieldValue("string", "")
        return FieldValue(field.type, _empty_value(field.type))
    if coercer is None:
        return FieldValue("string", stringify(value))
    return coercer(value, shape, field, source_type, use_12_hour_time)
