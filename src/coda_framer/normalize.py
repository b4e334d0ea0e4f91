from __future__ import annotations
import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from .models import Column, ColumnFormat, NormalizedRow


logger = logging.getLogger(__name__)

WRAPPER_TEXT_KEYS = ("rawValue", "value", "displayValue", "name", "content")

MD_LINK_RE = re.compile(r"\[([^\]]+)]\(([^)]+)\)")
TRIPLE_FENCE_RE = re.compile(r"```([\s\S]*?)```")
SINGLE_TICK_RE = re.compile(r"`([^`]*)`")
EDGE_FENCE_RE = re.compile(r"^```|```$")


def stringify(value: Any) -> str:
    """Render a scalar the way it reads in the source table (True -> 'true', 3.0 -> '3')."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def strip_code_fence(text: str) -> str:
    return EDGE_FENCE_RE.sub("", text).strip()


def strip_markdown(text: str) -> str:
    """Reduce markdown links and code spans to their plain text."""

    def _link(m: re.Match) -> str:
        link_text, link_url = m.group(1), m.group(2)
        if link_url.startswith("mailto:"):
            email = link_url[len("mailto:"):]
            if link_text.lower() == email.lower():
                return email
        return link_text

    text = MD_LINK_RE.sub(_link, text)
    text = TRIPLE_FENCE_RE.sub(lambda m: m.group(1).strip(), text)
    text = SINGLE_TICK_RE.sub(lambda m: m.group(1).strip(), text)
    return text.strip()


def extract_meaningful_text(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        if item.get("@type") == "WebPage" and isinstance(item.get("url"), str):
            return item["url"]
        for key in WRAPPER_TEXT_KEYS:
            val = item.get(key)
            if isinstance(val, str) and val:
                return val
        return ""
    if isinstance(item, list):
        return ""
    return stringify(item)


def extract_slug_value(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return strip_markdown(value).strip()
    if isinstance(value, dict):
        wrapped = value.get("value")
        if isinstance(wrapped, str):
            return strip_markdown(wrapped).strip()
        text = extract_meaningful_text(value)
        if text:
            return strip_markdown(text).strip()
    return None


def _normalize_format(raw: Any) -> ColumnFormat:
    if not isinstance(raw, dict):
        return ColumnFormat()
    table = raw.get("table")
    table_id = table.get("id") if isinstance(table, dict) else None
    return ColumnFormat(
        type=str(raw.get("type") or "text"),
        is_array=bool(raw.get("isArray")),
        table_id=str(table_id) if table_id else None,
        options=raw.get("options"),
    )


def normalize_columns(columns: Iterable[Any]) -> List[Column]:
    out: List[Column] = []
    for index, column in enumerate(columns):
        if not isinstance(column, dict):
            logger.debug(f"normalize_columns: skipping non-object column at index {index}")
            continue
        col_id = stringify(column.get("id"))
        name = column.get("name")
        out.append(
            Column(
                id=col_id,
                name=stringify(name) if name is not None else col_id,
                format=_normalize_format(column.get("format")),
                display=column.get("display"),
            )
        )
    return out


def resolve_row_id(row: Dict[str, Any]) -> Optional[str]:
    if isinstance(row.get("id"), str):
        return row["id"]
    wrapper = row.get("_id")
    if isinstance(wrapper, dict) and "value" in wrapper:
        return stringify(wrapper.get("value"))
    return None


def normalize_rows(rows: Iterable[Any]) -> List[NormalizedRow]:
    out: List[NormalizedRow] = []
    for row in rows:
        if not isinstance(row, dict):
            out.append(NormalizedRow(id=None, values={}))
            continue
        row_id = resolve_row_id(row)
        values = row.get("values")
        if isinstance(values, dict):
            out.append(NormalizedRow(id=row_id, values=values))
            continue
        rest = {k: v for k, v in row.items() if k not in ("id", "_id", "values")}
        out.append(NormalizedRow(id=row_id, values=rest))
    return out


def build_reference_map(entries: Optional[Iterable[Any]] = None) -> Dict[str, str]:
    ref_map: Dict[str, str] = {}
    if not entries:
        return ref_map
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        table_id = entry.get("codaTableId")
        collection_id = entry.get("framerCollectionId")
        if not table_id or not collection_id:
            continue
        ref_map[str(table_id)] = str(collection_id)
    return ref_map
