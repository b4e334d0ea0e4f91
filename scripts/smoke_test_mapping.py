#!/usr/bin/env python3
"""Basic smoke test for the mapping pipeline.

Maps a small inline table and checks that fields and items come out.
This test avoids any network access.
"""
from pathlib import Path
import json
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / 'src'))

from coda_framer.transform import transform  # type: ignore


COLUMNS = [
    {"id": "c-title", "name": "Title", "format": {"type": "text"}},
    {"id": "c-price", "name": "Price", "format": {"type": "currency"}},
    {"id": "c-status", "name": "Status", "format": {"type": "select", "options": {"choices": [{"name": "Draft"}, {"name": "Live"}]}}},
    {"id": "c-tag", "name": "Tag", "format": {"type": "lookup", "isArray": False}},
    {"id": "c-body", "name": "Body", "format": {"type": "canvas"}},
]

ROWS = [
    {"id": "i-1", "values": {"c-title": "First post", "c-price": "$1,234.50", "c-status": "Live", "c-tag": {"name": "News"}, "c-body": "# Hello"}},
    {"id": "i-2", "values": {"c-title": "", "c-price": 3}},
]


def main() -> int:
    result = transform(COLUMNS, ROWS, "c-title")
    if len(result.fields) != len(COLUMNS) or len(result.items) != 1:
        print("Smoke test failed: unexpected field/item counts")
        print(json.dumps(result.to_dict(), indent=2))
        return 1
    print(f"Smoke test ok: {len(result.fields)} fields, {len(result.items)} item(s), {result.skipped_count} skipped")
    print(json.dumps(result.to_dict(), indent=2))
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
