from __future__ import annotations

import json
from pathlib import Path

import pytest

from coda_framer.io import MappingInputError, parse_json_array, parse_json_param, read_json_array_file, write_json


def test_parse_json_param_names_the_parameter() -> None:
    with pytest.raises(MappingInputError) as exc:
        parse_json_param("{not json", "columns")
    message = str(exc.value)
    assert message.startswith("Invalid columns JSON: ")
    assert message.endswith(". Please provide valid JSON.")


def test_parse_json_array_rejects_objects() -> None:
    assert parse_json_array("[1, 2]", "rows") == [1, 2]
    with pytest.raises(MappingInputError, match="rows must be a JSON array."):
        parse_json_array('{"a": 1}', "rows")


def test_mapping_input_error_is_a_value_error() -> None:
    assert issubclass(MappingInputError, ValueError)


def test_read_and_write_json_files(tmp_path: Path) -> None:
    src = tmp_path / "rows.json"
    src.write_text("\ufeff" + json.dumps([{"id": "r1"}]), encoding="utf-8")
    assert read_json_array_file(src, "rows") == [{"id": "r1"}]

    with pytest.raises(MappingInputError, match="referenceMap file not found"):
        read_json_array_file(tmp_path / "missing.json", "referenceMap")

    out = tmp_path / "nested" / "out.json"
    write_json(out, {"ok": True})
    assert json.loads(out.read_text(encoding="utf-8")) == {"ok": True}
