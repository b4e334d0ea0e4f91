from __future__ import annotations
import json
from pathlib import Path
from typing import Any, List


class MappingInputError(ValueError):
    """Malformed input at the boundary; the message names the offending parameter."""


def parse_json_param(raw: str, label: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MappingInputError(f"Invalid {label} JSON: {e}. Please provide valid JSON.") from e


def ensure_array(value: Any, label: str) -> List[Any]:
    if not isinstance(value, list):
        raise MappingInputError(f"{label} must be a JSON array.")
    return value


def parse_json_array(raw: str, label: str) -> List[Any]:
    return ensure_array(parse_json_param(raw, label), label)


def read_json_file(input_path: Path, label: str) -> Any:
    """Read a JSON document from disk (utf-8, BOM tolerated)."""
    path = Path(input_path)
    if not path.exists():
        raise MappingInputError(f"{label} file not found: {path}")
    return parse_json_param(path.read_text(encoding="utf-8-sig"), label)


def read_json_array_file(input_path: Path, label: str) -> List[Any]:
    return ensure_array(read_json_file(input_path, label), label)


def write_json(output_path: Path, data: Any) -> None:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
