from __future__ import annotations
import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .models import SCAN_COMPLETE, Case, Column, Field, FinalizedSchema, NormalizedRow
from .normalize import strip_code_fence


logger = logging.getLogger(__name__)

# Coda column type -> Framer field type
TYPE_MAP = {
    "text": "string",
    "email": "string",
    "phone": "string",
    "number": "number",
    "currency": "number",
    "percent": "number",
    "duration": "number",
    "checkbox": "boolean",
    "date": "date",
    "datetime": "date",
    "time": "string",
    "image": "image",
    "file": "file",
    "canvas": "formattedText",
    "richtext": "formattedText",
    "url": "link",
    "link": "link",
    "person": "string",
    "reference": "string",
}

ENUM_SOURCE_TYPES = ("select", "scale")
IMAGE_NAME_HINTS = ("image", "graphic")


def _choice_cases(choices: list) -> List[Case]:
    cases: List[Case] = []
    for index, choice in enumerate(choices):
        if isinstance(choice, dict):
            name = choice.get("name")
            choice_id = choice.get("id")
        else:
            name, choice_id = choice, None
        name = str(name) if name not in (None, "") else None
        case_id = str(choice_id) if choice_id not in (None, "") else (name or f"choice-{index}")
        cases.append(Case(id=case_id, name=name or case_id))
    return cases


def map_column_to_field(column: Column) -> Optional[Field]:
    """Infer the Framer field for one Coda column; buttons carry no data and map to None."""
    base_type = column.format.base_type
    name = column.name.lower()
    col_id = column.id.lower()

    if base_type == "button":
        return None

    if base_type == "image" or any(h in name or h in col_id for h in IMAGE_NAME_HINTS):
        return Field(id=column.id, name=column.name, type="image")

    choices = column.format.choices()
    if base_type in ENUM_SOURCE_TYPES and choices is not None:
        return Field(id=column.id, name=column.name, type="enum", cases=_choice_cases(choices))

    if base_type == "lookup":
        if not column.format.is_array:
            return Field(id=column.id, name=column.name, type="enum", cases=[])
        return Field(id=column.id, name=column.name, type="string")

    if base_type == "file":
        return Field(id=column.id, name=column.name, type="file", allowed_file_types=["*"])

    return Field(id=column.id, name=column.name, type=TYPE_MAP.get(base_type, "string"))


def _is_array_lookup(column: Column) -> bool:
    return column.format.base_type == "lookup" and column.format.is_array


def infer_fields(
    columns: Sequence[Column],
    reference_map: Mapping[str, str],
    warnings: List[str],
) -> List[Field]:
    fields: List[Field] = []
    for column in columns:
        mapped = map_column_to_field(column)
        if mapped is None:
            continue
        if mapped.type == "string" and _is_array_lookup(column):
            table_id = column.format.table_id
            linked = reference_map.get(table_id) if table_id else None
            if linked:
                mapped = Field(
                    id=column.id,
                    name=column.name,
                    type="multiCollectionReference",
                    collection_id=linked,
                )
            elif table_id:
                warnings.append(
                    f'No Framer collection mapping found for lookup field "{column.name}" (Coda table {table_id}).'
                )
                logger.debug(f"infer_fields: unresolved lookup table {table_id} for column {column.id}")
        fields.append(mapped)
    return fields


def extract_lookup_values(value: Any) -> List[str]:
    def _label(obj: dict) -> Optional[str]:
        if isinstance(obj.get("name"), str):
            return obj["name"]
        if isinstance(obj.get("value"), str):
            return obj["value"]
        return None

    results: List[str] = []
    if isinstance(value, list):
        for item in value:
            if isinstance(item, str):
                results.append(item)
            elif isinstance(item, dict):
                label = _label(item)
                if label is not None:
                    results.append(label)
    elif isinstance(value, dict):
        label = _label(value)
        if label is not None:
            results.append(label)
    elif isinstance(value, str):
        results.append(value)
    return results


def finalize_schema(
    fields: Sequence[Field],
    columns: Sequence[Column],
    rows: Sequence[NormalizedRow],
) -> FinalizedSchema:
    """Fill lookup-backed enum domains from the data and freeze the schema.

    Every row is scanned for every such field before the schema is returned;
    labels keep first-seen order and duplicates collapse.
    """
    source_types = {c.id: c.format.base_type for c in columns}
    lookup_fields = [f for f in fields if f.type == "enum" and source_types.get(f.id) == "lookup"]

    domains: Dict[str, Dict[str, None]] = {f.id: {} for f in lookup_fields}
    for row in rows:
        for f in lookup_fields:
            value = row.values.get(f.id)
            if not value:
                continue
            for label in extract_lookup_values(value):
                label = strip_code_fence(label)
                if label:
                    domains[f.id][label] = None

    finalized: List[Field] = []
    for f in fields:
        if f.id in domains:
            f = replace(f, cases=[Case(id=label, name=label) for label in domains[f.id]])
            logger.debug(f"finalize_schema: {f.id} synthesized {len(f.cases)} case(s)")
        finalized.append(f)

    return FinalizedSchema(fields=tuple(finalized), source_types=source_types, scan=SCAN_COMPLETE)


def merge_fields_with_existing_fields(
    source_fields: Iterable[Field],
    existing_fields: Iterable[Union[Field, Mapping[str, Any]]],
    warnings: Optional[List[str]] = None,
) -> List[Field]:
    """Reconcile inferred fields with the collection's published fields.

    Reference fields without a resolved collection are dropped. Published
    display names win over inferred ones; type, cases and collection stay local.
    """
    existing_names: Dict[str, Optional[str]] = {}
    for existing in existing_fields:
        if not isinstance(existing, Field):
            if existing.get("id") is None or existing.get("name") is None:
                continue
            existing = Field.from_dict(existing)
        existing_names[existing.id] = existing.name

    merged: List[Field] = []
    for source in source_fields:
        if source.type == "multiCollectionReference" and not isinstance(source.collection_id, str):
            logger.debug(f"merge: dropping unresolved reference field {source.id}")
            if warnings is not None:
                warnings.append(
                    f'Reference field "{source.name}" has no resolved Framer collection and was not published.'
                )
            continue
        if source.id in existing_names and existing_names[source.id] is not None:
            merged.append(
                Field(
                    id=source.id,
                    name=str(existing_names[source.id]),
                    type=source.type,
                    cases=source.cases,
                    collection_id=source.collection_id,
                    allowed_file_types=source.allowed_file_types,
                )
            )
        else:
            merged.append(source)
    return merged
