from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .coerce import transform_value
from .mapping import finalize_schema, infer_fields
from .models import Column, FieldValue, FinalizedSchema, Item, MappingResult, NormalizedRow
from .normalize import build_reference_map, extract_slug_value, normalize_columns, normalize_rows


logger = logging.getLogger(__name__)


def _row_field_data(row: NormalizedRow, schema: FinalizedSchema, use_12_hour_time: bool) -> Dict[str, FieldValue]:
    field_data: Dict[str, FieldValue] = {}
    for field in schema.fields:
        raw = row.values.get(field.id)
        try:
            entry = transform_value(raw, field, schema.source_type(field.id), use_12_hour_time)
        except Exception:
            logger.exception(f"row {row.id}: could not coerce field {field.id}, leaving it out")
            continue
        if entry is not None:
            field_data[field.id] = entry
    return field_data


def assemble_items(
    schema: FinalizedSchema,
    rows: Sequence[NormalizedRow],
    slug_field_id: str,
    use_12_hour_time: bool = False,
) -> Tuple[List[Item], List[str], int]:
    """Turn rows into items against a finalized schema.

    Rows without an id or without a slug are skipped with a warning; every
    kept row gets one entry per field except omitted cells.
    """
    if not isinstance(schema, FinalizedSchema):
        raise TypeError("assemble_items requires a FinalizedSchema from mapping.finalize_schema")

    items: List[Item] = []
    warnings: List[str] = []
    skipped = 0
    for index, row in enumerate(rows):
        if not row.id:
            skipped += 1
            warnings.append(f"Row at index {index} is missing a row id and was skipped.")
            logger.debug(f"assemble_items: row {index} has no id")
            continue

        slug = extract_slug_value(row.values.get(slug_field_id))
        if not slug:
            skipped += 1
            warnings.append(f"Row {row.id} is missing a slug value and was skipped.")
            logger.debug(f"assemble_items: row {row.id} has no slug in {slug_field_id}")
            continue

        items.append(
            Item(
                id=row.id,
                slug=slug,
                draft=False,
                field_data=_row_field_data(row, schema, use_12_hour_time),
            )
        )
    return items, warnings, skipped


def build_fields_and_items(
    columns: Sequence[Column],
    rows: Sequence[NormalizedRow],
    slug_field_id: str,
    reference_map: Optional[Mapping[str, str]] = None,
    use_12_hour_time: bool = False,
) -> MappingResult:
    warnings: List[str] = []
    fields = infer_fields(columns, reference_map or {}, warnings)
    schema = finalize_schema(fields, columns, rows)
    items, row_warnings, skipped = assemble_items(schema, rows, slug_field_id, use_12_hour_time)
    warnings.extend(row_warnings)
    logger.info(
        f"mapped {len(columns)} column(s) to {len(schema.fields)} field(s); "
        f"{len(items)} item(s), {skipped} skipped"
    )
    return MappingResult(fields=list(schema.fields), items=items, warnings=warnings, skipped_count=skipped)


def transform(
    columns: Iterable[Any],
    rows: Iterable[Any],
    slug_field_id: str,
    reference_entries: Optional[Iterable[Any]] = None,
    use_12_hour_time: bool = False,
) -> MappingResult:
    """Normalize raw Coda payloads and map them in one call."""
    return build_fields_and_items(
        normalize_columns(columns),
        normalize_rows(rows),
        slug_field_id,
        reference_map=build_reference_map(reference_entries),
        use_12_hour_time=use_12_hour_time,
    )
