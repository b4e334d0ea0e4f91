"""
Coda → Framer transformer library.

This package provides modular building blocks for:
- Normalizing Coda column and row payloads
- Inferring Framer field schemas (enum domains synthesized from data)
- Coercing cell values into Framer field data
- Pushing items to managed collections and publishing

Public API:
- io.parse_json_param, io.parse_json_array, io.read_json_array_file, io.MappingInputError
- normalize.normalize_columns, normalize.normalize_rows, normalize.build_reference_map
- mapping.map_column_to_field, mapping.infer_fields, mapping.finalize_schema, mapping.merge_fields_with_existing_fields
- coerce.transform_value, coerce.format_time_value
- transform.assemble_items, transform.build_fields_and_items, transform.transform
- sync.push_rows, sync.publish_project, sync.list_collections
"""

from . import io, normalize, mapping, coerce, transform, sync  # re-export modules

__all__ = [
    "io",
    "normalize",
    "mapping",
    "coerce",
    "transform",
    "sync",
]
