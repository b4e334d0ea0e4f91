from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple


FIELD_TYPES = frozenset(
    {
        "string",
        "number",
        "boolean",
        "date",
        "image",
        "file",
        "formattedText",
        "link",
        "enum",
        "collectionReference",
        "multiCollectionReference",
    }
)


@dataclass
class ColumnFormat:
    type: str = "text"
    is_array: bool = False
    table_id: Optional[str] = None
    options: Any = None

    @property
    def base_type(self) -> str:
        return (self.type or "text").lower()

    def choices(self) -> Optional[list]:
        """Declared choice list, from a bare list or a ``{choices: [...]}`` wrapper."""
        if isinstance(self.options, list):
            return self.options
        if isinstance(self.options, dict) and isinstance(self.options.get("choices"), list):
            return self.options["choices"]
        return None


@dataclass
class Column:
    id: str
    name: str
    format: ColumnFormat = field(default_factory=ColumnFormat)
    display: Optional[bool] = None


@dataclass
class NormalizedRow:
    id: Optional[str]
    values: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Case:
    id: str
    name: str

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name}


@dataclass
class Field:
    id: str
    name: str
    type: str
    cases: Optional[List[Case]] = None
    collection_id: Optional[str] = None
    allowed_file_types: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "name": self.name, "type": self.type}
        if self.cases is not None:
            out["cases"] = [c.to_dict() for c in self.cases]
        if self.collection_id is not None:
            out["collectionId"] = self.collection_id
        if self.allowed_file_types is not None:
            out["allowedFileTypes"] = list(self.allowed_file_types)
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Field":
        cases = data.get("cases")
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name") or data.get("id") or ""),
            type=str(data.get("type") or "string"),
            cases=[
                Case(id=str(c.get("id")), name=str(c.get("name") or c.get("id")))
                for c in cases
                if isinstance(c, dict)
            ]
            if isinstance(cases, list)
            else None,
            collection_id=data.get("collectionId"),
            allowed_file_types=data.get("allowedFileTypes"),
        )


@dataclass(frozen=True)
class FieldValue:
    type: str
    value: Any

    def to_dict(self) -> Dict[str, Any]:
        value = list(self.value) if isinstance(self.value, (list, tuple)) else self.value
        return {"type": self.type, "value": value}


@dataclass
class Item:
    id: str
    slug: str
    field_data: Dict[str, FieldValue] = field(default_factory=dict)
    draft: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "slug": self.slug,
            "draft": self.draft,
            "fieldData": {k: v.to_dict() for k, v in self.field_data.items()},
        }


# Passed by mapping.finalize_schema once every enum domain has been scanned
SCAN_COMPLETE = object()


@dataclass(frozen=True)
class FinalizedSchema:
    """Field list whose enum domains are complete.

    Built only by ``mapping.finalize_schema`` once every lookup-backed enum has
    been scanned, so items can never be resolved against a partial case list.
    """

    fields: Tuple[Field, ...]
    source_types: Mapping[str, str]
    scan: object = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.scan is not SCAN_COMPLETE:
            raise TypeError("FinalizedSchema is built by mapping.finalize_schema")

    def source_type(self, field_id: str) -> str:
        return self.source_types.get(field_id, "text")


@dataclass
class MappingResult:
    fields: List[Field]
    items: List[Item]
    warnings: List[str]
    skipped_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fields": [f.to_dict() for f in self.fields],
            "items": [i.to_dict() for i in self.items],
            "warnings": list(self.warnings),
            "skippedCount": self.skipped_count,
        }
