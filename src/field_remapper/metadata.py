from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .dimension import NO_DIMENSION, Dimension, dimension_from_dict, dimension_to_dict
from .errors import MetadataError, UnrecognizedMappingType

RawValue = Union[str, int, float]
RemappingTable = Dict[RawValue, Optional[str]]

FK = "type/FK"
PK = "type/PK"
NAME = "type/Name"

DATE_TIME_BASE_TYPES = frozenset(
    {
        "type/Date",
        "type/DateTime",
        "type/DateTimeWithTZ",
        "type/DateTimeWithLocalTZ",
        "type/Time",
        "type/TimeWithTZ",
    }
)


def is_raw_value(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def is_numeric_value(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class FieldMetadata:
    """A single database column and its display-value settings."""

    id: int
    table_id: int
    name: str
    display_name: str | None = None
    base_type: str | None = None
    special_type: str | None = None
    fk_target_field_id: int | None = None
    dimension: Dimension = NO_DIMENSION
    remapping: RemappingTable = field(default_factory=dict)

    @property
    def label(self) -> str:
        return self.display_name or self.name

    @property
    def is_fk(self) -> bool:
        return self.special_type == FK

    @property
    def is_entity_name(self) -> bool:
        return self.special_type == NAME

    @property
    def is_date(self) -> bool:
        """True for date/time columns, which never make a usable label source."""
        if self.base_type in DATE_TIME_BASE_TYPES:
            return True
        return bool(self.special_type and self.special_type.startswith("type/UNIXTimestamp"))


@dataclass(frozen=True)
class TableMetadata:
    id: int
    db_id: int
    name: str
    fields: list[FieldMetadata]
    display_name: str | None = None

    def get_field(self, field_id: int) -> FieldMetadata | None:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None


@dataclass(frozen=True)
class DatabaseMetadata:
    id: int
    name: str
    tables: list[TableMetadata]

    def get_table(self, table_id: int) -> TableMetadata | None:
        for t in self.tables:
            if t.id == table_id:
                return t
        return None

    def get_field(self, field_id: int) -> FieldMetadata | None:
        for t in self.tables:
            f = t.get_field(field_id)
            if f is not None:
                return f
        return None


def _require_id(raw: dict, key: str, where: str) -> int:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise MetadataError(f"{where}.{key} must be an integer")
    return value


def _optional_str(raw: dict, key: str, where: str) -> str | None:
    value = raw.get(key)
    if value is not None and not isinstance(value, str):
        raise MetadataError(f"{where}.{key} must be a string if provided")
    return value


def _parse_values(raw: Any, where: str) -> RemappingTable:
    if raw is None:
        return {}
    if not isinstance(raw, list):
        raise MetadataError(f"{where}.values must be a list of [original, mapped] pairs")

    remapping: RemappingTable = {}
    for i, pair in enumerate(raw):
        if not isinstance(pair, (list, tuple)) or len(pair) not in (1, 2):
            raise MetadataError(f"{where}.values[{i}] must be an [original, mapped] pair")
        original = pair[0]
        mapped = pair[1] if len(pair) == 2 else None
        if not is_raw_value(original):
            raise MetadataError(f"{where}.values[{i}] original must be a string or number")
        if mapped is not None and not isinstance(mapped, str):
            raise MetadataError(f"{where}.values[{i}] mapped value must be a string or null")
        if original in remapping:
            raise MetadataError(f"{where}.values[{i}] duplicates original value {original!r}")
        remapping[original] = mapped
    return remapping


def _parse_field(raw: Any, table_id: int, where: str) -> FieldMetadata:
    if not isinstance(raw, dict):
        raise MetadataError(f"{where} must be a mapping")

    name = raw.get("name")
    if not isinstance(name, str) or not name:
        raise MetadataError(f"{where}.name must be a non-empty string")

    fk_target = raw.get("fk_target_field_id")
    if fk_target is not None and (isinstance(fk_target, bool) or not isinstance(fk_target, int)):
        raise MetadataError(f"{where}.fk_target_field_id must be an integer if provided")

    try:
        dimension = dimension_from_dict(raw.get("dimension"))
    except UnrecognizedMappingType as e:
        raise MetadataError(f"{where}.dimension: {e}") from e

    return FieldMetadata(
        id=_require_id(raw, "id", where),
        table_id=table_id,
        name=name,
        display_name=_optional_str(raw, "display_name", where),
        base_type=_optional_str(raw, "base_type", where),
        special_type=_optional_str(raw, "special_type", where),
        fk_target_field_id=fk_target,
        dimension=dimension,
        remapping=_parse_values(raw.get("values"), where),
    )


def _parse_table(raw: Any, db_id: int, where: str) -> TableMetadata:
    if not isinstance(raw, dict):
        raise MetadataError(f"{where} must be a mapping")
    table_id = _require_id(raw, "id", where)
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        raise MetadataError(f"{where}.name must be a non-empty string")
    fields_raw = raw.get("fields") or []
    if not isinstance(fields_raw, list):
        raise MetadataError(f"{where}.fields must be a list")
    return TableMetadata(
        id=table_id,
        db_id=db_id,
        name=name,
        display_name=_optional_str(raw, "display_name", where),
        fields=[
            _parse_field(f, table_id, f"{where}.fields[{i}]") for i, f in enumerate(fields_raw)
        ],
    )


def parse_metadata(raw: Any) -> list[DatabaseMetadata]:
    """Build database metadata records from a decoded metadata document."""
    if not isinstance(raw, dict):
        raise MetadataError("Metadata document must be a mapping at top level")
    dbs_raw = raw.get("databases")
    if not isinstance(dbs_raw, list) or not dbs_raw:
        raise MetadataError("databases must be a non-empty list")

    databases: list[DatabaseMetadata] = []
    seen_fields: set[int] = set()
    for i, db_raw in enumerate(dbs_raw):
        where = f"databases[{i}]"
        if not isinstance(db_raw, dict):
            raise MetadataError(f"{where} must be a mapping")
        db_id = _require_id(db_raw, "id", where)
        tables_raw = db_raw.get("tables") or []
        if not isinstance(tables_raw, list):
            raise MetadataError(f"{where}.tables must be a list")
        tables = [
            _parse_table(t, db_id, f"{where}.tables[{j}]") for j, t in enumerate(tables_raw)
        ]
        for t in tables:
            for f in t.fields:
                if f.id in seen_fields:
                    raise MetadataError(f"Duplicate field id {f.id} in table {t.name!r}")
                seen_fields.add(f.id)
        databases.append(
            DatabaseMetadata(id=db_id, name=str(db_raw.get("name") or db_id), tables=tables)
        )
    return databases


def load_metadata(path: Path) -> list[DatabaseMetadata]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except Exception as e:
        raise MetadataError(f"Failed to read metadata YAML: {path}") from e
    return parse_metadata(raw)


def field_to_dict(f: FieldMetadata) -> dict[str, Any]:
    out: dict[str, Any] = {"id": f.id, "name": f.name}
    for key in ("display_name", "base_type", "special_type", "fk_target_field_id"):
        value = getattr(f, key)
        if value is not None:
            out[key] = value
    dimension = dimension_to_dict(f.dimension)
    if dimension is not None:
        out["dimension"] = dimension
    if f.remapping:
        out["values"] = [[original, mapped] for original, mapped in f.remapping.items()]
    return out


def metadata_to_dict(databases: list[DatabaseMetadata]) -> dict[str, Any]:
    return {
        "databases": [
            {
                "id": db.id,
                "name": db.name,
                "tables": [
                    {
                        "id": t.id,
                        "name": t.name,
                        **({"display_name": t.display_name} if t.display_name else {}),
                        "fields": [field_to_dict(f) for f in t.fields],
                    }
                    for t in db.tables
                ],
            }
            for db in databases
        ]
    }


def write_metadata(databases: list[DatabaseMetadata], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        yaml.safe_dump(metadata_to_dict(databases), sort_keys=False, allow_unicode=True),
        encoding="utf-8",
    )
