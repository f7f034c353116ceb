from __future__ import annotations

from typing import Any

import pandas as pd

from .dimension import ExternalDimension, Mode
from .errors import InvalidRemappingTarget, UnrecognizedMappingType
from .metadata import DatabaseMetadata, FieldMetadata, RawValue, RemappingTable
from .modes import resolve_mode


def _to_raw(value: Any) -> Any:
    """Convert numpy scalars to plain Python values; integral floats become ints."""
    if hasattr(value, "item"):
        value = value.item()
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def remapping_from_series(
    series: pd.Series, existing: RemappingTable | None = None
) -> RemappingTable:
    """
    Build a remapping table from the distinct non-null values of a column.

    Values are sorted when they are mutually comparable; labels already present
    in `existing` are kept, new values start unset.
    """
    existing = existing or {}
    values: list[RawValue] = []
    seen = set()
    for v in series.dropna().unique():
        raw = _to_raw(v)
        if raw not in seen:
            seen.add(raw)
            values.append(raw)
    try:
        values = sorted(values)
    except TypeError:
        pass
    return {v: existing.get(v) for v in values}


def _with_fallback(mapped: pd.Series, series: pd.Series) -> pd.Series:
    fallback = series.map(lambda v: v if pd.isna(v) else str(_to_raw(v)))
    return mapped.where(mapped.notna(), fallback)


def display_values(
    series: pd.Series,
    field: FieldMetadata,
    *,
    lookup: pd.DataFrame | None = None,
    database: DatabaseMetadata | None = None,
) -> pd.Series:
    """
    Translate a column of raw values into display values for `field`.

    Foreign mode needs `lookup`, the rows of the FK target table, and the
    database metadata to resolve the key and label columns. Values without a
    display value fall back to the raw value as a string.
    """
    mode = resolve_mode(field)
    if mode is Mode.ORIGINAL:
        return series.copy()

    if mode is Mode.CUSTOM:
        labels = {k: v for k, v in field.remapping.items() if v}
        mapped = series.map(lambda v: None if pd.isna(v) else labels.get(_to_raw(v)))
        return _with_fallback(mapped, series)

    dimension = field.dimension
    if not isinstance(dimension, ExternalDimension):
        raise UnrecognizedMappingType(f"Unrecognized mapping type for field {field.id}: {dimension!r}")
    if dimension.target_field_id is None:
        raise InvalidRemappingTarget(f"Field {field.id} has no foreign display field chosen")
    if lookup is None or database is None:
        raise InvalidRemappingTarget(
            f"Field {field.id} displays foreign values; a lookup table and database metadata are required"
        )

    key_field = database.get_field(field.fk_target_field_id) if field.fk_target_field_id else None
    label_field = database.get_field(dimension.target_field_id)
    if key_field is None or label_field is None:
        raise InvalidRemappingTarget(f"FK target metadata for field {field.id} is missing")
    missing = [c for c in (key_field.name, label_field.name) if c not in lookup.columns]
    if missing:
        raise InvalidRemappingTarget(f"Lookup table is missing columns: {', '.join(missing)}")

    labels = (
        lookup.drop_duplicates(subset=key_field.name)
        .set_index(key_field.name)[label_field.name]
        .to_dict()
    )
    labels = {_to_raw(k): v for k, v in labels.items() if not pd.isna(v)}
    mapped = series.map(lambda v: None if pd.isna(v) else labels.get(_to_raw(v)))
    return _with_fallback(mapped, series)
