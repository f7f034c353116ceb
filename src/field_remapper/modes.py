from __future__ import annotations

from .dimension import ExternalDimension, InternalDimension, Mode, NoDimension
from .errors import UnrecognizedMappingType
from .metadata import FieldMetadata, is_numeric_value

MODE_LABELS: dict[Mode, str] = {
    Mode.ORIGINAL: "Use original value",
    Mode.FOREIGN: "Use foreign key",
    Mode.CUSTOM: "Custom mapping",
}


def resolve_mode(field: FieldMetadata) -> Mode:
    """Derive the current display mode from the field's dimension."""
    dimension = field.dimension
    if isinstance(dimension, NoDimension):
        return Mode.ORIGINAL
    if isinstance(dimension, ExternalDimension):
        return Mode.FOREIGN
    if isinstance(dimension, InternalDimension):
        return Mode.CUSTOM
    raise UnrecognizedMappingType(
        f"Unrecognized mapping type for field {field.id}: {dimension!r}"
    )


def has_foreign_key(field: FieldMetadata) -> bool:
    return field.is_fk and field.fk_target_field_id is not None


def has_mappable_numeric_values(field: FieldMetadata) -> bool:
    # Custom value maps only apply to discrete, numeric-coded columns.
    return bool(field.remapping) and all(is_numeric_value(k) for k in field.remapping)


def available_modes(field: FieldMetadata) -> list[Mode]:
    """
    Modes the field may be switched to, in display order.

    `original` is always offered; `foreign` needs an FK with a target field;
    `custom` needs a non-empty remapping table with only numeric keys.
    """
    modes = [Mode.ORIGINAL]
    if has_foreign_key(field):
        modes.append(Mode.FOREIGN)
    if has_mappable_numeric_values(field):
        modes.append(Mode.CUSTOM)
    return modes


def parse_mode(value: Mode | str) -> Mode:
    if isinstance(value, Mode):
        return value
    try:
        return Mode(str(value).strip().lower())
    except ValueError as e:
        raise UnrecognizedMappingType(f"Unrecognized mapping type: {value!r}") from e
