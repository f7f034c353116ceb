from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .errors import UnrecognizedMappingType


class Mode(str, Enum):
    """How a field's raw values are displayed."""

    ORIGINAL = "original"
    FOREIGN = "foreign"
    CUSTOM = "custom"


@dataclass(frozen=True)
class NoDimension:
    """No remapping; the raw value is displayed."""


@dataclass(frozen=True)
class ExternalDimension:
    """Display value is looked up from another field (the FK target)."""

    target_field_id: int | None
    name: str | None = None


@dataclass(frozen=True)
class InternalDimension:
    """Display value comes from the field's own remapping table."""

    name: str | None = None


Dimension = Union[NoDimension, ExternalDimension, InternalDimension]

NO_DIMENSION = NoDimension()


def dimension_from_dict(raw: dict[str, Any] | None) -> Dimension:
    """Parse a wire dimension dict (`type`, `name`, `human_readable_field_id`)."""
    if not raw:
        return NO_DIMENSION
    if not isinstance(raw, dict):
        raise UnrecognizedMappingType(f"Dimension must be a mapping, got {type(raw).__name__}")

    kind = raw.get("type")
    if kind == "external":
        target = raw.get("human_readable_field_id")
        if target is not None and (isinstance(target, bool) or not isinstance(target, int)):
            raise UnrecognizedMappingType(
                f"External dimension target must be a field id, got {target!r}"
            )
        return ExternalDimension(target_field_id=target, name=raw.get("name"))
    if kind == "internal":
        return InternalDimension(name=raw.get("name"))
    raise UnrecognizedMappingType(f"Unrecognized mapping type: {kind!r}")


def dimension_to_dict(dimension: Dimension) -> dict[str, Any] | None:
    """Inverse of dimension_from_dict; NoDimension serializes to None."""
    if isinstance(dimension, NoDimension):
        return None
    if isinstance(dimension, ExternalDimension):
        return {
            "type": "external",
            "name": dimension.name,
            "human_readable_field_id": dimension.target_field_id,
        }
    if isinstance(dimension, InternalDimension):
        return {
            "type": "internal",
            "name": dimension.name,
            "human_readable_field_id": None,
        }
    raise UnrecognizedMappingType(f"Unrecognized mapping type: {dimension!r}")
