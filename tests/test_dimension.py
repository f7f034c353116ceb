from __future__ import annotations

import pytest

from field_remapper.dimension import (
    NO_DIMENSION,
    ExternalDimension,
    InternalDimension,
    dimension_from_dict,
    dimension_to_dict,
)
from field_remapper.errors import UnrecognizedMappingType


def test_empty_dimension_is_no_dimension() -> None:
    assert dimension_from_dict(None) == NO_DIMENSION
    assert dimension_from_dict({}) == NO_DIMENSION
    assert dimension_to_dict(NO_DIMENSION) is None


def test_external_dimension_keeps_target_and_name() -> None:
    dim = dimension_from_dict({"type": "external", "name": "User", "human_readable_field_id": 201})
    assert dim == ExternalDimension(target_field_id=201, name="User")
    assert dimension_to_dict(dim) == {
        "type": "external",
        "name": "User",
        "human_readable_field_id": 201,
    }


def test_external_dimension_without_target() -> None:
    dim = dimension_from_dict({"type": "external", "human_readable_field_id": None})
    assert dim == ExternalDimension(target_field_id=None)


def test_internal_dimension_has_no_target() -> None:
    dim = dimension_from_dict({"type": "internal", "name": "Status", "human_readable_field_id": 5})
    assert dim == InternalDimension(name="Status")
    assert dimension_to_dict(dim)["human_readable_field_id"] is None


@pytest.mark.parametrize(
    "raw",
    [
        {"type": "fancy"},
        {"name": "no type"},
        {"type": "external", "human_readable_field_id": "201"},
        ["external"],
    ],
)
def test_unknown_dimension_shapes_are_rejected(raw) -> None:
    with pytest.raises(UnrecognizedMappingType):
        dimension_from_dict(raw)


def test_dimension_to_dict_rejects_foreign_objects() -> None:
    with pytest.raises(UnrecognizedMappingType):
        dimension_to_dict({"type": "external"})
