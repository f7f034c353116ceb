from __future__ import annotations

from dataclasses import replace

import pytest

from field_remapper.dimension import ExternalDimension, InternalDimension, Mode
from field_remapper.errors import UnrecognizedMappingType
from field_remapper.metadata import FieldMetadata
from field_remapper.modes import MODE_LABELS, available_modes, parse_mode, resolve_mode


def _field(**kwargs) -> FieldMetadata:
    return FieldMetadata(id=1, table_id=10, name="f", **kwargs)


def test_field_without_dimension_is_original() -> None:
    field = _field()
    assert resolve_mode(field) is Mode.ORIGINAL
    assert Mode.ORIGINAL in available_modes(field)


def test_external_dimension_is_foreign() -> None:
    assert resolve_mode(_field(dimension=ExternalDimension(target_field_id=None))) is Mode.FOREIGN


def test_internal_dimension_is_custom() -> None:
    assert resolve_mode(_field(dimension=InternalDimension())) is Mode.CUSTOM


def test_unknown_dimension_object_is_fatal() -> None:
    field = _field(dimension={"type": "external"})  # type: ignore[arg-type]
    with pytest.raises(UnrecognizedMappingType):
        resolve_mode(field)


def test_foreign_requires_fk_with_target() -> None:
    assert Mode.FOREIGN not in available_modes(_field(special_type="type/FK"))
    assert Mode.FOREIGN not in available_modes(_field(fk_target_field_id=3))
    assert Mode.FOREIGN in available_modes(_field(special_type="type/FK", fk_target_field_id=3))


def test_custom_requires_numeric_keys() -> None:
    numeric = _field(dimension=InternalDimension(), remapping={1: "One", 2.5: None})
    assert Mode.CUSTOM in available_modes(numeric)

    mixed = replace(numeric, remapping={1: "One", "b": None})
    assert Mode.CUSTOM not in available_modes(mixed)

    assert Mode.CUSTOM not in available_modes(_field(remapping={}))
    assert Mode.CUSTOM not in available_modes(_field(remapping={True: "yes"}))


def test_available_modes_order_is_fixed() -> None:
    field = _field(special_type="type/FK", fk_target_field_id=3, remapping={2: None, 1: None})
    assert available_modes(field) == [Mode.ORIGINAL, Mode.FOREIGN, Mode.CUSTOM]


def test_fixture_fields(database) -> None:
    assert available_modes(database.get_field(101)) == [Mode.ORIGINAL, Mode.FOREIGN]
    assert available_modes(database.get_field(102)) == [Mode.ORIGINAL, Mode.CUSTOM]
    assert available_modes(database.get_field(103)) == [Mode.ORIGINAL]
    assert resolve_mode(database.get_field(106)) is Mode.CUSTOM


def test_parse_mode() -> None:
    assert parse_mode("Foreign") is Mode.FOREIGN
    assert parse_mode(Mode.CUSTOM) is Mode.CUSTOM
    with pytest.raises(UnrecognizedMappingType):
        parse_mode("fancy")


def test_every_mode_has_a_label() -> None:
    assert set(MODE_LABELS) == set(Mode)
