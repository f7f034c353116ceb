from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from field_remapper.dimension import ExternalDimension, NO_DIMENSION
from field_remapper.errors import MetadataError, UnrecognizedMappingType
from field_remapper.metadata import load_metadata
from field_remapper.services import YamlMetadataService


@pytest.mark.asyncio
async def test_fetch_table_is_cached_until_forced(service):
    before = await service.fetch_table(10)
    await service.update_field_dimension(101, {"type": "external", "human_readable_field_id": 201})

    assert (await service.fetch_table(10)).get_field(101).dimension == NO_DIMENSION
    forced = await service.fetch_table(10, force_reload=True)
    assert forced.get_field(101).dimension == ExternalDimension(target_field_id=201)
    assert before.get_field(101).dimension == NO_DIMENSION


@pytest.mark.asyncio
async def test_unknown_ids(service):
    with pytest.raises(MetadataError):
        await service.fetch_table(99)
    with pytest.raises(MetadataError):
        await service.fetch_database(99)
    with pytest.raises(MetadataError):
        await service.delete_field_dimension(99)


@pytest.mark.asyncio
async def test_update_field_only_changes_fk_relation(service):
    await service.update_field({"id": 101, "fk_target_field_id": 400})
    database = await service.fetch_database(1)
    assert database.get_field(101).fk_target_field_id == 400

    with pytest.raises(MetadataError, match="display_name"):
        await service.update_field({"id": 101, "display_name": "Customer"})


@pytest.mark.asyncio
async def test_dimension_spec_must_be_known(service):
    with pytest.raises(UnrecognizedMappingType):
        await service.update_field_dimension(101, {"type": "sideways"})
    with pytest.raises(UnrecognizedMappingType):
        await service.update_field_dimension(101, {})


@pytest.mark.asyncio
async def test_update_field_values_replaces_table(service):
    await service.update_field_values(102, [[3, "Closed"], [1, "Open"]])
    database = await service.fetch_database(1)
    assert list(database.get_field(102).remapping.items()) == [(3, "Closed"), (1, "Open")]


def test_locate_field(service):
    assert service.locate_field(201) == (1, 20)


@pytest.mark.asyncio
async def test_yaml_service_writes_back(tmp_path: Path, metadata_path: Path):
    path = tmp_path / "metadata.yaml"
    shutil.copy(metadata_path, path)
    service = YamlMetadataService(path)

    await service.update_field_dimension(101, {"type": "external", "name": "User", "human_readable_field_id": 201})

    reloaded = load_metadata(path)[0]
    assert reloaded.get_field(101).dimension == ExternalDimension(target_field_id=201, name="User")
