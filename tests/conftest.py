from __future__ import annotations

from pathlib import Path

import pytest

from field_remapper.metadata import DatabaseMetadata, load_metadata
from field_remapper.services import InMemoryMetadataService

FIXTURES = Path(__file__).parent / "fixtures"


class RecordingService(InMemoryMetadataService):
    """In-memory service that journals every call in order."""

    def __init__(self, databases: list[DatabaseMetadata]):
        super().__init__(databases)
        self.calls: list[tuple] = []

    async def fetch_table(self, table_id, force_reload=False):
        self.calls.append(("fetch_table", table_id, force_reload))
        return await super().fetch_table(table_id, force_reload)

    async def fetch_database(self, database_id):
        self.calls.append(("fetch_database", database_id))
        return await super().fetch_database(database_id)

    async def update_field(self, field_props):
        self.calls.append(("update_field", dict(field_props)))
        await super().update_field(field_props)

    async def update_field_values(self, field_id, pairs):
        self.calls.append(("update_field_values", field_id, [list(p) for p in pairs]))
        await super().update_field_values(field_id, pairs)

    async def update_field_dimension(self, field_id, dimension_spec):
        self.calls.append(("update_field_dimension", field_id, dict(dimension_spec)))
        await super().update_field_dimension(field_id, dimension_spec)

    async def delete_field_dimension(self, field_id):
        self.calls.append(("delete_field_dimension", field_id))
        await super().delete_field_dimension(field_id)

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def writes(self) -> list[tuple]:
        return [c for c in self.calls if not c[0].startswith("fetch")]


@pytest.fixture
def metadata_path() -> Path:
    return FIXTURES / "metadata.yaml"


@pytest.fixture
def databases(metadata_path: Path) -> list[DatabaseMetadata]:
    return load_metadata(metadata_path)


@pytest.fixture
def database(databases: list[DatabaseMetadata]) -> DatabaseMetadata:
    return databases[0]


@pytest.fixture
def orders(database: DatabaseMetadata):
    return database.get_table(10)


@pytest.fixture
def service(databases: list[DatabaseMetadata]) -> RecordingService:
    return RecordingService(databases)
