"""
Collaborator contracts for the remapping core and local implementations of them.

The core only talks to a `MetadataRepository` (reads) and a
`FieldMutationService` (writes). `InMemoryMetadataService` implements both over
loaded metadata records; `YamlMetadataService` also writes every mutation back
to a metadata YAML document.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Protocol

from .dimension import NO_DIMENSION, dimension_from_dict
from .errors import MetadataError, UnrecognizedMappingType
from .metadata import (
    DatabaseMetadata,
    FieldMetadata,
    TableMetadata,
    is_raw_value,
    load_metadata,
    write_metadata,
)

logger = logging.getLogger("field_remapper.services")

# Field properties update_field may change; everything else is out of scope here.
UPDATABLE_FIELD_PROPS = ("special_type", "fk_target_field_id")


class MetadataRepository(Protocol):
    async def fetch_table(self, table_id: int, force_reload: bool = False) -> TableMetadata: ...

    async def fetch_database(self, database_id: int) -> DatabaseMetadata: ...


class FieldMutationService(Protocol):
    async def update_field(self, field_props: dict[str, Any]) -> None: ...

    async def update_field_values(self, field_id: int, pairs: list[list]) -> None: ...

    async def update_field_dimension(self, field_id: int, dimension_spec: dict[str, Any]) -> None: ...

    async def delete_field_dimension(self, field_id: int) -> None: ...


class InMemoryMetadataService:
    """Metadata repository and mutation service backed by in-process records."""

    def __init__(self, databases: list[DatabaseMetadata]):
        self._databases: dict[int, DatabaseMetadata] = {}
        self._tables: dict[int, TableMetadata] = {}
        self._fields: dict[int, FieldMetadata] = {}
        self._table_cache: dict[int, TableMetadata] = {}
        self._lock = asyncio.Lock()
        for db in databases:
            self._databases[db.id] = db
            for t in db.tables:
                self._tables[t.id] = t
                for f in t.fields:
                    self._fields[f.id] = f

    # -- reads -------------------------------------------------------------

    def _build_table(self, table_id: int) -> TableMetadata:
        table = self._tables.get(table_id)
        if table is None:
            raise MetadataError(f"Unknown table id: {table_id}")
        return replace(table, fields=[self._fields[f.id] for f in table.fields])

    def _build_database(self, database_id: int) -> DatabaseMetadata:
        db = self._databases.get(database_id)
        if db is None:
            raise MetadataError(f"Unknown database id: {database_id}")
        return replace(db, tables=[self._build_table(t.id) for t in db.tables])

    def snapshot(self) -> list[DatabaseMetadata]:
        return [self._build_database(db_id) for db_id in self._databases]

    def locate_field(self, field_id: int) -> tuple[int, int]:
        """Return (database_id, table_id) owning the field."""
        f = self._get_field(field_id)
        return self._tables[f.table_id].db_id, f.table_id

    async def fetch_table(self, table_id: int, force_reload: bool = False) -> TableMetadata:
        if not force_reload and table_id in self._table_cache:
            return self._table_cache[table_id]
        logger.debug("Fetching table %s (force_reload=%s)", table_id, force_reload)
        table = self._build_table(table_id)
        self._table_cache[table_id] = table
        return table

    async def fetch_database(self, database_id: int) -> DatabaseMetadata:
        logger.debug("Fetching database %s", database_id)
        return self._build_database(database_id)

    # -- writes ------------------------------------------------------------

    def _get_field(self, field_id: int) -> FieldMetadata:
        f = self._fields.get(field_id)
        if f is None:
            raise MetadataError(f"Unknown field id: {field_id}")
        return f

    async def _store(self, updated: FieldMetadata) -> None:
        async with self._lock:
            self._fields[updated.id] = updated
            self._persist()

    def _persist(self) -> None:
        """Hook for durable subclasses; runs after every accepted write."""

    async def update_field(self, field_props: dict[str, Any]) -> None:
        field_id = field_props.get("id")
        current = self._get_field(field_id)
        unknown = set(field_props) - {"id", *UPDATABLE_FIELD_PROPS}
        if unknown:
            raise MetadataError(f"Unsupported field properties: {', '.join(sorted(unknown))}")
        changes = {k: field_props[k] for k in UPDATABLE_FIELD_PROPS if k in field_props}
        logger.debug("update_field %s %s", field_id, changes)
        await self._store(replace(current, **changes))

    async def update_field_values(self, field_id: int, pairs: list[list]) -> None:
        current = self._get_field(field_id)
        remapping = {}
        for pair in pairs:
            original, mapped = pair
            if not is_raw_value(original):
                raise MetadataError(f"Invalid original value for field {field_id}: {original!r}")
            remapping[original] = mapped
        logger.debug("update_field_values %s (%d pairs)", field_id, len(remapping))
        await self._store(replace(current, remapping=remapping))

    async def update_field_dimension(self, field_id: int, dimension_spec: dict[str, Any]) -> None:
        current = self._get_field(field_id)
        dimension = dimension_from_dict(dimension_spec)
        if dimension == NO_DIMENSION:
            raise UnrecognizedMappingType(f"Empty dimension spec for field {field_id}")
        logger.debug("update_field_dimension %s %s", field_id, dimension_spec)
        await self._store(replace(current, dimension=dimension))

    async def delete_field_dimension(self, field_id: int) -> None:
        current = self._get_field(field_id)
        logger.debug("delete_field_dimension %s", field_id)
        await self._store(replace(current, dimension=NO_DIMENSION))


class YamlMetadataService(InMemoryMetadataService):
    """In-memory service that rewrites its metadata YAML after each mutation."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(load_metadata(path))

    def _persist(self) -> None:
        write_metadata(self.snapshot(), self.path)
        logger.debug("Wrote metadata to %s", self.path)
