from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any

from . import remapping
from .dimension import ExternalDimension, Mode
from .errors import InvalidRemappingTarget, MetadataError, NoForeignKeyRelation
from .fk_targets import ForeignKeyCandidate, candidates, default_target, parse_fk_clause
from .metadata import DatabaseMetadata, FieldMetadata, RawValue, RemappingTable, TableMetadata
from .modes import MODE_LABELS, available_modes, has_foreign_key, resolve_mode
from .remapping import EditBuffer
from .services import FieldMutationService, MetadataRepository
from .transitions import ModeTransitionController, TransitionResult

logger = logging.getLogger("field_remapper.session")


class SaveStatus(str, Enum):
    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    FAILED = "failed"


class FieldEditingSession:
    """
    Display-value editing state for one field.

    Holds the field, its table and database metadata as last confirmed by the
    repository, plus the custom remapping edit buffer. Mutations run one at a
    time; state is only replaced after a write and its refetch succeeded.
    """

    def __init__(
        self,
        repository: MetadataRepository,
        mutations: FieldMutationService,
        *,
        database_id: int,
        table_id: int,
        field_id: int,
        preserve_explicit_target: bool = True,
    ):
        self.repository = repository
        self.mutations = mutations
        self.database_id = database_id
        self.table_id = table_id
        self.field_id = field_id
        self.controller = ModeTransitionController(
            repository, mutations, preserve_explicit_target=preserve_explicit_target
        )
        self.save_status = SaveStatus.IDLE
        self._lock = asyncio.Lock()
        self._database: DatabaseMetadata | None = None
        self._table: TableMetadata | None = None
        self._field: FieldMetadata | None = None
        self._buffer: EditBuffer | None = None

    # -- state -------------------------------------------------------------

    def _require_loaded(self) -> tuple[FieldMetadata, TableMetadata, DatabaseMetadata]:
        if self._field is None or self._table is None or self._database is None:
            raise MetadataError("Session is not loaded; call load() first")
        return self._field, self._table, self._database

    @property
    def field(self) -> FieldMetadata:
        return self._require_loaded()[0]

    @property
    def table(self) -> TableMetadata:
        return self._require_loaded()[1]

    @property
    def database(self) -> DatabaseMetadata:
        return self._require_loaded()[2]

    @property
    def mode(self) -> Mode:
        return resolve_mode(self.field)

    @property
    def available_modes(self) -> list[Mode]:
        return available_modes(self.field)

    @property
    def candidates(self) -> list[ForeignKeyCandidate]:
        field, table, database = self._require_loaded()
        if not has_foreign_key(field):
            return []
        return candidates(field, table, database)

    @property
    def default_target(self) -> int | None:
        return default_target(self.candidates)

    @property
    def target_field(self) -> FieldMetadata | None:
        """The field whose values are displayed in foreign mode, if one is chosen."""
        dimension = self.field.dimension
        if isinstance(dimension, ExternalDimension) and dimension.target_field_id is not None:
            return self.database.get_field(dimension.target_field_id)
        return None

    @property
    def buffer(self) -> EditBuffer | None:
        return self._buffer

    @property
    def is_savable(self) -> bool:
        return self._buffer is not None and remapping.is_savable(self._buffer)

    def _listed_candidates(self) -> list[ForeignKeyCandidate]:
        try:
            return self.candidates
        except NoForeignKeyRelation as e:
            # Still show the rest of the state when the FK target is unknown.
            logger.warning("%s", e)
            return []

    def state(self) -> dict[str, Any]:
        """Plain snapshot for consumers that render or print the session."""
        field = self.field
        mode = self.mode
        target = self.target_field
        found = self._listed_candidates()
        return {
            "field_id": field.id,
            "field": field.label,
            "mode": mode.value,
            "mode_label": MODE_LABELS[mode],
            "available_modes": [m.value for m in self.available_modes],
            "mode_options": [{"mode": m.value, "label": MODE_LABELS[m]} for m in self.available_modes],
            "target_field_id": target.id if target else None,
            "target_field": target.label if target else None,
            "candidates": [{"id": t.id, "name": t.label} for c in found for t in c.targets],
            "default_target": default_target(found),
            "remapping": self._buffer.pairs() if self._buffer is not None else None,
            "save_status": self.save_status.value,
        }

    # -- internals ---------------------------------------------------------

    @asynccontextmanager
    async def _saving(self):
        async with self._lock:
            self.save_status = SaveStatus.SAVING
            try:
                yield
            except Exception:
                self.save_status = SaveStatus.FAILED
                raise
            self.save_status = SaveStatus.SAVED

    async def _reload(self, *, database: bool = False) -> None:
        if database or self._database is None:
            self._database = await self.repository.fetch_database(self.database_id)
        # Only a forced table fetch returns hydrated dimensions.
        table = await self.repository.fetch_table(self.table_id, force_reload=True)
        field = table.get_field(self.field_id)
        if field is None:
            raise MetadataError(f"Field {self.field_id} not found in table {self.table_id}")
        self._table = table
        self._field = field

    def _apply(self, result: TransitionResult) -> None:
        self._table = result.table
        self._field = result.field

    async def _sync_buffer(self) -> None:
        field = self.field
        if resolve_mode(field) is not Mode.CUSTOM:
            self._buffer = None
            return
        buffer, wrote = await remapping.repair_if_incomplete(field.id, field.remapping, self.mutations)
        if wrote:
            await self._reload()
        self._buffer = buffer

    # -- operations --------------------------------------------------------

    async def load(self) -> None:
        async with self._lock:
            # Full database metadata is needed to offer targets in other tables.
            await self._reload(database=True)
            await self._sync_buffer()
        logger.debug("Loaded field %s in mode %s", self.field_id, self.mode.value)

    # Each operation reads the field only after taking the lock, so a queued
    # call acts on the state left by the one before it.

    async def set_mode(self, mode: Mode | str) -> TransitionResult:
        self._require_loaded()
        async with self._saving():
            field, table, database = self._require_loaded()
            result = await self.controller.set_mode(field, mode, table=table, database=database)
            self._apply(result)
            await self._sync_buffer()
        return result

    async def select_target(self, target: int | list) -> TransitionResult:
        """Choose the foreign display field by id or by an `["fk->", source, target]` clause."""
        self._require_loaded()
        target_id = target if isinstance(target, int) else parse_fk_clause(target)
        async with self._saving():
            field, table, database = self._require_loaded()
            result = await self.controller.select_target(
                field, target_id, table=table, database=database
            )
            self._apply(result)
            self._buffer = None
        return result

    async def change_fk_target(self, fk_target_field_id: int | None) -> TransitionResult | None:
        """Repoint the field's foreign key and keep a foreign mapping consistent with it."""
        self._require_loaded()
        async with self._saving():
            previous = self.field
            await self.mutations.update_field({"id": previous.id, "fk_target_field_id": fk_target_field_id})
            await self._reload(database=True)
            result = await self.controller.on_field_changed(
                previous, self.field, table=self.table, database=self.database
            )
            if result is not None:
                self._apply(result)
        return result

    def set_value(self, original: RawValue, display: str) -> EditBuffer:
        if self._buffer is None:
            raise InvalidRemappingTarget(f"Field {self.field_id} is not in custom mode")
        self._buffer = remapping.set_value(self._buffer, original, display)
        return self._buffer

    async def save_remappings(self) -> EditBuffer:
        if self._buffer is None:
            raise InvalidRemappingTarget(f"Field {self.field_id} is not in custom mode")
        async with self._saving():
            buffer = self._buffer
            if buffer is None:
                raise InvalidRemappingTarget(f"Field {self.field_id} is not in custom mode")
            await remapping.save(buffer, self.mutations)
            await self._reload()
        return buffer

    async def import_values(self, values: RemappingTable) -> None:
        """
        Replace the field's value list, typically with the distinct values of
        a data column. Labels are written as given; in custom mode the unset
        ones are then filled in and written back.
        """
        if not values:
            raise InvalidRemappingTarget(f"No values to record for field {self.field_id}")
        self._require_loaded()
        async with self._saving():
            await self.mutations.update_field_values(
                self.field_id, [[original, mapped] for original, mapped in values.items()]
            )
            await self._reload()
            await self._sync_buffer()
        logger.info("Recorded %d values for field %s", len(values), self.field_id)
