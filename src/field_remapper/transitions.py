from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass

from .dimension import ExternalDimension, Mode
from .errors import InvalidRemappingTarget, MetadataError, TransitionInProgress
from .fk_targets import candidates, default_target
from .metadata import DatabaseMetadata, FieldMetadata, TableMetadata
from .modes import available_modes, has_foreign_key, parse_mode, resolve_mode
from .services import FieldMutationService, MetadataRepository

logger = logging.getLogger("field_remapper.transitions")


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a confirmed mode transition."""

    field: FieldMetadata
    """The field as refetched after the write."""

    table: TableMetadata
    """The refetched owning table."""

    mode: Mode

    @property
    def requires_target_choice(self) -> bool:
        """True when a foreign mapping has no target field yet and the user must pick one."""
        dimension = self.field.dimension
        return isinstance(dimension, ExternalDimension) and dimension.target_field_id is None


class ModeTransitionController:
    """
    Executes the side effects of switching a field's display mode.

    Every transition writes the dimension first and only then refetches the
    owning table, so the returned field always reflects the confirmed write.
    A failed write propagates and nothing is refetched.
    """

    def __init__(
        self,
        repository: MetadataRepository,
        mutations: FieldMutationService,
        *,
        preserve_explicit_target: bool = True,
    ):
        self.repository = repository
        self.mutations = mutations
        self.preserve_explicit_target = preserve_explicit_target
        self._in_flight: set[int] = set()

    @contextmanager
    def _exclusive(self, field_id: int):
        if field_id in self._in_flight:
            raise TransitionInProgress(f"A transition for field {field_id} is already in flight")
        self._in_flight.add(field_id)
        try:
            yield
        finally:
            self._in_flight.discard(field_id)

    async def _refresh(self, field: FieldMetadata, table: TableMetadata) -> tuple[FieldMetadata, TableMetadata]:
        refreshed = await self.repository.fetch_table(table.id, force_reload=True)
        updated = refreshed.get_field(field.id)
        if updated is None:
            raise MetadataError(f"Field {field.id} is missing from table {table.id} after refresh")
        return updated, refreshed

    def _foreign_target(
        self,
        field: FieldMetadata,
        table: TableMetadata,
        database: DatabaseMetadata,
        *,
        reset_target: bool,
    ) -> int | None:
        found = candidates(field, table, database)
        dimension = field.dimension
        if (
            not reset_target
            and self.preserve_explicit_target
            and isinstance(dimension, ExternalDimension)
            and dimension.target_field_id is not None
            and any(dimension.target_field_id in c.target_ids for c in found)
        ):
            return dimension.target_field_id
        target = default_target(found)
        if target is None:
            logger.warning("No entity name field found for FK field %s; a target must be chosen", field.id)
        return target

    async def set_mode(
        self,
        field: FieldMetadata,
        mode: Mode | str,
        *,
        table: TableMetadata,
        database: DatabaseMetadata,
        reset_target: bool = False,
    ) -> TransitionResult:
        mode = parse_mode(mode)
        if mode not in available_modes(field):
            raise InvalidRemappingTarget(f"Mode {mode.value!r} is not available for field {field.id}")

        with self._exclusive(field.id):
            if mode is Mode.ORIGINAL:
                await self.mutations.delete_field_dimension(field.id)
            elif mode is Mode.FOREIGN:
                target = self._foreign_target(field, table, database, reset_target=reset_target)
                await self.mutations.update_field_dimension(
                    field.id,
                    {"type": "external", "name": field.label, "human_readable_field_id": target},
                )
            else:
                await self.mutations.update_field_dimension(
                    field.id,
                    {"type": "internal", "name": field.label, "human_readable_field_id": None},
                )

            updated, refreshed = await self._refresh(field, table)

        logger.info("Field %s display mode set to %s", field.id, mode.value)
        return TransitionResult(field=updated, table=refreshed, mode=resolve_mode(updated))

    async def select_target(
        self,
        field: FieldMetadata,
        target_field_id: int,
        *,
        table: TableMetadata,
        database: DatabaseMetadata,
    ) -> TransitionResult:
        """Point the field's foreign mapping at an explicitly chosen target field."""
        if resolve_mode(field) is not Mode.FOREIGN:
            raise InvalidRemappingTarget(
                f"Field {field.id} is in {resolve_mode(field).value} mode; switch to foreign first"
            )
        found = candidates(field, table, database)
        if not any(target_field_id in c.target_ids for c in found):
            raise InvalidRemappingTarget(
                f"Field {target_field_id} is not a valid display target for field {field.id}"
            )

        with self._exclusive(field.id):
            await self.mutations.update_field_dimension(
                field.id,
                {"type": "external", "name": field.label, "human_readable_field_id": target_field_id},
            )
            updated, refreshed = await self._refresh(field, table)

        logger.info("Field %s now displays values of field %s", field.id, target_field_id)
        return TransitionResult(field=updated, table=refreshed, mode=resolve_mode(updated))

    async def on_field_changed(
        self,
        previous: FieldMetadata,
        current: FieldMetadata,
        *,
        table: TableMetadata,
        database: DatabaseMetadata,
    ) -> TransitionResult | None:
        """
        Recompute the foreign mapping when the FK's target field changed.

        An external dimension must not keep pointing at a field of the old
        target table, so the default target is always recomputed here.
        """
        if resolve_mode(previous) is not Mode.FOREIGN:
            return None
        if not has_foreign_key(current):
            return None
        if current.fk_target_field_id == previous.fk_target_field_id:
            return None

        logger.info(
            "FK target of field %s changed from %s to %s; resetting foreign mapping",
            current.id,
            previous.fk_target_field_id,
            current.fk_target_field_id,
        )
        return await self.set_mode(
            current, Mode.FOREIGN, table=table, database=database, reset_target=True
        )
