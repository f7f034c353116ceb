from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import InvalidRemappingTarget, NoForeignKeyRelation
from .metadata import DatabaseMetadata, FieldMetadata, TableMetadata


@dataclass(frozen=True)
class ForeignKeyOption:
    """An FK column of a table together with the fields of the table it points at."""

    field: FieldMetadata
    target_table: TableMetadata
    dimensions: list[FieldMetadata]


@dataclass(frozen=True)
class ForeignKeyCandidate:
    field: FieldMetadata
    targets: list[FieldMetadata]

    @property
    def target_ids(self) -> list[int]:
        return [t.id for t in self.targets]


def foreign_key_options(table: TableMetadata, database: DatabaseMetadata) -> list[ForeignKeyOption]:
    options: list[ForeignKeyOption] = []
    for f in table.fields:
        if not f.is_fk or f.fk_target_field_id is None:
            continue
        target_field = database.get_field(f.fk_target_field_id)
        if target_field is None:
            continue
        target_table = database.get_table(target_field.table_id)
        if target_table is None:
            continue
        options.append(
            ForeignKeyOption(field=f, target_table=target_table, dimensions=list(target_table.fields))
        )
    return options


def is_valid_remapping_target(target: FieldMetadata) -> bool:
    return not target.is_date


def candidates(
    field: FieldMetadata, table: TableMetadata, database: DatabaseMetadata
) -> list[ForeignKeyCandidate]:
    """FK options whose source is `field`, without date/time target fields."""
    matches = [o for o in foreign_key_options(table, database) if o.field.id == field.id]
    if not matches:
        raise NoForeignKeyRelation(
            f"Field {field.id} ({field.name}) isn't a foreign key or its target table metadata is missing"
        )
    return [
        ForeignKeyCandidate(
            field=o.field,
            targets=[d for d in o.dimensions if is_valid_remapping_target(d)],
        )
        for o in matches
    ]


def default_target(found: list[ForeignKeyCandidate]) -> int | None:
    """Prefer the target table's entity name field; no other default is guessed."""
    if not found:
        return None
    for target in found[0].targets:
        if target.is_entity_name:
            return target.id
    return None


def parse_fk_clause(clause: Any) -> int:
    """Return the target field id of an `["fk->", source_id, target_id]` clause."""
    if (
        isinstance(clause, (list, tuple))
        and len(clause) == 3
        and clause[0] == "fk->"
        and isinstance(clause[2], int)
        and not isinstance(clause[2], bool)
    ):
        return clause[2]
    raise InvalidRemappingTarget(f"The selected field isn't a foreign key: {clause!r}")
