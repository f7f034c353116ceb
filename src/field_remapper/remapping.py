"""
Edit buffer for a field's custom remapping table.

The buffer is an immutable snapshot owned by the caller. The pure helpers
(`seed_remappings`, `set_value`, `is_savable`) never touch the network; only
`repair_if_incomplete` and `save` write through the mutation service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .errors import IncompleteRemapping
from .metadata import RawValue, RemappingTable

if TYPE_CHECKING:
    from .services import FieldMutationService

logger = logging.getLogger("field_remapper.remapping")


@dataclass(frozen=True)
class EditBuffer:
    field_id: int
    entries: tuple[tuple[RawValue, str], ...]

    def pairs(self) -> list[list]:
        """Ordered [original, mapped] pairs as sent to the mutation service."""
        return [[original, mapped] for original, mapped in self.entries]

    def as_dict(self) -> dict[RawValue, str]:
        return dict(self.entries)

    def get(self, original: RawValue) -> str | None:
        for key, mapped in self.entries:
            if key == original:
                return mapped
        return None

    def __len__(self) -> int:
        return len(self.entries)


def has_unset_mappings(table: RemappingTable) -> bool:
    return any(mapped is None for mapped in table.values())


def seed_remappings(field_id: int, table: RemappingTable) -> EditBuffer:
    """Fill every unset display value with the original value's string form."""
    entries = tuple(
        (original, str(mapped) if mapped is not None else str(original))
        for original, mapped in table.items()
    )
    return EditBuffer(field_id=field_id, entries=entries)


async def repair_if_incomplete(
    field_id: int, table: RemappingTable, mutations: FieldMutationService
) -> tuple[EditBuffer, bool]:
    """
    Seed unset display values and persist them right away.

    An internal dimension must never be left with partial coverage, so when any
    entry was unset the seeded table is written before returning. Returns the
    buffer and whether a write happened.
    """
    buffer = seed_remappings(field_id, table)
    if not has_unset_mappings(table):
        return buffer, False

    logger.debug("Repairing %d unset remappings for field %s",
                 sum(1 for v in table.values() if v is None), field_id)
    await mutations.update_field_values(field_id, buffer.pairs())
    return buffer, True


async def begin_editing(
    field_id: int, table: RemappingTable, mutations: FieldMutationService
) -> EditBuffer:
    buffer, _ = await repair_if_incomplete(field_id, table, mutations)
    return buffer


def set_value(buffer: EditBuffer, original: RawValue, display: str) -> EditBuffer:
    found = False
    entries = []
    for key, mapped in buffer.entries:
        if key == original:
            entries.append((key, display))
            found = True
        else:
            entries.append((key, mapped))
    if not found:
        raise KeyError(f"{original!r} is not a value of field {buffer.field_id}")
    return EditBuffer(field_id=buffer.field_id, entries=tuple(entries))


def is_savable(buffer: EditBuffer) -> bool:
    return all(isinstance(mapped, str) and mapped != "" for _, mapped in buffer.entries)


async def save(buffer: EditBuffer, mutations: FieldMutationService) -> None:
    """Replace the field's whole remapping table with the buffer contents."""
    if not is_savable(buffer):
        empty = [original for original, mapped in buffer.entries if not mapped]
        raise IncompleteRemapping(
            f"Field {buffer.field_id} has empty display values for: "
            + ", ".join(repr(v) for v in empty)
        )
    await mutations.update_field_values(buffer.field_id, buffer.pairs())
    logger.info("Saved %d remappings for field %s", len(buffer), buffer.field_id)
