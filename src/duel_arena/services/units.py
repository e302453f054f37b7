"""Unit catalog service - lookups, fuzzy search and seeding."""

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.models.units import UnitDefinition
from ..engine.types import SpecialAttack, UnitDefinitionData
from ..schemas import UnitCatalogEntry


def to_unit_data(unit: UnitDefinition) -> UnitDefinitionData:
    """Convert a catalog row to the engine's definition type."""
    special = None
    if unit.has_special:
        special = SpecialAttack(name=unit.special_name, min_damage=unit.special_min, max_damage=unit.special_max)
    return UnitDefinitionData(
        unit_id=unit.id,
        name=unit.name,
        power=unit.power,
        attack_range=(unit.attack_min, unit.attack_max),
        health=unit.health,
        special=special,
    )


def read_catalog(path: str | Path) -> list[UnitCatalogEntry]:
    """Read and validate a JSON list of unit entries."""
    with open(path, encoding="utf-8") as f:
        entries = json.load(f)
    if not isinstance(entries, list):
        raise ValueError(f"Unit catalog {path} must be a JSON list")
    return [UnitCatalogEntry.model_validate(entry) for entry in entries]


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings."""
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (char_a != char_b),
                )
            )
        previous = current
    return previous[-1]


class UnitService:
    """Service for the unit catalog."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_definition(self, unit_id: str) -> UnitDefinition | None:
        return await self.session.get(UnitDefinition, unit_id)

    async def list_definitions(self) -> list[UnitDefinition]:
        result = await self.session.execute(select(UnitDefinition).order_by(UnitDefinition.id))
        return list(result.scalars().all())

    async def find_unit(self, query: str | None) -> UnitDefinition | None:
        """Find a unit by id or name, tolerating typos.

        Tries, in order: exact id, exact name, substring of id or name,
        then the name with the smallest edit distance.

        Args:
            query: User input

        Returns:
            Best matching unit, or None for an empty query or empty catalog
        """
        if not query:
            return None
        query = query.strip().lower()
        units = await self.list_definitions()

        for unit in units:
            if unit.id.lower() == query:
                return unit
        for unit in units:
            if unit.name.lower() == query:
                return unit
        for unit in units:
            if query in unit.name.lower() or query in unit.id.lower():
                return unit

        if not units:
            return None
        return min(units, key=lambda unit: levenshtein(unit.name.lower(), query))

    async def upsert_definitions(self, entries: Iterable[UnitCatalogEntry | dict[str, Any]]) -> int:
        """Create or update catalog entries.

        Plain dicts are validated as UnitCatalogEntry first.

        Returns:
            Number of entries written

        Raises:
            pydantic.ValidationError: If an entry is malformed
        """
        count = 0
        for raw in entries:
            entry = raw if isinstance(raw, UnitCatalogEntry) else UnitCatalogEntry.model_validate(raw)

            unit = await self.get_definition(entry.id)
            if unit is None:
                unit = UnitDefinition(id=entry.id)
                self.session.add(unit)

            unit.name = entry.name
            unit.rank = entry.rank
            unit.power = entry.power
            unit.health = entry.health
            unit.attack_min, unit.attack_max = entry.attack_range

            if entry.special_attack:
                unit.special_name = entry.special_attack.name
                unit.special_min, unit.special_max = entry.special_attack.range
            else:
                unit.special_name = None
                unit.special_min = None
                unit.special_max = None
            count += 1

        await self.session.flush()
        return count
