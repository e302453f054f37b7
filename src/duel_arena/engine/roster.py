"""Roster snapshot builder - turns a stored team into a battle-ready Side."""

import math
from collections.abc import Mapping, Sequence

from .types import Side, SpecialAttack, UnitDefinitionData, UnitSnapshot, UnitStats

MAX_TEAM_SIZE = 3
LEVEL_BONUS = 0.01  # +1% to every stat per level


def level_multiplier(level: int) -> float:
    """Get the stat multiplier for a unit level."""
    return 1 + max(0, level) * LEVEL_BONUS


def scale_stat(value: int, level: int) -> int:
    """Scale a base stat by level, rounding half up."""
    return math.floor(value * level_multiplier(level) + 0.5)


def scale_stats(definition: UnitDefinitionData, level: int) -> UnitStats:
    """Compute level-scaled stats for a unit.

    Power, both attack bounds, both special bounds and health all get
    the same multiplier.
    """
    special = None
    if definition.special is not None:
        special = SpecialAttack(
            name=definition.special.name,
            min_damage=scale_stat(definition.special.min_damage, level),
            max_damage=scale_stat(definition.special.max_damage, level),
        )

    low, high = definition.attack_range
    return UnitStats(
        power=scale_stat(definition.power, level),
        attack_range=(scale_stat(low, level), scale_stat(high, level)),
        max_health=scale_stat(definition.health, level),
        special=special,
    )


def snapshot_unit(definition: UnitDefinitionData, level: int, owner_id: int) -> UnitSnapshot:
    """Create a full-health snapshot of one unit."""
    stats = scale_stats(definition, level)
    return UnitSnapshot(
        unit_id=definition.unit_id,
        name=definition.name,
        owner_id=owner_id,
        level=level,
        stats=stats,
        current_health=stats.max_health,
    )


def build_side(
    owner_id: int,
    display_name: str,
    team: Sequence[str],
    levels: Mapping[str, int],
    catalog: Mapping[str, UnitDefinitionData],
) -> Side:
    """Build a Side from a player's team.

    Args:
        owner_id: Player who owns the team
        display_name: Name shown in prompts
        team: Ordered unit ids (1 to 3)
        levels: Unit id -> level; missing entries count as level 0
        catalog: Unit id -> definition

    Returns:
        Side with one snapshot per team entry, in team order

    Raises:
        ValueError: If the team is empty, too large, or references an unknown unit
    """
    if not team:
        raise ValueError(f"Player {owner_id} has no team")
    if len(team) > MAX_TEAM_SIZE:
        raise ValueError(f"Team of player {owner_id} has {len(team)} units, max is {MAX_TEAM_SIZE}")

    units: list[UnitSnapshot] = []
    for unit_id in team:
        definition = catalog.get(unit_id)
        if definition is None:
            raise ValueError(f"Unknown unit: {unit_id}")
        units.append(snapshot_unit(definition, levels.get(unit_id, 0), owner_id))

    return Side(owner_id=owner_id, display_name=display_name, units=units)
