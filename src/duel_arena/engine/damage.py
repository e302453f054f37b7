"""Damage resolver - rolls attack outcomes and applies them to a target."""

import random

from ..db.models.enums import AttackKind, AttackOutcome
from .types import AttackResult, Side, UnitSnapshot

NORMAL_MISS_CHANCE = 0.05

# A special attempt draws once: below the first threshold it lands as a
# normal hit, below the second as the special, otherwise it misses
SPECIAL_NORMAL_THRESHOLD = 0.60
SPECIAL_HIT_THRESHOLD = 0.80


class DamageResolver:
    """Computes miss/normal/special outcomes and HP changes."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self.rng = rng or random.Random()

    def roll(self, attacker: UnitSnapshot, kind: AttackKind) -> tuple[AttackOutcome, int]:
        """Roll an attack outcome and its damage.

        Args:
            attacker: Unit performing the attack
            kind: Attack chosen by the player

        Returns:
            (outcome, damage) with damage 0 on a miss

        Raises:
            ValueError: If a special attack is requested for a unit without one
        """
        if kind == AttackKind.NORMAL:
            if self.rng.random() < NORMAL_MISS_CHANCE:
                return AttackOutcome.MISS, 0
            return AttackOutcome.NORMAL, self._draw(attacker.stats.attack_range)

        special = attacker.stats.special
        if special is None:
            raise ValueError(f"Unit {attacker.unit_id} has no special attack")

        draw = self.rng.random()
        if draw < SPECIAL_NORMAL_THRESHOLD:
            return AttackOutcome.NORMAL, self._draw(attacker.stats.attack_range)
        if draw < SPECIAL_HIT_THRESHOLD:
            return AttackOutcome.SPECIAL, self._draw((special.min_damage, special.max_damage))
        return AttackOutcome.MISS, 0

    def resolve(
        self,
        attacking: Side,
        attacker_index: int,
        kind: AttackKind,
        defending: Side,
        target_index: int,
    ) -> AttackResult:
        """Resolve an attack against a living target.

        Only the target's current_health changes. The defending side's
        active_index is renormalized before returning.

        Raises:
            ValueError: If the target is already knocked out
        """
        attacker = attacking.units[attacker_index]
        target = defending.units[target_index]
        if not target.is_alive():
            raise ValueError(f"Target {target.unit_id} is already knocked out")

        outcome, damage = self.roll(attacker, kind)
        target.take_damage(damage)

        defending.renormalize()
        knocked_out = not target.is_alive()

        return AttackResult(
            attacker_id=attacking.owner_id,
            attacker_index=attacker_index,
            target_index=target_index,
            kind=kind,
            outcome=outcome,
            damage=damage,
            target_health=target.current_health,
            knocked_out=knocked_out,
        )

    def _draw(self, damage_range: tuple[int, int]) -> int:
        low, high = damage_range
        if high < low:
            low, high = high, low
        return self.rng.randint(low, high)
