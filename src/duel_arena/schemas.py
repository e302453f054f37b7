"""Schemas for unit catalog files."""

from pydantic import BaseModel, Field, model_validator


class SpecialAttackEntry(BaseModel):
    """A named special attack in a catalog file."""

    name: str = Field(description="Display name of the special attack")
    range: tuple[int, int] = Field(description="Inclusive [min, max] damage")


class UnitCatalogEntry(BaseModel):
    """One unit definition in a catalog file."""

    id: str = Field(min_length=1, max_length=64, description="Stable unit id (e.g., 'zoro')")
    name: str = Field(min_length=1, max_length=100)
    rank: str = Field(default="C", max_length=8)
    power: int = Field(default=0, ge=0)
    health: int = Field(default=0, ge=0, description="Level 0 health")
    attack_range: tuple[int, int] = Field(default=(0, 0), description="Inclusive [min, max] normal damage")
    special_attack: SpecialAttackEntry | None = None

    @model_validator(mode="after")
    def check_ranges(self) -> "UnitCatalogEntry":
        if self.attack_range[0] > self.attack_range[1]:
            raise ValueError(f"attack_range of {self.id} is reversed")
        if self.special_attack and self.special_attack.range[0] > self.special_attack.range[1]:
            raise ValueError(f"special_attack range of {self.id} is reversed")
        return self
