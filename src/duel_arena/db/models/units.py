"""Unit catalog models."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class UnitDefinition(Base, TimestampMixin):
    """A collectible unit as defined in the global catalog.

    Stats here are level 0 values; duels scale them by the owner's level.
    """

    __tablename__ = "unit_definitions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    rank: Mapped[str] = mapped_column(String(8), nullable=False, default="C")

    # Base combat stats
    power: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    health: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attack_min: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attack_max: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Special attack (all null = no special attack)
    special_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    special_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    special_max: Mapped[int | None] = mapped_column(Integer, nullable=True)

    @property
    def has_special(self) -> bool:
        return self.special_name is not None and self.special_min is not None and self.special_max is not None

    def __repr__(self) -> str:
        return f"<UnitDefinition(id={self.id}, name={self.name}, power={self.power})>"
