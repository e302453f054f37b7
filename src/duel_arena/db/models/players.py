"""Player system models."""

from sqlalchemy import BigInteger, Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin


class Player(Base, TimestampMixin):
    """A Telegram user with a unit collection, a duel team and a wallet."""

    __tablename__ = "players"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    telegram_user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Economy
    currency: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Bots can never be challenged
    is_bot: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Ordered unit ids, at most 3 (e.g., ["luffy", "zoro"])
    team: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)

    # Relationships
    units: Mapped[list["PlayerUnit"]] = relationship(
        "PlayerUnit", back_populates="player", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Player(id={self.id}, name={self.display_name}, currency={self.currency})>"


class PlayerUnit(Base, TimestampMixin):
    """A unit owned by a player, with its progression."""

    __tablename__ = "player_units"
    __table_args__ = (
        UniqueConstraint("player_id", "unit_id", name="uq_player_unit"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    player_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False, index=True
    )
    unit_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("unit_definitions.id"), nullable=False, index=True
    )

    count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    player: Mapped["Player"] = relationship("Player", back_populates="units")
    unit: Mapped["UnitDefinition"] = relationship("UnitDefinition", lazy="joined")

    def __repr__(self) -> str:
        return f"<PlayerUnit(player={self.player_id}, unit={self.unit_id}, level={self.level})>"


# Forward references for type hints
from .units import UnitDefinition  # noqa: E402, F401
