"""Player service - handles players, their unit collections and duel teams."""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..db.models.players import Player, PlayerUnit
from ..engine.roster import MAX_TEAM_SIZE, scale_stat
from .units import UnitService


@dataclass
class TeamResult:
    """Result of a team operation."""

    success: bool
    message: str
    team: list[str] | None = None


@dataclass
class TeamEntry:
    """One team slot as shown to the player."""

    unit_id: str
    name: str
    rank: str
    level: int
    power: int


class PlayerService:
    """Service for player operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.units = UnitService(session)

    async def get_or_create_player(
        self,
        telegram_user_id: int,
        display_name: str,
        is_bot: bool = False,
    ) -> Player:
        """Get existing player or create new one.

        Args:
            telegram_user_id: Telegram user ID
            display_name: Display name from Telegram
            is_bot: Whether the Telegram user is a bot

        Returns:
            Player instance
        """
        player = await self.get_player_by_telegram_id(telegram_user_id)

        if player:
            # Update display name if changed
            if player.display_name != display_name:
                player.display_name = display_name
            return player

        player = Player(
            telegram_user_id=telegram_user_id,
            display_name=display_name,
            currency=0,
            xp=0,
            is_bot=is_bot,
            team=[],
        )
        self.session.add(player)
        await self.session.flush()
        return player

    async def get_player_by_telegram_id(self, telegram_user_id: int) -> Player | None:
        stmt = select(Player).where(Player.telegram_user_id == telegram_user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_owned_unit(self, player_id: int, unit_id: str) -> PlayerUnit | None:
        stmt = select(PlayerUnit).where(PlayerUnit.player_id == player_id, PlayerUnit.unit_id == unit_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_owned_units(self, player_id: int) -> list[PlayerUnit]:
        stmt = (
            select(PlayerUnit)
            .where(PlayerUnit.player_id == player_id, PlayerUnit.count > 0)
            .options(selectinload(PlayerUnit.unit))
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def grant_unit(self, player_id: int, unit_id: str, count: int = 1, level: int | None = None) -> PlayerUnit:
        """Give a player copies of a unit, creating the collection entry if needed."""
        owned = await self.get_owned_unit(player_id, unit_id)
        if owned is None:
            owned = PlayerUnit(player_id=player_id, unit_id=unit_id, count=0, level=0, xp=0)
            self.session.add(owned)

        owned.count += count
        if level is not None:
            owned.level = level
        await self.session.flush()
        return owned

    async def add_to_team(self, player: Player, query: str | None) -> TeamResult:
        """Add an owned unit to the end of the player's team."""
        unit = await self.units.find_unit(query)
        if unit is None:
            return TeamResult(success=False, message="Card not found.")

        owned = await self.get_owned_unit(player.id, unit.id)
        if owned is None or owned.count <= 0:
            return TeamResult(success=False, message="You don't own that card.")

        team = list(player.team or [])
        if unit.id in team:
            return TeamResult(success=False, message=f"{unit.name} is already in your team.")
        if len(team) >= MAX_TEAM_SIZE:
            return TeamResult(success=False, message=f"Team is full ({MAX_TEAM_SIZE} cards). Remove a card first.")

        team.append(unit.id)
        player.team = team
        await self.session.flush()
        return TeamResult(success=True, message=f"{unit.name} added to your team.", team=team)

    async def remove_from_team(self, player: Player, query: str | None) -> TeamResult:
        """Remove a unit from the player's team."""
        unit = await self.units.find_unit(query)
        if unit is None:
            return TeamResult(success=False, message="Card not found.")

        team = list(player.team or [])
        if unit.id not in team:
            return TeamResult(success=False, message=f"{unit.name} is not in your team.")

        team.remove(unit.id)
        player.team = team
        await self.session.flush()
        return TeamResult(success=True, message=f"{unit.name} removed from your team.", team=team)

    async def auto_team(self, player: Player) -> TeamResult:
        """Set the team to the player's strongest owned units by level-scaled power."""
        owned = await self.get_owned_units(player.id)
        if not owned:
            return TeamResult(success=False, message="You have no cards to build a team.")

        ranked = sorted(owned, key=lambda entry: scale_stat(entry.unit.power, entry.level), reverse=True)
        team = [entry.unit_id for entry in ranked[:MAX_TEAM_SIZE]]
        player.team = team
        await self.session.flush()
        return TeamResult(success=True, message="Auto-team set to your strongest cards.", team=team)

    async def get_team_view(self, player: Player) -> list[TeamEntry]:
        """Get the player's team with level-scaled power, skipping unknown units."""
        entries: list[TeamEntry] = []
        for unit_id in player.team or []:
            unit = await self.units.get_definition(unit_id)
            if unit is None:
                continue
            owned = await self.get_owned_unit(player.id, unit_id)
            level = owned.level if owned else 0
            entries.append(
                TeamEntry(
                    unit_id=unit.id,
                    name=unit.name,
                    rank=unit.rank,
                    level=level,
                    power=scale_stat(unit.power, level),
                )
            )
        return entries
