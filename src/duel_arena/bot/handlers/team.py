"""Team handlers - /team view, add, remove, auto."""

import html

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from ...db.engine import async_session_factory
from ...engine.roster import MAX_TEAM_SIZE
from ...services.players import PlayerService, TeamEntry
from ..utils import get_display_name, log_command, safe_handler, validate_message_user

router = Router(name="team")

TEAM_USAGE = (
    "<b>Usage:</b>\n"
    "/team - show your team\n"
    "/team add &lt;card&gt; - add a card you own\n"
    "/team remove &lt;card&gt; - remove a card\n"
    "/team auto - pick your strongest cards"
)


def format_team(owner_name: str, entries: list[TeamEntry]) -> str:
    """Format a team for display."""
    lines = [f"<b>{html.escape(owner_name)}'s Team</b>\n"]
    if not entries:
        lines.append("No cards in your team yet. Use /team add &lt;card&gt; or /team auto.")
        return "\n".join(lines)

    for index, entry in enumerate(entries, start=1):
        lines.append(
            f"#{index}: <b>{html.escape(entry.name)}</b> ({html.escape(entry.rank)}) "
            f"Lv.{entry.level} - Power: {entry.power}"
        )
    lines.append(f"\n<i>{len(entries)}/{MAX_TEAM_SIZE} slots used</i>")
    return "\n".join(lines)


@router.message(Command("team"))
@safe_handler
@log_command("/team")
async def cmd_team(message: Message, command: CommandObject) -> None:
    """Handle /team command and its sub-commands."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    args = (command.args or "").split(maxsplit=1)
    subcommand = args[0].lower() if args else "view"
    query = args[1].strip() if len(args) > 1 else None

    async with async_session_factory() as session:
        service = PlayerService(session)
        player = await service.get_or_create_player(
            telegram_user_id=message.from_user.id,
            display_name=get_display_name(message.from_user),
        )

        if subcommand == "view":
            entries = await service.get_team_view(player)
            await session.commit()
            await message.answer(format_team(player.display_name, entries))
            return

        if subcommand in ("add", "remove") and not query:
            await message.answer(f"Usage: /team {subcommand} &lt;card&gt;")
            return

        if subcommand == "add":
            result = await service.add_to_team(player, query)
        elif subcommand == "remove":
            result = await service.remove_from_team(player, query)
        elif subcommand == "auto":
            result = await service.auto_team(player)
        else:
            await message.answer(TEAM_USAGE)
            return

        if not result.success:
            await session.rollback()
            await message.answer(f"❌ {html.escape(result.message)}")
            return

        await session.commit()
        await message.answer(f"✅ {html.escape(result.message)}")
