"""Admin handlers - card grants for bot owners."""

import html

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from ...config import get_settings
from ...db.engine import async_session_factory
from ...services.players import PlayerService
from ..utils import get_display_name, log_command, safe_handler, validate_message_user, validate_reply_message

router = Router(name="admin")


def is_admin(user_id: int) -> bool:
    """Check if user is one of the configured bot owners."""
    return user_id in get_settings().get_admin_user_ids()


@router.message(Command("give"))
@safe_handler
@log_command("/give")
async def cmd_give(message: Message, command: CommandObject) -> None:
    """Handle /give command - grant a card to the author of the replied message.

    Usage: /give <card> (as a reply)
    """
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    if not is_admin(message.from_user.id):
        await message.answer("Only bot owners can use this command.")
        return

    if not validate_reply_message(message) or not command.args:
        await message.answer("<b>Usage:</b> reply to a user with /give &lt;card&gt;")
        return

    target = message.reply_to_message.from_user

    async with async_session_factory() as session:
        service = PlayerService(session)
        unit = await service.units.find_unit(command.args.strip())
        if unit is None:
            await message.answer(f"❌ Card not found for query: {html.escape(command.args.strip())}")
            return

        player = await service.get_or_create_player(
            telegram_user_id=target.id,
            display_name=get_display_name(target),
            is_bot=target.is_bot,
        )
        owned = await service.grant_unit(player.id, unit.id)
        await session.commit()

    await message.answer(
        f"🎁 Gave <b>{html.escape(unit.name)}</b> to {html.escape(player.display_name)} (now owns {owned.count})."
    )
