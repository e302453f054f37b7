"""Duel handlers - /duel, accept/decline, unit/attack/target selection."""

import html
import logging

from aiogram import F, Router
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from ...db.engine import async_session_factory
from ...db.models.enums import ChallengeRejection
from ...engine import DuelEngine
from ...services.duels import DuelService
from ...services.players import PlayerService
from ..presenter import ACCEPT_DUEL, DECISION_PREFIX, DECLINE_DUEL, get_challenge_keyboard
from ..utils import (
    get_display_name,
    log_callback,
    log_command,
    safe_handler,
    validate_callback_message,
    validate_message_user,
    validate_reply_message,
)

logger = logging.getLogger(__name__)

router = Router(name="duels")


async def _resolve_player_id(user) -> int:
    """Get or create the player for a Telegram user."""
    async with async_session_factory() as session:
        player = await PlayerService(session).get_or_create_player(
            telegram_user_id=user.id,
            display_name=get_display_name(user),
            is_bot=user.is_bot,
        )
        await session.commit()
        return player.id


@router.message(Command("duel"))
@safe_handler
@log_command("/duel")
async def cmd_duel(message: Message, duel_engine: DuelEngine) -> None:
    """Handle /duel command - challenge the author of the replied message."""
    if not validate_message_user(message):
        await message.answer("Could not identify user.")
        return

    if not validate_reply_message(message):
        await message.answer("Reply to a user's message with /duel to challenge them to a duel!")
        return

    challenger = message.from_user
    challenged = message.reply_to_message.from_user

    challenger_id = await _resolve_player_id(challenger)
    challenged_id = await _resolve_player_id(challenged)

    service = DuelService(duel_engine)
    result = await service.create_challenge(challenger_id, challenged_id, chat_id=message.chat.id)
    if not result.success:
        await message.answer(f"❌ {html.escape(result.message)}")
        return

    challenger_name = html.escape(get_display_name(challenger))
    challenged_name = html.escape(get_display_name(challenged))
    sent = await message.answer(
        f"⚔️ <b>{challenger_name}</b> challenges <b>{challenged_name}</b> to a duel!\n\n"
        f"{challenged_name}, do you accept?",
        reply_markup=get_challenge_keyboard(result.challenge.challenge_id),
    )
    service.attach_challenge_message(result.challenge.challenge_id, sent.message_id)


@router.callback_query(F.data.startswith(ACCEPT_DUEL))
@safe_handler
@log_callback("accept_duel")
async def callback_accept_duel(callback: CallbackQuery, duel_engine: DuelEngine) -> None:
    """Handle accept duel button. The duel's driver takes over the message."""
    if not validate_callback_message(callback):
        return

    challenge_id = callback.data.removeprefix(ACCEPT_DUEL)
    player_id = await _resolve_player_id(callback.from_user)

    result = await DuelService(duel_engine).accept_challenge(challenge_id, player_id)
    if not result.success:
        # ALREADY_IN_DUEL leaves the challenge open, so its buttons stay
        if result.reason in (ChallengeRejection.NO_ROSTER, ChallengeRejection.THROTTLE_EXCEEDED):
            await callback.message.edit_text(f"❌ {html.escape(result.message)}", reply_markup=None)
        await callback.answer(result.message, show_alert=True)
        return

    await callback.answer("Duel accepted!")


@router.callback_query(F.data.startswith(DECLINE_DUEL))
@safe_handler
@log_callback("decline_duel")
async def callback_decline_duel(callback: CallbackQuery, duel_engine: DuelEngine) -> None:
    """Handle decline duel button."""
    if not validate_callback_message(callback):
        return

    challenge_id = callback.data.removeprefix(DECLINE_DUEL)
    player_id = await _resolve_player_id(callback.from_user)

    result = await DuelService(duel_engine).decline_challenge(challenge_id, player_id)
    if not result.success:
        await callback.answer(result.message, show_alert=True)
        return

    await callback.message.edit_text(
        f"❌ {html.escape(get_display_name(callback.from_user))} declined the duel challenge.",
        reply_markup=None,
    )
    await callback.answer("Duel declined.")


@router.callback_query(F.data.startswith(DECISION_PREFIX))
@safe_handler
@log_callback("duel_decision")
async def callback_duel_decision(callback: CallbackQuery, duel_engine: DuelEngine) -> None:
    """Handle unit, attack and target buttons."""
    if not validate_callback_message(callback):
        return

    # duel_pick:{session_id}:{prompt_id}:{kind}:{value}
    parts = callback.data.removeprefix(DECISION_PREFIX).split(":")
    if len(parts) != 4 or not parts[1].isdigit():
        await callback.answer()
        return

    session_id, prompt_id, kind, value = parts

    async with async_session_factory() as session:
        player = await PlayerService(session).get_player_by_telegram_id(callback.from_user.id)
    if player is None:
        await callback.answer("You are not in this duel!", show_alert=True)
        return

    result = await DuelService(duel_engine).submit_decision(
        session_id, player.id, kind, value, prompt_id=int(prompt_id)
    )
    if not result.success:
        await callback.answer(result.message or "That option is no longer available.", show_alert=True)
        return

    await callback.answer(result.message or "")
