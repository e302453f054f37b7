"""Telegram rendering of duels - prompts, attack results and settlement."""

import html
import logging

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from ..db.models.enums import AttackOutcome, DuelPhase
from ..engine.presenter import DuelPresenter
from ..engine.types import AttackResult, PendingChallenge, SessionView, SettlementReport, SideView

logger = logging.getLogger("duel_arena.bot.presenter")

# Callback data prefixes
ACCEPT_DUEL = "duel_accept:"
DECLINE_DUEL = "duel_decline:"
DECISION_PREFIX = "duel_pick:"

PHASE_DECISIONS = {
    DuelPhase.AWAITING_UNIT: "unit",
    DuelPhase.AWAITING_ATTACK: "attack",
    DuelPhase.AWAITING_TARGET: "target",
}

HP_BAR_LENGTH = 10


def hp_bar(current: int, maximum: int, length: int = HP_BAR_LENGTH) -> str:
    """Render health as a fixed-width bar."""
    if maximum <= 0:
        return "░" * length
    filled = round(length * max(0, current) / maximum)
    filled = min(length, filled)
    return "█" * filled + "░" * (length - filled)


def get_challenge_keyboard(challenge_id: str) -> InlineKeyboardMarkup:
    """Create accept/decline keyboard for a duel challenge."""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                InlineKeyboardButton(text="⚔️ Accept", callback_data=f"{ACCEPT_DUEL}{challenge_id}"),
                InlineKeyboardButton(text="❌ Decline", callback_data=f"{DECLINE_DUEL}{challenge_id}"),
            ]
        ]
    )


def get_choice_keyboard(view: SessionView) -> InlineKeyboardMarkup | None:
    """Create the keyboard for the current prompt.

    Telegram has no disabled buttons, so knocked-out units are marked and the
    engine answers with a notice when one is pressed.
    """
    kind = PHASE_DECISIONS.get(view.phase)
    if kind is None or not view.choices:
        return None

    rows = []
    for choice in view.choices:
        label = choice.label if choice.enabled else f"💀 {choice.label}"
        rows.append(
            [
                InlineKeyboardButton(
                    text=label,
                    callback_data=f"{DECISION_PREFIX}{view.session_id}:{view.prompt_id}:{kind}:{choice.value}",
                )
            ]
        )
    return InlineKeyboardMarkup(inline_keyboard=rows)


def format_side(side: SideView) -> str:
    lines = [f"<b>{html.escape(side.display_name)}</b>"]
    for index, unit in enumerate(side.units):
        marker = "💀" if unit.current_health <= 0 else ("▶️" if index == side.active_index else "•")
        lines.append(
            f"{marker} {html.escape(unit.name)} {hp_bar(unit.current_health, unit.max_health)} "
            f"{unit.current_health}/{unit.max_health}"
        )
    return "\n".join(lines)


def format_prompt(view: SessionView) -> str:
    """Format the board and the question for the turn owner."""
    attacker = view.attacker
    name = html.escape(attacker.display_name)
    lines = [
        f"<b>⚔️ Duel - Turn {view.turn_number}</b>\n",
        format_side(view.challenger),
        "",
        format_side(view.challenged),
        "",
    ]

    if view.phase == DuelPhase.AWAITING_UNIT:
        lines.append(f"{name}, choose your character!")
    elif view.phase == DuelPhase.AWAITING_ATTACK and view.selected_unit is not None:
        unit = attacker.units[view.selected_unit]
        lines.append(f"{name}, choose an attack for <b>{html.escape(unit.name)}</b>!")
    elif view.phase == DuelPhase.AWAITING_TARGET:
        lines.append(f"{name}, choose a target!")

    return "\n".join(lines)


def format_attack(view: SessionView, result: AttackResult) -> str:
    """Format one resolved attack."""
    attacker = view.challenger if view.challenger.owner_id == result.attacker_id else view.challenged
    defender = view.challenged if attacker is view.challenger else view.challenger
    unit = attacker.units[result.attacker_index]
    target = defender.units[result.target_index]
    unit_name = html.escape(unit.name)
    target_name = html.escape(target.name)

    if result.outcome == AttackOutcome.MISS:
        text = f"💨 {unit_name} missed {target_name}!"
    elif result.outcome == AttackOutcome.SPECIAL and unit.special is not None:
        text = f"✨ {unit_name} used <b>{html.escape(unit.special.name)}</b> on {target_name} for {result.damage} damage!"
    else:
        text = f"⚔️ {unit_name} hit {target_name} for {result.damage} damage."

    if result.knocked_out:
        text += f"\n💀 {target_name} was knocked out!"
    return text


def format_settlement(report: SettlementReport) -> str:
    """Format the end-of-duel summary."""
    lines = [
        f"🏆 <b>{html.escape(report.winner_name)}</b> defeated {html.escape(report.loser_name)}!",
        f"💰 +{report.bounty} coins",
        f"⭐ +{report.xp_gained} XP",
    ]
    if report.xp_gained == 0 and report.is_complete:
        lines.append("<i>Daily duel XP cap reached.</i>")
    return "\n".join(lines)


class TelegramDuelPresenter(DuelPresenter):
    """Renders duels into a single chat message that is edited as the duel progresses.

    Telegram errors are logged and swallowed.
    """

    def __init__(self, bot: Bot) -> None:
        self.bot = bot

    async def show_prompt(self, view: SessionView) -> int | None:
        text = format_prompt(view)
        markup = get_choice_keyboard(view)

        if view.chat_id is None:
            return None

        if view.message_id is not None:
            try:
                await self.bot.edit_message_text(
                    text,
                    chat_id=view.chat_id,
                    message_id=view.message_id,
                    reply_markup=markup,
                )
                return view.message_id
            except TelegramBadRequest as e:
                # Deleted or too old to edit, post a fresh one
                logger.debug(f"Could not edit duel message {view.message_id}: {e}")

        try:
            message = await self.bot.send_message(view.chat_id, text, reply_markup=markup)
        except TelegramAPIError as e:
            logger.warning(f"Failed to post prompt for duel {view.session_id}: {e}")
            return None
        return message.message_id

    async def withdraw_prompt(self, view: SessionView) -> None:
        if view.chat_id is None:
            return
        name = html.escape(view.attacker.display_name)
        try:
            if view.message_id is not None:
                await self.bot.edit_message_reply_markup(
                    chat_id=view.chat_id, message_id=view.message_id, reply_markup=None
                )
            await self.bot.send_message(view.chat_id, f"⏰ {name} took too long. Turn passes!")
        except TelegramAPIError as e:
            logger.warning(f"Failed to withdraw prompt for duel {view.session_id}: {e}")

    async def show_attack(self, view: SessionView, result: AttackResult) -> None:
        if view.chat_id is None:
            return
        text = f"{format_prompt(view)}\n\n{format_attack(view, result)}"
        try:
            if view.message_id is not None:
                await self.bot.edit_message_text(
                    text, chat_id=view.chat_id, message_id=view.message_id, reply_markup=None
                )
            else:
                await self.bot.send_message(view.chat_id, text)
        except TelegramAPIError as e:
            logger.warning(f"Failed to show attack for duel {view.session_id}: {e}")

    async def show_settlement(self, view: SessionView, report: SettlementReport) -> None:
        if view.chat_id is None:
            return
        try:
            await self.bot.send_message(view.chat_id, format_settlement(report))
        except TelegramAPIError as e:
            logger.warning(f"Failed to announce result of duel {view.session_id}: {e}")

    async def challenge_expired(self, challenge: PendingChallenge) -> None:
        if challenge.chat_id is None:
            return
        text = f"⌛ {html.escape(challenge.opponent_name)} didn't answer in time. Duel request expired."
        try:
            if challenge.message_id is not None:
                await self.bot.edit_message_text(
                    text, chat_id=challenge.chat_id, message_id=challenge.message_id, reply_markup=None
                )
            else:
                await self.bot.send_message(challenge.chat_id, text)
        except TelegramAPIError as e:
            logger.warning(f"Failed to expire challenge {challenge.challenge_id}: {e}")
