"""Handler decorators and Telegram input helpers."""

import functools
import logging
from typing import Any, Callable

from aiogram import types
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import CallbackQuery, Message

logger = logging.getLogger("duel_arena.bot")

GENERIC_ERROR = "Something went wrong. Please try again later."

Update = Message | CallbackQuery


def _find_update(args: tuple[Any, ...]) -> Update | None:
    for arg in args:
        if isinstance(arg, (Message, CallbackQuery)):
            return arg
    return None


def _origin(update: Update | None) -> tuple[int | None, str | None, int | None]:
    """Get (user id, username, chat id) of an update."""
    if update is None or update.from_user is None:
        user_id, username = None, None
    else:
        user_id, username = update.from_user.id, update.from_user.username

    if isinstance(update, Message):
        chat_id = update.chat.id
    elif isinstance(update, CallbackQuery) and update.message is not None:
        chat_id = update.message.chat.id
    else:
        chat_id = None
    return user_id, username, chat_id


def _is_stale_query(error: TelegramBadRequest) -> bool:
    # Buttons pressed long after they were sent, e.g. across a restart
    return "query is too old" in str(error).lower()


async def _report_failure(update: Update | None) -> None:
    try:
        if isinstance(update, Message):
            await update.reply(GENERIC_ERROR)
        elif isinstance(update, CallbackQuery):
            await update.answer(GENERIC_ERROR, show_alert=True)
    except TelegramBadRequest as e:
        if not _is_stale_query(e):
            logger.exception("Failed to send error message to user")
    except Exception:
        logger.exception("Failed to send error message to user")


def safe_handler(func: Callable) -> Callable:
    """Decorator that turns handler exceptions into a log entry and a generic reply.

    Stale callback queries are dropped silently.
    """

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        update = _find_update(args)
        try:
            return await func(*args, **kwargs)
        except TelegramBadRequest as e:
            if _is_stale_query(e):
                logger.debug(f"Ignoring stale callback query in {func.__name__}")
                return None
            logger.exception(f"Telegram rejected a request in {func.__name__}: {e}")
        except Exception as e:
            user_id, _, chat_id = _origin(update)
            logger.exception(
                f"Handler error in {func.__name__}: {e}",
                extra={"user_id": user_id, "chat_id": chat_id, "handler": func.__name__},
            )

        await _report_failure(update)
        return None

    return wrapper


def _logged(kind: str, name: str, update_type: type) -> Callable:
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            update = _find_update(args)
            if isinstance(update, update_type):
                user_id, username, chat_id = _origin(update)
                logger.info(f"{kind} {name} from user {user_id} (@{username}) in chat {chat_id}")
            return await func(*args, **kwargs)

        return wrapper

    return decorator


def log_command(command: str) -> Callable:
    """Decorator to log command usage (e.g., "/duel", "/team")."""
    return _logged("Command", command, Message)


def log_callback(action: str) -> Callable:
    """Decorator to log button presses (e.g., "accept_duel")."""
    return _logged("Callback", action, CallbackQuery)


def validate_message_user(message: Message) -> bool:
    return message.from_user is not None


def validate_callback_message(callback: CallbackQuery) -> bool:
    """Check the callback still has a message and data to act on."""
    return callback.message is not None and callback.data is not None


def validate_reply_message(message: Message) -> bool:
    """Check the message replies to another user's message."""
    reply = message.reply_to_message
    return reply is not None and reply.from_user is not None


def get_display_name(user: types.User | None) -> str:
    """Name to show for a Telegram user: full name, then @username, then the id."""
    if user is None:
        return "Unknown"
    if user.full_name:
        return user.full_name
    if user.username:
        return f"@{user.username}"
    return f"User {user.id}"
