"""Bot application setup and dispatcher."""

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from duel_arena.config import get_settings
from duel_arena.engine import DuelEngine, DuelRules


def create_bot() -> Bot:
    """Create and configure the Telegram bot instance."""
    settings = get_settings()
    return Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )


def create_duel_engine(bot: Bot) -> DuelEngine:
    """Create the duel engine backed by the database and rendering to Telegram."""
    from duel_arena.bot.presenter import TelegramDuelPresenter
    from duel_arena.db.engine import async_session_factory
    from duel_arena.services.repository import SqlDuelRepository

    return DuelEngine(
        repository=SqlDuelRepository(async_session_factory),
        rules=DuelRules.from_settings(get_settings()),
        presenter=TelegramDuelPresenter(bot),
    )


def create_dispatcher(bot: Bot) -> Dispatcher:
    """Create and configure the dispatcher with routers.

    The duel engine is shared with handlers through the dispatcher's
    workflow data as ``duel_engine``.
    """
    from duel_arena.bot.handlers import admin_router, duels_router, team_router

    engine = create_duel_engine(bot)

    dp = Dispatcher()
    dp["duel_engine"] = engine
    dp.shutdown.register(engine.shutdown)

    dp.include_router(admin_router)
    dp.include_router(duels_router)
    dp.include_router(team_router)
    return dp
