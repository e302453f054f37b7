"""Entry point for running the Duel Arena bot."""

import asyncio
import logging
import sys

from duel_arena.bot.app import create_bot, create_dispatcher
from duel_arena.config import get_settings


async def sync_unit_catalog(path: str) -> None:
    """Load unit definitions from a JSON file into the catalog table."""
    from duel_arena.db.engine import async_session_factory
    from duel_arena.services.units import UnitService, read_catalog

    entries = read_catalog(path)
    async with async_session_factory() as session:
        count = await UnitService(session).upsert_definitions(entries)
        await session.commit()
    logging.info(f"Synced {count} unit definitions from {path}")


async def main() -> None:
    """Start the bot."""
    settings = get_settings()

    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if settings.unit_catalog_path:
        await sync_unit_catalog(settings.unit_catalog_path)

    bot = create_bot()
    dp = create_dispatcher(bot)

    logging.info("Starting Duel Arena bot...")

    try:
        await dp.start_polling(bot)
    finally:
        await bot.session.close()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    run()
