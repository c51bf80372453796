"""
FanCard: fan-card issuance, registration and gate verification bot.
Entry point: creates the bot and the verify web app, wires routers + middleware,
handles graceful shutdown.
"""
import asyncio
import logging
import signal
import sys

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import ErrorEvent
from aiohttp import web
from pydantic import ValidationError

from fancard.config import Settings, get_settings
from fancard.middlewares import (
    DatabaseMiddleware, RateLimitMiddleware, RoleMiddleware, ScanReleaseMiddleware,
)
from fancard.models import Database
from fancard.services import ChangeFeed, LiveViews, ScanSessionRegistry
from fancard.web import create_verify_app

# ── Handlers ──────────────────────────────────────────────────────────────────
from fancard.handlers.common import router as common_router
from fancard.handlers.verify import router as verify_router
from fancard.handlers.registration import router as registration_router
from fancard.handlers.scanner import router as scanner_router
from fancard.handlers.admin.panel import router as admin_panel_router
from fancard.handlers.admin.codes import router as admin_codes_router
from fancard.handlers.admin.export import router as admin_export_router
from fancard.handlers.fallback import router as fallback_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


def load_settings() -> Settings:
    try:
        return get_settings()
    except ValidationError as e:
        missing = ", ".join(str(err["loc"][0]) for err in e.errors())
        logger.critical(
            "❌ Configuration is incomplete: %s\n"
            "   → Set BOT_TOKEN and DATABASE_URL (e.g. in .env)",
            missing,
        )
        sys.exit(1)


async def open_database(settings: Settings, feed: ChangeFeed) -> Database:
    """Create the engine and all tables; exit if the store is unreachable."""
    database = Database(settings.async_database_url, feed=feed)
    try:
        await database.create_tables()
        logger.info("Database tables ready.")
    except Exception as e:
        logger.critical(
            "❌ Cannot connect to database!\n"
            "   URL: %s\n"
            "   Error: %s\n\n"
            "   → Locally: start PostgreSQL or use SQLite "
            "(DATABASE_URL=sqlite+aiosqlite:///./fancard.db)",
            settings.DATABASE_URL.split("@")[-1],   # hide credentials in log
            e,
        )
        await database.close()
        sys.exit(1)
    return database


def build_dispatcher(
    settings: Settings,
    database: Database,
    feed: ChangeFeed,
    live_views: LiveViews,
    scan_registry: ScanSessionRegistry,
) -> Dispatcher:
    dp = Dispatcher(storage=MemoryStorage())

    # Injected into every handler by name
    dp["settings"]      = settings
    dp["database"]      = database
    dp["feed"]          = feed
    dp["live_views"]    = live_views
    dp["scan_registry"] = scan_registry

    # ── Global error handler — ensures callbacks are always answered ──────────
    @dp.errors()
    async def handle_error(event: ErrorEvent) -> None:
        logger.exception("Unhandled error: %s", event.exception)
        update = event.update
        if update.callback_query:
            try:
                await update.callback_query.answer(
                    "⚠️ Произошла ошибка. Попробуйте снова.", show_alert=True
                )
            except Exception as e:
                logger.debug("Could not answer callback after error: %s", e)

    # ── Global middlewares ────────────────────────────────────────────────────
    dp.update.middleware(DatabaseMiddleware(database.session_factory))
    dp.update.middleware(RoleMiddleware(settings.admin_ids_list, settings.staff_ids_list))
    dp.update.middleware(RateLimitMiddleware())
    dp.update.middleware(ScanReleaseMiddleware())

    # ── Routers — order matters for handler priority ──────────────────────────
    dp.include_router(common_router)
    dp.include_router(verify_router)

    # Staff routers
    dp.include_router(registration_router)
    dp.include_router(scanner_router)

    # Admin routers
    dp.include_router(admin_panel_router)
    dp.include_router(admin_codes_router)
    dp.include_router(admin_export_router)

    # !! Must be last: catches any callback not handled above !!
    dp.include_router(fallback_router)

    return dp


async def start_web(database: Database, settings: Settings) -> web.AppRunner:
    runner = web.AppRunner(create_verify_app(database, settings))
    await runner.setup()
    site = web.TCPSite(runner, settings.WEB_HOST, settings.WEB_PORT)
    await site.start()
    logger.info("Verify page on %s/verify", settings.verify_base_url)
    return runner


async def main() -> None:
    logger.info("Starting FanCard bot…")
    settings = load_settings()

    feed          = ChangeFeed()
    database      = await open_database(settings, feed)
    live_views    = LiveViews(feed, settings.FEED_DEBOUNCE_SECONDS)
    scan_registry = ScanSessionRegistry(database.session_factory, settings.SCAN_BUFFER_SIZE)

    bot = Bot(
        token=settings.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    dp = build_dispatcher(settings, database, feed, live_views, scan_registry)
    runner = None

    # ── Graceful shutdown on SIGTERM (Docker) ─────────────────────────────────
    loop = asyncio.get_running_loop()
    polling: asyncio.Task | None = None

    def _handle_signal() -> None:
        logger.info("Received shutdown signal, stopping…")
        if polling is not None:
            polling.cancel()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _handle_signal)
        except NotImplementedError:
            # Windows does not support add_signal_handler
            pass

    try:
        runner = await start_web(database, settings)
        logger.info("Bot is running. Press Ctrl+C to stop.")
        polling = asyncio.create_task(
            dp.start_polling(
                bot,
                allowed_updates=dp.resolve_used_update_types(),
                handle_signals=False,
            )
        )
        try:
            await polling
        except asyncio.CancelledError:
            pass
    finally:
        logger.info("Shutting down…")
        await scan_registry.close_all()
        await live_views.close_all()
        if runner is not None:
            await runner.cleanup()
        await bot.session.close()
        await database.close()
        logger.info("Shutdown complete.")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
