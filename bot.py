"""
Storefront Telegram Bot - Main Module

Shopper cart and checkout for a multi-store marketplace.
Architecture: aiogram 3.x routers over the storefront service layer.
"""
from __future__ import annotations

import asyncio
import signal
import sys
from types import FrameType

from aiogram import F, Router, types

from handlers.customer.cart import router as cart_router
from handlers.customer.cart import setup_dependencies as setup_cart_dependencies
from localization import get_text
from logging_config import logger
from storefront.core.bootstrap import Application, build_application
from storefront.core.config import Settings, load_settings
from storefront.core.constants import DEFAULT_LANGUAGE
from storefront.core.sentry_integration import init_sentry

# =============================================================================
# FALLBACK ROUTER (CATCH-ALL HANDLERS)
# =============================================================================

fallback_router = Router(name="fallback")


@fallback_router.callback_query()
async def fallback_callback_handler(callback: types.CallbackQuery) -> None:
    """Stale buttons from old messages end up here."""
    logger.info(f"Unhandled callback data: {callback.data}")
    await callback.answer()


@fallback_router.message(F.text)
async def fallback_text_handler(message: types.Message) -> None:
    await message.answer(get_text(DEFAULT_LANGUAGE, "fallback_hint"))


# =============================================================================
# SETUP
# =============================================================================


def _init_sentry(settings: Settings) -> bool:
    """Initialize Sentry for error tracking."""
    enabled = init_sentry(
        settings.sentry_dsn,
        environment=settings.environment,
        enable_logging=True,
        sample_rate=1.0,
        traces_sample_rate=0.1,
    )
    if enabled:
        logger.info("Sentry initialized successfully")
    return enabled


def _register_handlers(app: Application, settings: Settings) -> None:
    setup_cart_dependencies(app.bot, app.carts, app.sessions, app.directory, settings)
    app.dispatcher.include_router(cart_router)
    # Must be last
    app.dispatcher.include_router(fallback_router)


# =============================================================================
# SIGNAL HANDLING
# =============================================================================

shutdown_event = asyncio.Event()


def signal_handler(sig: int, frame: FrameType | None) -> None:
    """Handle termination signals."""
    logger.info(f"Received signal {sig}, initiating shutdown...")
    shutdown_event.set()


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


async def main() -> None:
    """Main bot entry point."""
    settings = load_settings()
    _init_sentry(settings)

    app = build_application(settings)
    _register_handlers(app, settings)

    logger.info("=" * 50)
    logger.info("Starting Storefront Bot")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Payment window: {settings.checkout.countdown_seconds}s")
    logger.info("=" * 50)

    try:
        await app.bot.delete_webhook(drop_pending_updates=True)
    except Exception as e:
        logger.warning(f"Failed to delete webhook: {e}")

    polling_task = asyncio.create_task(
        app.dispatcher.start_polling(
            app.bot,
            allowed_updates=app.dispatcher.resolve_used_update_types(),
            handle_signals=False,
        )
    )

    shutdown_task = asyncio.create_task(shutdown_event.wait())
    try:
        await asyncio.wait([polling_task, shutdown_task], return_when=asyncio.FIRST_COMPLETED)
        logger.info("Shutting down...")
    finally:
        for task in (shutdown_task, polling_task):
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await app.close()
        logger.info("Bot stopped")


if __name__ == "__main__":
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    except Exception as e:
        logger.error(f"Bot crashed: {e}")
        sys.exit(1)
