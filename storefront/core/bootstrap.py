"""Application bootstrap wiring bot, dispatcher, storage and services."""
from __future__ import annotations

from dataclasses import dataclass

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.base import BaseStorage
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.fsm.storage.redis import RedisStorage

from logging_config import logger
from storefront.integrations.kv_store import RedisKeyValueStore
from storefront.integrations.order_notifier import OrderNotifier
from storefront.integrations.store_directory import StoreDirectory, create_supabase_client
from storefront.services.cart_service import CartRegistry
from storefront.services.checkout_service import CheckoutSessions, ReturnHandoff
from storefront.services.currency import RatesProvider

from .config import Settings
from .exceptions import ConfigurationException


@dataclass
class Application:
    bot: Bot
    dispatcher: Dispatcher
    carts: CartRegistry
    sessions: CheckoutSessions
    directory: StoreDirectory
    notifier: OrderNotifier

    async def close(self) -> None:
        self.sessions.close()
        self.carts.close()
        await self.notifier.close()
        await self.bot.session.close()


def build_fsm_storage(redis_url: str | None) -> BaseStorage:
    if redis_url:
        try:
            storage = RedisStorage.from_url(redis_url)
            logger.info("Using Redis for FSM storage")
            return storage
        except Exception as e:
            logger.warning(f"Failed to initialize Redis storage, using MemoryStorage: {e}")
    else:
        logger.info("REDIS_URL not set, FSM states will be lost on restart")
    return MemoryStorage()


def build_application(settings: Settings) -> Application:
    """Create bot runtime components from configuration."""
    if not settings.supabase.enabled:
        raise ConfigurationException("SUPABASE_URL and SUPABASE_ANON_KEY must be set")

    bot = Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    dispatcher = Dispatcher(storage=build_fsm_storage(settings.redis_url))

    persistence = RedisKeyValueStore(settings.redis_url)
    carts = CartRegistry(
        persistence,
        add_delay=settings.cart.add_delay,
        recently_added_window=settings.cart.recently_added_seconds,
        idle_seconds=settings.cart.idle_seconds,
    )
    directory = StoreDirectory(
        create_supabase_client(settings.supabase.url, settings.supabase.anon_key)
    )
    notifier = OrderNotifier(settings.supabase.notify_order_url, settings.supabase.anon_key)
    sessions = CheckoutSessions(
        carts,
        directory,
        notifier,
        ReturnHandoff(persistence),
        config=settings.checkout,
        rates=RatesProvider(directory),
        landing_url=settings.landing_url,
        storefront_url=settings.storefront_url,
    )

    return Application(
        bot=bot,
        dispatcher=dispatcher,
        carts=carts,
        sessions=sessions,
        directory=directory,
        notifier=notifier,
    )
