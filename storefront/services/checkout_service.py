"""Checkout orchestration: payment window, submission and success redirect.

`CheckoutFlow` wraps the pure transitions from `storefront.domain.checkout`
and owns everything with a lifetime: the countdown task, the notification
call and the post-success redirect task. One flow exists per shopper and is
kept in `CheckoutSessions`.
"""
from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from decimal import Decimal

from logging_config import logger
from storefront.core.config import CheckoutConfig
from storefront.core.constants import RETURN_HANDOFF_KEY, RETURN_HANDOFF_TTL_SECONDS
from storefront.core.exceptions import NotificationDeliveryException, StorefrontException
from storefront.core.sentry_integration import add_breadcrumb, capture_exception
from storefront.domain import checkout as fsm
from storefront.domain.checkout import CheckoutPhase, CheckoutState, OrderForm, OrderIntent
from storefront.domain.payment import PaymentMethod, StoreProfile
from storefront.integrations.kv_store import KeyValueStore
from storefront.services.cart_service import CartStore
from storefront.services.currency import RatesProvider, payment_amount
from storefront.services.retry import RetryOutcome, retry_with_backoff

FlowCallback = Callable[["CheckoutFlow"], Awaitable[None]]
FinishedCallback = Callable[["CheckoutFlow"], None]
RedirectCallback = Callable[["CheckoutFlow", str], Awaitable[None]]


class ReturnHandoff:
    """Remembers which store page to return to after a successful order."""

    def __init__(self, store: KeyValueStore, ttl: int = RETURN_HANDOFF_TTL_SECONDS):
        self._store = store
        self._ttl = ttl

    @staticmethod
    def _key(owner: str) -> str:
        return f"{RETURN_HANDOFF_KEY}:{owner}"

    def save(self, owner: str, store_username: str) -> None:
        self._store.set(self._key(owner), store_username, ttl=self._ttl)

    def consume(self, owner: str) -> str | None:
        key = self._key(owner)
        value = self._store.get(key)
        self._store.delete(key)
        return str(value) if value else None


@dataclass(frozen=True, slots=True)
class SummaryLine:
    name: str
    quantity: int
    price: Decimal
    subtotal: Decimal


@dataclass(frozen=True, slots=True)
class CheckoutSummary:
    store_name: str
    lines: tuple[SummaryLine, ...]
    total: Decimal
    payment_method: PaymentMethod | None
    payment_amount: str
    wallet_address: str | None
    form: OrderForm
    time_left: int


class CheckoutFlow:
    """Checkout for one shopper."""

    def __init__(
        self,
        owner: str,
        cart: CartStore,
        directory,
        notifier,
        handoff: ReturnHandoff,
        config: CheckoutConfig | None = None,
        rates: RatesProvider | None = None,
        landing_url: str = "/",
        storefront_url: str = "",
        on_expired: FlowCallback | None = None,
        on_redirect: RedirectCallback | None = None,
        on_finished: FinishedCallback | None = None,
        tick_interval: float = 1.0,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self.owner = str(owner)
        self.cart = cart
        self._directory = directory
        self._notifier = notifier
        self._handoff = handoff
        self._config = config or CheckoutConfig()
        self._rates = rates or RatesProvider()
        self._landing_url = landing_url
        self._storefront_url = storefront_url.rstrip("/")
        self._on_expired = on_expired
        self._on_redirect = on_redirect
        self._on_finished = on_finished
        self._tick_interval = tick_interval
        self._sleep = sleep

        self.store: StoreProfile | None = None
        self.last_notification: RetryOutcome | None = None
        self._state = CheckoutState(time_left=self._config.countdown_seconds)
        self._countdown_task: asyncio.Task | None = None
        self._redirect_task: asyncio.Task | None = None
        self._redirected = False
        self._closed = False

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def phase(self) -> CheckoutPhase:
        return self._state.phase

    @property
    def can_confirm(self) -> bool:
        return fsm.can_confirm(self._state)

    @property
    def is_submitting(self) -> bool:
        return self._state.phase == CheckoutPhase.SUBMITTING

    @property
    def closed(self) -> bool:
        return self._closed

    # ---- entry ----

    async def start(self) -> bool:
        """Load the store for the cart.

        Returns False when the cart is empty and nothing is being submitted,
        meaning checkout is not available and the caller should leave.

        Raises:
            DataFetchException: store or payment settings could not be read
        """
        if self.cart.is_empty() and self.phase != CheckoutPhase.SUBMITTING:
            return False
        self.store = self._directory.get_store(self.cart.store_id)
        self._rates.refresh()
        return True

    # ---- payment selection & countdown ----

    def select_payment(self, method: PaymentMethod) -> CheckoutState:
        if self.store is None:
            raise StorefrontException("Checkout has not been started")
        previous = self._state
        self._state = fsm.select_payment(
            self._state,
            method,
            self.store.payment_settings,
            countdown_seconds=self._config.countdown_seconds,
        )
        selected = (
            self._state is not previous
            and self._state.error is None
            and self._state.selected_payment is method
        )
        if selected:
            self._restart_countdown()
        return self._state

    def _restart_countdown(self) -> None:
        self._cancel_countdown()
        if self._closed:
            return
        self._countdown_task = asyncio.create_task(self._run_countdown())

    def _cancel_countdown(self) -> None:
        if self._countdown_task and not self._countdown_task.done():
            self._countdown_task.cancel()
        self._countdown_task = None

    async def _run_countdown(self) -> None:
        while self._state.time_left > 0:
            await asyncio.sleep(self._tick_interval)
            self._state = fsm.tick(self._state)
        logger.info(f"Payment window expired for {self.owner}")
        if self._on_expired and self.phase in (
            CheckoutPhase.AWAITING_CONFIRMATION,
            CheckoutPhase.CONFIRMING,
        ):
            try:
                await self._on_expired(self)
            except Exception as e:
                logger.error(f"Expiry callback failed for {self.owner}: {e}")

    # ---- form & confirmation gate ----

    def update_form(self, **fields: str) -> CheckoutState:
        self._state = fsm.update_form(self._state, **fields)
        return self._state

    def request_confirmation(self) -> CheckoutState:
        self._state = fsm.request_confirmation(self._state)
        return self._state

    def cancel_confirmation(self) -> CheckoutState:
        self._state = fsm.cancel_confirmation(self._state)
        return self._state

    def recover(self) -> CheckoutState:
        if self.phase == CheckoutPhase.FAILED:
            self._state = fsm.recover(self._state)
        return self._state

    def summary(self) -> CheckoutSummary:
        items = self.cart.items
        method = self._state.selected_payment
        total = self.cart.get_total()
        wallet = None
        if self.store is not None and method is not None and method.requires_reference:
            wallet = self.store.payment_settings.wallet_address(method)
        return CheckoutSummary(
            store_name=self.store.name if self.store else "",
            lines=tuple(
                SummaryLine(item.name, item.quantity, item.price, item.subtotal) for item in items
            ),
            total=total,
            payment_method=method,
            payment_amount=payment_amount(total, method, self._rates.rates),
            wallet_address=wallet,
            form=self._state.form,
            time_left=self._state.time_left,
        )

    # ---- submission ----

    async def confirm_order(self) -> CheckoutState:
        """Send the order and finish checkout.

        Notification delivery is best effort: after the retries are used up
        the order still completes and the failure is only logged.
        """
        if self.phase != CheckoutPhase.CONFIRMING:
            return self._state
        if self._state.time_left <= 0:
            self._state = fsm.cancel_confirmation(self._state)
            return self._state

        self._state = fsm.begin_submission(self._state)
        try:
            if self.store is None:
                raise StorefrontException("Store information is not loaded")
            intent = OrderIntent.build(
                self.store, self.cart.items, self._state.selected_payment, self._state.form
            )
        except StorefrontException as e:
            logger.error(f"Error processing order for {self.owner}: {e.message}")
            self._state = fsm.fail_submission(
                self._state,
                f"Failed to process order: {e.message}. "
                "Please contact support if the problem persists.",
            )
            return self._state

        self.last_notification = await self._notify(intent)

        if self.store.username:
            self._handoff.save(self.owner, self.store.username)
        self.cart.clear_cart()
        self._cancel_countdown()
        self._state = fsm.complete_submission(self._state)
        logger.info(
            f"Order sent: store={intent.store_id} owner={self.owner} "
            f"method={intent.payment_method.value} total={intent.total_amount}"
        )
        self._start_redirect_timer()
        return self._state

    async def _notify(self, intent: OrderIntent) -> RetryOutcome:
        try:
            outcome = await retry_with_backoff(
                lambda: self._notifier.send(intent),
                max_attempts=self._config.notify_max_attempts,
                base_delay=self._config.notify_retry_base_delay,
                exceptions=(NotificationDeliveryException,),
                sleep=self._sleep,
                label="Order notification",
            )
        except Exception as e:
            logger.error(f"Unexpected notification error for store {intent.store_id}: {e}")
            capture_exception(e, order={"store_id": intent.store_id})
            return RetryOutcome(succeeded=False, attempts=1, last_error=e)

        if outcome.succeeded:
            add_breadcrumb("order notification delivered", category="checkout", store=intent.store_id)
        else:
            logger.error(
                f"All notification attempts failed for store {intent.store_id}: {outcome.last_error}"
            )
            if outcome.last_error is not None:
                capture_exception(
                    outcome.last_error,
                    order={"store_id": intent.store_id, "attempts": outcome.attempts},
                )
        return outcome

    # ---- success redirect ----

    def _start_redirect_timer(self) -> None:
        self._cancel_redirect()
        if self._closed:
            return
        self._redirected = False
        self._redirect_task = asyncio.create_task(self._run_redirect())

    def _cancel_redirect(self) -> None:
        if self._redirect_task and not self._redirect_task.done():
            self._redirect_task.cancel()
        self._redirect_task = None

    async def _run_redirect(self) -> None:
        await asyncio.sleep(self._config.redirect_seconds)
        target = self._take_redirect_target()
        if target is not None and self._on_redirect:
            try:
                await self._on_redirect(self, target)
            except Exception as e:
                logger.error(f"Redirect callback failed for {self.owner}: {e}")
        # Finishing normally; close() must not cancel the running task
        self._redirect_task = None
        self._finish()

    def _take_redirect_target(self) -> str | None:
        if self._redirected:
            return None
        self._redirected = True
        username = self._handoff.consume(self.owner)
        if username and self._storefront_url:
            return f"{self._storefront_url}/{username}"
        if username:
            return f"/{username}"
        return self._landing_url

    def continue_now(self) -> str:
        """Manual navigation after success; cancels the pending auto-redirect."""
        self._cancel_redirect()
        target = self._take_redirect_target()
        self._finish()
        return target if target is not None else self._landing_url

    def _finish(self) -> None:
        if self._on_finished:
            self._on_finished(self)

    # ---- teardown ----

    def close(self) -> None:
        self._closed = True
        self._cancel_countdown()
        self._cancel_redirect()


class CheckoutSessions:
    """Builds and tracks the active `CheckoutFlow` of each shopper.

    A flow leaves the registry when the shopper navigates away, when its
    success redirect has run, or on shutdown.
    """

    def __init__(
        self,
        carts,
        directory,
        notifier,
        handoff: ReturnHandoff,
        config: CheckoutConfig | None = None,
        rates: RatesProvider | None = None,
        landing_url: str = "/",
        storefront_url: str = "",
    ):
        self._carts = carts
        self._directory = directory
        self._notifier = notifier
        self._handoff = handoff
        self._config = config or CheckoutConfig()
        self._rates = rates or RatesProvider(directory)
        self._landing_url = landing_url
        self._storefront_url = storefront_url
        self._flows: dict[str, CheckoutFlow] = {}

    def __len__(self) -> int:
        return len(self._flows)

    def get(self, owner: str | int) -> CheckoutFlow | None:
        return self._flows.get(str(owner))

    def open(
        self,
        owner: str | int,
        on_expired: FlowCallback | None = None,
        on_redirect: RedirectCallback | None = None,
    ) -> CheckoutFlow:
        """Start a fresh flow, closing whatever the shopper had open.

        A flow that is still sending its order is returned unchanged, so the
        same cart can never be submitted twice.
        """
        current = self.get(owner)
        if current is not None and current.is_submitting:
            logger.info(f"Checkout for {owner} is still submitting, keeping it")
            return current

        self.discard(owner)
        self._carts.sweep(keep=self._flows)
        flow = CheckoutFlow(
            str(owner),
            self._carts.get(owner),
            self._directory,
            self._notifier,
            self._handoff,
            config=self._config,
            rates=self._rates,
            landing_url=self._landing_url,
            storefront_url=self._storefront_url,
            on_expired=on_expired,
            on_redirect=on_redirect,
            on_finished=self._release,
        )
        self._flows[str(owner)] = flow
        return flow

    def leave(self, owner: str | int) -> bool:
        """Drop the flow of a shopper who left checkout before submitting."""
        flow = self.get(owner)
        if flow is None or flow.phase in (CheckoutPhase.SUBMITTING, CheckoutPhase.SUCCESS):
            return False
        self.discard(owner)
        return True

    def discard(self, owner: str | int) -> None:
        flow = self._flows.pop(str(owner), None)
        if flow:
            flow.close()
            self._carts.release(flow.owner)

    def _release(self, flow: CheckoutFlow) -> None:
        if self._flows.get(flow.owner) is flow:
            del self._flows[flow.owner]
        flow.close()
        self._carts.release(flow.owner)

    def close(self) -> None:
        for flow in self._flows.values():
            flow.close()
        self._flows.clear()
