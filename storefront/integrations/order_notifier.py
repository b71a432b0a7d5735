"""Client for the `notify-order` edge function that alerts store staff."""
from __future__ import annotations

import asyncio
from typing import Any

import aiohttp

from storefront.core.constants import NOTIFY_TIMEOUT_SECONDS
from storefront.core.exceptions import ConfigurationException, NotificationDeliveryException
from storefront.domain.checkout import OrderIntent


class OrderNotifier:
    """Posts order intents as JSON; any 2xx response counts as delivered."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout: float = NOTIFY_TIMEOUT_SECONDS,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        if not url:
            raise ConfigurationException("NOTIFY_ORDER_URL (or SUPABASE_URL) is not configured")
        self._url = url
        self._anon_key = anon_key
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._anon_key:
            headers["Authorization"] = f"Bearer {self._anon_key}"
        return headers

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def send(self, intent: OrderIntent) -> dict[str, Any]:
        """Deliver one order intent.

        Raises:
            NotificationDeliveryException: on transport errors or non-2xx status
        """
        session = await self._get_session()
        try:
            async with session.post(
                self._url,
                json=intent.to_payload(),
                headers=self._headers(),
                timeout=self._timeout,
            ) as resp:
                try:
                    body = await resp.json(content_type=None)
                except ValueError:
                    body = None
                if not 200 <= resp.status < 300:
                    detail = body.get("error") if isinstance(body, dict) else None
                    raise NotificationDeliveryException(
                        f"notify-order returned {resp.status}: {detail or 'Unknown error occurred'}",
                        status=resp.status,
                    )
                return body if isinstance(body, dict) else {}
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NotificationDeliveryException(f"notify-order unreachable: {e}") from e

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
