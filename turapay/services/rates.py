"""
USD-base exchange rate lookup.

The last successful rate per currency is cached in memory. The upstream API
is asked at most once per TTL, whether or not the previous attempt worked.
A failed or malformed refresh keeps the previous value, or the hard-coded
default when nothing has been fetched yet.
"""
import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

import httpx

from turapay.config import Config

logger = logging.getLogger(__name__)


DEFAULT_RATES = {
    "USD": Decimal("1"),
    "ZMW": Decimal("22"),
}


class ExchangeRateService:
    def __init__(
        self,
        url: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock=time.monotonic,
    ):
        self.url = url or Config.EXCHANGE_RATE_URL
        self.ttl_seconds = Config.EXCHANGE_RATE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._transport = transport
        self._clock = clock
        self._rates: Dict[str, Decimal] = {}
        self._checked_at: Optional[float] = None

    async def _fetch_rates(self) -> Dict[str, Decimal]:
        async with httpx.AsyncClient(transport=self._transport, timeout=10) as client:
            response = await client.get(self.url)
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, dict) or not isinstance(data.get("rates"), dict):
            raise ValueError("Malformed exchange rate payload")

        rates = {}
        for code, value in data["rates"].items():
            try:
                rate = Decimal(str(value))
            except (InvalidOperation, ValueError):
                logger.warning(f"Ignoring malformed {code} rate {value!r}")
                continue
            if not rate.is_finite() or rate <= 0:
                logger.warning(f"Ignoring non-positive {code} rate {value!r}")
                continue
            rates[str(code).upper()] = rate
        return rates

    def cached_rate(self, currency: str) -> Optional[Decimal]:
        return self._rates.get(currency.upper())

    def _is_fresh(self) -> bool:
        return self._checked_at is not None and self._clock() - self._checked_at < self.ttl_seconds

    async def refresh(self) -> None:
        try:
            rates = await self._fetch_rates()
        except (httpx.HTTPError, ValueError, ArithmeticError) as e:
            logger.warning(f"Exchange rate refresh failed: {e}")
            rates = {}
        # Stamped on failure too, so a down upstream is retried once per TTL
        self._checked_at = self._clock()
        self._rates.update(rates)

    async def get_rate(self, currency: str) -> Decimal:
        currency = currency.upper()
        if not self._is_fresh():
            await self.refresh()

        if currency in self._rates:
            return self._rates[currency]
        if currency in DEFAULT_RATES:
            logger.warning(f"Using default {currency} rate {DEFAULT_RATES[currency]}")
            return DEFAULT_RATES[currency]
        raise LookupError(f"No exchange rate available for {currency}")


rate_service = ExchangeRateService()
