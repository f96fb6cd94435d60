"""
Exchange Rate Source Module

Rates are supplied by an injected RateSource. A source either returns a
fresh rate or raises; there is no default or fallback rate anywhere in
the core.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional
import threading

from .exceptions import InvalidRateError, RateUnavailableError, StaleRateError


@dataclass(frozen=True)
class ExchangeRate:
    """Foreign units per one local unit, as quoted at `timestamp`"""
    foreign_ledger: int
    rate: Decimal
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        rate = self.rate
        if isinstance(rate, bool):
            raise InvalidRateError(f"Invalid rate: {rate!r}")
        if not isinstance(rate, Decimal):
            try:
                rate = Decimal(str(rate))
            except InvalidOperation:
                raise InvalidRateError(f"Invalid rate: {self.rate!r}") from None
        if not rate.is_finite() or rate <= 0:
            raise InvalidRateError(f"Rate must be a positive finite number, got {rate}")
        object.__setattr__(self, 'rate', rate)

        if self.timestamp.tzinfo is None:
            object.__setattr__(self, 'timestamp', self.timestamp.replace(tzinfo=timezone.utc))

    def age(self, now: Optional[datetime] = None) -> timedelta:
        now = now or datetime.now(timezone.utc)
        return now - self.timestamp


class RateSource(ABC):
    """Abstract interface for exchange rate providers"""

    @abstractmethod
    def get_rate(self, foreign_ledger: int) -> ExchangeRate:
        """
        Current rate for a foreign currency against the local currency

        Raises:
            RateUnavailableError: If no usable rate exists
        """
        pass

    def close(self) -> None:
        """Release resources (default no-op)"""
        pass


class StaticRateSource(RateSource):
    """
    Rates set explicitly by an operator or a feed process
    Rates older than max_age are refused rather than used
    """

    def __init__(self, max_age: Optional[timedelta] = None):
        self.max_age = max_age
        self._rates: Dict[int, ExchangeRate] = {}
        self._lock = threading.Lock()

    def set_rate(self, rate: ExchangeRate) -> None:
        """Set or replace the rate for a foreign currency"""
        with self._lock:
            self._rates[rate.foreign_ledger] = rate

    def clear_rate(self, foreign_ledger: int) -> None:
        with self._lock:
            self._rates.pop(foreign_ledger, None)

    def get_rate(self, foreign_ledger: int) -> ExchangeRate:
        with self._lock:
            rate = self._rates.get(foreign_ledger)

        if rate is None:
            raise RateUnavailableError(f"No exchange rate available for ledger {foreign_ledger}")

        if self.max_age is not None and rate.age() > self.max_age:
            raise StaleRateError(
                f"Exchange rate for ledger {foreign_ledger} is stale "
                f"(quoted {rate.timestamp.isoformat()})"
            )

        return rate
