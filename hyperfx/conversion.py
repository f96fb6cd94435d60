"""
Currency Conversion Module

Converts integer minor-unit amounts between the local currency and a foreign
currency. Division happens at a fixed internal precision and the final
rounding direction always keeps the fractional remainder with the house.

Rates are foreign units per one local unit. All functions are pure and
use a private decimal context, so they are safe to call from any thread.
"""

from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, InvalidOperation, localcontext
from enum import Enum
import logging

from .currency import HFX_PRECISION, ScaleRegistry, to_major_units, to_minor_units
from .exceptions import InvalidRateError, RateUnavailableError
from .rates import ExchangeRate, RateSource

logger = logging.getLogger("hyperfx.conversion")

# Enough significant digits for any 128-bit amount plus HFX_PRECISION decimals
_CONTEXT_PRECISION = 60

_QUANTUM = Decimal(1).scaleb(-HFX_PRECISION)


class TradeDirection(Enum):
    """Whether the house is buying foreign currency from, or selling it to, the customer"""
    BUY = "BUY"
    SELL = "SELL"


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"Amount must be an integer number of minor units, got {amount!r}")
    if amount < 0:
        raise ValueError(f"Amount must not be negative, got {amount}")


def _check_rate(rate) -> Decimal:
    if isinstance(rate, ExchangeRate):
        return rate.rate
    if rate is None:
        raise InvalidRateError("Rate is required")
    if not isinstance(rate, Decimal):
        try:
            rate = Decimal(str(rate))
        except InvalidOperation:
            raise InvalidRateError(f"Invalid rate: {rate!r}") from None
    if not rate.is_finite() or rate <= 0:
        raise InvalidRateError(f"Rate must be a positive finite number, got {rate}")
    return rate


def _divide(value: Decimal, rate: Decimal) -> Decimal:
    return (value / rate).quantize(_QUANTUM, rounding=ROUND_HALF_UP)


def local_from_foreign(
    direction: TradeDirection,
    foreign_amount: int,
    foreign_ledger: int,
    rate,
    registry: ScaleRegistry
) -> int:
    """
    Local amount equivalent to a foreign amount

    SELL: the customer pays local for foreign, so round up.
    BUY: the house pays local for foreign, so round down.

    Args:
        direction: Trade direction from the house's point of view
        foreign_amount: Foreign amount in minor units
        foreign_ledger: Ledger of the foreign currency
        rate: Foreign units per local unit (Decimal or ExchangeRate)
        registry: Scale registry

    Returns:
        Local amount in minor units
    """
    direction = TradeDirection(direction)
    _check_amount(foreign_amount)
    rate = _check_rate(rate)
    foreign_scale = registry.scale(foreign_ledger)
    local_scale = registry.local_scale

    with localcontext() as ctx:
        ctx.prec = _CONTEXT_PRECISION
        value = to_major_units(foreign_amount, foreign_scale)
        if direction is TradeDirection.SELL:
            return to_minor_units(_divide(value, rate), local_scale, ROUND_CEILING)
        return to_minor_units(value * rate, local_scale, ROUND_FLOOR)


def foreign_from_local(
    direction: TradeDirection,
    local_amount: int,
    foreign_ledger: int,
    rate,
    registry: ScaleRegistry
) -> int:
    """
    Foreign amount equivalent to a local amount

    SELL: the house hands out foreign for local, so round down.
    BUY: the customer hands over foreign for local, so round up.

    Args:
        direction: Trade direction from the house's point of view
        local_amount: Local amount in minor units
        foreign_ledger: Ledger of the foreign currency
        rate: Foreign units per local unit (Decimal or ExchangeRate)
        registry: Scale registry

    Returns:
        Foreign amount in minor units
    """
    direction = TradeDirection(direction)
    _check_amount(local_amount)
    rate = _check_rate(rate)
    foreign_scale = registry.scale(foreign_ledger)
    local_scale = registry.local_scale

    with localcontext() as ctx:
        ctx.prec = _CONTEXT_PRECISION
        value = to_major_units(local_amount, local_scale)
        if direction is TradeDirection.SELL:
            return to_minor_units(value * rate, foreign_scale, ROUND_FLOOR)
        return to_minor_units(_divide(value, rate), foreign_scale, ROUND_CEILING)


class ConversionEngine:
    """Binds the conversion functions to a registry and an injected rate source"""

    def __init__(self, registry: ScaleRegistry, rate_source: RateSource):
        self.registry = registry
        self.rate_source = rate_source

    def get_rate(self, foreign_ledger: int) -> ExchangeRate:
        """Rate source failures propagate unchanged"""
        self.registry.scale(foreign_ledger)
        rate = self.rate_source.get_rate(foreign_ledger)
        if rate.foreign_ledger != foreign_ledger:
            raise RateUnavailableError(
                f"Rate source returned ledger {rate.foreign_ledger} for ledger {foreign_ledger}"
            )
        return rate

    def local_from_foreign(self, direction: TradeDirection, foreign_amount: int,
                           foreign_ledger: int) -> int:
        direction = TradeDirection(direction)
        rate = self.get_rate(foreign_ledger)
        result = local_from_foreign(direction, foreign_amount, foreign_ledger, rate, self.registry)
        logger.debug(
            f"{direction.value} {foreign_amount} minor units of ledger {foreign_ledger} "
            f"at {rate.rate} -> {result} local minor units"
        )
        return result

    def foreign_from_local(self, direction: TradeDirection, local_amount: int,
                           foreign_ledger: int) -> int:
        direction = TradeDirection(direction)
        rate = self.get_rate(foreign_ledger)
        result = foreign_from_local(direction, local_amount, foreign_ledger, rate, self.registry)
        logger.debug(
            f"{direction.value} {local_amount} local minor units at {rate.rate} "
            f"-> {result} minor units of ledger {foreign_ledger}"
        )
        return result
