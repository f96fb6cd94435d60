"""
Currency Scale Registry

ISO 4217 currencies as ledger identifiers, the asset scale of each currency's
minor unit and the distinguished local currency of a deployment.
Amounts crossing the ledger boundary are integer minor units; everything
in between is Decimal. NEVER uses float for monetary values.
"""

from decimal import Decimal, ROUND_FLOOR
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Tuple
from enum import Enum

from .exceptions import ConfigurationError, UnknownCurrencyError

# Fractional digits kept on intermediate division results
HFX_PRECISION = 9


class Currency(Enum):
    """ISO 4217 currencies: alpha code, numeric code used as ledger, asset scale"""
    GBP = ("GBP", 826, 2)  # 1 GBP = 100 pence
    USD = ("USD", 840, 2)  # 1 USD = 100 cents
    EUR = ("EUR", 978, 2)  # 1 EUR = 100 cents

    JPY = ("JPY", 392, 0)  # no minor unit
    CAD = ("CAD", 124, 2)
    AUD = ("AUD", 36, 2)
    CHF = ("CHF", 756, 2)  # 1 CHF = 100 rappen
    CNY = ("CNY", 156, 2)  # 1 CNY = 100 fen
    HKD = ("HKD", 344, 2)
    NZD = ("NZD", 554, 2)
    SEK = ("SEK", 752, 2)  # 1 SEK = 100 ore
    NOK = ("NOK", 578, 2)
    DKK = ("DKK", 208, 2)
    SGD = ("SGD", 702, 2)
    INR = ("INR", 356, 2)  # 1 INR = 100 paise
    MXN = ("MXN", 484, 2)
    BRL = ("BRL", 986, 2)
    ZAR = ("ZAR", 710, 2)
    RUB = ("RUB", 643, 2)  # 1 RUB = 100 kopecks
    KRW = ("KRW", 410, 0)  # no minor unit
    TRY = ("TRY", 949, 2)  # 1 TRY = 100 kurus
    PLN = ("PLN", 985, 2)  # 1 PLN = 100 groszy
    THB = ("THB", 764, 2)  # 1 THB = 100 satang
    IDR = ("IDR", 360, 2)
    MYR = ("MYR", 458, 2)
    PHP = ("PHP", 608, 2)
    VND = ("VND", 704, 0)  # no minor unit
    EGP = ("EGP", 818, 2)  # 1 EGP = 100 piastres
    NGN = ("NGN", 566, 2)  # 1 NGN = 100 kobo
    KES = ("KES", 404, 2)
    UAH = ("UAH", 980, 2)
    CLP = ("CLP", 152, 0)  # no minor unit
    COP = ("COP", 170, 2)
    PEN = ("PEN", 604, 2)
    ARS = ("ARS", 32, 2)
    SAR = ("SAR", 682, 2)  # 1 SAR = 100 halalas
    AED = ("AED", 784, 2)  # 1 AED = 100 fils
    KWD = ("KWD", 414, 3)  # 1 KWD = 1000 fils
    QAR = ("QAR", 634, 2)

    def __init__(self, code: str, ledger: int, scale: int):
        self.code = code
        self.ledger = ledger
        self.scale = scale

    @classmethod
    def from_ledger(cls, ledger: int) -> "Currency":
        """Look up a currency by its numeric ledger identifier"""
        for currency in cls:
            if currency.ledger == ledger:
                return currency
        raise UnknownCurrencyError(ledger)

    @classmethod
    def from_code(cls, code: str) -> "Currency":
        """Look up a currency by its alpha code (case-insensitive)"""
        try:
            return cls[code.upper()]
        except KeyError:
            raise UnknownCurrencyError(code) from None


CURRENCY_ASSET_SCALES: Mapping[int, int] = MappingProxyType(
    {currency.ledger: currency.scale for currency in Currency}
)


@dataclass(frozen=True)
class ScaleRegistry:
    """
    Immutable ledger -> asset scale mapping plus the local currency.
    Built once at startup and shared read-only by every component.
    """
    scales: Mapping[int, int]
    local_currency: int
    _ordered: Tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.scales:
            raise ConfigurationError("Scale registry must contain at least one currency")

        frozen: Dict[int, int] = {}
        for ledger, scale in self.scales.items():
            if isinstance(ledger, bool) or not isinstance(ledger, int) or ledger <= 0:
                raise ConfigurationError(f"Invalid ledger identifier: {ledger!r}")
            if isinstance(scale, bool) or not isinstance(scale, int) or scale < 0:
                raise ConfigurationError(f"Invalid asset scale for ledger {ledger}: {scale!r}")
            frozen[ledger] = scale

        if not self.local_currency:
            raise ConfigurationError("Local currency ledger is not set")
        if self.local_currency not in frozen:
            raise ConfigurationError(
                f"Local currency ledger {self.local_currency} has no asset scale"
            )

        object.__setattr__(self, 'scales', MappingProxyType(frozen))
        object.__setattr__(self, '_ordered', tuple(sorted(frozen)))

    @classmethod
    def default(cls, local_currency: int) -> "ScaleRegistry":
        """Registry over every supported ISO 4217 currency"""
        return cls(scales=dict(CURRENCY_ASSET_SCALES), local_currency=local_currency)

    def scale(self, ledger: int) -> int:
        """
        Asset scale of a ledger's minor unit

        Raises:
            UnknownCurrencyError: If the ledger is not supported. Validated
                input never reaches this, so it signals a configuration bug.
        """
        try:
            return self.scales[ledger]
        except KeyError:
            raise UnknownCurrencyError(ledger) from None

    @property
    def local_scale(self) -> int:
        return self.scales[self.local_currency]

    def supports(self, ledger: int) -> bool:
        return ledger in self.scales

    def ledgers(self) -> Tuple[int, ...]:
        """All supported ledgers in ascending order"""
        return self._ordered


def to_major_units(amount: int, scale: int) -> Decimal:
    """
    Convert an integer minor-unit amount to its display value

    Args:
        amount: Amount in minor units
        scale: Asset scale of the amount's currency

    Returns:
        Exact Decimal value in major units
    """
    return Decimal(amount).scaleb(-scale)


def to_minor_units(value: Decimal, scale: int, rounding: str = ROUND_FLOOR) -> int:
    """
    Round a major-unit value to a whole number of minor units

    Args:
        value: Decimal value in major units
        scale: Asset scale of the target currency
        rounding: decimal rounding mode applied to the fractional remainder

    Returns:
        Integer amount in minor units
    """
    return int(value.scaleb(scale).to_integral_value(rounding=rounding))

