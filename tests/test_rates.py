"""
Test suite for rates module

Tests ExchangeRate validation and the StaticRateSource freshness contract.
"""

import pytest
from decimal import Decimal
from datetime import datetime, timedelta, timezone

from hyperfx.exceptions import (
    InvalidRateError, RateUnavailableError, StaleRateError
)
from hyperfx.rates import ExchangeRate, RateSource, StaticRateSource


class TestExchangeRate:
    """Test ExchangeRate functionality"""

    def test_exchange_rate_creation(self):
        """Test exchange rate creation"""
        now = datetime.now(timezone.utc)
        rate = ExchangeRate(foreign_ledger=978, rate=Decimal("1.19"), timestamp=now)

        assert rate.foreign_ledger == 978
        assert rate.rate == Decimal("1.19")
        assert rate.timestamp == now

    def test_exchange_rate_decimal_conversion(self):
        """Test that string values are converted to Decimal"""
        rate = ExchangeRate(foreign_ledger=978, rate="1.190000000")

        assert isinstance(rate.rate, Decimal)
        assert rate.rate == Decimal("1.19")

    def test_invalid_rates(self):
        """Test zero, negative, non-finite and non-numeric rates"""
        for bad in (Decimal("0"), Decimal("-1"), Decimal("Infinity"), "NaN", "abc", True):
            with pytest.raises(InvalidRateError):
                ExchangeRate(foreign_ledger=978, rate=bad)

    def test_invalid_rate_is_value_error(self):
        """Test InvalidRateError can be caught as ValueError"""
        with pytest.raises(ValueError):
            ExchangeRate(foreign_ledger=978, rate=Decimal("0"))

    def test_naive_timestamp_assumed_utc(self):
        """Test naive timestamps are treated as UTC"""
        rate = ExchangeRate(foreign_ledger=978, rate=Decimal("1.19"),
                            timestamp=datetime(2026, 1, 1, 12, 0))
        assert rate.timestamp.tzinfo == timezone.utc

    def test_age(self):
        """Test rate age calculation"""
        quoted = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        rate = ExchangeRate(foreign_ledger=978, rate=Decimal("1.19"), timestamp=quoted)
        assert rate.age(quoted + timedelta(minutes=5)) == timedelta(minutes=5)

    def test_immutable(self):
        """Test rates cannot be modified"""
        rate = ExchangeRate(foreign_ledger=978, rate=Decimal("1.19"))
        with pytest.raises(AttributeError):
            rate.rate = Decimal("2")


class TestStaticRateSource:
    """Test StaticRateSource functionality"""

    def setup_method(self):
        """Set up test fixtures"""
        self.source = StaticRateSource(max_age=timedelta(hours=1))
        self.eur = ExchangeRate(foreign_ledger=978, rate=Decimal("1.19"))
        self.source.set_rate(self.eur)

    def test_is_rate_source(self):
        """Test StaticRateSource implements the interface"""
        assert isinstance(self.source, RateSource)

    def test_get_rate(self):
        """Test fresh rates are returned"""
        assert self.source.get_rate(978) == self.eur

    def test_missing_rate(self):
        """Test missing rates raise rather than defaulting"""
        with pytest.raises(RateUnavailableError, match="No exchange rate available"):
            self.source.get_rate(826)

    def test_stale_rate(self):
        """Test rates older than max_age are refused"""
        old = ExchangeRate(
            foreign_ledger=826,
            rate=Decimal("0.85"),
            timestamp=datetime.now(timezone.utc) - timedelta(hours=2)
        )
        self.source.set_rate(old)

        with pytest.raises(StaleRateError):
            self.source.get_rate(826)

    def test_stale_is_unavailable(self):
        """Test callers catching RateUnavailableError also see stale rates"""
        assert issubclass(StaleRateError, RateUnavailableError)

    def test_no_max_age(self):
        """Test rates never go stale without max_age"""
        source = StaticRateSource()
        source.set_rate(ExchangeRate(
            foreign_ledger=826,
            rate=Decimal("0.85"),
            timestamp=datetime.now(timezone.utc) - timedelta(days=365)
        ))
        assert source.get_rate(826).rate == Decimal("0.85")

    def test_replace_and_clear(self):
        """Test replacing and clearing rates"""
        newer = ExchangeRate(foreign_ledger=978, rate=Decimal("1.20"))
        self.source.set_rate(newer)
        assert self.source.get_rate(978).rate == Decimal("1.20")

        self.source.clear_rate(978)
        with pytest.raises(RateUnavailableError):
            self.source.get_rate(978)

        # Clearing twice is harmless
        self.source.clear_rate(978)

    def test_close(self):
        """Test close is a no-op"""
        self.source.close()


if __name__ == "__main__":
    pytest.main([__file__])
