"""
HyperFX Core Startup Module

Wires the scale registry, namespace, account bootstrap and conversion engine
together. Startup runs once, synchronously, before any other core operation;
afterwards every piece of state held here is read-only.
"""

import logging
import uuid
from datetime import timedelta
from typing import Optional

from .accounts import AccountBootstrapper, BootstrapReport, SystemAccountTable
from .config import HyperFXConfig
from .conversion import ConversionEngine, TradeDirection
from .currency import ScaleRegistry
from .exceptions import ConfigurationError
from .identity import resolve_namespace
from .ledger_engine import LedgerEngineInterface
from .rates import ExchangeRate, RateSource, StaticRateSource

logger = logging.getLogger("hyperfx.core")


class HyperFX:
    """
    A started HyperFX core

    Use HyperFX.start() to construct; close() releases the ledger engine and
    rate source clients.
    """

    def __init__(
        self,
        registry: ScaleRegistry,
        namespace: uuid.UUID,
        accounts: SystemAccountTable,
        bootstrap_report: BootstrapReport,
        ledger_engine: LedgerEngineInterface,
        rate_source: RateSource
    ):
        self.registry = registry
        self.namespace = namespace
        self.accounts = accounts
        self.bootstrap_report = bootstrap_report
        self.ledger_engine = ledger_engine
        self.rate_source = rate_source
        self._converter = ConversionEngine(registry, rate_source)

    @classmethod
    def start(
        cls,
        config: HyperFXConfig,
        ledger_engine: LedgerEngineInterface,
        rate_source: Optional[RateSource] = None,
        registry: Optional[ScaleRegistry] = None
    ) -> "HyperFX":
        """
        Validate configuration, resolve the namespace and provision system accounts

        Args:
            config: Deployment configuration
            ledger_engine: Connected ledger engine client
            rate_source: Rate provider; defaults to an empty StaticRateSource
                honoring config.rate_max_age_seconds
            registry: Scale registry; defaults to every supported currency

        Returns:
            Started HyperFX instance

        Raises:
            ConfigurationError: If configuration is incomplete
            NamespaceError: If the namespace cannot be loaded (or generated)
            LedgerEngineError: If the bootstrap request fails
            BootstrapError: If system accounts could not be provisioned
        """
        if rate_source is None:
            max_age = None
            if config.rate_max_age_seconds is not None:
                max_age = timedelta(seconds=config.rate_max_age_seconds)
            rate_source = StaticRateSource(max_age=max_age)

        try:
            config.validate_for_startup()
            if registry is None:
                registry = ScaleRegistry.default(config.local_currency_ledger)
            elif registry.local_currency != config.local_currency_ledger:
                raise ConfigurationError(
                    f"Registry local currency {registry.local_currency} does not match "
                    f"configured local currency {config.local_currency_ledger}"
                )

            namespace = resolve_namespace(
                config.resolved_hfx_dir(),
                allow_generate=config.auto_generate_namespace
            )

            bootstrapper = AccountBootstrapper(
                registry,
                namespace,
                ledger_engine,
                tolerate_failures=config.tolerate_bootstrap_failures
            )
            accounts, report = bootstrapper.bootstrap()
        except Exception:
            ledger_engine.close()
            rate_source.close()
            raise

        logger.info(
            f"HyperFX core started: local_currency={registry.local_currency} "
            f"currencies={len(registry.ledgers())} namespace={namespace}"
        )
        return cls(registry, namespace, accounts, report, ledger_engine, rate_source)

    def get_rate(self, foreign_ledger: int) -> ExchangeRate:
        return self._converter.get_rate(foreign_ledger)

    def local_from_foreign(self, direction: TradeDirection, foreign_amount: int,
                           foreign_ledger: int) -> int:
        """Local minor units for a foreign amount, rounded in the house's favour"""
        return self._converter.local_from_foreign(direction, foreign_amount, foreign_ledger)

    def foreign_from_local(self, direction: TradeDirection, local_amount: int,
                           foreign_ledger: int) -> int:
        """Foreign minor units for a local amount, rounded in the house's favour"""
        return self._converter.foreign_from_local(direction, local_amount, foreign_ledger)

    def close(self) -> None:
        """Shut down, closing the ledger engine and rate source"""
        self.ledger_engine.close()
        self.rate_source.close()

    def __enter__(self) -> "HyperFX":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
