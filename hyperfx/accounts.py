"""
System Account Bootstrap Module

Derives the fixed set of branch system accounts for every supported currency,
provisions them in the ledger engine in a single batch and reconciles the
per-account results. The resulting SystemAccountTable is built once at
startup and never mutated.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple
import logging
import uuid

from .currency import ScaleRegistry
from .exceptions import BootstrapError, LedgerEngineError, UnknownCurrencyError
from .identity import derive_id, role_key
from .ledger_engine import (
    AccountFlags, CreateAccountResult, LedgerAccount, LedgerEngineInterface
)
from .logging_config import log_action

logger = logging.getLogger("hyperfx.accounts")


class AccountCode(IntEnum):
    """Ledger account classification codes, used for reporting only"""
    BRANCH_LIQUIDITY = 1000
    BRANCH_FEES = 1001
    BRANCH_OVERS = 2000
    BRANCH_SHORTS = 2001
    BRANCH_CONTROL = 9000

    CUSTOMER = 3000


class AccountRole(Enum):
    """Account roles with their key prefix, code, flags and per-currency scope"""
    BRANCH_LIQUIDITY = (
        "branch_liquidity", AccountCode.BRANCH_LIQUIDITY,
        AccountFlags.HISTORY, True
    )
    # Branch can never owe more than it holds
    BRANCH_OVERS = (
        "branch_overs", AccountCode.BRANCH_OVERS,
        AccountFlags.DEBITS_MUST_NOT_EXCEED_CREDITS | AccountFlags.HISTORY, True
    )
    BRANCH_SHORTS = (
        "branch_shorts", AccountCode.BRANCH_SHORTS,
        AccountFlags.CREDITS_MUST_NOT_EXCEED_DEBITS | AccountFlags.HISTORY, True
    )
    BRANCH_CONTROL = (
        "branch_control", AccountCode.BRANCH_CONTROL,
        AccountFlags.HISTORY, True
    )
    # Local currency only
    BRANCH_FEES = (
        "branch_fees", AccountCode.BRANCH_FEES,
        AccountFlags.DEBITS_MUST_NOT_EXCEED_CREDITS | AccountFlags.HISTORY, False
    )
    # Provisioned per customer outside the bootstrap
    CUSTOMER = ("customer", AccountCode.CUSTOMER, AccountFlags.NONE, True)

    def __init__(self, prefix: str, code: AccountCode, flags: AccountFlags,
                 per_currency: bool):
        self.prefix = prefix
        self.code = code
        self.flags = flags
        self.per_currency = per_currency


# Created for every supported currency, in this order
PER_CURRENCY_ROLES = (
    AccountRole.BRANCH_LIQUIDITY,
    AccountRole.BRANCH_OVERS,
    AccountRole.BRANCH_SHORTS,
    AccountRole.BRANCH_CONTROL,
)


def _known_result(code):
    try:
        return CreateAccountResult(code)
    except ValueError:
        return int(code)


def _result_name(code) -> str:
    if isinstance(code, CreateAccountResult):
        return code.name.lower()
    return f"result_{int(code)}"


@dataclass(frozen=True)
class SystemAccountTable:
    """
    Resolved system account identifiers for the life of the process
    Read-only; safe to share between threads without locking
    """
    local_currency: int
    fees: int
    accounts: Mapping[Tuple[int, AccountRole], int]

    def __post_init__(self):
        object.__setattr__(self, 'accounts', MappingProxyType(dict(self.accounts)))

    def get(self, role: AccountRole, ledger: Optional[int] = None) -> int:
        """
        Identifier of a system account

        Args:
            role: System account role
            ledger: Currency ledger; ignored for the fees role

        Raises:
            UnknownCurrencyError: If no account exists for the ledger
            ValueError: If the role is not a system role
        """
        if role is AccountRole.BRANCH_FEES:
            return self.fees
        if role not in PER_CURRENCY_ROLES:
            raise ValueError(f"{role.name} is not a system account role")
        try:
            return self.accounts[(ledger, role)]
        except KeyError:
            raise UnknownCurrencyError(ledger) from None

    def liquidity(self, ledger: int) -> int:
        return self.get(AccountRole.BRANCH_LIQUIDITY, ledger)

    def overs(self, ledger: int) -> int:
        return self.get(AccountRole.BRANCH_OVERS, ledger)

    def shorts(self, ledger: int) -> int:
        return self.get(AccountRole.BRANCH_SHORTS, ledger)

    def control(self, ledger: int) -> int:
        return self.get(AccountRole.BRANCH_CONTROL, ledger)

    def all_ids(self) -> List[int]:
        """Every system account identifier, fees last"""
        return list(self.accounts.values()) + [self.fees]


@dataclass(frozen=True)
class AccountCreationFailure:
    """Account the ledger engine refused, with its result code"""
    account: LedgerAccount
    result: int  # CreateAccountResult where the code is known

    @property
    def result_name(self) -> str:
        return _result_name(self.result)


@dataclass(frozen=True)
class BootstrapReport:
    """Outcome of one bootstrap request"""
    total_requests: int
    created: int
    exists: int
    failures: Tuple[AccountCreationFailure, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.failures


def build_system_accounts(
    registry: ScaleRegistry,
    namespace: uuid.UUID
) -> Tuple[SystemAccountTable, List[LedgerAccount]]:
    """
    Derive every system account without touching the ledger engine

    Args:
        registry: Supported currencies and the local currency
        namespace: Deployment namespace

    Returns:
        The identifier table and the creation batch, four accounts per ledger
        in ascending ledger order followed by the fees account
    """
    ids: Dict[Tuple[int, AccountRole], int] = {}
    batch: List[LedgerAccount] = []

    for ledger in registry.ledgers():
        for role in PER_CURRENCY_ROLES:
            account_id = derive_id(namespace, role_key(role.prefix, ledger))
            ids[(ledger, role)] = account_id
            batch.append(LedgerAccount(
                id=account_id,
                ledger=ledger,
                code=role.code,
                flags=role.flags
            ))

    fees_role = AccountRole.BRANCH_FEES
    fees_id = derive_id(namespace, role_key(fees_role.prefix))
    batch.append(LedgerAccount(
        id=fees_id,
        ledger=registry.local_currency,
        code=fees_role.code,
        flags=fees_role.flags
    ))

    table = SystemAccountTable(
        local_currency=registry.local_currency,
        fees=fees_id,
        accounts=ids
    )
    return table, batch


class AccountBootstrapper:
    """
    Ensures all system accounts exist in the ledger engine

    Running it again against an already provisioned ledger is the normal
    restart path: every account reports EXISTS and the same table is produced.
    """

    def __init__(
        self,
        registry: ScaleRegistry,
        namespace: uuid.UUID,
        ledger_engine: LedgerEngineInterface,
        tolerate_failures: bool = False
    ):
        self.registry = registry
        self.namespace = namespace
        self.ledger_engine = ledger_engine
        self.tolerate_failures = tolerate_failures

    def bootstrap(self) -> Tuple[SystemAccountTable, BootstrapReport]:
        """
        Submit the system account batch and reconcile the results

        Returns:
            Tuple of (SystemAccountTable, BootstrapReport)

        Raises:
            LedgerEngineError: If the request fails or the response is malformed
            BootstrapError: If any account was refused and failures are not tolerated
        """
        table, batch = build_system_accounts(self.registry, self.namespace)

        try:
            results = self.ledger_engine.create_accounts(batch)
        except LedgerEngineError:
            raise
        except Exception as e:
            raise LedgerEngineError(f"Failed to send create accounts request: {e}") from e

        report = self._reconcile(batch, results)

        log_action(
            logger, "info",
            "Account creation requests complete",
            action="bootstrap_system_accounts",
            extra={
                "total_requests": report.total_requests,
                "created": report.created,
                "exists_occurrences": report.exists,
                "failure_occurrences": len(report.failures),
            }
        )

        if report.failures and not self.tolerate_failures:
            raise BootstrapError(
                f"{len(report.failures)} of {report.total_requests} system accounts "
                f"could not be provisioned",
                report=report
            )

        return table, report

    def _reconcile(self, batch: List[LedgerAccount], results) -> BootstrapReport:
        exists = 0
        failures: List[AccountCreationFailure] = []
        seen = set()

        for error in results:
            if not 0 <= error.index < len(batch) or error.index in seen:
                raise LedgerEngineError(
                    f"Ledger engine returned invalid result index {error.index} "
                    f"for a batch of {len(batch)}"
                )
            seen.add(error.index)
            account = batch[error.index]
            result = _known_result(error.result)

            if result == CreateAccountResult.OK:
                # Not expected in a sparse result list
                continue
            if result == CreateAccountResult.EXISTS:
                exists += 1
                log_action(
                    logger, "debug", "Account creation: exists",
                    action="create_account", account_id=account.id,
                    ledger=account.ledger, code=int(account.code)
                )
            else:
                failures.append(AccountCreationFailure(account=account, result=result))
                log_action(
                    logger, "error", f"Account creation: {_result_name(result)}",
                    action="create_account", account_id=account.id,
                    ledger=account.ledger, code=int(account.code)
                )

        return BootstrapReport(
            total_requests=len(batch),
            created=len(batch) - exists - len(failures),
            exists=exists,
            failures=tuple(failures)
        )
