"""
Ledger Engine Interface Module

Narrow interface to the external double-entry ledger engine, plus an
in-memory implementation for testing and local runs. Accounts are keyed by
128-bit identifiers and creation is idempotent per identifier; result codes
follow the engine's create_accounts semantics.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Dict, Iterable, List
import threading

from .exceptions import LedgerEngineError

_UINT128_MAX = (1 << 128) - 1


class AccountFlags(IntFlag):
    """Account flags understood by the ledger engine"""
    NONE = 0
    LINKED = 1 << 0
    DEBITS_MUST_NOT_EXCEED_CREDITS = 1 << 1
    CREDITS_MUST_NOT_EXCEED_DEBITS = 1 << 2
    HISTORY = 1 << 3


class CreateAccountResult(IntEnum):
    """Per-account outcome of a create_accounts request"""
    OK = 0
    LINKED_EVENT_FAILED = 1
    LINKED_EVENT_CHAIN_OPEN = 2
    TIMESTAMP_MUST_BE_ZERO = 3
    RESERVED_FIELD = 4
    RESERVED_FLAG = 5
    ID_MUST_NOT_BE_ZERO = 6
    ID_MUST_NOT_BE_INT_MAX = 7
    FLAGS_ARE_MUTUALLY_EXCLUSIVE = 8
    LEDGER_MUST_NOT_BE_ZERO = 13
    CODE_MUST_NOT_BE_ZERO = 14
    EXISTS_WITH_DIFFERENT_FLAGS = 15
    EXISTS_WITH_DIFFERENT_LEDGER = 19
    EXISTS_WITH_DIFFERENT_CODE = 20
    EXISTS = 21


@dataclass(frozen=True)
class LedgerAccount:
    """Account record as submitted to the ledger engine"""
    id: int
    ledger: int
    code: int
    flags: AccountFlags = AccountFlags.NONE


@dataclass(frozen=True)
class CreateAccountsError:
    """Non-success result for the account at `index` in the submitted batch"""
    index: int
    result: CreateAccountResult


class LedgerEngineInterface(ABC):
    """Abstract interface for ledger engine clients"""

    @abstractmethod
    def create_accounts(self, accounts: List[LedgerAccount]) -> List[CreateAccountsError]:
        """
        Create a batch of accounts in one request

        Returns:
            Sparse list of results, one per account that was not newly created

        Raises:
            LedgerEngineError: If the request itself fails
        """
        pass

    @abstractmethod
    def lookup_accounts(self, ids: Iterable[int]) -> List[LedgerAccount]:
        """Return the accounts that exist among `ids`, in request order"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the client connection"""
        pass


class InMemoryLedgerEngine(LedgerEngineInterface):
    """In-memory ledger engine implementation for testing"""

    def __init__(self):
        self._accounts: Dict[int, LedgerAccount] = {}
        self._lock = threading.RLock()
        self._closed = False
        self.requests = 0

    def _ensure_open(self) -> None:
        if self._closed:
            raise LedgerEngineError("Ledger engine client is closed")

    def _validate(self, account: LedgerAccount) -> CreateAccountResult:
        if account.id == 0:
            return CreateAccountResult.ID_MUST_NOT_BE_ZERO
        if account.id == _UINT128_MAX:
            return CreateAccountResult.ID_MUST_NOT_BE_INT_MAX
        if account.flags & AccountFlags.LINKED:
            # Linked chains are not supported here
            return CreateAccountResult.RESERVED_FLAG
        if (account.flags & AccountFlags.DEBITS_MUST_NOT_EXCEED_CREDITS
                and account.flags & AccountFlags.CREDITS_MUST_NOT_EXCEED_DEBITS):
            return CreateAccountResult.FLAGS_ARE_MUTUALLY_EXCLUSIVE
        if account.ledger == 0:
            return CreateAccountResult.LEDGER_MUST_NOT_BE_ZERO
        if account.code == 0:
            return CreateAccountResult.CODE_MUST_NOT_BE_ZERO

        existing = self._accounts.get(account.id)
        if existing is None:
            return CreateAccountResult.OK
        if existing.flags != account.flags:
            return CreateAccountResult.EXISTS_WITH_DIFFERENT_FLAGS
        if existing.ledger != account.ledger:
            return CreateAccountResult.EXISTS_WITH_DIFFERENT_LEDGER
        if existing.code != account.code:
            return CreateAccountResult.EXISTS_WITH_DIFFERENT_CODE
        return CreateAccountResult.EXISTS

    def create_accounts(self, accounts: List[LedgerAccount]) -> List[CreateAccountsError]:
        """Create accounts in order; later duplicates in a batch see earlier ones"""
        with self._lock:
            self._ensure_open()
            self.requests += 1
            errors = []
            for index, account in enumerate(accounts):
                result = self._validate(account)
                if result == CreateAccountResult.OK:
                    self._accounts[account.id] = account
                else:
                    errors.append(CreateAccountsError(index=index, result=result))
            return errors

    def lookup_accounts(self, ids: Iterable[int]) -> List[LedgerAccount]:
        with self._lock:
            self._ensure_open()
            return [self._accounts[i] for i in ids if i in self._accounts]

    def count(self) -> int:
        """Number of accounts held"""
        with self._lock:
            return len(self._accounts)

    def close(self) -> None:
        """Close engine (further requests fail)"""
        with self._lock:
            self._closed = True
