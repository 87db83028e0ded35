from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, ContextManager, Hashable, Protocol

Precondition = Callable[[Decimal, Decimal], bool]


@dataclass(frozen=True)
class AccountRecord:
    """Committed state of one account, detached from any session."""

    user_id: Hashable
    balance: Decimal


def non_negative(current: Decimal, new: Decimal) -> bool:
    return new >= 0


def lock_order(user_ids) -> list:
    """Stable, de-duplicated key order in which accounts are locked."""
    return sorted(set(user_ids), key=str)


class AccountUnitOfWork(Protocol):
    """
    Accounts locked by `AccountStore.atomic`.

    Reads see the staged state of this unit; nothing becomes visible to
    other callers until the enclosing `atomic` block exits normally.
    """

    def get(self, user_id) -> AccountRecord:
        """Return the account, or raise `AccountNotFound`."""

        ...

    def exists(self, user_id) -> bool:
        ...

    def adjust(
        self,
        user_id,
        delta: Decimal,
        precondition: Precondition = non_negative,
    ) -> AccountRecord:
        """
        Stage `balance += delta`.

        Raises `PreconditionFailed` if `precondition(current, new)` does not
        hold, leaving the staged balance untouched.
        """

        ...


class AccountStore(Protocol):
    """
    Durable storage and atomic conditional mutation of balances.

    Implementations must serialize concurrent units of work touching the
    same account and must bound every wait on a lock.
    """

    def get(self, user_id) -> AccountRecord:
        ...

    def adjust_balance(
        self,
        user_id,
        delta: Decimal,
        precondition: Precondition = non_negative,
    ) -> AccountRecord:
        ...

    def open_account(self, user_id, balance: Decimal) -> AccountRecord:
        ...

    def total_balance(self) -> Decimal:
        ...

    def atomic(self, *user_ids) -> ContextManager[AccountUnitOfWork]:
        ...
