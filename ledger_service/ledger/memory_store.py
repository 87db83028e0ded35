from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Dict

from ledger_service.errors import AccountNotFound, PreconditionFailed, ValidationError
from ledger_service.ledger.money import to_money
from ledger_service.ledger.store import AccountRecord, lock_order, non_negative

logger = logging.getLogger(__name__)


class _InMemoryUnitOfWork:
    def __init__(self, balances: Dict, locked_ids, missing_ids) -> None:
        self._balances = balances
        self._locked = set(locked_ids)
        # ids with no account when the unit started; treated as absent throughout
        self._missing = set(missing_ids)
        self._staged: Dict = {}

    def _current(self, user_id) -> Decimal:
        if user_id in self._missing:
            raise AccountNotFound(user_id=str(user_id))
        if user_id not in self._locked:
            raise RuntimeError(f'account {user_id} is not locked by this unit of work')
        if user_id in self._staged:
            return self._staged[user_id]
        return self._balances[user_id]

    def exists(self, user_id) -> bool:
        return user_id in self._locked

    def get(self, user_id) -> AccountRecord:
        return AccountRecord(user_id=user_id, balance=self._current(user_id))

    def adjust(self, user_id, delta, precondition=non_negative) -> AccountRecord:
        current = self._current(user_id)
        new = to_money(current + delta)
        if not precondition(current, new):
            raise PreconditionFailed(
                f'Precondition failed for account {user_id}', user_id=str(user_id)
            )
        self._staged[user_id] = new
        return AccountRecord(user_id=user_id, balance=new)

    def commit(self) -> None:
        self._balances.update(self._staged)
        self._staged.clear()


class InMemoryAccountStore:
    """
    Single-node, in-process account store.

    Each account has its own lock, created together with the account. `atomic`
    acquires the locks of every account involved in `lock_order` with a
    bounded wait, so two units of work over overlapping accounts can never
    deadlock and never interleave. Ids without an account get no lock.
    """

    def __init__(self, lock_timeout: float = 5.0) -> None:
        self._lock_timeout = lock_timeout
        self._balances: Dict = {}
        self._locks: Dict = {}
        self._registry_lock = threading.Lock()

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    @contextmanager
    def atomic(self, *user_ids):
        ordered = lock_order(user_ids)
        with self._registry_lock:
            locks = [(uid, self._locks[uid]) for uid in ordered if uid in self._locks]
        missing = [uid for uid in ordered if uid not in self._locks]

        held = []
        try:
            for user_id, lock in locks:
                if not lock.acquire(timeout=self._lock_timeout):
                    logger.warning('Timed out waiting for lock on account %s', user_id)
                    raise PreconditionFailed(
                        f'Timed out waiting for account {user_id}', user_id=str(user_id)
                    )
                held.append(lock)

            unit = _InMemoryUnitOfWork(self._balances, [uid for uid, _ in locks], missing)
            yield unit
            unit.commit()
        finally:
            for lock in reversed(held):
                lock.release()

    def open_account(self, user_id, balance) -> AccountRecord:
        balance = to_money(balance)
        if balance < 0:
            raise ValidationError('Opening balance must not be negative')
        with self._registry_lock:
            if user_id in self._locks:
                raise ValidationError(f'Account {user_id} already exists')
            self._balances[user_id] = balance
            self._locks[user_id] = threading.Lock()
        return AccountRecord(user_id=user_id, balance=balance)

    def get(self, user_id) -> AccountRecord:
        with self.atomic(user_id) as unit:
            return unit.get(user_id)

    def adjust_balance(self, user_id, delta, precondition=non_negative) -> AccountRecord:
        with self.atomic(user_id) as unit:
            return unit.adjust(user_id, delta, precondition)

    def total_balance(self) -> Decimal:
        # every lock, in order, so the sum is a consistent snapshot
        with self._registry_lock:
            user_ids = list(self._locks)
        with self.atomic(*user_ids):
            return sum(self._balances[uid] for uid in user_ids) + Decimal('0.00')
