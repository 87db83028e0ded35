"""
Account Store backed by Flask-SQLAlchemy.

Rows are locked in `lock_order` before any balance is read: `SELECT ... FOR
UPDATE` on PostgreSQL, and a database-wide `BEGIN IMMEDIATE` on SQLite where
row locks do not exist. The mapped `Account.version` column adds an
optimistic check on top, so a write against a row that changed underneath
us fails with `StaleDataError` instead of overwriting it.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import Decimal

from sqlalchemy import event, func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ledger_service.errors import AccountNotFound, PreconditionFailed, ValidationError
from ledger_service.ledger.money import to_money
from ledger_service.ledger.store import AccountRecord, lock_order, non_negative
from ledger_service.models.account import Account

logger = logging.getLogger(__name__)

# lock_not_available, serialization_failure, deadlock_detected
_PG_CONFLICT_CODES = {'55P03', '40001', '40P01'}


def is_lock_conflict(exc: OperationalError) -> bool:
    """True for errors raised because another transaction held the lock."""
    orig = getattr(exc, 'orig', None)
    if getattr(orig, 'pgcode', None) in _PG_CONFLICT_CODES:
        return True
    return 'database is locked' in str(orig)


def configure_sqlite_locking(engine) -> None:
    """
    Make every SQLite transaction start with `BEGIN IMMEDIATE`.

    pysqlite defers `BEGIN` until the first write, which lets two readers
    both pass a balance check before either writes. Taking the write lock
    up front serializes the whole check-then-act sequence; the driver busy
    timeout bounds the wait.
    """

    @event.listens_for(engine, 'connect')
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def _begin_immediate(conn):
        conn.exec_driver_sql('BEGIN IMMEDIATE')


class _SqlUnitOfWork:
    def __init__(self, accounts: dict) -> None:
        self._accounts = accounts

    def _row(self, user_id) -> Account:
        if user_id not in self._accounts:
            raise RuntimeError(f'account {user_id} is not locked by this unit of work')
        account = self._accounts[user_id]
        if account is None:
            raise AccountNotFound(user_id=str(user_id))
        return account

    def exists(self, user_id) -> bool:
        return self._accounts.get(user_id) is not None

    def get(self, user_id) -> AccountRecord:
        return AccountRecord(user_id=user_id, balance=self._row(user_id).balance)

    def adjust(self, user_id, delta, precondition=non_negative) -> AccountRecord:
        account = self._row(user_id)
        current = account.balance
        new = to_money(current + delta)
        if not precondition(current, new):
            raise PreconditionFailed(
                f'Precondition failed for account {user_id}', user_id=str(user_id)
            )
        account.balance = new
        return AccountRecord(user_id=user_id, balance=new)


class SqlAccountStore:
    def __init__(self, db) -> None:
        self._db = db

    @property
    def session(self):
        return self._db.session

    def _lock_rows(self, ordered_ids) -> dict:
        accounts = {}
        for user_id in ordered_ids:
            stmt = (
                select(Account)
                .where(Account.user_id == user_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            accounts[user_id] = self.session.execute(stmt).scalar_one_or_none()
        return accounts

    @contextmanager
    def atomic(self, *user_ids):
        """
        Lock the accounts of `user_ids` and commit staged changes on exit.

        Any exception rolls the session back. Lock timeouts and stale
        versions surface as `PreconditionFailed`.
        """
        session = self.session
        try:
            unit = _SqlUnitOfWork(self._lock_rows(lock_order(user_ids)))
            yield unit
            session.commit()
        except StaleDataError as exc:
            session.rollback()
            logger.warning('Stale account version for %s: %s', user_ids, exc)
            raise PreconditionFailed('Account was modified concurrently') from exc
        except OperationalError as exc:
            session.rollback()
            if not is_lock_conflict(exc):
                raise
            logger.warning('Lock conflict on accounts %s: %s', user_ids, exc.orig)
            raise PreconditionFailed('Timed out waiting for account lock') from exc
        except BaseException:
            session.rollback()
            raise

    def open_account(self, user_id, balance) -> AccountRecord:
        """
        Create the account for `user_id` and commit.

        The commit also persists whatever else is pending in the session,
        which is how signup writes the user and its account together.
        """
        balance = to_money(balance)
        if balance < 0:
            raise ValidationError('Opening balance must not be negative')

        session = self.session
        session.add(Account(user_id=user_id, balance=balance))
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ValidationError(f'Account for {user_id} already exists') from exc
        except BaseException:
            session.rollback()
            raise
        return AccountRecord(user_id=user_id, balance=balance)

    def get(self, user_id) -> AccountRecord:
        session = self.session
        try:
            balance = session.execute(
                select(Account.balance).where(Account.user_id == user_id)
            ).scalar_one_or_none()
            # end the read transaction; on SQLite it holds the write lock
            session.commit()
        except BaseException:
            session.rollback()
            raise
        if balance is None:
            raise AccountNotFound(user_id=str(user_id))
        return AccountRecord(user_id=user_id, balance=balance)

    def adjust_balance(self, user_id, delta, precondition=non_negative) -> AccountRecord:
        with self.atomic(user_id) as unit:
            return unit.adjust(user_id, delta, precondition)

    def total_balance(self) -> Decimal:
        session = self.session
        try:
            total = session.execute(
                select(func.coalesce(func.sum(Account.balance), 0))
            ).scalar_one()
            session.commit()
        except BaseException:
            session.rollback()
            raise
        return to_money(total)
