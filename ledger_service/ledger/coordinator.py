"""
Transfer Coordinator: moves funds between two accounts as one atomic unit.

The balance check and both writes run inside a single `store.atomic` block,
so the check-then-act sequence is serialized per account pair. Concurrency
conflicts (`PreconditionFailed`) are retried a bounded number of times;
business failures are raised immediately.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from decimal import Decimal

from ledger_service.errors import (
    InsufficientBalance,
    PreconditionFailed,
    RecipientNotFound,
    SenderNotFound,
    TransferUnavailable,
    ValidationError,
)
from ledger_service.ledger.money import parse_amount, parse_user_id
from ledger_service.ledger.store import AccountStore, non_negative

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferReceipt:
    sender_id: object
    recipient_id: object
    amount: Decimal
    sender_balance: Decimal
    recipient_balance: Decimal

    def to_dict(self):
        return {
            'from': str(self.sender_id),
            'to': str(self.recipient_id),
            'amount': str(self.amount),
            'balance': str(self.sender_balance),
        }


class TransferCoordinator:
    def __init__(
        self,
        store: AccountStore,
        max_attempts: int = 3,
        retry_backoff: float = 0.05,
        parse_id=parse_user_id,
    ) -> None:
        if max_attempts < 1:
            raise ValueError('max_attempts must be at least 1')
        self._store = store
        self._max_attempts = max_attempts
        self._retry_backoff = retry_backoff
        self._parse_id = parse_id

    @property
    def store(self) -> AccountStore:
        return self._store

    def get_balance(self, user_id) -> Decimal:
        return self._store.get(self._parse_id(user_id)).balance

    def transfer(self, sender_id, recipient_id, amount) -> TransferReceipt:
        sender_id = self._parse_id(sender_id, 'from')
        recipient_id = self._parse_id(recipient_id, 'to')
        amount = parse_amount(amount)
        if sender_id == recipient_id:
            raise ValidationError('Cannot transfer to self')

        for attempt in range(1, self._max_attempts + 1):
            try:
                receipt = self._transfer_once(sender_id, recipient_id, amount)
            except PreconditionFailed as exc:
                logger.warning(
                    'Transfer %s -> %s conflicted (attempt %d/%d): %s',
                    sender_id, recipient_id, attempt, self._max_attempts, exc.message,
                )
                if attempt < self._max_attempts:
                    time.sleep(self._retry_backoff * attempt)
                continue

            logger.info(
                'Transfer committed: %s -> %s amount=%s', sender_id, recipient_id, amount
            )
            return receipt

        logger.error(
            'Transfer %s -> %s abandoned after %d attempts',
            sender_id, recipient_id, self._max_attempts,
        )
        raise TransferUnavailable()

    def _transfer_once(self, sender_id, recipient_id, amount) -> TransferReceipt:
        with self._store.atomic(sender_id, recipient_id) as unit:
            if not unit.exists(sender_id):
                logger.info('Transfer rejected: sender %s has no account', sender_id)
                raise SenderNotFound(user_id=str(sender_id))
            if not unit.exists(recipient_id):
                logger.info('Transfer rejected: recipient %s has no account', recipient_id)
                raise RecipientNotFound(user_id=str(recipient_id))

            balance = unit.get(sender_id).balance
            if balance < amount:
                logger.info(
                    'Transfer rejected: sender %s balance %s < %s', sender_id, balance, amount
                )
                raise InsufficientBalance()

            # the check above ran under the lock, so a failing precondition
            # here means the store saw a concurrent change
            sender = unit.adjust(sender_id, -amount, non_negative)
            recipient = unit.adjust(recipient_id, amount)

        return TransferReceipt(
            sender_id=sender_id,
            recipient_id=recipient_id,
            amount=amount,
            sender_balance=sender.balance,
            recipient_balance=recipient.balance,
        )
