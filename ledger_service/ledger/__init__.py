from ledger_service.ledger.coordinator import TransferCoordinator, TransferReceipt
from ledger_service.ledger.memory_store import InMemoryAccountStore
from ledger_service.ledger.money import MONEY_QUANTUM, parse_amount, parse_user_id, to_money
from ledger_service.ledger.sql_store import SqlAccountStore
from ledger_service.ledger.store import AccountRecord, AccountStore, non_negative

__all__ = [
    'AccountRecord',
    'AccountStore',
    'InMemoryAccountStore',
    'MONEY_QUANTUM',
    'SqlAccountStore',
    'TransferCoordinator',
    'TransferReceipt',
    'non_negative',
    'parse_amount',
    'parse_user_id',
    'to_money',
]
