from ledger_service.models.account import Account
from ledger_service.models.user import User

__all__ = ['Account', 'User']
