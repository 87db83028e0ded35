import uuid
from decimal import Decimal

from ledger_service.app import create_app
from ledger_service.extensions import db
from ledger_service.models.user import User

TEST_CONFIG = {
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'JWT_SECRET_KEY': 'test-secret-with-enough-length-for-hs256',
    'BCRYPT_ROUNDS': 4,
    'TRANSFER_RETRY_BACKOFF': 0,
    'LOG_LEVEL': 'WARNING',
}


def make_app(**overrides):
    config = dict(TEST_CONFIG)
    config.update(overrides)
    return create_app(config)


def create_user_with_account(app, balance, username=None):
    """Insert a user plus account directly, bypassing the random signup seed."""
    with app.app_context():
        user = User(
            username=username or f"u_{uuid.uuid4().hex[:10]}",
            first_name='Test',
            last_name='User',
        )
        user.set_password('password123', rounds=4)
        db.session.add(user)
        db.session.flush()
        user_id = user.id
        app.extensions['ledger'].store.open_account(user_id, Decimal(balance))
        return user_id


def balance_of(app, user_id):
    with app.app_context():
        return app.extensions['ledger'].get_balance(user_id)


def total_of(app):
    with app.app_context():
        return app.extensions['ledger'].store.total_balance()
