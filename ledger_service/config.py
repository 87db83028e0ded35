"""
Configuration: built from environment variables (and `.env`).
"""

import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()


def _database_uri():
    if os.environ.get('DATABASE_URL'):
        return os.environ['DATABASE_URL']

    db_user = os.environ.get('DB_USER', 'ledger_svc_user')
    db_pass = os.environ.get('DB_PASS', 'password')
    db_host = os.environ.get('DB_HOST', 'ledger-db')
    db_name = os.environ.get('DB_NAME', 'ledger_db')
    return f"postgresql://{db_user}:{db_pass}@{db_host}/{db_name}"


def engine_options(database_uri, lock_timeout):
    """
    Per-backend engine options so that waiting on a row lock is bounded.

    PostgreSQL gets `lock_timeout` as a session setting; SQLite gets the
    driver busy timeout, which also bounds `BEGIN IMMEDIATE`.
    """
    if database_uri.startswith('sqlite'):
        return {'connect_args': {'timeout': lock_timeout, 'check_same_thread': False}}
    if database_uri.startswith('postgresql'):
        millis = int(lock_timeout * 1000)
        return {
            'pool_pre_ping': True,
            'connect_args': {'options': f'-c lock_timeout={millis}'},
        }
    return {}


def build_config(overrides=None):
    overrides = dict(overrides or {})

    config = {
        'SQLALCHEMY_DATABASE_URI': _database_uri(),
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_SECRET_KEY': os.environ.get('JWT_SECRET', 'dev-secret-change-me'),
        'JWT_ACCESS_TOKEN_MINUTES': int(os.environ.get('JWT_ACCESS_TOKEN_MINUTES', 60)),
        'BCRYPT_ROUNDS': int(os.environ.get('BCRYPT_ROUNDS', 12)),
        'SIGNUP_BALANCE_MIN': Decimal(os.environ.get('SIGNUP_BALANCE_MIN', '1.00')),
        'SIGNUP_BALANCE_MAX': Decimal(os.environ.get('SIGNUP_BALANCE_MAX', '10000.00')),
        'TRANSFER_MAX_ATTEMPTS': int(os.environ.get('TRANSFER_MAX_ATTEMPTS', 3)),
        'TRANSFER_RETRY_BACKOFF': float(os.environ.get('TRANSFER_RETRY_BACKOFF', 0.05)),
        'LEDGER_LOCK_TIMEOUT': float(os.environ.get('LEDGER_LOCK_TIMEOUT', 5.0)),
        'LOG_LEVEL': os.environ.get('LOG_LEVEL', 'INFO'),
        'CREATE_SCHEMA': os.environ.get('CREATE_SCHEMA', 'true').lower() in ('1', 'true', 'yes'),
    }
    config.update(overrides)

    if 'SQLALCHEMY_ENGINE_OPTIONS' not in overrides:
        config['SQLALCHEMY_ENGINE_OPTIONS'] = engine_options(
            config['SQLALCHEMY_DATABASE_URI'], config['LEDGER_LOCK_TIMEOUT']
        )
    return config
