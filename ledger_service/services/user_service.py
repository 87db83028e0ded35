"""
User Service: signup, signin, profile and directory queries.
Signup writes the user and its seeded account in one commit.
"""

import logging
import random
from decimal import Decimal

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ledger_service.errors import InvalidCredentials, UserNotFound, UsernameTaken
from ledger_service.extensions import db, get_coordinator
from ledger_service.ledger.money import MONEY_QUANTUM, parse_user_id
from ledger_service.models.user import User

logger = logging.getLogger(__name__)


def opening_balance(low, high):
    """Random opening balance in [low, high], in whole cents."""
    low_cents = int(Decimal(low) / MONEY_QUANTUM)
    high_cents = int(Decimal(high) / MONEY_QUANTUM)
    return Decimal(random.randint(low_cents, high_cents)) * MONEY_QUANTUM


def register_user(username, password, first_name, last_name):
    if User.query.filter_by(username=username).first():
        raise UsernameTaken()

    user = User(username=username, first_name=first_name, last_name=last_name)
    user.set_password(password, rounds=current_app.config['BCRYPT_ROUNDS'])

    balance = opening_balance(
        current_app.config['SIGNUP_BALANCE_MIN'],
        current_app.config['SIGNUP_BALANCE_MAX'],
    )
    try:
        db.session.add(user)
        db.session.flush()
    except IntegrityError:
        # lost a race with another signup for the same username
        db.session.rollback()
        raise UsernameTaken()

    user_id = user.id
    get_coordinator().store.open_account(user_id, balance)
    logger.info('Registered user %s with opening balance %s', user_id, balance)
    return db.session.get(User, user_id)


def authenticate(username, password):
    user = User.query.filter_by(username=username).first()
    if not user or not user.check_password(password):
        raise InvalidCredentials()
    return user


def get_user(user_id):
    user = db.session.get(User, parse_user_id(user_id))
    if not user:
        raise UserNotFound()
    return user


def update_profile(user_id, first_name=None, last_name=None, password=None):
    user = get_user(user_id)
    if first_name is not None:
        user.first_name = first_name
    if last_name is not None:
        user.last_name = last_name
    if password is not None:
        user.set_password(password, rounds=current_app.config['BCRYPT_ROUNDS'])

    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return user


def escape_like(text):
    """Make LIKE wildcards in user input match literally."""
    return text.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def search_users(filter_text='', exclude_user_id=None):
    query = User.query
    if filter_text:
        pattern = f'%{escape_like(filter_text)}%'
        query = query.filter(or_(
            User.first_name.ilike(pattern, escape='\\'),
            User.last_name.ilike(pattern, escape='\\'),
        ))
    if exclude_user_id is not None:
        query = query.filter(User.id != parse_user_id(exclude_user_id))
    return query.order_by(User.first_name, User.last_name).all()
