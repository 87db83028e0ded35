"""
Account Model: one balance record per user.
Balance is fixed-point (Numeric(12, 2)) and never negative.
"""

import uuid

from ledger_service.extensions import db


class Account(db.Model):
    __tablename__ = 'accounts'
    __table_args__ = (
        db.CheckConstraint('balance >= 0', name='ck_accounts_balance_non_negative'),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    user_id = db.Column(
        db.Uuid,
        db.ForeignKey('users.id'),
        unique=True,
        nullable=False,
        index=True,
    )
    balance = db.Column(db.Numeric(12, 2, asdecimal=True), nullable=False, default=0)
    # optimistic concurrency counter; a stale write raises StaleDataError
    version = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now())

    __mapper_args__ = {'version_id_col': version}

    user = db.relationship('User', back_populates='account')
