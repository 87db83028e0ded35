import uuid

import bcrypt

from ledger_service.extensions import db


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    username = db.Column(db.String(20), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.Text, nullable=False)
    first_name = db.Column(db.String(50), nullable=False)
    last_name = db.Column(db.String(50), nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now())
    updated_at = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now())

    account = db.relationship('Account', back_populates='user', uselist=False)

    def set_password(self, password, rounds=12):
        self.password_hash = bcrypt.hashpw(
            password.encode('utf-8'), bcrypt.gensalt(rounds=rounds)
        ).decode('utf-8')

    def check_password(self, password):
        return bcrypt.checkpw(password.encode('utf-8'), self.password_hash.encode('utf-8'))

    def to_public_dict(self):
        return {
            'id': str(self.id),
            'username': self.username,
            'firstName': self.first_name,
            'lastName': self.last_name,
        }

    def to_dict(self):
        data = self.to_public_dict()
        data['createdAt'] = self.created_at.isoformat() if self.created_at else None
        return data
