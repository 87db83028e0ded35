from flask import current_app
from flask_jwt_extended import JWTManager
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
jwt = JWTManager()


def get_coordinator():
    """The `TransferCoordinator` bound to the current app."""
    return current_app.extensions['ledger']
