import logging

from flasgger import Swagger
from flask import Flask, jsonify
from flask.logging import default_handler

from ledger_service.config import build_config
from ledger_service.errors import LedgerError
from ledger_service.extensions import db, jwt
from ledger_service.ledger.coordinator import TransferCoordinator
from ledger_service.ledger.sql_store import SqlAccountStore, configure_sqlite_locking
from ledger_service.models import Account, User  # noqa: F401  (register models)


def _configure_logging(app):
    package_logger = logging.getLogger('ledger_service')
    if default_handler not in package_logger.handlers:
        package_logger.addHandler(default_handler)
    package_logger.setLevel(app.config['LOG_LEVEL'])
    app.logger.setLevel(app.config['LOG_LEVEL'])


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.update(build_config(overrides))
    _configure_logging(app)

    # Initialize Extensions
    db.init_app(app)
    jwt.init_app(app)

    with app.app_context():
        if db.engine.dialect.name == 'sqlite':
            configure_sqlite_locking(db.engine)
        if app.config['CREATE_SCHEMA']:
            db.create_all()

    app.extensions['ledger'] = TransferCoordinator(
        SqlAccountStore(db),
        max_attempts=app.config['TRANSFER_MAX_ATTEMPTS'],
        retry_backoff=app.config['TRANSFER_RETRY_BACKOFF'],
    )

    Swagger(app)

    @app.errorhandler(LedgerError)
    def handle_ledger_error(error):
        return jsonify(error.to_dict()), error.status_code

    # Register Blueprints
    from ledger_service.routes.user import user_bp
    app.register_blueprint(user_bp, url_prefix='/api/v1/user')

    from ledger_service.routes.account import account_bp
    app.register_blueprint(account_bp, url_prefix='/api/v1/account')

    @app.route('/health')
    def health():
        try:
            db.session.execute(db.text('SELECT 1'))
            db.session.commit()
            return {"service": "ledger-service", "status": "healthy"}, 200
        except Exception as e:
            db.session.rollback()
            app.logger.error('Health check failed: %s', e)
            return {"service": "ledger-service", "status": "unhealthy", "error": str(e)}, 503

    @app.cli.command('init-db')
    def init_db():
        """Create all tables."""
        db.create_all()
        print('Database tables created')

    app.logger.debug('Routes: %s', app.url_map)
    return app


if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=5000)
