"""
Stock Ledger Service
Per (product, warehouse) stock positions with an append-only transaction ledger.
"""

import logging
from flask import Flask
from flask_cors import CORS

logger = logging.getLogger(__name__)


def create_app(config_name='default', catalog=None):
    """Application factory pattern"""
    app = Flask(__name__)

    # Load environment variables
    from dotenv import load_dotenv
    load_dotenv()

    # Load configuration
    from config import config, get_database_uri
    app.config.from_object(config[config_name])
    if not app.config.get('SQLALCHEMY_DATABASE_URI'):
        app.config['SQLALCHEMY_DATABASE_URI'] = get_database_uri()

    # Configure logging
    if not app.testing:
        logging.basicConfig(
            level=getattr(logging, app.config['LOG_LEVEL'].upper()),
            format='%(asctime)s %(levelname)s %(name)s: %(message)s'
        )

    # Initialize correlation ID middleware
    from stock_ledger.api.middlewares import CorrelationIdMiddleware, init_correlation_id_logging
    CorrelationIdMiddleware(app)
    init_correlation_id_logging(app)

    # Initialize database
    from stock_ledger.database import init_db
    init_db(app)

    # CORS setup
    CORS(app, origins=app.config.get('CORS_ORIGINS', ['*']))

    # Storage, catalog, engine and queries
    from stock_ledger.ledger import init_ledger
    init_ledger(app, catalog=catalog)

    # Register blueprints/controllers
    from stock_ledger.api.controllers import ledger_bp, stats_bp, health_bp
    app.register_blueprint(ledger_bp, url_prefix='/api/v1')
    app.register_blueprint(stats_bp)
    app.register_blueprint(health_bp)

    # Register CLI commands
    from stock_ledger.cli import init_cli
    init_cli(app)

    # Register error handlers
    from stock_ledger.utils.error_handlers import register_error_handlers
    register_error_handlers(app)

    return app


def init_database(app):
    """Initialize database tables"""
    from stock_ledger.database import db
    with app.app_context():
        try:
            from sqlalchemy import text
            db.session.execute(text('SELECT 1'))
            db.create_all()
            app.logger.info("Database tables created successfully")
            return True
        except Exception as e:
            app.logger.error(f"Failed to create database tables: {e}")
            if app.config.get('LEDGER_STORAGE') == 'sql' and not app.debug:
                raise
            app.logger.warning("Continuing without database tables")
            return False
