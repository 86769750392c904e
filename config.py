import os


def get_database_uri():
    """Database URI from the environment, SQLite file by default"""
    return (
        os.environ.get('SQLALCHEMY_DATABASE_URI')
        or os.environ.get('DATABASE_URL')
        or 'sqlite:///stock_ledger.db'
    )


class Config:
    """Base configuration"""

    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database - resolved at app creation so .env values are honoured
    SQLALCHEMY_DATABASE_URI = None
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
    }

    # Ledger storage backend: 'sql' or 'memory'
    LEDGER_STORAGE = os.environ.get('LEDGER_STORAGE', 'sql')

    # Unit price recorded on OUT movements: 'caller' or 'avg_cost'
    OUT_COSTING_POLICY = os.environ.get('OUT_COSTING_POLICY', 'caller')

    TRANSACTION_NO_PREFIX = os.environ.get('TRANSACTION_NO_PREFIX', 'TXN')

    # Master data service; the in-memory catalog is used when unset
    CATALOG_SERVICE_URL = os.environ.get('CATALOG_SERVICE_URL')
    CATALOG_TIMEOUT_SECONDS = float(os.environ.get('CATALOG_TIMEOUT_SECONDS', 5))
    DEFAULT_REORDER_THRESHOLD = int(os.environ.get('DEFAULT_REORDER_THRESHOLD', 10))

    # Pagination
    DEFAULT_PAGE_SIZE = int(os.environ.get('DEFAULT_PAGE_SIZE', 20))
    MAX_PAGE_SIZE = int(os.environ.get('MAX_PAGE_SIZE', 100))

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_LEVEL = 'DEBUG'


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    # Use in-memory SQLite and the memory ledger for testing
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LEDGER_STORAGE = 'memory'
    OUT_COSTING_POLICY = 'caller'
    CATALOG_SERVICE_URL = None


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
