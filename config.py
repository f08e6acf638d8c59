import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration shared across all environments."""
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }
    # Sessions expire after 8 hours (one work shift)
    PERMANENT_SESSION_LIFETIME = timedelta(hours=8)

    # ── Retail backend ────────────────────────────────────────────
    API_BASE_URL = os.environ.get('API_BASE_URL', 'http://localhost:8080/api')
    API_TIMEOUT = float(os.environ.get('API_TIMEOUT', '10'))
    # The backend serves /discounts/validate as GET with query params
    DISCOUNT_VALIDATE_METHOD = os.environ.get('DISCOUNT_VALIDATE_METHOD', 'GET').upper()
    STORE_INVENTORY_LIMIT = int(os.environ.get('STORE_INVENTORY_LIMIT', '1000'))

    # ── POS defaults (overridden by backend /settings) ────────────
    DEFAULT_TAX_RATE = os.environ.get('DEFAULT_TAX_RATE', '11')          # PPN %
    DEFAULT_POINT_VALUE = os.environ.get('DEFAULT_POINT_VALUE', '100')   # Rp per point
    DEFAULT_LOYALTY_MIN_PURCHASE = os.environ.get('DEFAULT_LOYALTY_MIN_PURCHASE', '10000')
    DEFAULT_LOYALTY_MIN_REDEEM = os.environ.get('DEFAULT_LOYALTY_MIN_REDEEM', '10')
    QUICK_TENDER_AMOUNTS = [50000, 100000, 200000, 500000]


class DevelopmentConfig(Config):
    """Development environment configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL',
        f'sqlite:///{os.path.join(os.getcwd(), "terminal.db")}'
    )


class ProductionConfig(Config):
    """Production environment configuration."""
    DEBUG = False

    _db_url = os.environ.get('DATABASE_URL')
    if _db_url and _db_url.startswith('postgres://'):
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url or f'sqlite:///{os.path.join(os.getcwd(), "terminal.db")}'

    SECRET_KEY = os.environ.get('SECRET_KEY')

    # Session Cookie Security
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class TestingConfig(Config):
    """Testing environment configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SESSION_COOKIE_SECURE = False
    SQLALCHEMY_ENGINE_OPTIONS = {}
    API_BASE_URL = 'http://backend.test/api'


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
