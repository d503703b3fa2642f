"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    TESTING = False

    # Session Configuration (Production-safe defaults)
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', 'Lax')
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours

    # CSRF: the admin front end sends X-CSRFToken on every fetch
    WTF_CSRF_ENABLED = os.getenv('WTF_CSRF_ENABLED', 'true').lower() == 'true'
    WTF_CSRF_HEADERS = ['X-CSRFToken', 'X-CSRF-Token']

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'backoffice')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'backoffice')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'backoffice')

        DATABASE_URL = (
            f"postgresql://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # Stock
    DEFAULT_MIN_STOCK = int(os.getenv('DEFAULT_MIN_STOCK', '5'))
    # Re-runs of the commit protocol after a lock timeout or a stale counter
    SALE_COMMIT_RETRIES = int(os.getenv('SALE_COMMIT_RETRIES', '3'))
    SALE_COMMIT_BACKOFF = float(os.getenv('SALE_COMMIT_BACKOFF', '0.05'))

    # Listing limits
    DEFAULT_LIST_LIMIT = int(os.getenv('DEFAULT_LIST_LIMIT', '50'))
    MAX_LIST_LIMIT = int(os.getenv('MAX_LIST_LIMIT', '500'))

    # Store defaults (used by `flask seed`)
    STORE_NAME = os.getenv('STORE_NAME', 'Mi Tienda Online')
    STORE_CURRENCY = os.getenv('STORE_CURRENCY', 'USD')
    STORE_LANGUAGE = os.getenv('STORE_LANGUAGE', 'es')
    STORE_TIMEZONE = os.getenv('STORE_TIMEZONE', 'America/Argentina/Buenos_Aires')

    # Redis Cache Configuration
    # Inventory reports are cached per store and invalidated on every stock write
    REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    CACHE_ENABLED = os.getenv('CACHE_ENABLED', 'true').lower() == 'true'
    CACHE_REPORTS_TTL = int(os.getenv('CACHE_REPORTS_TTL', '120'))
    CACHE_KEY_PREFIX = os.getenv('CACHE_KEY_PREFIX', 'backoffice')


class TestConfig(Config):
    """Configuration used by the test suite (in-memory SQLite, no Redis)."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ECHO = False
    WTF_CSRF_ENABLED = False
    CACHE_ENABLED = False
    SALE_COMMIT_BACKOFF = 0.0
