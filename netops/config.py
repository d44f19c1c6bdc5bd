"""
NetOps Console
Configuration classes for Flask App Factory.

Usage:
    config_name = os.getenv("APP_ENV", "development")
    app.config.from_object(config[config_name])
"""

import os
import secrets

basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

# Default SQLite path for local dev when PostgreSQL is not running
_SQLITE_DEV = f"sqlite:///{os.path.join(basedir, 'instance', 'netops_dev.db')}"
_SQLITE_TEST = "sqlite:///:memory:"

# Generate a random key for development; production MUST use a stable env var
_DEV_SECRET = secrets.token_hex(32)


def _database_url():
    # Heroku-style postgres:// is rejected by SQLAlchemy 2.x
    raw = os.getenv("DATABASE_URL", "")
    return raw.replace("postgres://", "postgresql://", 1) if raw else ""


class Config:
    """Base configuration shared across all environments."""

    SECRET_KEY = os.getenv("SECRET_KEY", _DEV_SECRET)
    DEBUG = False
    TESTING = False

    # SQLAlchemy
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
    }

    # Redis (rate-limit storage; in-memory when unset)
    REDIS_URL = os.getenv("REDIS_URL", "")

    # CORS
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Energy cost derivation (currency per kWh)
    ENERGY_TARIFF_PER_KWH = float(os.getenv("ENERGY_TARIFF_PER_KWH", "0.15"))

    # Alert polling
    ALERT_POLL_INTERVAL = int(os.getenv("ALERT_POLL_INTERVAL", "30"))
    ALERT_FEED_LIMIT = int(os.getenv("ALERT_FEED_LIMIT", "10"))

    # Per-blueprint rate limits (netops.middleware.rate_limiter)
    WRITE_RATE_LIMIT = os.getenv("WRITE_RATE_LIMIT", "60/minute")
    READ_RATE_LIMIT = os.getenv("READ_RATE_LIMIT", "200/minute")

    # Requests slower than this log a warning (netops.middleware.timing)
    SLOW_REQUEST_MS = int(os.getenv("SLOW_REQUEST_MS", "1000"))


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    SQLALCHEMY_DATABASE_URI = _database_url() or _SQLITE_DEV


class TestingConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", _SQLITE_TEST)
    SQLALCHEMY_ENGINE_OPTIONS = {}
    WRITE_RATE_LIMIT = "10000/minute"
    READ_RATE_LIMIT = "10000/minute"
    ENERGY_TARIFF_PER_KWH = 0.15


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    SQLALCHEMY_DATABASE_URI = _database_url() or None
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")  # Must be set explicitly in production

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
        "pool_timeout": 20,
        "connect_args": {
            "options": "-c statement_timeout=30000",  # 30s query timeout
        },
    }

    def __init__(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise RuntimeError("DATABASE_URL environment variable is required in production")
        if not os.getenv("SECRET_KEY"):
            raise RuntimeError("SECRET_KEY environment variable must be set in production")
        if self.ENERGY_TARIFF_PER_KWH < 0:
            raise RuntimeError("ENERGY_TARIFF_PER_KWH cannot be negative")


# Configuration mapping: environment name -> config class
config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
