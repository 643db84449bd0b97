"""Application configuration.

Every value comes from the environment (a local .env file is loaded by
the package) so deployments never need code changes.
"""

import os
from decimal import Decimal


def _database_url(default):
    url = os.getenv('DATABASE_URL', default)
    # Some hosts still hand out postgres:// URLs, SQLAlchemy wants postgresql://
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url


class Config:
    """Base configuration shared by every environment."""

    SQLALCHEMY_DATABASE_URI = _database_url('sqlite:///neighborly.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    AUTO_CREATE_TABLES = True

    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    JWT_ACCESS_TOKEN_EXPIRES = int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES', 2592000))

    # Marketplace economics
    MIN_JOB_PRICE = Decimal(os.getenv('MIN_JOB_PRICE_USD', '7'))
    PLATFORM_FEE_PERCENT = Decimal(os.getenv('PLATFORM_FEE_PERCENT', '15'))
    CURRENCY = os.getenv('CURRENCY', 'usd')

    # Stripe Connect
    STRIPE_SECRET_KEY = os.getenv('STRIPE_SECRET_KEY')
    STRIPE_PUBLISHABLE_KEY = os.getenv('STRIPE_PUBLISHABLE_KEY')
    STRIPE_WEBHOOK_SECRET = os.getenv('STRIPE_WEBHOOK_SECRET')
    CHECKOUT_SESSION_TTL_MINUTES = int(os.getenv('CHECKOUT_SESSION_TTL_MINUTES', 60))

    FRONTEND_URL = os.getenv('FRONTEND_URL', 'http://localhost:8081')
    CHAT_THREAD_TTL_HOURS = int(os.getenv('CHAT_THREAD_TTL_HOURS', 72))

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    JWT_SECRET_KEY = 'test-secret-key-for-testing'
    MIN_JOB_PRICE = Decimal('7')
    PLATFORM_FEE_PERCENT = Decimal('15')
    CURRENCY = 'usd'
    STRIPE_WEBHOOK_SECRET = 'whsec_test_secret'
    STRIPE_PUBLISHABLE_KEY = 'pk_test_123'
    LOG_LEVEL = 'DEBUG'


class ProductionConfig(Config):
    # Schema is owned by Alembic in production
    AUTO_CREATE_TABLES = False


CONFIGS = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
}


def get_config(config_name):
    """Return the config class for an environment name (defaults to development)."""
    return CONFIGS.get(config_name or 'development', DevelopmentConfig)
