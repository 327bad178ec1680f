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

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'furnihive')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'furnihive')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'furnihive')

        DATABASE_URL = (
            f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # Redis (cart storage + order status channel)
    REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    REDIS_ENABLED = os.getenv('REDIS_ENABLED', 'true').lower() == 'true'
    REDIS_KEY_PREFIX = os.getenv('REDIS_KEY_PREFIX', 'furnihive')

    # Cart persistence backend: 'session', 'redis' or 'memory'
    CART_STORAGE = os.getenv('CART_STORAGE', 'session')
    CART_TTL = int(os.getenv('CART_TTL', str(7 * 86400)))  # seconds, redis only

    # Payment gateway (hosted checkout session endpoint)
    PAYMENT_GATEWAY_SESSION_URL = os.getenv('PAYMENT_GATEWAY_SESSION_URL', '')
    PAYMENT_GATEWAY_API_KEY = os.getenv('PAYMENT_GATEWAY_API_KEY', '')
    PAYMENT_GATEWAY_TIMEOUT = int(os.getenv('PAYMENT_GATEWAY_TIMEOUT', '10'))

    # Checkout behaviour
    CHECKOUT_CONTINUE_ON_FANOUT_FAILURE = (
        os.getenv('CHECKOUT_CONTINUE_ON_FANOUT_FAILURE', 'true').lower() == 'true'
    )

    # Order tracking refresh interval (seconds)
    ORDER_TRACKER_INTERVAL = float(os.getenv('ORDER_TRACKER_INTERVAL', '5'))


class TestConfig(Config):
    """Configuration used by the test suite."""

    TESTING = True
    DEBUG = False
    SECRET_KEY = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ECHO = False
    REDIS_ENABLED = False
    CART_STORAGE = 'session'
    PAYMENT_GATEWAY_SESSION_URL = 'https://gateway.test/checkout-sessions'
    PAYMENT_GATEWAY_API_KEY = 'test-key'
