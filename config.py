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

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'discounts')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'discounts')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'discounts')

        DATABASE_URL = (
            f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # Discount stacking policy
    # Lower priority numbers are applied first; id breaks ties
    DISCOUNT_STACKING_PRIORITY = os.getenv('DISCOUNT_STACKING_PRIORITY', 'asc')
    DISCOUNT_STACKING_ID = os.getenv('DISCOUNT_STACKING_ID', 'asc')

    # Maximum cumulative percentage across stacked percentage discounts
    DISCOUNT_MAX_PERCENTAGE_CAP = os.getenv('DISCOUNT_MAX_PERCENTAGE_CAP', '100')

    # Rounding of the final amount: 'up', 'down', 'nearest', 'none'
    DISCOUNT_ROUNDING = os.getenv('DISCOUNT_ROUNDING', 'nearest')
    DISCOUNT_ROUNDING_PRECISION = int(os.getenv('DISCOUNT_ROUNDING_PRECISION', '2'))


class TestConfig(Config):
    """Configuration used by the test suite (SQLite file database)."""

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite:///discounts-test.db')
    SQLALCHEMY_ECHO = False
