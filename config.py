"""
Application configuration.
This module defines the configuration settings for the BQC Generator API, including database connection, secret keys,
token lifetime and CORS origins. It uses environment variables for sensitive information and defaults for development.
In production, make sure to set SECRET_KEY and JWT_SECRET_KEY.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


def _database_url() -> str:
    url = os.environ.get("DATABASE_URL", f"sqlite:///{BASE_DIR / 'bqc.db'}")
    # Hosted Postgres providers still hand out the legacy scheme.
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def _csv(value: str) -> list:
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    """Base configuration shared by all environments."""

    # IMPORTANT: change this in production
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me-please")

    # Database: SQLite for development, DATABASE_URL (Postgres) in production
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer tokens
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_EXPIRES_MINUTES = int(os.environ.get("JWT_EXPIRES_MINUTES", str(24 * 60)))

    # Usernames that are always treated as admins (comma separated)
    ADMIN_USERNAMES = _csv(os.environ.get("ADMIN_USERNAMES", ""))

    # "*" or a comma separated list of allowed origins
    CORS_ORIGINS = _csv(os.environ.get("CORS_ORIGINS", "*"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    APP_NAME = "BQC Generator"


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-jwt-secret"
    ADMIN_USERNAMES = []
    CORS_ORIGINS = ["http://localhost:5173"]
