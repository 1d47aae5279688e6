"""
Environment-aware configuration.
Values come from the environment (.env is read if present); the token
lifetimes and lockout policy are exposed here so deployments can tune them.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present

DEV_JWT_SECRET = "dev-secret-change-me"


def _seconds(name: str, default: int) -> timedelta:
    return timedelta(seconds=int(os.getenv(name, str(default))))


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    APP_URL = os.getenv("APP_URL", "http://localhost:8000")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///treenetra.db")
    SQLALCHEMY_ECHO = False

    # jwt configurations
    JWT_SECRET = os.getenv("JWT_SECRET", DEV_JWT_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "treenetra-api")
    JWT_ACCESS_EXPIRES = _seconds("JWT_ACCESS_EXPIRES_SECONDS", 15 * 60)
    JWT_REFRESH_EXPIRES = _seconds("JWT_REFRESH_EXPIRES_SECONDS", 7 * 24 * 3600)

    # lockout and reset policy
    MAX_LOGIN_ATTEMPTS = int(os.getenv("MAX_LOGIN_ATTEMPTS", "5"))
    ACCOUNT_LOCK_DURATION = _seconds("ACCOUNT_LOCK_SECONDS", 30 * 60)
    PASSWORD_RESET_EXPIRES = _seconds("PASSWORD_RESET_EXPIRES_SECONDS", 3600)

    # outbound mail; without MAIL_HOST messages are only logged
    MAIL_HOST = os.getenv("MAIL_HOST")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_USE_TLS = _flag("MAIL_USE_TLS", "true")
    MAIL_FROM = os.getenv("MAIL_FROM", "noreply@treenetra.com")
    MAIL_WORKERS = int(os.getenv("MAIL_WORKERS", "2"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    JWT_SECRET = "test-secret"
    MAIL_HOST = None
    LOG_LEVEL = "WARNING"


class ProductionConfig(BaseConfig):
    DEBUG = False


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
