"""
Environment-aware configuration.
Signing secrets have no defaults outside testing: the app refuses to start
without two distinct secrets of at least MIN_SECRET_LENGTH bytes.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_list(name: str, default: str = "") -> list:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class BaseConfig:
    DEBUG = False
    TESTING = False
    APP_ENV = os.getenv("APP_ENV", "development")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    # CORS: in dev we usually allow "*", in prod supply a comma-separated list in env
    CORS_ORIGINS = _env_list("CORS_ORIGINS", "*")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///luxsuv-auth.db")
    SQL_ECHO = _env_bool("SQL_ECHO")

    # Token configuration
    JWT_ACCESS_SECRET = os.getenv("JWT_ACCESS_SECRET", "")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", "")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "luxsuv-api")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "luxsuv-clients")
    ACCESS_TOKEN_TTL = timedelta(seconds=int(os.getenv("ACCESS_TOKEN_TTL_SECONDS", "900")))
    REFRESH_TOKEN_TTL = timedelta(seconds=int(os.getenv("REFRESH_TOKEN_TTL_SECONDS", str(7 * 24 * 3600))))
    MIN_SECRET_LENGTH = int(os.getenv("MIN_SECRET_LENGTH", "32"))

    PASSWORD_MIN_LENGTH = int(os.getenv("PASSWORD_MIN_LENGTH", "8"))
    MAX_CONTENT_LENGTH = 1 << 20  # 1 MiB request bodies
    REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "3"))
    COOKIE_SECURE = False

    # Optional first admin, created at startup if missing
    BOOTSTRAP_ADMIN_EMAIL = os.getenv("BOOTSTRAP_ADMIN_EMAIL", "")
    BOOTSTRAP_ADMIN_PASSWORD = os.getenv("BOOTSTRAP_ADMIN_PASSWORD", "")


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class ProductionConfig(BaseConfig):
    DEBUG = False
    APP_ENV = "production"
    COOKIE_SECURE = True
    # no cross-origin access unless origins are listed
    CORS_ORIGINS = _env_list("CORS_ORIGINS")


class TestingConfig(BaseConfig):
    TESTING = True
    APP_ENV = "testing"
    DATABASE_URL = "sqlite:///:memory:"
    JWT_ACCESS_SECRET = "test-access-secret-0123456789-abcdefghij"
    JWT_REFRESH_SECRET = "test-refresh-secret-0123456789-abcdefghij"
    BOOTSTRAP_ADMIN_EMAIL = ""
    BOOTSTRAP_ADMIN_PASSWORD = ""


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (development/production).
    """
    env = (name or os.getenv("APP_ENV", "development")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
