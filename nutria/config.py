import os
from datetime import timedelta

from dotenv import load_dotenv

# Config reads the environment at import time, so .env must be loaded first.
load_dotenv()


def normalize_database_url(url: str | None) -> str | None:
    if not url:
        return None
    if url.startswith("postgres://"):
        return "postgresql+psycopg://" + url[len("postgres://") :]
    if url.startswith("postgresql://"):
        return "postgresql+psycopg://" + url[len("postgresql://") :]
    return url


def _as_bool(raw: str | None, default: bool = False) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# config key -> environment variable reported when the value is missing
REQUIRED_SETTINGS = {
    "SQLALCHEMY_DATABASE_URI": "DATABASE_URL",
    "SECRET_KEY": "SESSION_SECRET",
    "GOOGLE_CLIENT_ID": "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET": "GOOGLE_CLIENT_SECRET",
    "OPENAI_API_KEY": "OPENAI_API_KEY",
    "USDA_API_KEY": "USDA_API_KEY",
}


class ConfigurationError(RuntimeError):
    pass


def missing_required_settings(config) -> list[str]:
    return [env_name for key, env_name in REQUIRED_SETTINGS.items() if not config.get(key)]


def validate_required_settings(config) -> None:
    missing = missing_required_settings(config)
    if missing:
        raise ConfigurationError(
            "Missing required configuration: " + ", ".join(missing) + ". Set them in the environment or .env file."
        )


class Config:
    SECRET_KEY = os.getenv("SESSION_SECRET") or os.getenv("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = normalize_database_url(os.getenv("DATABASE_URL"))
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "Lax")
    SESSION_COOKIE_SECURE = _as_bool(os.getenv("SESSION_COOKIE_SECURE"))
    SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "nutria_session")
    PERMANENT_SESSION_LIFETIME = timedelta(days=int(os.getenv("SESSION_LIFETIME_DAYS", "7")))

    AUTH_STRATEGY = os.getenv("AUTH_STRATEGY", "session").strip().lower()
    DEV_USER_EMAIL = os.getenv("DEV_USER_EMAIL", "dev@local.com")

    GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID") or os.getenv("GOOGLE_OAUTH_CLIENT_ID")
    GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET") or os.getenv("GOOGLE_OAUTH_SECRET")
    GOOGLE_OAUTH_REDIRECT_URI = os.getenv("GOOGLE_OAUTH_REDIRECT_URI")

    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY") or os.getenv("DEEPSEEK_API_KEY") or os.getenv("AI_API_KEY")
    OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL")
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4.1-mini")

    USDA_API_KEY = os.getenv("USDA_API_KEY") or os.getenv("FDC_API_KEY")
    USDA_BASE_URL = os.getenv("USDA_BASE_URL", "https://api.nal.usda.gov/fdc/v1")
    USDA_TIMEOUT_SECONDS = float(os.getenv("USDA_TIMEOUT_SECONDS", "8"))
    USDA_PAGE_SIZE = int(os.getenv("USDA_PAGE_SIZE", "50"))

    DEFAULT_TIME_ZONE = os.getenv("DEFAULT_TIME_ZONE", "UTC")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
