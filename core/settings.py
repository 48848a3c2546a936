from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()

SUPPORTED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _split_csv(value: str | None) -> tuple[str, ...]:
    if not value:
        return tuple()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _env(name: str) -> str | None:
    raw_value = os.getenv(name)
    if raw_value is None:
        return None
    normalized = raw_value.strip()
    return normalized or None


def collect_missing_required_env_vars() -> list[str]:
    missing: list[str] = []

    always_required = (
        "MONGO_URL",
        "DB_NAME",
        "GOOGLE_PLACES_API_KEY",
    )
    for var_name in always_required:
        if _env(var_name) is None:
            missing.append(var_name)

    env = (_env("ENV") or "development").lower()
    if env == "production" and _env("SECRET_KEY") is None:
        missing.append("SECRET_KEY")

    return sorted(set(missing))


def collect_invalid_env_values() -> list[str]:
    invalid_values: list[str] = []

    timeout = _env("PLACES_TIMEOUT_SECONDS")
    if timeout is not None:
        try:
            parsed_timeout = float(timeout)
            if parsed_timeout <= 0:
                raise ValueError("must be positive")
        except ValueError:
            invalid_values.append("PLACES_TIMEOUT_SECONDS must be a positive number")

    log_level = (_env("LOG_LEVEL") or "INFO").upper()
    if log_level not in SUPPORTED_LOG_LEVELS:
        invalid_values.append(
            "LOG_LEVEL must be one of: " + ", ".join(sorted(SUPPORTED_LOG_LEVELS))
        )

    return invalid_values


def validate_required_environment() -> None:
    missing_vars = collect_missing_required_env_vars()
    invalid_values = collect_invalid_env_values()
    if not missing_vars and not invalid_values:
        return

    message_lines = ["Application startup blocked by invalid environment configuration."]
    if missing_vars:
        message_lines.append("")
        message_lines.append("Missing required environment variables:")
        message_lines.extend(f"- {name}" for name in missing_vars)
    if invalid_values:
        message_lines.append("")
        message_lines.append("Invalid environment values:")
        message_lines.extend(f"- {message}" for message in invalid_values)
    raise RuntimeError("\n".join(message_lines))


@dataclass(frozen=True)
class Settings:
    env: str
    secret_key: str
    cors_origins: tuple[str, ...]
    debug_include_error_details: bool
    mongo_url: str
    db_name: str
    redis_url: str
    google_places_api_key: str
    places_timeout_s: float
    log_level: str

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"


def load_settings() -> Settings:
    """Builds settings from the environment without enforcing required variables."""
    default_redis = (
        os.getenv("REDIS_URL")
        or f"redis://{os.getenv('REDIS_HOST', '127.0.0.1')}:{os.getenv('REDIS_PORT', '6379')}/0"
    )

    return Settings(
        env=os.getenv("ENV", "development"),
        secret_key=os.getenv("SECRET_KEY", ""),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS")),
        debug_include_error_details=os.getenv("DEBUG_INCLUDE_ERROR_DETAILS", "false").lower()
        in {"1", "true", "yes"},
        mongo_url=os.getenv("MONGO_URL", "mongodb://127.0.0.1:27017"),
        db_name=os.getenv("DB_NAME", "playdates"),
        redis_url=default_redis,
        google_places_api_key=(os.getenv("GOOGLE_PLACES_API_KEY") or "").strip(),
        places_timeout_s=float(os.getenv("PLACES_TIMEOUT_SECONDS", "10")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    validate_required_environment()
    settings = load_settings()

    if settings.is_production and not settings.secret_key:
        raise RuntimeError("SECRET_KEY is required when ENV=production")

    return settings
