from pydantic_settings import BaseSettings
from typing import List, Literal
from pydantic import ValidationError, field_validator
import sys


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./memory_bank.db"
    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    ENVIRONMENT: str = "development"

    # --- Auth configuration ---
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Performance instrumentation
    SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS: int = 300

    # --- Review scheduler ---
    # Session sizes offered by the review dashboard. Anything else falls back
    # to the default size.
    REVIEW_SESSION_SIZES: List[int] = [3, 5, 10, 25]
    REVIEW_DEFAULT_SESSION_SIZE: int = 5

    REVIEW_INTERVAL_POLICY: Literal["binary", "growth"] = "binary"
    REVIEW_FULL_CREDIT_INTERVAL_DAYS: float = 7.0
    REVIEW_MISS_INTERVAL_DAYS: float = 1.0

    class Config:
        env_file = ".env"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        """Rewrite any Postgres URL to the ``postgresql+asyncpg://`` scheme.

        The review services only use async sessions, so ``postgres://``,
        ``postgresql://`` and psycopg URLs are upgraded. SQLite URLs pass
        through unchanged.
        """

        if not isinstance(value, str):
            return value

        if "+asyncpg" in value:
            return value

        replacements = {
            "postgres://": "postgresql+asyncpg://",
            "postgresql://": "postgresql+asyncpg://",
            "postgresql+psycopg2://": "postgresql+asyncpg://",
            "postgresql+psycopg://": "postgresql+asyncpg://",
        }

        for prefix, target in replacements.items():
            if value.startswith(prefix):
                return target + value[len(prefix) :]

        return value

    @field_validator("REVIEW_SESSION_SIZES")
    @classmethod
    def _check_session_sizes(cls, value: List[int]) -> List[int]:
        if not value or any(size <= 0 for size in value):
            raise ValueError("session sizes must be positive integers")
        return sorted(set(value))


def _log_settings_validation_error(exc: ValidationError) -> None:
    """Print one line per invalid or missing setting to stderr."""

    print("Invalid memory-bank configuration:", file=sys.stderr)

    details = exc.errors()
    if not details:
        print(exc, file=sys.stderr)
        return

    for error in details:
        location = ".".join(str(part) for part in error.get("loc", ())) or "<settings>"
        message = error.get("msg", "Unknown validation error")
        type_name = error.get("type")
        suffix = f" (type={type_name})" if type_name else ""
        print(f"  - {location}: {message}{suffix}", file=sys.stderr)


try:
    settings = Settings()
except ValidationError as exc:  # pragma: no cover - exercised at runtime
    _log_settings_validation_error(exc)
    raise
