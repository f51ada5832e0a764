# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Core configuration — all env-driven, zero hardcode.
Single source of truth for every tunable parameter.
"""

import os


def _csv(name: str, default: str = "") -> list[str]:
    return [v.strip() for v in os.getenv(name, default).split(",") if v.strip()]


class Settings:
    """Application settings loaded from environment variables."""

    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "pbl-teams")
    SERVICE_VERSION: str = os.getenv("SERVICE_VERSION", "1.0.0")
    SERVICE_PORT: int = int(os.getenv("SERVICE_PORT", "8000"))

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./pbl_teams.db")
    POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "10"))
    MAX_OVERFLOW: int = int(os.getenv("DB_MAX_OVERFLOW", "5"))
    POOL_RECYCLE: int = int(os.getenv("DB_POOL_RECYCLE", "300"))
    AUTO_CREATE_SCHEMA: bool = os.getenv("AUTO_CREATE_SCHEMA", "true").lower() == "true"

    # ── Google Sheets mirror ──
    GOOGLE_SHEETS_ID: str = os.getenv("GOOGLE_SHEETS_ID", "").strip()
    GOOGLE_SERVICE_ACCOUNT_EMAIL: str = os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL", "").strip()
    GOOGLE_PRIVATE_KEY: str = os.getenv("GOOGLE_PRIVATE_KEY", "").strip()
    GOOGLE_SERVICE_ACCOUNT_JSON_PATH: str = os.getenv(
        "GOOGLE_SERVICE_ACCOUNT_JSON_PATH", ""
    ).strip()
    SHEETS_TIMEOUT: float = float(os.getenv("SHEETS_TIMEOUT", "10.0"))

    # ── Auth gateway ──
    GATEWAY_API_KEYS: list[str] = _csv("GATEWAY_API_KEYS")

    # ── Pagination ──
    DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "50"))
    MAX_PAGE_SIZE: int = int(os.getenv("MAX_PAGE_SIZE", "200"))

    # ── Seed ──
    SEED_DEFAULTS: bool = os.getenv("SEED_DEFAULTS", "true").lower() == "true"
    SEED_ADMIN_EMAIL: str = os.getenv("SEED_ADMIN_EMAIL", "admin@pbl.local").strip().lower()
    SEED_TEACHER_EMAIL: str = os.getenv("SEED_TEACHER_EMAIL", "teacher@pbl.local").strip().lower()
    SEED_TEACHER_NAME: str = os.getenv("SEED_TEACHER_NAME", "Teacher").strip()

    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
