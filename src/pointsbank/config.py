"""
pointsbank/config.py

Environment-driven settings for the points service.
Values are read once at import time (after loading a local .env if present).
"""

import os
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

load_dotenv(find_dotenv(usecwd=True), override=False)


def _as_bool(value, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _normalize_db_url(db_url: str) -> str:
    # Hosted Postgres often hands out "postgres://"; the async engine needs a driver
    if db_url.startswith("postgres://"):
        return db_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if db_url.startswith("postgresql://"):
        return db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return db_url


# -------------------
# Database
# -------------------
DATABASE_URL = _normalize_db_url(os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./pointsbank.db"))
SQL_ECHO = _as_bool(os.getenv("SQL_ECHO"), default=False)

# -------------------
# Session credentials
# -------------------
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "1440"))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

# -------------------
# Ledger
# -------------------
DEFAULT_BALANCE = int(os.getenv("DEFAULT_BALANCE", "1000"))

# -------------------
# Transaction signer
# -------------------
SIGNER_TIMEOUT_SECONDS = float(os.getenv("SIGNER_TIMEOUT_SECONDS", "10"))
SIGNER_GAS = int(os.getenv("SIGNER_GAS", "21000"))
SIGNER_GAS_PRICE = int(os.getenv("SIGNER_GAS_PRICE", "0"))
SIGNER_CHAIN_ID = int(os.getenv("SIGNER_CHAIN_ID", "1"))

# -------------------
# OTP / email
# -------------------
OTP_TTL_SECONDS = int(os.getenv("OTP_TTL_SECONDS", "600"))
OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", "3"))
REQUIRE_EMAIL_VERIFICATION = _as_bool(os.getenv("REQUIRE_EMAIL_VERIFICATION"), default=False)

MAIL_API_URL = os.getenv("MAIL_API_URL", "")
MAIL_API_KEY = os.getenv("MAIL_API_KEY", "")
MAIL_SENDER = os.getenv("MAIL_SENDER", "no-reply@pointsbank.local")
MAIL_REQUEST_TIMEOUT = float(os.getenv("MAIL_REQUEST_TIMEOUT", "10"))

# -------------------
# Service
# -------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = Path(os.getenv("LOG_DIR", str(Path(__file__).resolve().parents[2] / "logs")))
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
