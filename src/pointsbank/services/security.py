"""
Credential utilities: bcrypt password hashing and JWT session credentials.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from pointsbank import config


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Check a plaintext secret against a stored bcrypt hash.
    Malformed hashes count as a mismatch.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def issue_token(summary: Dict[str, Any], expires_minutes: Optional[int] = None) -> str:
    """
    Sign a session credential embedding the user's public summary.
    Only `sub` (the email) is trusted when the credential is presented again.
    """
    now = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=config.JWT_EXPIRES_MINUTES if expires_minutes is None else expires_minutes)
    payload = {
        "sub": summary["email"],
        "user": summary,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def verify_token(token: str, secret: Optional[str] = None) -> Optional[dict]:
    """
    Verify JWT token. Returns the claims, or None for a bad signature,
    an expired credential or a malformed token.
    """
    try:
        return jwt.decode(
            token,
            secret or config.JWT_SECRET,
            algorithms=[config.JWT_ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.InvalidTokenError:
        return None
