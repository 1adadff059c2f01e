"""
FastAPI dependencies: database sessions, the Auth Gate and shared services.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from pointsbank.db import crud
from pointsbank.db.models import ROLE_ADMIN, User
from pointsbank.db.session import AsyncSessionLocal
from pointsbank.logging_config import get_logger
from pointsbank.services.otp import OtpManager, build_email_provider
from pointsbank.services.security import verify_token
from pointsbank.services.signer import EthAccountSigner
from pointsbank.services.transfers import TransferEngine

logger = get_logger("pointsbank.api.auth")

_signer = None
_otp_manager = None
_email_provider = None


async def get_db() -> AsyncGenerator:
    """
    Async DB session dependency for FastAPI routes.
    """
    async with AsyncSessionLocal() as session:
        yield session


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def resolve_user(db: AsyncSession, authorization: Optional[str]) -> Optional[User]:
    """
    Auth Gate: map an Authorization header to the current User record.

    Never raises. A missing header, a bad signature, an expired credential and
    an email that no longer resolves all yield None. The user is always looked
    up fresh by the credential's email, never taken from the embedded claims.
    """
    token = _bearer_token(authorization)
    if token is None:
        return None
    claims = verify_token(token)
    if not claims:
        logger.info("Rejected session credential (invalid or expired)")
        return None
    return await crud.get_user_by_email(db, claims.get("sub"))


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    return await resolve_user(db, authorization)


async def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authorized")
    return user


async def require_admin(user: User = Depends(require_user)) -> User:
    if user.role != ROLE_ADMIN:
        logger.warning("Admin route denied for user_id=%s", user.id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not Authorized")
    return user


def get_signer():
    global _signer
    if _signer is None:
        _signer = EthAccountSigner()
    return _signer


def get_transfer_engine(signer=Depends(get_signer)) -> TransferEngine:
    return TransferEngine(signer)


def get_otp_manager() -> OtpManager:
    global _otp_manager
    if _otp_manager is None:
        _otp_manager = OtpManager()
    return _otp_manager


def get_email_provider():
    global _email_provider
    if _email_provider is None:
        _email_provider = build_email_provider()
    return _email_provider
