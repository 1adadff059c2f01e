# pointsbank/db/crud.py
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pointsbank.db.models import ROLE_ADMIN, Notification, User


async def get_user_by_id(db: AsyncSession, user_id) -> Optional[User]:
    q = select(User).where(User.id == user_id)
    res = await db.execute(q)
    return res.scalars().first()


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    q = select(User).where(func.lower(User.email) == (email or "").strip().lower())
    res = await db.execute(q)
    return res.scalars().first()


async def get_user_by_wallet(db: AsyncSession, address: str) -> Optional[User]:
    q = select(User).where(func.lower(User.wallet_address) == (address or "").strip().lower())
    res = await db.execute(q)
    return res.scalars().first()


async def list_users(db: AsyncSession, limit: int = 50, offset: int = 0, include_admins: bool = False) -> List[User]:
    q = select(User)
    if not include_admins:
        q = q.where(User.role != ROLE_ADMIN)
    q = q.order_by(User.created_at.desc()).limit(limit).offset(offset)
    res = await db.execute(q)
    return res.scalars().all()


async def list_notifications(db: AsyncSession, user_id=None) -> List[Notification]:
    q = select(Notification)
    if user_id is not None:
        q = q.where(Notification.user_id == user_id)
    q = q.order_by(Notification.created_at.desc())
    res = await db.execute(q)
    return res.scalars().all()
