from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Uuid

from pointsbank import config
from pointsbank.db.session import Base

ROLE_USER = "user"
ROLE_ADMIN = "admin"

TRANSFER_PENDING = "pending"
TRANSFER_COMPLETED = "completed"
TRANSFER_FAILED = "failed"


def utcnow() -> datetime:
    # Naive UTC so SQLite and Postgres TIMESTAMP columns round-trip identically
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=ROLE_USER)
    # Public wallet identity only; the signing key is never stored
    wallet_address = Column(String(42), unique=True, index=True, nullable=False)
    balance = Column(Integer, nullable=False, default=config.DEFAULT_BALANCE)
    # Cumulative points ever sent
    shared_points = Column(Integer, nullable=False, default=0)
    is_top_performer = Column(Boolean, nullable=False, default=False)
    # Next signing nonce; reserved atomically when a transfer is recorded
    next_nonce = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Transaction(Base):
    """Immutable record of a signed, completed transfer."""

    __tablename__ = "transactions"

    id = Column(Uuid, primary_key=True, default=uuid4)
    tx_hash = Column(String(66), unique=True, nullable=False)
    from_address = Column(String(42), index=True, nullable=False)
    to_address = Column(String(42), index=True, nullable=False)
    value = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)


class Transfer(Base):
    """Status of one transfer request: pending -> completed | failed."""

    __tablename__ = "transfers"

    id = Column(Uuid, primary_key=True, default=uuid4)
    sender_id = Column(Uuid, index=True, nullable=False)
    recipient_id = Column(Uuid, index=True, nullable=False)
    mode = Column(String(10), nullable=False)
    from_address = Column(String(42), nullable=False)
    to_address = Column(String(42), nullable=False)
    value = Column(Integer, nullable=False)
    nonce = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=TRANSFER_PENDING)
    tx_hash = Column(String(66), nullable=True)
    failure_reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    completed_at = Column(DateTime, nullable=True)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow)
