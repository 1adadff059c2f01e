"""
Transfer engine: moves points between two known users.

A transfer is validated and resolved up front, recorded as ``pending``,
signed by the external signer and only then applied to the ledger. The
ledger write is one database transaction: debit sender, credit recipient,
bump the sender's shared points, append the Transaction record and mark the
transfer ``completed``. Any failure leaves balances untouched and marks the
transfer ``failed``.

Balance changes are expressed as relative increments at the store
(``balance = balance - :v``), never read/compute/write, so concurrent
transfers touching the same user cannot lose updates.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pointsbank import config
from pointsbank.db.models import (
    TRANSFER_COMPLETED,
    TRANSFER_FAILED,
    TRANSFER_PENDING,
    Transaction,
    Transfer,
    User,
    utcnow,
)
from pointsbank.logging_config import get_logger
from pointsbank.services.signer import SignerError, TransferDescriptor, sign_with_timeout

logger = get_logger("pointsbank.transfers")

MODE_EMAIL = "email"
MODE_WALLET = "wallet"
TRANSFER_MODES = (MODE_EMAIL, MODE_WALLET)


class TransferError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransferValidationError(TransferError):
    status_code = 400


class RecipientNotFound(TransferError):
    status_code = 404


class InsufficientBalance(TransferError):
    status_code = 400


class SenderMismatch(TransferError):
    status_code = 403


class LedgerConflict(Exception):
    """A ledger leg matched no row; the unit of work is rolled back."""


@dataclass(frozen=True)
class RecipientSelector:
    mode: str
    value: str

    def where(self):
        needle = self.value.strip().lower()
        if self.mode == MODE_EMAIL:
            return func.lower(User.email) == needle
        return func.lower(User.wallet_address) == needle


def parse_amount(raw) -> int:
    """
    Coerce user-supplied numeric text to a positive whole number of points.
    """
    if isinstance(raw, bool) or raw is None:
        raise TransferValidationError("Amount must be a positive whole number")
    if isinstance(raw, int):
        amount = raw
    elif isinstance(raw, float):
        if not raw.is_integer():
            raise TransferValidationError("Amount must be a positive whole number")
        amount = int(raw)
    else:
        text = str(raw).strip()
        # isdigit alone admits superscripts and other digits int() refuses
        if not (text.isascii() and text.isdigit()):
            raise TransferValidationError("Amount must be a positive whole number")
        amount = int(text)
    if amount <= 0:
        raise TransferValidationError("Amount must be greater than zero")
    return amount


class TransferEngine:
    def __init__(self, signer, timeout: float = None, gas: int = None):
        self.signer = signer
        self.timeout = config.SIGNER_TIMEOUT_SECONDS if timeout is None else timeout
        self.gas = config.SIGNER_GAS if gas is None else gas

    async def resolve_recipient(self, db: AsyncSession, selector: RecipientSelector) -> Optional[User]:
        res = await db.execute(select(User).where(selector.where()))
        matches = res.scalars().all()
        if len(matches) != 1:
            return None
        return matches[0]

    async def _reserve_nonce(self, db: AsyncSession, sender_id) -> Optional[int]:
        # Increment-and-return in one statement: concurrent transfers from the
        # same sender never share a nonce, so they never share a tx hash
        res = await db.execute(
            update(User)
            .where(User.id == sender_id)
            .values(next_nonce=User.next_nonce + 1)
            .returning(User.next_nonce)
            .execution_options(synchronize_session=False)
        )
        reserved = res.scalar_one_or_none()
        if reserved is None:
            return None
        return reserved - 1

    async def transfer(
        self,
        db: AsyncSession,
        sender: User,
        mode: str,
        recipient: str,
        amount,
        private_key: str,
        sender_address: Optional[str] = None,
    ) -> Transfer:
        """
        Run one transfer to completion and return its Transfer row.

        Raises TransferError subclasses for requests rejected before anything
        is written. Signing and ledger failures do not raise: they come back
        as a Transfer with status ``failed``.
        """
        if mode not in TRANSFER_MODES:
            raise TransferValidationError("mode must be 'email' or 'wallet'")
        if not recipient or not recipient.strip():
            raise TransferValidationError("Recipient is required")
        if not private_key:
            raise TransferValidationError("privateKey is required")
        value = parse_amount(amount)

        if sender_address and sender_address.strip().lower() != sender.wallet_address.lower():
            raise SenderMismatch("Sender address does not belong to the authenticated user")

        selector = RecipientSelector(mode=mode, value=recipient)
        rcv = await self.resolve_recipient(db, selector)
        if rcv is None:
            raise RecipientNotFound("Recipient not found")
        if rcv.id == sender.id:
            raise TransferValidationError("Cannot transfer points to yourself")
        if sender.balance < value:
            raise InsufficientBalance("Insufficient balance")

        sender_id, recipient_id = sender.id, rcv.id
        nonce = await self._reserve_nonce(db, sender_id)
        if nonce is None:
            await db.rollback()
            raise TransferValidationError("Sender no longer exists")
        descriptor = TransferDescriptor(
            from_address=sender.wallet_address,
            to_address=rcv.wallet_address,
            value=value,
            gas=self.gas,
            nonce=nonce,
        )

        transfer = Transfer(
            sender_id=sender_id,
            recipient_id=recipient_id,
            mode=mode,
            from_address=descriptor.from_address,
            to_address=descriptor.to_address,
            value=value,
            nonce=nonce,
            status=TRANSFER_PENDING,
        )
        db.add(transfer)
        await db.commit()
        transfer_id = transfer.id
        logger.info(
            "Transfer %s pending from=%s to=%s value=%s mode=%s",
            transfer_id,
            descriptor.from_address,
            descriptor.to_address,
            value,
            mode,
        )

        try:
            signed = await sign_with_timeout(self.signer, descriptor, private_key, self.timeout)
        except SignerError as e:
            return await self._fail(db, transfer, str(e))

        try:
            await self._apply(db, transfer, descriptor, signed.tx_hash, sender_id, recipient_id)
        except (LedgerConflict, SQLAlchemyError) as e:
            # A failed flush leaves the session unusable until rolled back
            await db.rollback()
            logger.exception("Ledger write failed for transfer %s", transfer_id)
            await db.refresh(transfer)
            reason = str(e) if isinstance(e, LedgerConflict) else "Ledger write failed"
            return await self._fail(db, transfer, reason)

        logger.info("Transfer %s completed tx_hash=%s", transfer_id, transfer.tx_hash)
        return transfer

    async def _apply(
        self,
        db: AsyncSession,
        transfer: Transfer,
        descriptor: TransferDescriptor,
        tx_hash: str,
        sender_id,
        recipient_id,
    ) -> None:
        value = descriptor.value
        debit = await db.execute(
            update(User)
            .where(User.id == sender_id, User.balance >= value)
            .values(balance=User.balance - value, shared_points=User.shared_points + value)
            .execution_options(synchronize_session=False)
        )
        if debit.rowcount != 1:
            raise LedgerConflict("Insufficient balance at settlement")

        credit = await db.execute(
            update(User)
            .where(User.id == recipient_id)
            .values(balance=User.balance + value)
            .execution_options(synchronize_session=False)
        )
        if credit.rowcount != 1:
            raise LedgerConflict("Recipient no longer exists")

        now = utcnow()
        db.add(
            Transaction(
                tx_hash=tx_hash,
                from_address=descriptor.from_address,
                to_address=descriptor.to_address,
                value=value,
                created_at=now,
            )
        )
        transfer.status = TRANSFER_COMPLETED
        transfer.tx_hash = tx_hash
        transfer.completed_at = now
        await db.commit()

    async def _fail(self, db: AsyncSession, transfer: Transfer, reason: str) -> Transfer:
        transfer.status = TRANSFER_FAILED
        transfer.failure_reason = reason[:255]
        transfer.completed_at = utcnow()
        await db.commit()
        logger.warning("Transfer %s failed: %s", transfer.id, reason)
        return transfer
