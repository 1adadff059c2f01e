from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select

from pointsbank.db.models import ROLE_ADMIN, TRANSFER_COMPLETED, Transaction, Transfer, User
from pointsbank.logging_config import get_logger
from pointsbank.services import history as history_service
from pointsbank.services.transfers import TransferError
from .deps import get_db, get_transfer_engine, require_admin, require_user
from .schemas import SendPointsRequest
from .serializers import serialize_transfer, serialize_tx

logger = get_logger("pointsbank.api.points")

router = APIRouter(tags=["points"])


@router.post("/sendPoints")
async def send_points(
    payload: SendPointsRequest,
    db=Depends(get_db),
    user: User = Depends(require_user),
    engine=Depends(get_transfer_engine),
):
    """
    Transfer points from the caller to a user identified by email or wallet.

    Responds once the transfer has settled (or failed); the body carries the
    transfer's final status. Balances move only when status is ``completed``.
    """
    logger.info(
        "sendPoints request user_id=%s mode=%s rcv=%s value=%r",
        user.id,
        payload.mode,
        payload.rcv_address,
        payload.value,
    )
    try:
        transfer = await engine.transfer(
            db,
            user,
            payload.mode,
            payload.rcv_address,
            payload.value,
            payload.private_key,
            sender_address=payload.snd_address,
        )
    except TransferError as e:
        logger.warning("sendPoints rejected user_id=%s: %s", user.id, e.message)
        raise HTTPException(status_code=e.status_code, detail=e.message)

    completed = transfer.status == TRANSFER_COMPLETED
    return {
        "success": completed,
        "message": "Transfer completed" if completed else f"Transfer failed: {transfer.failure_reason}",
        "data": serialize_transfer(transfer),
    }


@router.get("/transfers/{transfer_id}")
async def get_transfer(transfer_id: UUID, db=Depends(get_db), user: User = Depends(require_user)):
    """
    Status of a transfer, visible to its sender, its recipient and admins.
    """
    transfer = await db.get(Transfer, transfer_id)
    if transfer is None or (user.role != ROLE_ADMIN and user.id not in (transfer.sender_id, transfer.recipient_id)):
        raise HTTPException(status_code=404, detail="Transfer not found")
    return {"success": True, "data": serialize_transfer(transfer)}


@router.get("/user-transactions")
async def get_user_transactions(db=Depends(get_db), user: User = Depends(require_user)):
    """
    The caller's transactions, sent or received, newest first.
    """
    txs = await history_service.history(db, user.wallet_address)
    return {"success": True, "count": len(txs), "data": [serialize_tx(t) for t in txs]}


@router.get("/biYearlyTransactions")
async def get_bi_yearly_transactions(db=Depends(get_db), user: User = Depends(require_user)):
    """
    Monthly transaction counts for the caller, oldest month first.
    """
    months = await history_service.rollup(db, user.wallet_address)
    return {"success": True, "data": [{"month": month, "count": count} for month, count in months]}


@router.get("/transactions")
async def get_transactions(limit: int = 100, offset: int = 0, db=Depends(get_db), admin: User = Depends(require_admin)):
    stmt = (
        select(Transaction)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(limit)
        .offset(offset)
    )
    res = await db.execute(stmt)
    txs = res.scalars().all()
    return {"success": True, "count": len(txs), "data": [serialize_tx(t) for t in txs]}
