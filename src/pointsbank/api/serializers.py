from typing import Any, Dict, Optional

from pointsbank.db.models import Notification, Transaction, Transfer, User


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_user(u: User) -> Dict[str, Any]:
    # Public summary: never the password hash, never key material
    return {
        "id": str(u.id),
        "name": u.name,
        "email": u.email,
        "role": u.role,
        "wallet": u.wallet_address,
        "balance": u.balance,
        "sharedPoints": u.shared_points,
        "isTopPerformer": bool(u.is_top_performer),
        "createdAt": _iso(u.created_at),
    }


def token_claims(u: User) -> Dict[str, Any]:
    return {
        "id": str(u.id),
        "name": u.name,
        "email": u.email,
        "role": u.role,
        "wallet": u.wallet_address,
    }


def serialize_tx(t: Transaction) -> Dict[str, Any]:
    return {
        "id": str(t.id),
        "txHash": t.tx_hash,
        "from": t.from_address,
        "to": t.to_address,
        "value": t.value,
        "createdAt": _iso(t.created_at),
    }


def serialize_transfer(t: Transfer) -> Dict[str, Any]:
    return {
        "id": str(t.id),
        "status": t.status,
        "mode": t.mode,
        "from": t.from_address,
        "to": t.to_address,
        "value": t.value,
        "txHash": t.tx_hash,
        "failureReason": t.failure_reason,
        "createdAt": _iso(t.created_at),
        "completedAt": _iso(t.completed_at),
    }


def serialize_notification(n: Notification, owner: Optional[User] = None, resolve_owner: bool = False) -> Dict[str, Any]:
    data = {
        "id": str(n.id),
        "title": n.title,
        "content": n.content,
        "user": str(n.user_id) if n.user_id else None,
        "createdAt": _iso(n.created_at),
    }
    if resolve_owner:
        data["user"] = {"id": str(owner.id), "name": owner.name} if owner else None
    return data
