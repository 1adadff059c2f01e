from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select

from pointsbank.db import crud
from pointsbank.db.models import Notification, User
from pointsbank.logging_config import get_logger
from .deps import get_db, require_admin, require_user
from .schemas import NotificationIn
from .serializers import serialize_notification

logger = get_logger("pointsbank.api.notifications")

router = APIRouter(tags=["notifications"])


@router.get("/notifications")
async def get_notifications(db=Depends(get_db), admin: User = Depends(require_admin)):
    """
    All notifications, each with its owner's id and name resolved.
    """
    notifications = await crud.list_notifications(db)
    owner_ids = {n.user_id for n in notifications if n.user_id}
    owners = {}
    if owner_ids:
        res = await db.execute(select(User).where(User.id.in_(owner_ids)))
        owners = {u.id: u for u in res.scalars().all()}

    data = []
    for n in notifications:
        owner = owners.get(n.user_id)
        if owner is None:
            logger.warning("User not found for notification %s", n.id)
        data.append(serialize_notification(n, owner, resolve_owner=True))
    return {"success": True, "count": len(data), "data": data}


@router.get("/user-notifications")
async def get_my_notifications(db=Depends(get_db), user: User = Depends(require_user)):
    notifications = await crud.list_notifications(db, user_id=user.id)
    return {"success": True, "count": len(notifications), "data": [serialize_notification(n) for n in notifications]}


@router.post("/notify")
async def send_notification(payload: NotificationIn, db=Depends(get_db), user: User = Depends(require_user)):
    if not payload.title or not payload.content:
        raise HTTPException(status_code=400, detail="Bad request")

    n = Notification(user_id=user.id, title=payload.title, content=payload.content)
    db.add(n)
    await db.commit()
    await db.refresh(n)
    logger.info("Notification %s created by user_id=%s", n.id, user.id)
    return {"success": True, "data": serialize_notification(n)}
