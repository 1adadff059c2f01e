from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError

from pointsbank import config
from pointsbank.db import crud
from pointsbank.db.models import ROLE_ADMIN, ROLE_USER, Notification, User
from pointsbank.logging_config import get_logger
from pointsbank.services.otp import EmailDeliveryError
from pointsbank.services.security import hash_password, issue_token, verify_password
from .deps import (
    get_db,
    get_email_provider,
    get_otp_manager,
    get_signer,
    require_admin,
    require_user,
)
from .schemas import (
    BalanceUpdate,
    ChangePasswordRequest,
    LoginRequest,
    UserCreate,
    UserUpdate,
    VerifyConfirmRequest,
    VerifyRequest,
)
from .serializers import serialize_user, token_claims

logger = get_logger("pointsbank.api.users")

router = APIRouter(tags=["users"])


async def _get_user_or_404(db, user_id: UUID) -> User:
    u = await crud.get_user_by_id(db, user_id)
    if not u:
        logger.warning("User not found user_id=%s", user_id)
        raise HTTPException(status_code=404, detail="User not found")
    return u


async def _ensure_email_free(db, email: str, exclude_id=None) -> None:
    existing = await crud.get_user_by_email(db, email)
    if existing and existing.id != exclude_id:
        raise HTTPException(status_code=400, detail="User already exists")


@router.post("/login")
async def login(payload: LoginRequest, db=Depends(get_db)):
    """
    Validate email + password and return a session credential.
    """
    if not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="Fields missing")

    email_norm = payload.email.strip().lower()
    logger.info("Login attempt email=%s", email_norm)
    user = await crud.get_user_by_email(db, email_norm)
    if not user or not verify_password(payload.password, user.password_hash):
        logger.warning("Login failed email=%s", email_norm)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    logger.info("Login successful user_id=%s", user.id)
    return {"success": True, "token": issue_token(token_claims(user)), "user": serialize_user(user)}


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(
    payload: UserCreate,
    db=Depends(get_db),
    signer=Depends(get_signer),
    otp_manager=Depends(get_otp_manager),
):
    """
    Create a user with a freshly generated wallet identity.

    The wallet's private key is returned in this response only; the service
    stores the public address and nothing else.
    """
    email_norm = payload.email.strip().lower()
    if payload.role and payload.role.strip().lower() == ROLE_ADMIN:
        logger.warning("Registration with admin role rejected email=%s", email_norm)
        raise HTTPException(status_code=403, detail="Cannot register as admin")
    if payload.role and payload.role.strip().lower() != ROLE_USER:
        raise HTTPException(status_code=400, detail="Invalid role")

    if config.REQUIRE_EMAIL_VERIFICATION and not otp_manager.is_recently_verified(email_norm):
        raise HTTPException(status_code=400, detail="Email not verified")

    await _ensure_email_free(db, email_norm)

    wallet = signer.create_wallet()
    u = User(
        name=payload.name.strip(),
        email=email_norm,
        password_hash=hash_password(payload.password),
        role=ROLE_USER,
        wallet_address=wallet.address,
        balance=config.DEFAULT_BALANCE,
        shared_points=0,
    )
    db.add(u)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning("Registration raced on duplicate email=%s", email_norm)
        raise HTTPException(status_code=400, detail="User already exists")
    await db.refresh(u)
    otp_manager.clear_recent(email_norm)

    logger.info("Registered user_id=%s wallet=%s", u.id, u.wallet_address)
    return {
        "success": True,
        "token": issue_token(token_claims(u)),
        "user": serialize_user(u),
        "wallet_private_key": wallet.private_key,
    }


@router.post("/verify")
async def verify_email(
    payload: VerifyRequest,
    db=Depends(get_db),
    otp_manager=Depends(get_otp_manager),
    email_provider=Depends(get_email_provider),
):
    """
    Check that the email is unused and send it a one-time code.
    """
    email_norm = payload.email.strip().lower()
    await _ensure_email_free(db, email_norm)

    challenge = otp_manager.create_challenge(email_norm)
    greeting = f"Hello, {payload.name}!" if payload.name else "Hello!"
    try:
        await email_provider.send(email_norm, "Verify User", f"{greeting} Your OTP is {challenge.code}")
    except EmailDeliveryError as e:
        otp_manager.clear(email_norm)
        raise HTTPException(status_code=502, detail=str(e))

    logger.info("OTP issued for email=%s", email_norm)
    return {"success": True, "message": "OTP sent"}


@router.post("/verify/confirm")
async def confirm_email(payload: VerifyConfirmRequest, otp_manager=Depends(get_otp_manager)):
    if not otp_manager.verify_code(payload.email, payload.otp):
        raise HTTPException(status_code=400, detail="Invalid or expired OTP")
    return {"success": True, "verified": True}


@router.get("/auth")
async def authorize_token(user: User = Depends(require_user)):
    """
    Resolve the identity behind the presented credential.
    """
    return {"success": True, "authenticated": True, "user": serialize_user(user)}


@router.get("/")
async def list_users(limit: int = 50, offset: int = 0, db=Depends(get_db), admin: User = Depends(require_admin)):
    """
    Paginated list of non-admin users.
    """
    logger.info("Listing users limit=%s offset=%s", limit, offset)
    users = await crud.list_users(db, limit=limit, offset=offset)
    return {"success": True, "count": len(users), "data": [serialize_user(u) for u in users]}


@router.get("/user/{user_id}")
async def get_user(user_id: UUID, db=Depends(get_db), user: User = Depends(require_user)):
    u = await _get_user_or_404(db, user_id)
    return {"success": True, "data": serialize_user(u)}


@router.put("/user/{user_id}")
async def update_user(user_id: UUID, payload: UserUpdate, db=Depends(get_db), admin: User = Depends(require_admin)):
    """
    Administrative update of any user field.
    """
    u = await _get_user_or_404(db, user_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("email"):
        changes["email"] = changes["email"].strip().lower()
        await _ensure_email_free(db, changes["email"], exclude_id=u.id)

    columns = {"sharedPoints": "shared_points", "isTopPerformer": "is_top_performer"}
    for field, value in changes.items():
        if value is None:
            continue
        setattr(u, columns.get(field, field), value)
    await db.commit()
    await db.refresh(u)
    logger.info("Admin %s updated user_id=%s fields=%s", admin.id, u.id, sorted(changes))
    return {"success": True, "data": serialize_user(u)}


@router.put("/balance/{user_id}")
async def update_balance(user_id: UUID, payload: BalanceUpdate, db=Depends(get_db), admin: User = Depends(require_admin)):
    u = await _get_user_or_404(db, user_id)
    u.balance = payload.balance
    await db.commit()
    await db.refresh(u)
    logger.info("Admin %s set balance user_id=%s balance=%s", admin.id, u.id, u.balance)
    return {"success": True, "data": serialize_user(u)}


@router.put("/topPerformer/{user_id}")
async def make_top_performer(user_id: UUID, db=Depends(get_db), admin: User = Depends(require_admin)):
    u = await _get_user_or_404(db, user_id)
    u.is_top_performer = True
    await db.commit()
    await db.refresh(u)
    return {"success": True, "data": serialize_user(u)}


@router.delete("/delete/{user_id}")
async def delete_user(user_id: UUID, db=Depends(get_db), admin: User = Depends(require_admin)):
    u = await _get_user_or_404(db, user_id)
    await db.execute(delete(Notification).where(Notification.user_id == u.id))
    await db.delete(u)
    await db.commit()
    logger.info("Admin %s deleted user_id=%s", admin.id, user_id)
    return {"success": True}


@router.put("/changePassword/{user_id}")
async def change_password(
    user_id: UUID,
    payload: ChangePasswordRequest,
    db=Depends(get_db),
    user: User = Depends(require_user),
):
    """
    Replace a password after checking the old one. Allowed for the account
    owner and for admins.
    """
    if user.id != user_id and user.role != ROLE_ADMIN:
        raise HTTPException(status_code=403, detail="Not Authorized")

    target = await _get_user_or_404(db, user_id)
    if not verify_password(payload.old, target.password_hash):
        logger.warning("Password change rejected user_id=%s", user_id)
        raise HTTPException(status_code=400, detail="Wrong password entered")

    target.password_hash = hash_password(payload.new)
    await db.commit()
    logger.info("Password changed user_id=%s", user_id)
    return {"success": True, "message": "Password updated"}
