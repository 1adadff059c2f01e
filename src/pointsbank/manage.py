"""
Administrative commands for the points database.

    pointsbank-manage init-db
    pointsbank-manage reset-accounts [--balance N]
    pointsbank-manage reset-db
    pointsbank-manage create-admin --name NAME --email EMAIL --password PASSWORD
"""

import argparse
import asyncio
import sys

from sqlalchemy import delete, update

from pointsbank import config
from pointsbank.db import crud
from pointsbank.db.models import ROLE_ADMIN, Notification, Transaction, Transfer, User
from pointsbank.db.session import AsyncSessionLocal, init_db
from pointsbank.logging_config import get_logger, setup_logging
from pointsbank.services.security import hash_password
from pointsbank.services.signer import EthAccountSigner

logger = get_logger("pointsbank.manage")


async def reset_accounts(db, balance: int = None) -> None:
    """Set every balance back to the opening amount and clear the ledger."""
    balance = config.DEFAULT_BALANCE if balance is None else balance
    await db.execute(update(User).values(balance=balance, shared_points=0))
    await db.execute(delete(Transaction))
    await db.execute(delete(Transfer))
    await db.commit()
    logger.info("Accounts reset: balance=%s, ledger cleared", balance)


async def reset_db(db) -> None:
    """Remove every non-admin user together with all ledger and notification rows."""
    await db.execute(delete(Notification))
    await db.execute(delete(Transaction))
    await db.execute(delete(Transfer))
    await db.execute(delete(User).where(User.role != ROLE_ADMIN))
    await db.commit()
    logger.info("Database reset: non-admin users, transactions, transfers and notifications removed")


async def create_admin(db, name: str, email: str, password: str, signer=None):
    """
    Create an admin account, or promote an existing user with that email.
    Returns ``(user, private_key)``; the key is None when the user already existed.
    """
    existing = await crud.get_user_by_email(db, email)
    if existing:
        existing.role = ROLE_ADMIN
        await db.commit()
        logger.info("Promoted user_id=%s to admin", existing.id)
        return existing, None

    wallet = (signer or EthAccountSigner()).create_wallet()
    user = User(
        name=name,
        email=email.strip().lower(),
        password_hash=hash_password(password),
        role=ROLE_ADMIN,
        wallet_address=wallet.address,
        balance=config.DEFAULT_BALANCE,
        shared_points=0,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Created admin user_id=%s", user.id)
    return user, wallet.private_key


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pointsbank-manage", description="Points database administration")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="create missing tables")

    p_accounts = sub.add_parser("reset-accounts", help="reset balances and clear the ledger")
    p_accounts.add_argument("--balance", type=int, default=None)

    sub.add_parser("reset-db", help="wipe non-admin users, transactions and notifications")

    p_admin = sub.add_parser("create-admin", help="create or promote an admin account")
    p_admin.add_argument("--name", required=True)
    p_admin.add_argument("--email", required=True)
    p_admin.add_argument("--password", required=True)
    return parser


async def run(args) -> int:
    await init_db()
    if args.command == "init-db":
        print("Tables ready")
        return 0

    async with AsyncSessionLocal() as db:
        if args.command == "reset-accounts":
            await reset_accounts(db, args.balance)
            print("ACCOUNTS RESET!")
        elif args.command == "reset-db":
            await reset_db(db)
            print("DB RESET!")
        elif args.command == "create-admin":
            user, private_key = await create_admin(db, args.name, args.email, args.password)
            print(f"Admin {user.email} ready (wallet {user.wallet_address})")
            if private_key:
                print(f"Wallet private key (shown once, store it safely): {private_key}")
    return 0


def main(argv=None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
