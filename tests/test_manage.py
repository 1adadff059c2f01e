from sqlalchemy import func, select

from pointsbank.db.models import ROLE_ADMIN, Notification, Transaction, User
from pointsbank.manage import build_parser, create_admin, reset_accounts, reset_db
from pointsbank.services.security import verify_password
from pointsbank.services.transfers import TransferEngine


async def _count(db, model):
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def _seed_ledger(db, make_user, signer):
    alice, key = await make_user("Alice", "alice@example.com")
    bob, _ = await make_user("Bob", "bob@example.com")
    await TransferEngine(signer).transfer(db, alice, "email", "bob@example.com", 100, key)
    db.add(Notification(user_id=bob.id, title="t", content="c"))
    await db.commit()
    return alice, bob


async def test_reset_accounts(db, make_user, signer):
    alice, bob = await _seed_ledger(db, make_user, signer)

    await reset_accounts(db, balance=100)

    await db.refresh(alice)
    await db.refresh(bob)
    assert (alice.balance, bob.balance) == (100, 100)
    assert alice.shared_points == 0
    assert await _count(db, Transaction) == 0
    assert await _count(db, User) == 2


async def test_reset_db_keeps_admins_only(db, make_user, signer):
    await _seed_ledger(db, make_user, signer)
    admin, key = await create_admin(db, "Root", "root@example.com", "root-password-1", signer=signer)
    assert key.startswith("0x")

    await reset_db(db)

    users = (await db.execute(select(User))).scalars().all()
    assert [u.email for u in users] == ["root@example.com"]
    assert await _count(db, Transaction) == 0
    assert await _count(db, Notification) == 0


async def test_create_admin_promotes_existing_user(db, make_user):
    alice, _ = await make_user("Alice", "alice@example.com")

    user, key = await create_admin(db, "Alice", "ALICE@example.com", "ignored-password")

    assert key is None
    assert user.id == alice.id
    assert user.role == ROLE_ADMIN


async def test_create_admin_hashes_password(db, signer):
    user, _ = await create_admin(db, "Root", "root@example.com", "root-password-1", signer=signer)
    assert user.password_hash != "root-password-1"
    assert verify_password("root-password-1", user.password_hash)


def test_parser_commands():
    parser = build_parser()
    assert parser.parse_args(["reset-accounts", "--balance", "50"]).balance == 50
    assert parser.parse_args(["reset-db"]).command == "reset-db"
    args = parser.parse_args(["create-admin", "--name", "R", "--email", "r@example.com", "--password", "pw"])
    assert (args.name, args.email) == ("R", "r@example.com")
