from datetime import datetime
from types import SimpleNamespace

from pointsbank.db.models import Transaction
from pointsbank.services.history import history, monthly_rollup, rollup

ALICE = "0x" + "A1" * 20
BOB = "0x" + "B0" * 20
CAROL = "0x" + "Ca" * 20


def _tx(tx_hash, frm, to, when, value=10):
    return Transaction(tx_hash=tx_hash, from_address=frm, to_address=to, value=value, created_at=when)


async def _seed(db):
    db.add_all(
        [
            _tx("0x01", ALICE, BOB, datetime(2024, 1, 15, 9, 0)),
            _tx("0x02", BOB, ALICE, datetime(2024, 1, 20, 9, 0)),
            _tx("0x03", ALICE, CAROL, datetime(2024, 3, 2, 12, 0)),
            _tx("0x04", BOB, CAROL, datetime(2024, 3, 3, 12, 0)),
            _tx("0x05", CAROL, ALICE, datetime(2023, 12, 31, 23, 59)),
        ]
    )
    await db.commit()


async def test_history_matches_sender_or_recipient_newest_first(db):
    await _seed(db)

    txs = await history(db, ALICE)

    assert [t.tx_hash for t in txs] == ["0x03", "0x02", "0x01", "0x05"]
    assert all(ALICE in (t.from_address, t.to_address) for t in txs)
    assert len({t.id for t in txs}) == len(txs)


async def test_history_address_match_ignores_case(db):
    await _seed(db)
    assert len(await history(db, CAROL.lower())) == 3


async def test_history_for_unknown_address_is_empty(db):
    await _seed(db)
    assert await history(db, "0x" + "9" * 40) == []
    assert await history(db, "") == []


async def test_rollup_groups_by_calendar_month_oldest_first(db):
    await _seed(db)

    months = await rollup(db, ALICE)

    assert months == [("2023-12", 1), ("2024-01", 2), ("2024-03", 1)]
    assert sum(count for _, count in months) == len(await history(db, ALICE))


async def test_rollup_for_unknown_address_is_empty(db):
    assert await rollup(db, BOB) == []


def test_monthly_rollup_is_independent_of_input_order():
    rows = [
        SimpleNamespace(created_at=datetime(2024, 5, 1)),
        SimpleNamespace(created_at=datetime(2024, 2, 29)),
        SimpleNamespace(created_at=datetime(2024, 5, 31, 23, 59)),
    ]
    assert monthly_rollup(rows) == [("2024-02", 1), ("2024-05", 2)]
