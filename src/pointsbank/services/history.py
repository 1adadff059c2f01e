"""
Read-side queries over the transaction log.
"""

from collections import OrderedDict
from typing import Iterable, List, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from pointsbank.db.models import Transaction


async def history(db: AsyncSession, address: str) -> List[Transaction]:
    """
    Transactions where ``address`` is the sender or the recipient,
    newest first. Unknown addresses simply yield an empty list.
    """
    if not address:
        return []
    needle = address.strip().lower()
    stmt = (
        select(Transaction)
        .where(
            or_(
                func.lower(Transaction.from_address) == needle,
                func.lower(Transaction.to_address) == needle,
            )
        )
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
    )
    res = await db.execute(stmt)
    seen = set()
    out = []
    for tx in res.scalars().all():
        if tx.id in seen:
            continue
        seen.add(tx.id)
        out.append(tx)
    return out


def monthly_rollup(transactions: Iterable[Transaction]) -> List[Tuple[str, int]]:
    """Count transactions per calendar month (``YYYY-MM``), oldest month first."""
    counts = OrderedDict()
    for tx in sorted(transactions, key=lambda t: t.created_at):
        month = tx.created_at.strftime("%Y-%m")
        counts[month] = counts.get(month, 0) + 1
    return list(counts.items())


async def rollup(db: AsyncSession, address: str) -> List[Tuple[str, int]]:
    return monthly_rollup(await history(db, address))
