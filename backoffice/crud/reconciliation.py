from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import func
from datetime import date

from backoffice.models.sales_reconciliation import SalesReconciliation, ReconciliationStatus

ACTIVE_STATUSES = (
    ReconciliationStatus.PENDING.value,
    ReconciliationStatus.NEEDS_REVIEW.value,
    ReconciliationStatus.REJECTED.value,
)


async def get_reconciliation(db: AsyncSession, reconciliation_id: str, refresh: bool = False):
    query = select(SalesReconciliation).where(SalesReconciliation.id == reconciliation_id)
    if refresh:
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_active_for_date(db: AsyncSession, branch: str, day: date):
    """The open (not reconciled) record for a branch and day, if any"""
    result = await db.execute(
        select(SalesReconciliation)
        .where(
            SalesReconciliation.branch == branch,
            SalesReconciliation.date == day,
            SalesReconciliation.status.in_(ACTIVE_STATUSES),
        )
        .order_by(SalesReconciliation.created_at.desc())
    )
    return result.scalars().first()


async def get_month_to_date(db: AsyncSession, branch: str, since: date):
    result = await db.execute(
        select(SalesReconciliation).where(
            SalesReconciliation.branch == branch,
            SalesReconciliation.date >= since,
        )
    )
    return result.scalars().all()


async def count_by_status(db: AsyncSession, branch: str, status: ReconciliationStatus) -> int:
    result = await db.execute(
        select(func.count(SalesReconciliation.id)).where(
            SalesReconciliation.branch == branch,
            SalesReconciliation.status == status.value,
        )
    )
    return result.scalar_one()


async def get_history(db: AsyncSession, branch: str, limit: int = 50):
    """Records that have a receipt total, newest day first"""
    result = await db.execute(
        select(SalesReconciliation)
        .where(
            SalesReconciliation.branch == branch,
            SalesReconciliation.total_sales_from_receipt.is_not(None),
        )
        .order_by(SalesReconciliation.date.desc(), SalesReconciliation.updated_at.desc())
        .limit(limit)
    )
    return result.scalars().all()
