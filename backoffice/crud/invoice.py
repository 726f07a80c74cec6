from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from sqlalchemy import func

from backoffice.models.invoice import Invoice, InvoiceStatus


async def get_invoice(db: AsyncSession, invoice_id: str, refresh: bool = False):
    """Get a specific invoice with its supplier"""
    query = (
        select(Invoice)
        .where(Invoice.id == invoice_id)
        .options(selectinload(Invoice.supplier))
    )
    if refresh:
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_invoices(db: AsyncSession, supplier_id: str = None, status: str = None):
    """All invoices, newest invoice date first"""
    query = select(Invoice).options(selectinload(Invoice.supplier))
    if supplier_id:
        query = query.where(Invoice.supplier_id == supplier_id)
    if status:
        query = query.where(Invoice.status == status)
    query = query.order_by(Invoice.invoice_date.desc(), Invoice.created_at.desc())

    result = await db.execute(query)
    return result.scalars().all()


def invoice_stats(invoices) -> dict:
    total = len(invoices)
    processed = sum(1 for i in invoices if i.status == InvoiceStatus.PROCESSED.value)
    match_rate = (processed / total) * 100 if total > 0 else 0
    return {
        "processing_queue": sum(1 for i in invoices if i.status == InvoiceStatus.PROCESSING.value),
        "needs_review": sum(1 for i in invoices if i.status == InvoiceStatus.NEEDS_REVIEW.value),
        "approved": processed,
        "match_rate": int(round(match_rate)),
    }


async def invoice_number_taken(db: AsyncSession, invoice_number: str, exclude_id: str = None) -> bool:
    query = select(func.count(Invoice.id)).where(Invoice.invoice_number == invoice_number)
    if exclude_id:
        query = query.where(Invoice.id != exclude_id)
    result = await db.execute(query)
    return result.scalar_one() > 0
