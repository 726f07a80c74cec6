from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from backoffice.models.supplier import Supplier
from backoffice.schemas.supplier import SupplierCreate
import uuid


async def create_supplier(db: AsyncSession, supplier: SupplierCreate):
    """Create a supplier (seed scripts and tests; no public route)"""
    new_supplier = Supplier(id=str(uuid.uuid4()), **supplier.model_dump())
    db.add(new_supplier)
    await db.commit()
    await db.refresh(new_supplier)
    return new_supplier


async def get_supplier(db: AsyncSession, supplier_id: str):
    return await db.get(Supplier, supplier_id)


async def get_suppliers_for_insights(db: AsyncSession):
    """All suppliers with the invoices and ingredients their insight needs"""
    result = await db.execute(
        select(Supplier)
        .options(selectinload(Supplier.invoices), selectinload(Supplier.ingredients))
        .order_by(Supplier.company_name)
        .execution_options(populate_existing=True)
    )
    return result.scalars().all()
