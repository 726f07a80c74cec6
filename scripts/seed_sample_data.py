"""
Seed Sample Back-Office Data: Suppliers and Team Members

Suppliers and staff have no public create route; this script adds a couple
of each for local development. It is SAFE to run multiple times (idempotent).

Usage:
    python scripts/seed_sample_data.py
"""

import asyncio
import sys
import os
from decimal import Decimal

# -------------------------------------------------------------------
# WINDOWS EVENT LOOP FIX (CRITICAL)
# -------------------------------------------------------------------
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from sqlalchemy.future import select
from backoffice.crud import supplier as supplier_crud
from backoffice.crud import team as team_crud
from backoffice.db import async_session, create_db_and_tables
from backoffice.models.supplier import Supplier
from backoffice.models.team import Team
from backoffice.schemas.supplier import SupplierCreate

# -------------------------------------------------------------------
# SEED DATA
# -------------------------------------------------------------------
SUPPLIERS = [
    ("Metro Coffee Co", "orders@metrocoffee.com"),
    ("Fresh Produce Plus", "supply@freshplus.com.au"),
]

# (first_name, last_name, position, hourly_rate, branch, staff_code)
TEAM = [
    ("Sarah", "Johnson", "Store Manager", "28.50", "Sydney CBD", "1001"),
    ("Michael", "Chen", "Barista", "22.75", "Melbourne Central", "1002"),
]


async def seed_sample_data():
    await create_db_and_tables()

    async with async_session() as session:
        result = await session.execute(select(Supplier.company_name))
        existing_suppliers = {row[0] for row in result.all()}

        created = 0
        for company_name, email in SUPPLIERS:
            if company_name in existing_suppliers:
                continue
            await supplier_crud.create_supplier(
                session, SupplierCreate(company_name=company_name, email_address=email)
            )
            created += 1
        print(f"Suppliers created: {created}")

        result = await session.execute(select(Team.staff_code))
        existing_codes = {row[0] for row in result.all()}

        created = 0
        for first, last, position, rate, branch, code in TEAM:
            if code in existing_codes:
                continue
            await team_crud.create_team_member(
                session,
                first_name=first,
                last_name=last,
                position=position,
                hourly_rate=Decimal(rate),
                branch=branch,
                staff_code=code,
            )
            created += 1
        print(f"Team members created: {created}")


if __name__ == "__main__":
    asyncio.run(seed_sample_data())
