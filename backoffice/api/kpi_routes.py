from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from backoffice.crud import kpi as kpi_crud
from backoffice.db import get_db
from backoffice.schemas.kpi import KpiCreate, KpiRead

router = APIRouter()


@router.get("/", response_model=List[KpiRead])
async def list_kpis(db: AsyncSession = Depends(get_db)):
    return await kpi_crud.get_kpis(db)


@router.post("/", response_model=KpiRead, status_code=201)
async def create_kpi(data: KpiCreate, db: AsyncSession = Depends(get_db)):
    """Track an insight as a KPI; one KPI per insight"""
    return await kpi_crud.create_kpi(db, data)
