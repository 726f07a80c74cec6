from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import date
from typing import List

from backoffice.crud import roster as roster_crud
from backoffice.db import get_db
from backoffice.schemas.roster import RosterRead, RosterSave
from backoffice.utils.timezones import monday_of_week

router = APIRouter()


@router.get("/", response_model=List[RosterRead])
async def get_roster(week_start: date, db: AsyncSession = Depends(get_db)):
    """Shifts for the week containing week_start"""
    return await roster_crud.get_week(db, monday_of_week(week_start))


@router.post("/", response_model=List[RosterRead])
async def save_roster(data: RosterSave, db: AsyncSession = Depends(get_db)):
    """Replace every shift of the week"""
    return await roster_crud.save_week(db, data)
