from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import Settings, get_settings
from backoffice.db import get_db
from backoffice.schemas.timesheet import ManualTimeEntry, TeamAction, TimesheetRead
from backoffice.utils.timeclock_service import (
    add_manual_entry,
    autoclose_stale_entries,
    clock_in,
    clock_out,
    end_break,
    start_break,
)

router = APIRouter()


@router.post("/clock-in", response_model=TimesheetRead)
async def post_clock_in(data: TeamAction, db: AsyncSession = Depends(get_db)):
    e = await clock_in(db, data.team_id)
    await db.commit()
    return e


@router.post("/clock-out", response_model=TimesheetRead)
async def post_clock_out(data: TeamAction, db: AsyncSession = Depends(get_db)):
    e = await clock_out(db, data.team_id)
    await db.commit()
    return e


@router.post("/take-break", response_model=TimesheetRead)
async def post_take_break(data: TeamAction, db: AsyncSession = Depends(get_db)):
    e = await start_break(db, data.team_id)
    await db.commit()
    return e


@router.post("/end-break", response_model=TimesheetRead)
async def post_end_break(data: TeamAction, db: AsyncSession = Depends(get_db)):
    e = await end_break(db, data.team_id)
    await db.commit()
    return e


@router.post("/", response_model=TimesheetRead, status_code=201)
async def post_manual_entry(data: ManualTimeEntry, db: AsyncSession = Depends(get_db)):
    """Manager-entered shift"""
    e = await add_manual_entry(db, data)
    await db.commit()
    return e


@router.post("/autoclose")
async def post_autoclose(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    count = await autoclose_stale_entries(db, settings.timesheet_stale_hours)
    await db.commit()
    return {"ok": True, "closed": count}
