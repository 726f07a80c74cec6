from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy import delete
from datetime import date
import logging
import uuid

from backoffice.models.roster import Roster
from backoffice.schemas.roster import RosterSave
from backoffice.utils.timezones import monday_of_week

log = logging.getLogger(__name__)


async def get_week(db: AsyncSession, week_start: date):
    result = await db.execute(
        select(Roster)
        .where(Roster.week_start == week_start)
        .order_by(Roster.created_at, Roster.id)
    )
    return result.scalars().all()


async def save_week(db: AsyncSession, data: RosterSave):
    """Replace the whole roster for a week in one transaction"""
    week_start = monday_of_week(data.week_start)
    await db.execute(delete(Roster).where(Roster.week_start == week_start))
    for shift in data.shifts:
        db.add(Roster(
            id=str(uuid.uuid4()),
            week_start=week_start,
            day=shift.day.upper(),
            start_time=shift.start_time,
            end_time=shift.end_time,
            target=shift.target,
            assigned_staff=list(shift.assigned_staff),
        ))
    await db.commit()
    log.info("roster saved: week=%s shifts=%s", week_start, len(data.shifts))
    return await get_week(db, week_start)
