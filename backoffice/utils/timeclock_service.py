from datetime import datetime, timedelta
from decimal import Decimal
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import uuid4
import logging

from backoffice.core.errors import AlreadyClockedInError, BusinessRuleError, NotFoundError
from backoffice.models.team import Team
from backoffice.models.timesheet import Timesheet, TimesheetStatus
from backoffice.schemas.timesheet import ManualTimeEntry
from backoffice.utils.money import money
from backoffice.utils.timezones import utcnow

log = logging.getLogger(__name__)

OPEN_STATUSES = (TimesheetStatus.ACTIVE, TimesheetStatus.ON_BREAK)


async def _get_team(db: AsyncSession, team_id: str) -> Team:
    member = await db.get(Team, team_id)
    if member is None:
        raise NotFoundError("Team member not found.")
    return member


def _break_minutes(e: Timesheet) -> int:
    if e.break_start and e.break_end:
        return max(0, int((e.break_end - e.break_start).total_seconds() // 60))
    return 0


def _close(e: Timesheet, clock_out: datetime, rate) -> None:
    """Snapshot duration and gross pay on an entry being closed"""
    e.clock_out = clock_out
    worked = int((e.clock_out - e.clock_in).total_seconds() // 60) - _break_minutes(e)
    e.duration_minutes = max(0, worked)
    e.status = TimesheetStatus.COMPLETED
    e.hourly_rate = money(rate or 0)
    e.gross_pay = money(Decimal(e.duration_minutes) / Decimal(60) * e.hourly_rate)


async def get_active_entry(db: AsyncSession, team_id: str):
    q = select(Timesheet).where(
        and_(
            Timesheet.team_id == team_id,
            Timesheet.status.in_(OPEN_STATUSES),
        )
    )
    res = await db.execute(q)
    return res.scalars().first()


async def clock_in(db: AsyncSession, team_id: str):
    await _get_team(db, team_id)
    if await get_active_entry(db, team_id):
        log.warning("clock_in while already active: team=%s", team_id)
        raise AlreadyClockedInError("Already clocked in.")

    e = Timesheet(
        id=str(uuid4()),
        team_id=team_id,
        clock_in=utcnow(),
        status=TimesheetStatus.ACTIVE,
        entry_type="clock",
    )
    db.add(e)
    await db.flush()

    log.info("clock_in: team=%s entry=%s", team_id, e.id)
    return e


async def clock_out(db: AsyncSession, team_id: str):
    e = await get_active_entry(db, team_id)
    if not e:
        log.warning("clock_out with no active entry: team=%s", team_id)
        raise NotFoundError("No active clock-in found.")

    member = await _get_team(db, team_id)
    now = utcnow()
    if e.status == TimesheetStatus.ON_BREAK:
        e.break_end = now
    _close(e, now, member.hourly_rate)

    await db.flush()
    log.info(
        "clock_out: team=%s entry=%s minutes=%s gross=%s",
        team_id, e.id, e.duration_minutes, e.gross_pay,
    )
    return e


async def start_break(db: AsyncSession, team_id: str):
    e = await get_active_entry(db, team_id)
    if not e or e.status != TimesheetStatus.ACTIVE:
        raise BusinessRuleError("You must be clocked in and not on break to start a break.")
    if e.break_start is not None:
        raise BusinessRuleError("A break has already been taken on this shift.")

    e.break_start = utcnow()
    e.status = TimesheetStatus.ON_BREAK
    await db.flush()
    log.info("break start: team=%s entry=%s", team_id, e.id)
    return e


async def end_break(db: AsyncSession, team_id: str):
    e = await get_active_entry(db, team_id)
    if not e or e.status != TimesheetStatus.ON_BREAK:
        raise BusinessRuleError("You are not currently on a break.")

    e.break_end = utcnow()
    e.status = TimesheetStatus.ACTIVE
    await db.flush()
    log.info("break end: team=%s entry=%s", team_id, e.id)
    return e


async def add_manual_entry(db: AsyncSession, data: ManualTimeEntry):
    """Manager-entered completed shift for a given day"""
    member = await _get_team(db, data.employee_id)

    e = Timesheet(
        id=str(uuid4()),
        team_id=member.id,
        clock_in=datetime.combine(data.date, data.clock_in),
        entry_type="manual",
        notes=data.notes,
    )
    _close(e, datetime.combine(data.date, data.clock_out), member.hourly_rate)
    db.add(e)
    await db.flush()

    log.info("manual entry: team=%s entry=%s minutes=%s", member.id, e.id, e.duration_minutes)
    return e


async def autoclose_stale_entries(db: AsyncSession, max_hours: int = 16):
    """Close any open entries older than max_hours."""
    cutoff = utcnow() - timedelta(hours=max_hours)
    q = select(Timesheet).where(
        and_(
            Timesheet.status.in_(OPEN_STATUSES),
            Timesheet.clock_in < cutoff,
        )
    )
    res = await db.execute(q)
    entries = res.scalars().all()

    count = 0
    for e in entries:
        member = await db.get(Team, e.team_id)
        now = utcnow()
        if e.status == TimesheetStatus.ON_BREAK:
            e.break_end = now
        _close(e, now, member.hourly_rate if member else 0)
        e.notes = (e.notes or "") + " | auto-closed (stale)"
        count += 1

    if count:
        await db.flush()
        log.warning("autoclosed %s stale open entries", count)
    return count
