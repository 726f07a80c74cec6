from datetime import date, time, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from pydantic import ValidationError

from backoffice.core.errors import AlreadyClockedInError, BusinessRuleError, NotFoundError
from backoffice.crud import team as team_crud
from backoffice.models.timesheet import TimesheetStatus
from backoffice.schemas.timesheet import ManualTimeEntry
from backoffice.utils import timeclock_service as tc
from backoffice.utils.timezones import utcnow


@pytest_asyncio.fixture
async def sarah(db):
    return await team_crud.create_team_member(
        db, "Sarah", "Johnson", hourly_rate=Decimal("24.00"), branch="Sydney CBD", staff_code="1001"
    )


@pytest.mark.asyncio
async def test_clock_in_once(db, sarah):
    entry = await tc.clock_in(db, sarah.id)
    assert entry.status == TimesheetStatus.ACTIVE
    assert entry.entry_type == "clock"

    with pytest.raises(AlreadyClockedInError):
        await tc.clock_in(db, sarah.id)


@pytest.mark.asyncio
async def test_unknown_team_member(db):
    with pytest.raises(NotFoundError):
        await tc.clock_in(db, "ghost")


@pytest.mark.asyncio
async def test_clock_out_snapshots_pay(db, sarah):
    entry = await tc.clock_in(db, sarah.id)
    entry.clock_in = utcnow() - timedelta(hours=2, minutes=30)

    entry = await tc.clock_out(db, sarah.id)

    assert entry.status == TimesheetStatus.COMPLETED
    assert entry.duration_minutes == 150
    assert entry.hourly_rate == Decimal("24.00")
    assert entry.gross_pay == Decimal("60.00")


@pytest.mark.asyncio
async def test_clock_out_without_clock_in(db, sarah):
    with pytest.raises(NotFoundError):
        await tc.clock_out(db, sarah.id)


@pytest.mark.asyncio
async def test_break_is_unpaid(db, sarah):
    entry = await tc.clock_in(db, sarah.id)
    entry = await tc.start_break(db, sarah.id)
    assert entry.status == TimesheetStatus.ON_BREAK

    with pytest.raises(BusinessRuleError):
        await tc.start_break(db, sarah.id)

    now = utcnow()
    entry.clock_in = now - timedelta(hours=3)
    entry.break_start = now - timedelta(minutes=30)
    # clocking out while on break ends the break
    entry = await tc.clock_out(db, sarah.id)

    assert entry.break_end is not None
    assert entry.duration_minutes == 150
    assert entry.gross_pay == Decimal("60.00")


@pytest.mark.asyncio
async def test_only_one_break_per_shift(db, sarah):
    await tc.clock_in(db, sarah.id)
    await tc.start_break(db, sarah.id)
    entry = await tc.end_break(db, sarah.id)
    assert entry.status == TimesheetStatus.ACTIVE

    with pytest.raises(BusinessRuleError):
        await tc.end_break(db, sarah.id)
    with pytest.raises(BusinessRuleError):
        await tc.start_break(db, sarah.id)


@pytest.mark.asyncio
async def test_manual_entry(db, sarah):
    data = ManualTimeEntry(
        employee_id=sarah.id, date=date(2026, 3, 2), clock_in=time(9, 0), clock_out=time(17, 30)
    )

    entry = await tc.add_manual_entry(db, data)

    assert entry.entry_type == "manual"
    assert entry.status == TimesheetStatus.COMPLETED
    assert entry.duration_minutes == 510
    assert entry.gross_pay == Decimal("204.00")


def test_manual_entry_must_end_after_start():
    with pytest.raises(ValidationError):
        ManualTimeEntry(employee_id="x", date=date(2026, 3, 2), clock_in=time(17), clock_out=time(9))


@pytest.mark.asyncio
async def test_autoclose_stale_entries(db, sarah):
    michael = await team_crud.create_team_member(db, "Michael", "Chen", staff_code="1002")
    stale = await tc.clock_in(db, sarah.id)
    stale.clock_in = utcnow() - timedelta(hours=20)
    fresh = await tc.clock_in(db, michael.id)
    await db.flush()

    closed = await tc.autoclose_stale_entries(db, max_hours=16)

    assert closed == 1
    assert stale.status == TimesheetStatus.COMPLETED
    assert stale.notes.endswith("auto-closed (stale)")
    assert stale.gross_pay == Decimal("480.00")
    assert fresh.status == TimesheetStatus.ACTIVE
