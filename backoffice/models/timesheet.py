from sqlalchemy import (
    Column, String, DateTime, Integer, ForeignKey,
    Enum, Index, Numeric, CheckConstraint, Text
)
from sqlalchemy.orm import relationship
import enum
from backoffice.models.base import Base
from backoffice.utils.timezones import utcnow


class TimesheetStatus(str, enum.Enum):
    ACTIVE = "active"         # clocked in, no clock_out yet
    ON_BREAK = "on_break"
    COMPLETED = "completed"   # clocked out


class Timesheet(Base):
    __tablename__ = "timesheets"

    id = Column(String, primary_key=True)
    team_id = Column(String, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)

    # Always store UTC datetimes (convert on display if needed)
    clock_in = Column(DateTime(timezone=False), nullable=False, default=utcnow)
    clock_out = Column(DateTime(timezone=False), nullable=True)
    break_start = Column(DateTime(timezone=False), nullable=True)
    break_end = Column(DateTime(timezone=False), nullable=True)

    status = Column(Enum(TimesheetStatus), nullable=False, default=TimesheetStatus.ACTIVE)
    entry_type = Column(String, nullable=False, default="clock")  # clock, manual
    notes = Column(Text, nullable=True)

    # snapshot at close
    duration_minutes = Column(Integer, nullable=True)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    gross_pay = Column(Numeric(10, 2), nullable=True)

    team = relationship("Team", back_populates="timesheets")

    __table_args__ = (
        CheckConstraint(
            'duration_minutes IS NULL OR duration_minutes >= 0',
            name='ck_timesheets_duration_nonneg'
        ),
        CheckConstraint(
            'gross_pay IS NULL OR gross_pay >= 0',
            name='ck_timesheets_gross_nonneg'
        ),
    )


Index("ix_timesheets_team_status", Timesheet.team_id, Timesheet.status)
