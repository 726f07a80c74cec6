from pydantic import BaseModel, ConfigDict, model_validator
from typing import Optional
from datetime import date, datetime, time

from backoffice.models.timesheet import TimesheetStatus


class TeamAction(BaseModel):
    team_id: str


class ManualTimeEntry(BaseModel):
    employee_id: str
    date: date
    clock_in: time
    clock_out: time
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_order(self):
        if self.clock_out <= self.clock_in:
            raise ValueError("The clock out time must be after the clock in time.")
        return self


class TimesheetRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    team_id: str
    clock_in: datetime
    clock_out: Optional[datetime] = None
    break_start: Optional[datetime] = None
    break_end: Optional[datetime] = None
    status: TimesheetStatus
    entry_type: str
    notes: Optional[str] = None
    duration_minutes: Optional[int] = None
    gross_pay: Optional[float] = None
