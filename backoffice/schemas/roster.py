from pydantic import BaseModel, ConfigDict, Field
from typing import List
from datetime import date, time


class RosterShiftIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day: str
    start_time: time = Field(alias="startTime")
    end_time: time = Field(alias="endTime")
    target: int = Field(ge=0)
    assigned_staff: List[str] = Field(default_factory=list, alias="assignedStaff")


class RosterSave(BaseModel):
    week_start: date
    shifts: List[RosterShiftIn] = Field(min_length=1)


class RosterRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    week_start: date
    day: str
    start_time: time
    end_time: time
    target: int
    assigned_staff: List[str]
