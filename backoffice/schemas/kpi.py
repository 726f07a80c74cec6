from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal


class Milestone(BaseModel):
    name: str = Field(min_length=1)
    target_date: date
    target_value: Optional[float] = None


class KpiBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    baseline_value: Decimal
    target_value: Decimal
    unit: str = Field(min_length=1, max_length=50)
    start_date: date
    end_date: date
    milestones: Optional[List[Milestone]] = None


class KpiCreate(KpiBase):
    ai_insight_id: str

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class KpiRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ai_insight_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    baseline_value: float
    target_value: float
    unit: str
    start_date: date
    end_date: date
    milestones: Optional[List[Milestone]] = None
    status: str
    created_at: datetime
