from sqlalchemy import Column, String, DateTime, Date, Numeric
from sqlalchemy.orm import relationship
from backoffice.models.base import Base
from backoffice.utils.timezones import utcnow
import uuid


class Team(Base):
    """A staff member"""
    __tablename__ = "teams"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=True, unique=True)
    position = Column(String, nullable=True)
    branch = Column(String, nullable=True)
    employment_type = Column(String, nullable=True)  # full_time, part_time, casual
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    staff_code = Column(String, nullable=True, unique=True)
    start_date = Column(Date, nullable=True)
    status = Column(String, nullable=False, default="active")
    created_at = Column(DateTime, default=utcnow)

    timesheets = relationship("Timesheet", back_populates="team", cascade="all, delete-orphan")
